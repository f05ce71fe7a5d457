import pytest
from loguru import logger

import beadpsf
from beadpsf.config import PSFConfig
from beadpsf.utils.logging import configure_cli_logging


def test_configure_cli_logging_creates_output_log(tmp_path):
    component = "psf"
    log_file = configure_cli_logging(tmp_path, component, console_level="INFO", file="beads.tif")

    try:
        logger.warning("hello world")
    finally:
        logger.remove()

    expected_root = tmp_path / "logs"
    assert log_file == expected_root / f"{component}.log"
    assert log_file.exists()
    content = log_file.read_text()
    assert "hello world" in content
    assert "WARNING" in content
    assert "[psf] beads.tif" in content


def test_configure_cli_logging_without_output_dir(tmp_path):
    assert configure_cli_logging(None, "psf") is None
    assert not (tmp_path / "logs").exists()


def test_file_sink_keeps_debug_when_console_is_quiet(tmp_path):
    log_file = configure_cli_logging(tmp_path, "psf", console_level="ERROR")

    try:
        logger.debug("only in the file")
    finally:
        logger.remove()

    assert "only in the file" in log_file.read_text()


def test_lazy_package_exports():
    assert beadpsf.PSFConfig is PSFConfig
    assert "extract_psf" in dir(beadpsf)
    assert "__version__" in beadpsf.__all__
    with pytest.raises(AttributeError, match="does_not_exist"):
        beadpsf.does_not_exist  # noqa: B018
