from __future__ import annotations

from pathlib import Path

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from tifffile import TiffFile

from beadpsf.errors import StorageError
from beadpsf.psf.stats import canonical_stack


def read_hyperstack(path: Path | str) -> tuple[NDArray[np.generic], str]:
    """Read the first series of a TIFF with its axes string (e.g. ``"TZCYX"``)."""
    path = Path(path)
    try:
        with TiffFile(path) as tif:
            series = tif.series[0]
            axes = series.axes
            data = series.asarray()
    except FileNotFoundError as e:
        raise StorageError(f"Input stack not found: {path}", stage="read") from e
    except Exception as e:
        raise StorageError(f"Cannot read {path}: {e}", stage="read") from e
    logger.debug(f"Read {path.name}: shape={data.shape} axes={axes} dtype={data.dtype}")
    return data, axes


def load_stack(path: Path | str, channel: int = 0) -> NDArray[np.generic]:
    """Read a bead acquisition and return it as a ``(Z, Y, X)`` stack."""
    data, axes = read_hyperstack(path)
    return canonical_stack(data, axes, channel=channel)


__all__ = ["read_hyperstack", "load_stack"]
