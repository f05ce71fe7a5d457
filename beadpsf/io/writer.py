"""Output layout for a PSF extraction run.

::

    OUT/
      detected_peaks.png
      Single_PSFs/PSF_<i>.tif
      std_PSF.tif          (only when requested)
      avg_PSF.tif
      beads.csv
      psf_params.json

A run first clears these files from any earlier run into the same directory,
so the layout always describes a single run.
"""

from __future__ import annotations

import json
from contextlib import suppress
from pathlib import Path
from typing import Any, Callable, Sequence

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt
import polars as pl
from loguru import logger
from matplotlib.figure import Figure
from tifffile import imwrite as tifffile_imwrite

from beadpsf.errors import StorageError
from beadpsf.psf.localize import BeadCandidate

OVERLAY_NAME = "detected_peaks.png"
SINGLE_DIR = "Single_PSFs"
AVG_NAME = "avg_PSF.tif"
STD_NAME = "std_PSF.tif"
BEADS_NAME = "beads.csv"
PARAMS_NAME = "psf_params.json"


def safe_imwrite(
    path: Path | str,
    data: npt.ArrayLike,
    *,
    imwrite_func: Callable[..., Any] = tifffile_imwrite,
    partial_suffix: str = ".partial",
    mkdir: bool = True,
    **kwargs: Any,
) -> None:
    """Write TIFF data atomically through a temporary ``.partial`` file.

    Readers never observe a half-written TIFF; on failure the temporary file
    is removed and the exception propagates.
    """

    final_path = Path(path)
    if mkdir:
        final_path.parent.mkdir(parents=True, exist_ok=True)

    partial_path = final_path.with_name(f"{final_path.name}{partial_suffix}")

    if partial_path.exists():
        partial_path.unlink()

    try:
        imwrite_func(partial_path, data, **kwargs)
    except Exception:
        with suppress(FileNotFoundError):
            partial_path.unlink()
        raise

    try:
        partial_path.replace(final_path)
    except Exception:
        with suppress(FileNotFoundError):
            partial_path.unlink()
        raise


class PSFOutputWriter:
    """Persists every artifact of a run under one output directory."""

    def __init__(self, output_dir: Path | str) -> None:
        self.output_dir = Path(output_dir)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create output directory {self.output_dir}: {e}", stage="write") from e

    @property
    def single_dir(self) -> Path:
        return self.output_dir / SINGLE_DIR

    def single_path(self, index: int) -> Path:
        return self.single_dir / f"PSF_{index}.tif"

    def clear_previous(self) -> list[Path]:
        """Remove artifacts a previous run left in the output directory.

        Only files this writer produces are touched; ``logs/`` and anything
        else in the directory is kept. Returns the removed paths.
        """
        names = (OVERLAY_NAME, AVG_NAME, STD_NAME, BEADS_NAME, PARAMS_NAME)
        stale = [self.output_dir / name for name in names]
        if self.single_dir.is_dir():
            stale.extend(sorted(self.single_dir.glob("PSF_*.tif*")))

        removed: list[Path] = []
        for path in stale:
            if not path.is_file():
                continue
            try:
                path.unlink()
            except OSError as e:
                raise StorageError(f"Cannot remove stale output {path}: {e}", stage="write") from e
            removed.append(path)
        if removed:
            logger.info(f"Removed {len(removed)} file(s) from a previous run in {self.output_dir}")
        return removed

    def _write_volume(self, path: Path, data: npt.NDArray[np.generic], index: int | None = None) -> Path:
        arr = np.asarray(data)
        if arr.dtype not in (np.uint8, np.uint16, np.float32):
            arr = arr.astype(np.float32)
        try:
            safe_imwrite(path, arr, imagej=True, metadata={"axes": "ZYX"})
        except Exception as e:
            raise StorageError(f"Failed to write {path}: {e}", stage="write", index=index) from e
        logger.debug(f"Wrote {path.relative_to(self.output_dir)} shape={arr.shape}")
        return path

    def write_overlay(self, fig: Figure, dpi: int = 150) -> Path:
        """Save the detection overlay and close the figure."""
        path = self.output_dir / OVERLAY_NAME
        try:
            fig.savefig(path.as_posix(), dpi=dpi, bbox_inches="tight")
        except Exception as e:
            raise StorageError(f"Failed to write {path}: {e}", stage="write") from e
        finally:
            plt.close(fig)
        logger.info(f"Saved detection overlay: {path}")
        return path

    def write_single(self, index: int, data: npt.NDArray[np.generic]) -> Path:
        return self._write_volume(self.single_path(index), data, index=index)

    def write_average(self, avg_zyx: npt.NDArray[np.floating]) -> Path:
        return self._write_volume(self.output_dir / AVG_NAME, avg_zyx)

    def write_std(self, std_zyx: npt.NDArray[np.floating]) -> Path:
        return self._write_volume(self.output_dir / STD_NAME, std_zyx)

    def write_bead_table(self, candidates: Sequence[BeadCandidate]) -> Path:
        """One row per bead: 1-based index, sub-pixel x/y and peak intensity."""
        path = self.output_dir / BEADS_NAME
        df = pl.DataFrame(
            {
                "index": list(range(1, len(candidates) + 1)),
                "x": [c.x for c in candidates],
                "y": [c.y for c in candidates],
                "peak": [c.peak for c in candidates],
            },
            schema={"index": pl.Int64, "x": pl.Float64, "y": pl.Float64, "peak": pl.Float64},
        )
        try:
            df.write_csv(path)
        except Exception as e:
            raise StorageError(f"Failed to write {path}: {e}", stage="write") from e
        return path

    def write_params(self, params: dict[str, Any]) -> Path:
        path = self.output_dir / PARAMS_NAME
        try:
            path.write_text(json.dumps(params, indent=2, default=str))
        except OSError as e:
            raise StorageError(f"Failed to write {path}: {e}", stage="write") from e
        return path


__all__ = [
    "safe_imwrite",
    "PSFOutputWriter",
    "OVERLAY_NAME",
    "SINGLE_DIR",
    "AVG_NAME",
    "STD_NAME",
    "BEADS_NAME",
    "PARAMS_NAME",
]
