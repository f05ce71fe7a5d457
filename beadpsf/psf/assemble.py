"""Stack per-bead crops and reduce them to average and spread volumes.

Assembled tensors are ``(Z, N, Y, X)``: depth stays on axis 0 and beads live on
axis 1, which is the only axis ever reduced.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from beadpsf.errors import ConsistencyError, InputError
from beadpsf.psf.extract import BeadSubVolume

BEAD_AXIS = 1


def assemble(subvolumes: Sequence[BeadSubVolume]) -> NDArray[np.float32]:
    """Stack bead crops into a ``(Z, N, Y, X)`` float32 tensor.

    Raises:
        InputError: If ``subvolumes`` is empty.
        ConsistencyError: If any crop differs in shape from the first one.
    """
    if not subvolumes:
        raise InputError("No bead sub-volumes to assemble.", stage="assemble")

    ref = subvolumes[0].shape
    for sv in subvolumes[1:]:
        if sv.shape != ref:
            raise ConsistencyError(
                f"Sub-volume shape {sv.shape} differs from bead {subvolumes[0].index} shape {ref}.",
                stage="assemble",
                index=sv.index,
            )

    stacked = np.stack([sv.data.astype(np.float32, copy=False) for sv in subvolumes], axis=BEAD_AXIS)
    logger.debug("assemble: {n} beads -> {shape} (Z, N, Y, X)", n=len(subvolumes), shape=stacked.shape)
    return stacked


def project(
    assembled_znyx: NDArray[np.floating],
    save_std: bool = False,
) -> tuple[NDArray[np.float32], NDArray[np.float32] | None]:
    """Mean (and optionally sample standard deviation) over the bead axis.

    With a single bead the sample standard deviation is undefined and a zero
    volume is returned instead.
    """
    if assembled_znyx.ndim != 4:
        raise ConsistencyError(
            f"Expected (Z, N, Y, X); got shape {assembled_znyx.shape!r}.", stage="assemble"
        )

    n = assembled_znyx.shape[BEAD_AXIS]
    avg = assembled_znyx.mean(axis=BEAD_AXIS, dtype=np.float64).astype(np.float32)
    std: NDArray[np.float32] | None = None
    if save_std:
        if n < 2:
            logger.warning("Only one bead; standard deviation volume is all zeros.")
            std = np.zeros_like(avg)
        else:
            std = assembled_znyx.std(axis=BEAD_AXIS, ddof=1, dtype=np.float64).astype(np.float32)
    return avg, std


def subtract_background(avg_zyx: NDArray[np.floating], background: float) -> NDArray[np.float32]:
    """Subtract a scalar background. Negative results are kept as-is."""
    return (np.asarray(avg_zyx, dtype=np.float32) - np.float32(background)).astype(np.float32, copy=False)


__all__ = ["BEAD_AXIS", "assemble", "project", "subtract_background"]
