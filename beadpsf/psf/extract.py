from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from beadpsf.errors import DetectionError, InputError
from beadpsf.psf.localize import BeadCandidate


@dataclass(slots=True)
class BeadSubVolume:
    """Full-depth crop around one bead. ``index`` is the 1-based bead number."""

    index: int
    candidate: BeadCandidate
    data: NDArray[np.generic]

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(self.data.shape)


def _round_half_up(v: float) -> int:
    return int(np.floor(v + 0.5))


def crop_window(candidate: BeadCandidate, width: int) -> tuple[slice, slice]:
    """Row and column slices of the ``width``-sided window around a bead."""
    y0 = _round_half_up(candidate.y) - width // 2
    x0 = _round_half_up(candidate.x) - width // 2
    return slice(y0, y0 + width), slice(x0, x0 + width)


def crop_bead(
    stack_zyx: NDArray[np.generic],
    candidate: BeadCandidate,
    width: int,
    index: int,
) -> BeadSubVolume:
    """Crop one bead through the full depth of the stack.

    Raises:
        DetectionError: If the window leaves the stack on any side.
    """
    _, h, w = stack_zyx.shape
    ys, xs = crop_window(candidate, width)
    if ys.start < 0 or xs.start < 0 or ys.stop > h or xs.stop > w:
        raise DetectionError(
            f"Window x=[{xs.start}, {xs.stop}) y=[{ys.start}, {ys.stop}) around "
            f"({candidate.x:.2f}, {candidate.y:.2f}) exceeds the {w}x{h} stack.",
            stage="extract",
            index=index,
        )
    return BeadSubVolume(index=index, candidate=candidate, data=stack_zyx[:, ys, xs].copy())


def extract_beads(
    stack_zyx: NDArray[np.generic],
    candidates: Sequence[BeadCandidate],
    width: int,
) -> list[BeadSubVolume]:
    """Crop every candidate in detection order, numbering beads from 1."""
    if width <= 0:
        raise InputError(f"Window width must be positive; got {width}.", stage="extract")
    subvolumes = [crop_bead(stack_zyx, c, width, i) for i, c in enumerate(candidates, start=1)]
    logger.debug("extract_beads: cropped {n} beads with width={w}", n=len(subvolumes), w=width)
    return subvolumes


__all__ = ["BeadSubVolume", "crop_window", "crop_bead", "extract_beads"]
