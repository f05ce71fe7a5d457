from __future__ import annotations

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from scipy import ndimage

from beadpsf.config import Interpolation
from beadpsf.errors import InputError

_ORDER = {
    Interpolation.NONE: 0,
    Interpolation.BILINEAR: 1,
    Interpolation.BICUBIC: 3,
}


def scaled_width(window: int, factor: float) -> int:
    """Side of the crop window in upsampled pixels."""
    return max(1, int(np.floor(window * factor + 0.5)))


def upsample(
    stack_zyx: NDArray[np.generic],
    factor: float,
    interpolation: Interpolation | str = Interpolation.BILINEAR,
) -> NDArray[np.float32]:
    """Scale each plane of a ``(Z, Y, X)`` stack laterally by ``factor``.

    Depth is never resampled. Output is float32 so bicubic overshoot on
    integer data is kept rather than wrapped.
    """
    if factor <= 0:
        raise InputError(f"Scaling factor must be positive; got {factor}.", stage="resample")
    interpolation = Interpolation(interpolation)
    stack = np.asarray(stack_zyx, dtype=np.float32)
    if factor == 1:
        return stack.copy()

    # grid_mode aligns pixel edges so the output pitch is exactly 1/factor of the input
    out = ndimage.zoom(
        stack, (1.0, factor, factor), order=_ORDER[interpolation], mode="nearest", grid_mode=True
    )
    logger.debug(
        "upsample: {src} -> {dst} (factor={factor}, {interp})",
        src=stack.shape,
        dst=out.shape,
        factor=factor,
        interp=interpolation.value,
    )
    return out


__all__ = ["scaled_width", "upsample"]
