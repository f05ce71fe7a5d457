"""
Synthetic bead z-stacks with known ground truth.

Beads are modeled as separable Gaussians whose lateral width grows with
distance from a chosen focal plane, so the focal plane has the highest
per-plane contrast. No noise is added unless requested, which keeps the
expected crops exact.
"""

from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray


@dataclass
class BeadStackParams:
    """Configuration of a synthetic bead stack."""

    shape_zyx: tuple[int, int, int] = (9, 64, 64)
    """Stack dimensions (Z, Y, X)"""

    positions_xy: list[tuple[int, int]] = field(default_factory=lambda: [(16, 16), (44, 20), (30, 46)])
    """Integer bead centers (x, y)"""

    focal_index: int = 4
    """Plane where beads are sharpest"""

    background: float = 100.0
    """Constant background level"""

    peak: float = 1000.0
    """Peak amplitude above background at focus"""

    sigma_focus: float = 1.2
    """Lateral Gaussian sigma at focus (pixels)"""

    defocus_rate: float = 0.6
    """Sigma increase per plane away from focus"""

    noise_sigma: float = 0.0
    """Gaussian read noise; 0 disables noise"""

    seed: int = 42

    def __post_init__(self) -> None:
        if not 0 <= self.focal_index < self.shape_zyx[0]:
            raise ValueError("Focal index must lie inside the stack")
        if self.peak <= 0:
            raise ValueError("Peak must be positive")


def make_bead_stack(params: BeadStackParams | None = None) -> NDArray[np.float32]:
    """Render a (Z, Y, X) float32 bead stack."""
    p = params or BeadStackParams()
    z, h, w = p.shape_zyx
    yy, xx = np.mgrid[0:h, 0:w].astype(np.float64)
    stack = np.full((z, h, w), p.background, dtype=np.float64)
    for plane in range(z):
        sigma = p.sigma_focus + p.defocus_rate * abs(plane - p.focal_index)
        # keep the integrated intensity constant so defocused planes get dimmer
        amp = p.peak * (p.sigma_focus / sigma) ** 2
        for x, y in p.positions_xy:
            stack[plane] += amp * np.exp(-((xx - x) ** 2 + (yy - y) ** 2) / (2 * sigma**2))
    if p.noise_sigma > 0:
        rng = np.random.default_rng(p.seed)
        stack += rng.normal(0, p.noise_sigma, stack.shape)
    return stack.astype(np.float32)


def make_point_stack(
    shape_zyx: tuple[int, int, int],
    positions_xy: list[tuple[int, int]],
    *,
    background: float = 10.0,
    peak: float = 100.0,
) -> NDArray[np.uint16]:
    """Single-pixel beads of constant intensity through every plane."""
    stack = np.full(shape_zyx, background, dtype=np.uint16)
    for x, y in positions_xy:
        stack[:, y, x] = peak
    return stack
