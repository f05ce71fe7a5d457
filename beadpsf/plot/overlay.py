"""QA figure of the focal plane with every detected bead marked and numbered."""

from __future__ import annotations

from typing import Sequence

import matplotlib.pyplot as plt
import numpy as np
from matplotlib.figure import Figure
from numpy.typing import NDArray

from beadpsf.psf.localize import BeadCandidate


def make_detection_figure(
    image: NDArray[np.generic],
    candidates: Sequence[BeadCandidate],
    *,
    window: int | None = None,
    percentile_clip: tuple[float, float] = (1.0, 99.8),
    title: str | None = None,
) -> Figure:
    """Render the focal plane with a marker and 1-based label per bead.

    When ``window`` is given, the crop box of each bead is outlined too so
    beads near the border are easy to spot.
    """
    img = np.asarray(image, dtype=np.float32)
    lo, hi = np.percentile(img, percentile_clip) if img.size else (0.0, 1.0)
    if hi <= lo:
        hi = lo + 1.0

    h, w = img.shape
    size = 8.0
    fig, ax = plt.subplots(figsize=(size, size * h / max(w, 1)))
    ax.imshow(img, cmap="gray", vmin=lo, vmax=hi, interpolation="nearest")

    if candidates:
        xs = np.array([c.x for c in candidates])
        ys = np.array([c.y for c in candidates])
        ax.scatter(xs, ys, s=40, facecolors="none", edgecolors="red", linewidths=0.8)
        for i, (x, y) in enumerate(zip(xs, ys), start=1):
            ax.annotate(str(i), (x, y), xytext=(4, 4), textcoords="offset points", color="yellow", fontsize=7)
            if window is not None:
                x0 = np.floor(x + 0.5) - window // 2 - 0.5
                y0 = np.floor(y + 0.5) - window // 2 - 0.5
                ax.add_patch(
                    plt.Rectangle((x0, y0), window, window, fill=False, edgecolor="cyan", linewidth=0.5)
                )

    ax.set_xlim(-0.5, w - 0.5)
    ax.set_ylim(h - 0.5, -0.5)
    ax.set_axis_off()
    ax.set_title(title or f"{len(candidates)} bead(s) detected", fontsize=9)
    fig.tight_layout()
    return fig


__all__ = ["make_detection_figure"]
