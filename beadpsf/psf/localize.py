"""Bead localization on the focal plane.

The pipeline only depends on the :class:`BeadLocalizer` protocol. Two
implementations ship here:

- :class:`CentroidLocalizer`: local maxima above ``baseline + prominence``
  refined by an intensity-weighted centroid. Deterministic and dependency-light;
  this is the reference used by the tests.
- :class:`DAOLocalizer`: photutils' DAOStarFinder, the same detector used for
  fiducial registration, with sub-pixel centroids from its fit.

Candidates are returned brightest first; ties fall back to row then column so
identical inputs always produce the same bead numbering.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

import numpy as np
from loguru import logger
from numpy.typing import NDArray
from scipy import ndimage as ndi
from skimage.feature import peak_local_max


@dataclass(frozen=True, slots=True)
class BeadCandidate:
    """Sub-pixel bead position in focal-plane pixel coordinates."""

    x: float
    y: float
    peak: float = float("nan")


@runtime_checkable
class BeadLocalizer(Protocol):
    def detect(
        self,
        image: NDArray[np.generic],
        prominence: float,
        window_radius: float,
        baseline: float,
    ) -> list[BeadCandidate]: ...


def _ordered(candidates: list[BeadCandidate]) -> list[BeadCandidate]:
    # brightest first, then top-to-bottom, left-to-right
    return sorted(candidates, key=lambda c: (-c.peak, c.y, c.x))


def _check_plane(image: NDArray[np.generic]) -> NDArray[np.float64]:
    img = np.asarray(image).squeeze()
    if img.ndim != 2:
        raise ValueError(f"Focal plane must be 2D; got shape {img.shape!r}.")
    return img.astype(np.float64, copy=False)


class CentroidLocalizer:
    """Local maxima + centre of mass.

    A pixel is a candidate when it is a local maximum within ``window_radius``
    and rises at least ``prominence`` above ``baseline``. Its position is then
    refined to the centroid of the baseline-subtracted intensity in a
    ``(2r + 1)``-wide box around it.
    """

    def __init__(self, max_beads: int | None = None) -> None:
        self.max_beads = max_beads

    def detect(
        self,
        image: NDArray[np.generic],
        prominence: float,
        window_radius: float,
        baseline: float,
    ) -> list[BeadCandidate]:
        img = _check_plane(image)
        r = max(1, int(window_radius))
        coords = peak_local_max(
            img,
            min_distance=r,
            threshold_abs=baseline + prominence,
            exclude_border=False,
        )
        logger.debug(
            "CentroidLocalizer: {n} maxima above {thr:.2f} (r={r})",
            n=len(coords),
            thr=baseline + prominence,
            r=r,
        )

        weights = np.clip(img - baseline, 0, None)
        h, w = img.shape
        candidates: list[BeadCandidate] = []
        for yc, xc in coords:
            y0, y1 = max(0, yc - r), min(h, yc + r + 1)
            x0, x1 = max(0, xc - r), min(w, xc + r + 1)
            patch = weights[y0:y1, x0:x1]
            if patch.sum() > 0:
                cy, cx = ndi.center_of_mass(patch)
                y, x = y0 + cy, x0 + cx
            else:
                y, x = float(yc), float(xc)
            candidates.append(BeadCandidate(x=float(x), y=float(y), peak=float(img[yc, xc])))

        candidates = _ordered(candidates)
        if self.max_beads is not None:
            candidates = candidates[: self.max_beads]
        return candidates


class DAOLocalizer:
    """photutils DAOStarFinder on the baseline-subtracted focal plane.

    ``fwhm`` sets the finder kernel and fitting box. ``window_radius`` is the
    minimum separation between sources, matching the peak spacing used by
    :class:`CentroidLocalizer`.
    """

    def __init__(self, fwhm: float = 3.0, roundness: float = 0.5, max_beads: int | None = None) -> None:
        self.fwhm = fwhm
        self.roundness = roundness
        self.max_beads = max_beads

    def detect(
        self,
        image: NDArray[np.generic],
        prominence: float,
        window_radius: float,
        baseline: float,
    ) -> list[BeadCandidate]:
        from photutils.detection import DAOStarFinder

        img = _check_plane(image)
        finder = DAOStarFinder(
            threshold=prominence,
            fwhm=self.fwhm,
            exclude_border=False,
            roundlo=-self.roundness,
            roundhi=self.roundness,
            brightest=self.max_beads,
            min_separation=window_radius,
        )
        table = finder(img - baseline)
        if table is None:
            return []

        candidates = [
            BeadCandidate(
                x=float(row["xcentroid"]),
                y=float(row["ycentroid"]),
                peak=float(row["peak"]) + baseline,
            )
            for row in table
        ]
        logger.debug("DAOLocalizer: {n} sources (fwhm={fwhm})", n=len(candidates), fwhm=self.fwhm)
        return _ordered(candidates)


def get_localizer(name: str, **kwargs: Any) -> BeadLocalizer:
    """Build a localizer by its config name (``centroid`` or ``daofind``)."""
    if name == "centroid":
        return CentroidLocalizer(max_beads=kwargs.get("max_beads"))
    if name == "daofind":
        return DAOLocalizer(**kwargs)
    raise ValueError(f"Unknown localizer {name!r}; expected 'centroid' or 'daofind'.")


__all__ = [
    "BeadCandidate",
    "BeadLocalizer",
    "CentroidLocalizer",
    "DAOLocalizer",
    "get_localizer",
]
