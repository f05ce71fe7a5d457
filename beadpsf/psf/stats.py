"""Per-plane statistics, depth-axis policy, focal plane and background.

Stacks are handled in canonical ``(Z, Y, X)`` order. Raw hyperstacks name
their axes with a tifffile/ImageJ axes string (``"TZCYX"`` and friends);
:func:`canonical_stack` reduces them to a single depth axis through the
explicit :func:`resolve_depth_axis` policy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Sequence

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from beadpsf.errors import InputError

DepthAxis = Literal["slices", "frames"]

# tifffile labels for generic page sequences; treated as Z
_GENERIC_AXES = frozenset("QIS")


@dataclass(frozen=True, slots=True)
class SliceStatistic:
    """Intensity statistics of one depth plane (``index`` is 0-based)."""

    index: int
    stddev: float
    median: float

    @property
    def number(self) -> int:
        """1-based plane number for reports."""
        return self.index + 1


@dataclass(frozen=True, slots=True)
class FocalPlaneResult:
    focal_index: int
    stats: tuple[SliceStatistic, ...]

    @property
    def focal_number(self) -> int:
        return self.focal_index + 1


def resolve_depth_axis(n_slices: int, n_frames: int) -> DepthAxis:
    """Pick which hyperstack axis is the physical depth of a bead stack.

    The larger of the two axes is the depth; slices win a 1 vs 1 tie.
    Acquisitions must leave the other axis trivial (length 1).

    Raises:
        InputError: If either length is below 1 or both are larger than 1.
    """
    if n_slices < 1 or n_frames < 1:
        raise InputError(
            f"Axis lengths must be positive (slices={n_slices}, frames={n_frames}).",
            stage="depth_axis",
        )
    if n_slices > 1 and n_frames > 1:
        raise InputError(
            f"Depth is ambiguous: both slices ({n_slices}) and frames ({n_frames}) are non-trivial.",
            stage="depth_axis",
        )
    return "frames" if n_frames > n_slices else "slices"


def canonical_stack(data: NDArray[np.generic], axes: str, channel: int = 0) -> NDArray[np.generic]:
    """Reduce a hyperstack with named axes to a ``(Z, Y, X)`` view.

    Args:
        data: Raw array whose dimensions are labelled by ``axes``.
        axes: Axes string, e.g. ``"ZYX"``, ``"TYX"``, ``"TZCYX"``. Must end in ``YX``.
        channel: Channel to keep when a ``C`` axis is present.
    """
    axes = axes.upper()
    if data.ndim != len(axes):
        raise InputError(f"Array has {data.ndim} dims but axes are {axes!r}.", stage="depth_axis")
    if not axes.endswith("YX"):
        raise InputError(f"Axes {axes!r} must end with YX.", stage="depth_axis")

    leading = axes[:-2]
    if sum(ax in _GENERIC_AXES for ax in leading) > 1:
        raise InputError(f"Cannot infer depth from axes {axes!r}.", stage="depth_axis")
    leading = "".join("Z" if ax in _GENERIC_AXES else ax for ax in leading)
    if unknown := set(leading) - set("TZC"):
        raise InputError(f"Unsupported axes {sorted(unknown)} in {axes!r}.", stage="depth_axis")
    if len(set(leading)) != len(leading):
        raise InputError(f"Repeated axes in {axes!r}.", stage="depth_axis")

    arr = np.asarray(data)
    if "C" in leading:
        pos = leading.index("C")
        n_channels = arr.shape[pos]
        if not 0 <= channel < n_channels:
            raise InputError(
                f"Channel {channel} out of range for {n_channels} channel(s).",
                stage="depth_axis",
                index=channel,
            )
        arr = np.take(arr, channel, axis=pos)
        leading = leading.replace("C", "")
    elif channel != 0:
        logger.warning("Channel {channel} requested but stack has no channel axis.", channel=channel)

    for ax in "ZT":
        if ax not in leading:
            arr = arr[np.newaxis, ...]
            leading = ax + leading

    n_slices = arr.shape[leading.index("Z")]
    n_frames = arr.shape[leading.index("T")]
    depth = resolve_depth_axis(n_slices, n_frames)
    keep, drop = ("Z", "T") if depth == "slices" else ("T", "Z")
    arr = np.take(arr, 0, axis=leading.index(drop))
    leading = leading.replace(drop, "")
    assert leading == keep

    logger.debug(
        "canonical_stack: axes={axes} -> depth from {depth} ({n}), shape={shape}",
        axes=axes,
        depth=depth,
        n=arr.shape[0],
        shape=arr.shape,
    )
    return arr


def slice_statistics(stack_zyx: NDArray[np.generic]) -> list[SliceStatistic]:
    """Standard deviation and median of every plane, in plane order."""
    if stack_zyx.ndim != 3:
        raise InputError(
            f"Expected a (Z, Y, X) stack; got shape {stack_zyx.shape!r}.", stage="slice_statistics"
        )
    if stack_zyx.shape[0] == 0:
        raise InputError("Stack has no planes.", stage="slice_statistics")
    if stack_zyx.shape[1] == 0 or stack_zyx.shape[2] == 0:
        raise InputError(f"Planes are empty (shape {stack_zyx.shape!r}).", stage="slice_statistics")

    planes = stack_zyx.reshape(stack_zyx.shape[0], -1).astype(np.float64, copy=False)
    stds = planes.std(axis=1)
    medians = np.median(planes, axis=1)
    return [
        SliceStatistic(index=i, stddev=float(s), median=float(m))
        for i, (s, m) in enumerate(zip(stds, medians))
    ]


def find_focal_plane(stats: Sequence[SliceStatistic]) -> FocalPlaneResult:
    """Return the plane with the largest standard deviation.

    Ties resolve to the earliest plane.
    """
    if not stats:
        raise InputError("No slice statistics; the stack is empty.", stage="focal_plane")
    stds = np.array([s.stddev for s in stats], dtype=np.float64)
    if not np.isfinite(stds).all():
        bad = int(np.flatnonzero(~np.isfinite(stds))[0])
        raise InputError(f"Non-finite standard deviation {stds[bad]}.", stage="focal_plane", index=bad)
    focal = int(np.argmax(stds))
    logger.debug("find_focal_plane: plane {n} (stddev={sd:.3f})", n=focal + 1, sd=stds[focal])
    return FocalPlaneResult(focal_index=focal, stats=tuple(stats))


def estimate_background(stats: Sequence[SliceStatistic]) -> float:
    """Mean of the per-plane medians."""
    if not stats:
        raise InputError("No slice statistics; the stack is empty.", stage="background")
    return float(np.mean([s.median for s in stats]))


__all__ = [
    "DepthAxis",
    "SliceStatistic",
    "FocalPlaneResult",
    "resolve_depth_axis",
    "canonical_stack",
    "slice_statistics",
    "find_focal_plane",
    "estimate_background",
]
