"""
Bead stack to averaged PSF.

Stages, each consuming the complete output of the previous one:

1. Slice statistics on the original stack -> focal plane + background
2. Lateral upsampling
3. Bead localization on the upsampled focal plane (+ QA overlay)
4. Full-depth crops around every bead (+ per-bead TIFFs)
5. Assembly into (Z, N, Y, X) and projection over beads
6. Background subtraction and final outputs
"""

from __future__ import annotations

import gc
from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
from loguru import logger
from numpy.typing import NDArray

from beadpsf.config import PSFConfig
from beadpsf.errors import ConsistencyError, DetectionError, InputError, NoBeadsError, PSFError
from beadpsf.io.writer import PSFOutputWriter
from beadpsf.plot.overlay import make_detection_figure
from beadpsf.psf.assemble import assemble, project, subtract_background
from beadpsf.psf.extract import BeadSubVolume, extract_beads
from beadpsf.psf.localize import BeadCandidate, BeadLocalizer, get_localizer
from beadpsf.psf.resample import upsample
from beadpsf.psf.stats import estimate_background, find_focal_plane, slice_statistics


@dataclass
class PSFResult:
    """Outcome of one extraction run. Shapes are ``(Z, w, w)``."""

    focal_index: int
    background: float
    scaled_width: int
    candidates: list[BeadCandidate]
    avg_psf: NDArray[np.float32]
    std_psf: NDArray[np.float32] | None = None
    subvolumes: list[BeadSubVolume] = field(default_factory=list)
    outputs: dict[str, Path] = field(default_factory=dict)

    @property
    def n_beads(self) -> int:
        return len(self.candidates)


class PSFExtractionPipeline:
    """Extracts an averaged PSF from a ``(Z, Y, X)`` bead stack.

    Without a writer the run is purely in memory and the per-bead crops are
    kept on the result. With a writer every artifact is persisted and the
    crops are released once written.
    """

    def __init__(
        self,
        config: PSFConfig,
        localizer: BeadLocalizer | None = None,
        writer: PSFOutputWriter | None = None,
    ) -> None:
        self.config = config
        self.localizer = localizer or get_localizer(
            config.localizer, **({"fwhm": config.fwhm} if config.localizer == "daofind" else {})
        )
        self.writer = writer

    def run(self, stack_zyx: NDArray[np.generic]) -> PSFResult:
        cfg = self.config
        stack_zyx = np.asarray(stack_zyx)
        if stack_zyx.ndim != 3:
            raise InputError(f"Expected a (Z, Y, X) stack; got shape {stack_zyx.shape!r}.", stage="input")
        depth = stack_zyx.shape[0]
        logger.info("Stack shape=(Z={}, Y={}, X={}) dtype={}", *stack_zyx.shape, stack_zyx.dtype)
        if self.writer is not None:
            self.writer.clear_previous()

        stats = slice_statistics(stack_zyx)
        focal = find_focal_plane(stats)
        background = estimate_background(stats)
        logger.info(
            "Focal plane {n}/{d}, background {bg:.3f}",
            n=focal.focal_number,
            d=depth,
            bg=background,
        )

        width = cfg.scaled_window
        scaled = upsample(stack_zyx, cfg.scaling_factor, cfg.interpolation)
        focal_plane = scaled[focal.focal_index]

        candidates = self._localize(focal_plane, width, background)
        if self.writer is not None:
            self.writer.write_overlay(make_detection_figure(focal_plane, candidates, window=width))
        if not candidates:
            raise NoBeadsError(
                f"No beads above prominence {cfg.peak_prominence} on plane {focal.focal_number}.",
                stage="localize",
            )
        logger.info("Detected {n} bead(s)", n=len(candidates))

        subvolumes = extract_beads(scaled, candidates, width)
        del scaled, focal_plane
        if self.writer is not None:
            for sv in subvolumes:
                self.writer.write_single(sv.index, sv.data)

        assembled = assemble(subvolumes)
        avg, std = project(assembled, save_std=cfg.save_std)
        del assembled
        if avg.shape[0] != depth:
            raise ConsistencyError(
                f"Average PSF depth {avg.shape[0]} != stack depth {depth}.", stage="assemble"
            )

        if cfg.subtract_background:
            avg = subtract_background(avg, background)
            logger.info("Subtracted background {bg:.3f}", bg=background)

        result = PSFResult(
            focal_index=focal.focal_index,
            background=background,
            scaled_width=width,
            candidates=candidates,
            avg_psf=avg,
            std_psf=std,
            subvolumes=subvolumes,
        )
        if self.writer is not None:
            self._persist(result)
            result.subvolumes = []
            del subvolumes
            gc.collect()
        return result

    def _localize(
        self, focal_plane: NDArray[np.float32], width: int, background: float
    ) -> list[BeadCandidate]:
        try:
            candidates = self.localizer.detect(
                focal_plane,
                prominence=self.config.peak_prominence,
                window_radius=width / 2,
                baseline=background,
            )
        except PSFError:
            raise
        except Exception as e:
            raise DetectionError(f"{type(self.localizer).__name__} failed: {e}", stage="localize") from e
        return list(candidates)

    def _persist(self, result: PSFResult) -> None:
        assert self.writer is not None
        w = self.writer
        outputs = result.outputs
        outputs["beads"] = w.write_bead_table(result.candidates)
        if result.std_psf is not None:
            outputs["std"] = w.write_std(result.std_psf)
        outputs["avg"] = w.write_average(result.avg_psf)
        outputs["params"] = w.write_params(
            {
                "config": self.config.model_dump(mode="json"),
                "focal_plane": result.focal_index + 1,
                "background": result.background,
                "scaled_width": result.scaled_width,
                "n_beads": result.n_beads,
                "shape_zyx": list(result.avg_psf.shape),
            }
        )
        logger.info(f"Saved average PSF to {outputs['avg']}")


def extract_psf(
    stack_zyx: NDArray[np.generic],
    config: PSFConfig | None = None,
    *,
    localizer: BeadLocalizer | None = None,
    output_dir: Path | str | None = None,
) -> PSFResult:
    """Run the full pipeline; persist outputs when ``output_dir`` is given."""
    writer = PSFOutputWriter(output_dir) if output_dir is not None else None
    return PSFExtractionPipeline(config or PSFConfig(), localizer=localizer, writer=writer).run(stack_zyx)


__all__ = ["PSFResult", "PSFExtractionPipeline", "extract_psf"]
