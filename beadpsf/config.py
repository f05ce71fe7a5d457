"""
Configuration for bead PSF extraction.

Pydantic models for the run parameters and helpers to load them from TOML
with command-line overrides.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Literal

import toml
from loguru import logger
from pydantic import BaseModel, Field, ValidationError, field_validator


class Interpolation(str, Enum):
    """Lateral interpolation used when upsampling the bead stack."""

    NONE = "none"
    BILINEAR = "bilinear"
    BICUBIC = "bicubic"


class PSFConfig(BaseModel):
    """Parameters of one PSF extraction run."""

    scaling_factor: float = Field(
        default=1.0,
        gt=0.0,
        description="Lateral upsampling factor applied before detection and cropping.",
    )
    interpolation: Interpolation = Field(
        default=Interpolation.BILINEAR,
        description="Interpolation used for upsampling: none, bilinear or bicubic.",
    )
    psf_window_size: int = Field(
        default=21,
        gt=0,
        description="Side of the square crop window around each bead, in original pixels.",
    )
    peak_prominence: float = Field(
        default=100.0,
        gt=0.0,
        description="Minimum height of a bead peak above the background estimate.",
    )
    subtract_background: bool = Field(
        default=True, description="Subtract the background from the average PSF."
    )
    save_std: bool = Field(
        default=False, description="Also write the per-voxel standard deviation across beads."
    )
    channel: int = Field(default=0, ge=0, description="Channel to use when the stack has several.")
    localizer: Literal["centroid", "daofind"] = Field(
        default="centroid",
        description="Bead localizer: local maxima + centroid, or photutils DAOStarFinder.",
    )
    fwhm: float = Field(
        default=3.0, gt=0.0, description="Expected bead FWHM in upsampled pixels (daofind only)."
    )

    @field_validator("interpolation", mode="before")
    @classmethod
    def normalize_interpolation(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @property
    def scaled_window(self) -> int:
        # local import to keep config importable without scipy
        from beadpsf.psf.resample import scaled_width

        return scaled_width(self.psf_window_size, self.scaling_factor)


def load_config(config_path: Path | None = None, **overrides: Any) -> PSFConfig:
    """Load a :class:`PSFConfig` from TOML and apply overrides.

    Overrides whose value is ``None`` are ignored so unset CLI options leave
    the file (or default) value in place.

    Raises:
        FileNotFoundError: If ``config_path`` does not exist.
        ValueError: If the TOML is malformed.
        ValidationError: If the merged values are invalid.
    """
    data: dict[str, Any] = {}
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file does not exist: {config_path}")
        try:
            data = toml.load(config_path)
        except toml.TomlDecodeError as e:
            raise ValueError(f"Invalid TOML syntax in configuration file: {e}") from e
        logger.debug(f"Loaded configuration from {config_path}")

    for key, value in overrides.items():
        if value is None:
            continue
        data[key] = value
        logger.debug(f"Applied CLI override: {key} = {value}")

    try:
        return PSFConfig(**data)
    except ValidationError as e:
        logger.error(f"Configuration validation error: {e}")
        for error in e.errors():
            field_path = " -> ".join(str(x) for x in error["loc"])
            logger.error(f"  Field '{field_path}': {error['msg']}")
        raise


def generate_config_template(output_path: Path) -> None:
    """Write a TOML file with every parameter at its default."""
    output_path.write_text(toml.dumps(PSFConfig().model_dump(mode="json")))
    logger.info(f"Generated configuration template at {output_path}")


__all__ = ["Interpolation", "PSFConfig", "load_config", "generate_config_template"]
