from typing import TYPE_CHECKING, Dict, Tuple

from .utils.utils import make_lazy_getattr

__version__ = "0.1.0"

# Lazy namespace exports (PEP 562)
# name -> (module, attribute)

_LAZY_ATTRS: Dict[str, Tuple[str, str]] = {
    # Configuration
    "PSFConfig": ("beadpsf.config", "PSFConfig"),
    "Interpolation": ("beadpsf.config", "Interpolation"),
    "load_config": ("beadpsf.config", "load_config"),
    # Pipeline
    "PSFExtractionPipeline": ("beadpsf.psf.pipeline", "PSFExtractionPipeline"),
    "PSFResult": ("beadpsf.psf.pipeline", "PSFResult"),
    "extract_psf": ("beadpsf.psf.pipeline", "extract_psf"),
    # Localization
    "BeadCandidate": ("beadpsf.psf.localize", "BeadCandidate"),
    "BeadLocalizer": ("beadpsf.psf.localize", "BeadLocalizer"),
    "CentroidLocalizer": ("beadpsf.psf.localize", "CentroidLocalizer"),
    "DAOLocalizer": ("beadpsf.psf.localize", "DAOLocalizer"),
    # IO
    "load_stack": ("beadpsf.io.stack", "load_stack"),
    "PSFOutputWriter": ("beadpsf.io.writer", "PSFOutputWriter"),
}

if TYPE_CHECKING:
    # These imports are for static type checkers and IDEs only.
    from beadpsf.config import Interpolation as Interpolation
    from beadpsf.config import PSFConfig as PSFConfig
    from beadpsf.config import load_config as load_config
    from beadpsf.io.stack import load_stack as load_stack
    from beadpsf.io.writer import PSFOutputWriter as PSFOutputWriter
    from beadpsf.psf.localize import BeadCandidate as BeadCandidate
    from beadpsf.psf.localize import BeadLocalizer as BeadLocalizer
    from beadpsf.psf.localize import CentroidLocalizer as CentroidLocalizer
    from beadpsf.psf.localize import DAOLocalizer as DAOLocalizer
    from beadpsf.psf.pipeline import PSFExtractionPipeline as PSFExtractionPipeline
    from beadpsf.psf.pipeline import PSFResult as PSFResult
    from beadpsf.psf.pipeline import extract_psf as extract_psf


__getattr__, __dir__, __all__ = make_lazy_getattr(globals(), _LAZY_ATTRS, extras=("__version__",))
