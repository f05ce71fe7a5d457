from __future__ import annotations


class PSFError(RuntimeError):
    """Base error for PSF extraction failures.

    Carries the pipeline stage that failed and, where applicable, the offending
    plane or bead index so the message can point at the exact input.
    """

    def __init__(self, message: str, *, stage: str, index: int | None = None) -> None:
        where = f"[{stage}]" if index is None else f"[{stage} #{index}]"
        super().__init__(f"{where} {message}")
        self.stage = stage
        self.index = index


class InputError(PSFError, ValueError):
    """Degenerate input: empty stack, ambiguous depth axis, bad channel."""


class NoBeadsError(InputError):
    """The localizer returned no candidates; there is nothing to average."""


class DetectionError(PSFError):
    """Localizer failure or a bead window that does not fit inside the stack."""


class StorageError(PSFError):
    """Reading, writing or creating an output location failed."""


class ConsistencyError(PSFError):
    """Bead sub-volumes disagree in shape at assembly time."""


__all__ = [
    "PSFError",
    "InputError",
    "NoBeadsError",
    "DetectionError",
    "StorageError",
    "ConsistencyError",
]
