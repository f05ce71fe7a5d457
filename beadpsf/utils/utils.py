import importlib
from collections.abc import Callable, Sequence
from typing import Any


def make_lazy_getattr(
    module_globals: dict[str, Any],
    mapping: dict[str, tuple[str, str]],
    extras: Sequence[str] | None = None,
) -> tuple[Callable[[str], Any], Callable[[], list[str]], tuple[str, ...]]:
    """Create PEP 562-style lazy attribute loader for a module.

    Returns ``__getattr__``, ``__dir__`` and ``__all__`` for assignment in a
    package ``__init__`` so heavy submodules (scipy, matplotlib) are imported
    only when one of their names is first accessed. Resolved values are cached
    in the module namespace.

    Example:
        >>> __getattr__, __dir__, __all__ = make_lazy_getattr(
        ...     globals(),
        ...     {"Thing": ("pkg.sub", "Thing")},
        ...     extras=("CONSTANT",),
        ... )
    """

    lazy_names = dict(mapping)
    extra_set = set(extras or ())
    module_name = module_globals.get("__name__", "<module>")

    def __getattr__(name: str) -> Any:
        if name not in lazy_names:
            raise AttributeError(f"module '{module_name}' has no attribute '{name}'")
        mod_name, attr = lazy_names[name]
        try:
            module = importlib.import_module(mod_name)
        except Exception as e:
            raise AttributeError(f"{module_name}: failed to lazily import '{name}' from '{mod_name}': {e}") from e
        try:
            value = getattr(module, attr)
        except AttributeError as e:
            raise AttributeError(f"{module_name}: module '{mod_name}' has no attribute '{attr}' for '{name}'") from e
        module_globals[name] = value
        return value

    def __dir__() -> list[str]:
        return sorted(set(module_globals.keys()) | set(lazy_names.keys()) | extra_set)

    __all__ = tuple(sorted(set(lazy_names.keys()) | extra_set))

    return __getattr__, __dir__, __all__
