from __future__ import annotations

import inspect
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Iterable, MutableMapping, Optional, Set, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_repr = reprlib.Repr()
_repr.maxother = 120
_repr.maxlist = 6
_repr.maxtuple = 6
_repr.maxdict = 6
_repr.maxstring = 80


def _summarize(value: Any, *, max_items: int = 4) -> str:
    """Short, never failing description of an argument or return value."""

    if isinstance(value, np.ndarray):
        if value.size == 0:
            return f"ndarray(shape={value.shape})"
        return f"ndarray(shape={value.shape}, min={float(value.min()):.6g}, max={float(value.max()):.6g})"

    # flows and models print their own compact repr; long containers of them are cut
    if isinstance(value, (list, tuple)) and len(value) > max_items:
        head = ", ".join(_summarize(item) for item in value[:max_items])
        return f"[{head}, ... {len(value)} items]"

    try:
        return _repr.repr(value)
    except Exception as exc:  # pragma: no cover - repr of user objects
        return f"<unrepresentable {type(value).__name__}: {exc}>"


def debug_log_call(logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True) -> Callable[[F], F]:
    """Decorator logging entry, exit and exceptions at DEBUG level."""

    def decorator(func: F) -> F:
        if getattr(func, "_debug_logging_wrapped", False):
            return func
        label = name or getattr(func, "__qualname__", func.__name__)

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)
            rendered = [_summarize(arg) for arg in args]
            rendered.extend(f"{key}={_summarize(val)}" for key, val in kwargs.items())
            logger.debug("-> %s(%s)", label, ", ".join(rendered))
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.debug("!! %s raised", label, exc_info=True)
                raise
            if log_result:
                logger.debug("<- %s = %s", label, _summarize(result))
            else:
                logger.debug("<- %s", label)
            return result

        setattr(wrapper, "_debug_logging_wrapped", True)
        return cast(F, wrapper)

    return decorator


def _wrap_class(cls: type, logger: logging.Logger, skip: Set[str]) -> None:
    for attr, value in list(vars(cls).items()):
        if attr.startswith("__"):
            continue
        label = f"{cls.__name__}.{attr}"
        if attr in skip or label in skip:
            continue
        if isinstance(value, (staticmethod, classmethod)):
            func = value.__func__
            if getattr(func, "__module__", None) == cls.__module__:
                setattr(cls, attr, type(value)(debug_log_call(logger, name=label)(func)))
        elif inspect.isfunction(value) and value.__module__ == cls.__module__:
            setattr(cls, attr, debug_log_call(logger, name=label)(value))


def apply_debug_logging(
    namespace: MutableMapping[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
    skip: Optional[Iterable[str]] = None,
    wrap_methods: bool = True,
) -> None:
    """Wrap the functions and classes defined in a module with call tracing."""

    module_name = namespace.get("__name__")
    logger = logger or logging.getLogger(module_name if isinstance(module_name, str) else __name__)
    skip_set = set(skip or ())

    for name, value in list(namespace.items()):
        if name in skip_set or getattr(value, "__module__", None) != module_name:
            continue
        if inspect.isfunction(value):
            namespace[name] = debug_log_call(logger, name=name)(value)
        elif wrap_methods and inspect.isclass(value):
            _wrap_class(value, logger, skip_set)
