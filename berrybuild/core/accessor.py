"""Best-effort attribute access on arbitrary domain objects.

Two strategies are chained:

- :class:`MethodAccessor` goes through conventional accessor methods
  (``get_<name>``/``is_<name>`` to read, ``set_<name>`` to write).
- :class:`StructuralAccessor` reads and writes the attribute itself, provided
  the name is declared somewhere along the type's MRO.

:class:`Accessor` reads through both (method first) and writes structurally
only. Nothing here raises for a missing or inaccessible attribute: reads yield
``MISSING`` and writes are no-ops, logged at DEBUG level.
"""
from __future__ import annotations
import inspect
import logging
from typing import Any, Optional, Sequence

from .outcome import MISSING, Outcome

_logger = logging.getLogger("berrybuild")

__all__ = [
    'MethodAccessor',
    'StructuralAccessor',
    'Accessor',
    'find_method',
    'declares_attribute',
    'own_annotations',
    'default_accessor',
]


def find_method(cls: type, name: str, arity: int = 0) -> Optional[Any]:
    """Return the plain function ``name`` declared on ``cls`` or its MRO.

    Only functions accepting exactly ``arity`` positional arguments besides
    ``self`` qualify; properties, class attributes and nested classes do not.
    """
    for klass in getattr(cls, '__mro__', ()):
        if klass is object:
            break
        raw = klass.__dict__.get(name)
        if raw is None:
            continue
        if not inspect.isfunction(raw):
            return None
        try:
            params = list(inspect.signature(raw).parameters.values())[1:]
        except (TypeError, ValueError):
            return None
        required = [
            p for p in params
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD) and p.default is p.empty
        ]
        positional = [p for p in params if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD)]
        varargs = any(p.kind is p.VAR_POSITIONAL for p in params)
        if len(required) <= arity and (len(positional) >= arity or varargs):
            return raw
        return None
    return None


def own_annotations(klass: type) -> dict:
    """Annotations declared directly on ``klass`` (not inherited)."""
    try:
        return dict(inspect.get_annotations(klass))
    except Exception:
        return dict(klass.__dict__.get('__annotations__', {}))


def declares_attribute(obj: Any, name: str) -> bool:
    """Whether ``name`` is a known attribute of ``obj`` or any class in its MRO."""
    try:
        if name in vars(obj):
            return True
    except TypeError:
        pass
    for klass in type(obj).__mro__:
        if klass is object:
            break
        if name in klass.__dict__:
            return True
        if name in own_annotations(klass):
            return True
        slots = klass.__dict__.get('__slots__', ())
        if isinstance(slots, str):
            slots = (slots,)
        if name in slots:
            return True
    return False


class MethodAccessor:
    """Accessor-method strategy: ``get_x()``/``is_x()`` and ``set_x(value)``."""

    def read(self, target: Any, name: str, *, boolean: bool = False) -> Any:
        if target is None or not name:
            return MISSING
        candidates = [f"get_{name}", f"is_{name}"] if boolean else [f"get_{name}"]
        for cand in candidates:
            fn = find_method(type(target), cand, 0)
            if fn is None:
                continue
            try:
                return fn(target)
            except Exception as e:
                _logger.debug("berrybuild.accessor: %s.%s() failed: %r", type(target).__name__, cand, e)
                return MISSING
        return MISSING

    def write(self, target: Any, name: str, value: Any) -> Outcome:
        if target is None or not name:
            return Outcome.miss()
        fn = find_method(type(target), f"set_{name}", 1)
        if fn is None:
            return Outcome.miss()
        fn(target, value)
        return Outcome.success(value)


class StructuralAccessor:
    """Direct attribute strategy scanning the instance and its class ancestry."""

    def read(self, target: Any, name: str, *, boolean: bool = False) -> Any:
        if target is None or not name:
            return MISSING
        if not declares_attribute(target, name):
            return MISSING
        try:
            return getattr(target, name)
        except Exception as e:
            _logger.debug("berrybuild.accessor: read %s.%s failed: %r", type(target).__name__, name, e)
            return MISSING

    def write(self, target: Any, name: str, value: Any) -> Outcome:
        if target is None or not name:
            return Outcome.miss()
        if not declares_attribute(target, name):
            _logger.debug("berrybuild.accessor: %s has no attribute %r", type(target).__name__, name)
            return Outcome.miss()
        try:
            # bypasses set_* methods and custom __setattr__, descriptors still apply
            object.__setattr__(target, name, value)
        except Exception as e:
            _logger.debug("berrybuild.accessor: write %s.%s failed: %r", type(target).__name__, name, e)
            return Outcome.failure(e)
        return Outcome.success(value)


class Accessor:
    """Reads via a chain of strategies, writes via a single structural one."""

    def __init__(self, readers: Optional[Sequence[Any]] = None, writer: Optional[Any] = None):
        self.readers = tuple(readers) if readers is not None else (MethodAccessor(), StructuralAccessor())
        self.writer = writer if writer is not None else StructuralAccessor()

    def read(self, target: Any, name: str, *, boolean: bool = False) -> Any:
        for strategy in self.readers:
            value = strategy.read(target, name, boolean=boolean)
            if value is not MISSING:
                return value
        return MISSING

    def write_outcome(self, target: Any, name: str, value: Any) -> Outcome:
        return self.writer.write(target, name, value)

    def write(self, target: Any, name: str, value: Any) -> None:
        self.write_outcome(target, name, value)


default_accessor = Accessor()
