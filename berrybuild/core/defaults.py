from __future__ import annotations
import inspect
import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

from ..errors import BuilderConfigError, UnsupportedOperation
from .model import FieldModel, TypeCategory
from .outcome import MISSING, Outcome

_logger = logging.getLogger("berrybuild")

__all__ = ['DefaultsProvider', 'resolve_provider', 'zero_value']

_ZEROS = {
    bool: False,
    int: 0,
    float: 0.0,
    complex: 0j,
    str: '',
    bytes: b'',
}


def zero_value(fm: FieldModel) -> Any:
    """Natural zero value of a field: scalar zero, empty container or None."""
    if fm.type_category is TypeCategory.COLLECTION:
        return fm.new_collection()
    if fm.type_category is TypeCategory.PRIMITIVE:
        vt = fm.value_type
        if vt is Decimal:
            return Decimal(0)
        for base, zero in _ZEROS.items():
            if vt is base:
                return zero
        if isinstance(vt, type):
            for base, zero in _ZEROS.items():
                if issubclass(vt, base):
                    return zero
        return None
    return None


class DefaultsProvider:
    """Supplies per-field default values from zero-argument members of ``source``.

    A provider member is looked up by the field's override key: ``role`` for a
    regular field, ``role_id`` for an id-only relation.

    Example:
        class UserDefaults:
            def name(self):
                return "Alice"

            def role_id(self):
                return 1
    """

    def __init__(self, source: Any):
        self.source = source

    def _member(self, key: str) -> Any:
        if self.source is None or not key:
            return MISSING
        try:
            return getattr(self.source, key, MISSING)
        except Exception as e:
            _logger.debug("berrybuild.defaults: reading provider member %r failed: %r", key, e)
            return MISSING

    def lookup(self, key: str) -> Outcome:
        member = self._member(key)
        if member is MISSING or not callable(member):
            return Outcome.miss()
        try:
            return Outcome.success(member())
        except Exception as e:
            _logger.debug("berrybuild.defaults: provider %s.%s() failed: %r", type(self.source).__name__, key, e)
            return Outcome.failure(e)

    def validate(self, fields: Iterable[FieldModel]) -> None:
        """Log a warning for members named after a field that cannot supply a value."""
        owner = self.source if isinstance(self.source, type) else type(self.source)
        for fm in fields:
            key = fm.override_key
            member = self._member(key)
            if member is MISSING:
                continue
            if not callable(member):
                _logger.warning(
                    "berrybuild.defaults: %s.%s is not callable and will be ignored",
                    owner.__name__, key,
                )
                continue
            try:
                params = list(inspect.signature(member).parameters.values())
            except (TypeError, ValueError):
                continue
            if isinstance(self.source, type) and inspect.isfunction(member):
                params = params[1:]
            required = [
                p for p in params
                if p.default is p.empty and p.kind not in (p.VAR_POSITIONAL, p.VAR_KEYWORD)
            ]
            if required:
                _logger.warning(
                    "berrybuild.defaults: %s.%s expects arguments and will be ignored",
                    owner.__name__, key,
                )

    def __repr__(self) -> str:
        return f"DefaultsProvider({self.source!r})"


def resolve_provider(spec: Any, adapter: Optional[Any] = None) -> Optional[DefaultsProvider]:
    """Turn a provider instance or class into a :class:`DefaultsProvider`.

    Classes are obtained from ``adapter.require`` first, then instantiated
    with no arguments.
    """
    if spec is None:
        return None
    if isinstance(spec, DefaultsProvider):
        return spec
    if not isinstance(spec, type):
        return DefaultsProvider(spec)
    if adapter is not None:
        try:
            return DefaultsProvider(adapter.require(spec))
        except UnsupportedOperation:
            pass
        except Exception as e:
            raise BuilderConfigError(f"Cannot resolve defaults provider {spec.__name__}: {e}") from e
    try:
        return DefaultsProvider(spec())
    except Exception as e:
        raise BuilderConfigError(
            f"Cannot resolve defaults provider {spec.__name__}: no adapter supplies it "
            f"and it cannot be instantiated without arguments ({e})"
        ) from e
