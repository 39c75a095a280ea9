from __future__ import annotations
import dataclasses
import logging
from functools import lru_cache
from typing import Any, Optional

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Mapper

from .accessor import StructuralAccessor, declares_attribute, find_method
from .fields import ID_MARKER
from .outcome import Outcome

_logger = logging.getLogger("berrybuild")

__all__ = ['IdentifierResolver', 'identifier_name', 'marked_identifier_name', 'default_identity']

CONVENTIONAL_ID = 'id'


def mapper_for(cls: Any) -> Optional[Mapper]:
    try:
        insp = sa_inspect(cls, raiseerr=False)
    except Exception:
        return None
    return insp if isinstance(insp, Mapper) else None


@lru_cache(maxsize=None)
def marked_identifier_name(cls: type) -> Optional[str]:
    """Name of the attribute explicitly marked as identifier on ``cls``, if any.

    Markers, in order: the SQLAlchemy mapper primary key (first column), a
    dataclass field created with :func:`identifier_field`, and a class
    attribute ``__identifier__``.
    """
    mapper = mapper_for(cls)
    if mapper is not None:
        try:
            pk_cols = list(mapper.primary_key)
            if pk_cols:
                return mapper.get_property_by_column(pk_cols[0]).key
        except Exception as e:
            _logger.debug("berrybuild.identity: primary key lookup failed for %s: %r", cls.__name__, e)
    if dataclasses.is_dataclass(cls):
        for f in dataclasses.fields(cls):
            if f.metadata.get(ID_MARKER):
                return f.name
    for klass in cls.__mro__:
        explicit = klass.__dict__.get('__identifier__')
        if isinstance(explicit, str) and explicit:
            return explicit
    return None


def identifier_name(cls: type) -> str:
    """Identifier attribute name for ``cls``: the marked one, else ``id``."""
    return marked_identifier_name(cls) or CONVENTIONAL_ID


class IdentifierResolver:
    """Reads and writes persistence identifiers by convention."""

    def __init__(self):
        self._structural = StructuralAccessor()

    def read_identifier(self, obj: Any) -> Any:
        if obj is None:
            return None
        name = identifier_name(type(obj))
        if not declares_attribute(obj, name):
            return None
        try:
            return getattr(obj, name, None)
        except Exception as e:
            _logger.debug("berrybuild.identity: reading %s.%s failed: %r", type(obj).__name__, name, e)
            return None

    def has_identifier(self, obj: Any) -> bool:
        return self.read_identifier(obj) is not None

    def write_identifier_outcome(self, target: Any, value: Any) -> Outcome:
        if target is None:
            return Outcome.miss()
        setter = find_method(type(target), 'set_id', 1)
        if setter is not None:
            try:
                setter(target, value)
                return Outcome.success(value)
            except Exception as e:
                _logger.debug("berrybuild.identity: %s.set_id failed: %r", type(target).__name__, e)
        return self._structural.write(target, identifier_name(type(target)), value)

    def write_identifier(self, target: Any, value: Any) -> None:
        outcome = self.write_identifier_outcome(target, value)
        if not outcome.ok:
            _logger.debug("berrybuild.identity: could not attach identifier to %s", type(target).__name__)


default_identity = IdentifierResolver()
