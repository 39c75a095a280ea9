"""Building blocks shared by builders, the schema and the persistence walk."""
from __future__ import annotations

from .model import CollectionShape, FieldModel, FieldPolicy, Mode, RelKind, TypeCategory
from .outcome import MISSING, Outcome

__all__ = [
    'CollectionShape',
    'FieldModel',
    'FieldPolicy',
    'Mode',
    'RelKind',
    'TypeCategory',
    'MISSING',
    'Outcome',
]
