from __future__ import annotations
from typing import Any, Optional

from sqlalchemy.orm import Session

from .base import PersistAdapter
from .memory import MemoryPersistAdapter
from .sqlalchemy import SQLAlchemyPersistAdapter, create_async


def get_adapter(obj: Any) -> Optional[PersistAdapter]:
    if obj is None or isinstance(obj, PersistAdapter):
        return obj
    if isinstance(obj, Session):
        return SQLAlchemyPersistAdapter(obj)
    raise TypeError(f"Cannot use {type(obj).__name__} as a persistence adapter")


__all__ = [
    'PersistAdapter',
    'MemoryPersistAdapter',
    'SQLAlchemyPersistAdapter',
    'create_async',
    'get_adapter',
]
