from __future__ import annotations
from typing import Any, Optional, Type

from ..errors import UnsupportedOperation


class PersistAdapter:
    """Bridge between builders and a persistence backend.

    Only :meth:`save` is mandatory. :meth:`find_by_id` backs id-only
    relations in persistent mode and :meth:`require` lets builders obtain
    defaults providers from the backend.
    """
    name = 'base'

    def save(self, entity: Any) -> Any:
        raise NotImplementedError

    def find_by_id(self, entity_type: Type[Any], id: Any) -> Optional[Any]:
        raise UnsupportedOperation(f"{type(self).__name__} does not support find_by_id")

    def require(self, dependency_type: Type[Any]) -> Any:
        raise UnsupportedOperation(f"{type(self).__name__} cannot supply {getattr(dependency_type, '__name__', dependency_type)}")

    def supports_lookup(self) -> bool:
        # overridden find_by_id means lookup is available; no call is made
        return type(self).find_by_id is not PersistAdapter.find_by_id
