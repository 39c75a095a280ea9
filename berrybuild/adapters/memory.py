from __future__ import annotations
import itertools
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple, Type

from ..core.identity import IdentifierResolver, default_identity
from ..errors import UnsupportedOperation
from .base import PersistAdapter

_logger = logging.getLogger("berrybuild")


class MemoryPersistAdapter(PersistAdapter):
    """In-process adapter keeping saved objects in an identity map.

    New objects receive sequential identifiers starting at ``start``. Every
    call to :meth:`save` is recorded in :attr:`saved`, in call order, which
    makes the adapter convenient for asserting persistence order in tests.
    """
    name = 'memory'

    def __init__(
        self,
        *,
        start: int = 1,
        lookup: bool = True,
        providers: Optional[Mapping[type, Any]] = None,
        identity: Optional[IdentifierResolver] = None,
    ):
        self._ids = itertools.count(start)
        self.lookup = lookup
        self.providers: Dict[type, Any] = dict(providers or {})
        self.identity = identity or default_identity
        self.saved: List[Any] = []
        self.store: Dict[Tuple[type, Any], Any] = {}

    def save(self, entity: Any) -> Any:
        ident = self.identity.read_identifier(entity)
        if ident is None:
            ident = next(self._ids)
            outcome = self.identity.write_identifier_outcome(entity, ident)
            if not outcome.ok:
                _logger.warning(
                    "berrybuild.memory: could not assign identifier %r to %s", ident, type(entity).__name__
                )
        self.store[(type(entity), ident)] = entity
        self.saved.append(entity)
        return entity

    def find_by_id(self, entity_type: Type[Any], id: Any) -> Optional[Any]:
        if not self.lookup:
            raise UnsupportedOperation("lookup is disabled on this MemoryPersistAdapter")
        return self.store.get((entity_type, id))

    def supports_lookup(self) -> bool:
        return self.lookup

    def require(self, dependency_type: Type[Any]) -> Any:
        if dependency_type in self.providers:
            return self.providers[dependency_type]
        return super().require(dependency_type)

    def saved_of(self, entity_type: Type[Any]) -> List[Any]:
        return [e for e in self.saved if isinstance(e, entity_type)]
