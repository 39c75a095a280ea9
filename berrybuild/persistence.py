"""Persist an object graph so every related object is saved before its owner.

The walk follows relation fields only, decrementing the remaining depth on
each hop. An object is saved when its identifier is still ``None``; objects
that already carry one are treated as persistent and left alone (their own
relations are not walked). Cycles are cut by an identity-based visited set
created for each call.
"""
from __future__ import annotations
import logging
from collections.abc import Iterable, Mapping
from typing import Any, Callable, Iterator, Optional, Sequence

from .core.accessor import Accessor, default_accessor
from .core.identity import IdentifierResolver, default_identity
from .core.model import FieldModel, RelKind
from .core.outcome import MISSING

_logger = logging.getLogger("berrybuild")

__all__ = ['DEFAULT_DEPTH_LIMIT', 'IdentitySet', 'RelationGraphPersister']

DEFAULT_DEPTH_LIMIT = 2

FieldsFor = Callable[[type], Sequence[FieldModel]]


class IdentitySet:
    """Set of objects compared by identity, never by ``__eq__``/``__hash__``."""

    def __init__(self):
        self._items: dict = {}

    def add(self, obj: Any) -> bool:
        """Add ``obj``; return False when it was already present."""
        key = id(obj)
        if key in self._items:
            return False
        # keep a reference so the id cannot be reused while the set is alive
        self._items[key] = obj
        return True

    def __contains__(self, obj: Any) -> bool:
        return id(obj) in self._items

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Any]:
        return iter(list(self._items.values()))


def _elements(value: Any) -> list:
    if value is None or value is MISSING:
        return []
    if isinstance(value, (str, bytes, bytearray)):
        return []
    if isinstance(value, Mapping):
        return list(value.values())
    if isinstance(value, Iterable):
        return list(value)
    return []


class RelationGraphPersister:
    """Pre-persists the relation graph of a root object, then saves the root.

    Args:
        adapter: Persistence adapter, or None for a no-op.
        fields_for: Returns the field models of a type; only relation fields
            are used.
        auto_relations: Walk and pre-persist relations before saving the root.
        depth_limit: Maximum number of relation hops walked from the root.
    """

    def __init__(
        self,
        adapter: Any,
        fields_for: FieldsFor,
        *,
        auto_relations: bool = True,
        depth_limit: int = DEFAULT_DEPTH_LIMIT,
        accessor: Optional[Accessor] = None,
        identity: Optional[IdentifierResolver] = None,
    ):
        self.adapter = adapter
        self.fields_for = fields_for
        self.auto_relations = auto_relations
        self.depth_limit = depth_limit
        self.accessor = accessor or default_accessor
        self.identity = identity or default_identity

    def persist_if_needed(self, root: Any) -> Any:
        if self.adapter is None:
            return root
        if self.auto_relations:
            self.pre_persist_graph(root)
        _logger.debug("berrybuild.persistence: saving root %s", type(root).__name__)
        return self.adapter.save(root)

    def pre_persist_graph(self, root: Any) -> None:
        if root is None:
            return
        visited = IdentitySet()
        visited.add(root)
        self._walk(root, self.depth_limit, visited)

    def _relations(self, node: Any) -> Sequence[FieldModel]:
        return [fm for fm in self.fields_for(type(node)) if fm.is_relation]

    def _walk(self, node: Any, depth: int, visited: IdentitySet) -> None:
        if node is None or depth <= 0:
            return
        for fm in self._relations(node):
            value = self.accessor.read(node, fm.name, boolean=fm.is_boolean)
            if fm.relation_kind is RelKind.TO_ONE:
                if value is not MISSING:
                    self._ensure(value, depth - 1, visited)
            else:
                for element in _elements(value):
                    self._ensure(element, depth - 1, visited)

    def _ensure(self, candidate: Any, depth: int, visited: IdentitySet) -> None:
        if candidate is None or not visited.add(candidate):
            return
        if self.identity.read_identifier(candidate) is not None:
            _logger.debug("berrybuild.persistence: %s already persistent, skipped", type(candidate).__name__)
            return
        if self.adapter is None:
            return
        self._walk(candidate, depth, visited)
        _logger.debug("berrybuild.persistence: pre-persisting %s (depth %d)", type(candidate).__name__, depth)
        self.adapter.save(candidate)
