from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Tuple, Type


class Mode(Enum):
    """Operation modes for a builder.

    TRANSIENT builds in memory only; PERSISTENT builds and then hands the
    object graph to the configured persistence adapter.
    """
    TRANSIENT = 'transient'
    PERSISTENT = 'persistent'


class FieldPolicy(Enum):
    """Which fields of a target type become part of the builder API.

    ALL: every eligible field unless explicitly ignored.
    EXPLICIT: only fields declared with a descriptor in the builder body.
    """
    ALL = 'all'
    EXPLICIT = 'explicit'


class RelKind(Enum):
    NONE = 'none'
    # OneToOne / ManyToOne: referenced object is persisted before the owner.
    TO_ONE = 'to_one'
    # OneToMany / ManyToMany: every element is persisted before the owner.
    TO_MANY = 'to_many'


class TypeCategory(Enum):
    PRIMITIVE = 'primitive'
    BOXED = 'boxed'
    COLLECTION = 'collection'
    REFERENCE = 'reference'


class CollectionShape(Enum):
    NONE = 'none'
    LIST = 'list'
    SET = 'set'


# Scalar types with a natural zero value, checked by identity (bool before int).
SCALAR_TYPES: Tuple[type, ...] = (bool, int, float, complex, str, bytes, Decimal)


@dataclass(frozen=True)
class FieldModel:
    """Normalized, immutable description of one buildable field.

    Attributes:
        name: Attribute name on the target type.
        alias: Base name of the fluent methods (``with_<alias>`` ...).
        type_category: Scalar/collection/reference classification driving the
            zero value.
        collection_shape: LIST or SET for collections, NONE otherwise.
        element_type: Element class for collections (None when unknown).
        relation_kind: Relation classification used by the persistence walk.
        identifier_only: Expose ``with_<alias>_id`` instead of ``with_<alias>``.
        value_type: Declared Python class of the value; for relations the
            related class. None when it cannot be determined.
        is_boolean: Declared type is ``bool``.
        is_identifier: The field holds the type's persistence identifier.
        setter_name: Conventional setter method name.
        has_setter: Whether the target declares a one-argument setter.
    """

    name: str
    alias: str
    type_category: TypeCategory = TypeCategory.REFERENCE
    collection_shape: CollectionShape = CollectionShape.NONE
    element_type: Optional[Type[Any]] = None
    relation_kind: RelKind = RelKind.NONE
    identifier_only: bool = False
    value_type: Optional[Type[Any]] = None
    is_boolean: bool = False
    is_identifier: bool = False
    setter_name: str = ''
    has_setter: bool = False

    @property
    def is_collection(self) -> bool:
        return self.collection_shape is not CollectionShape.NONE

    @property
    def is_relation(self) -> bool:
        return self.relation_kind is not RelKind.NONE

    @property
    def is_id_only(self) -> bool:
        # identifier_only is only meaningful on to-one relations
        return self.identifier_only and self.relation_kind is RelKind.TO_ONE

    @property
    def override_key(self) -> str:
        return f"{self.name}_id" if self.is_id_only else self.name

    def new_collection(self) -> Any:
        if self.collection_shape is CollectionShape.SET:
            return set()
        return []


__all__ = [
    'Mode',
    'FieldPolicy',
    'RelKind',
    'TypeCategory',
    'CollectionShape',
    'SCALAR_TYPES',
    'FieldModel',
]
