from __future__ import annotations
import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

ID_MARKER = 'berrybuild.identifier'


@dataclass
class FieldDef:
    """Normalized field declaration collected from a builder class body.

    Attributes:
        name: Attribute name on the target type (e.g. "role").
        kind: One of "field", "relation", "ignore".
        meta: Options captured by the descriptor factory. Keys depend on kind:
            alias, as_id_only, target, single.
    """

    name: str
    kind: str
    meta: Dict[str, Any]

    @property
    def ignored(self) -> bool:
        return self.kind == 'ignore'


class FieldDescriptor:
    """Descriptor placed on builder classes to tune how a field is exposed.

    Users normally use :func:`field`, :func:`relation` or :func:`ignore`,
    which return a ``FieldDescriptor``. The schema converts it to a
    :class:`FieldDef` and merges it over the introspected field model.
    Descriptors may also appear inside ``typing.Annotated`` metadata on the
    domain type itself.
    """

    def __init__(self, *, kind: str, **meta):
        self.kind = kind
        self.meta = dict(meta)
        self.name: str | None = None

    def __set_name__(self, owner, name):  # pragma: no cover - simple
        self.name = name

    def build(self, name: Optional[str] = None) -> FieldDef:
        return FieldDef(name=name or self.name or '', kind=self.kind, meta=self.meta)

    def __repr__(self) -> str:
        return f"FieldDescriptor(kind={self.kind!r}, name={self.name!r}, meta={self.meta!r})"


def field(alias: Optional[str] = None, /, *, as_id_only: bool = False) -> FieldDescriptor:
    """Declare options for a scalar or collection field.

    Args:
        alias: Custom base name for the fluent methods. ``alias='title'`` on a
            field ``invoice_title`` generates ``with_title(...)``.
        as_id_only: Expose the field through ``with_<alias>_id`` only. Valid
            for to-one relations; rejected for anything else.

    Example:
        @schema.builder(Invoice)
        class InvoiceBuilder(Builder):
            invoice_title = field('title')

    Returns:
        FieldDescriptor: A descriptor captured by the schema.
    """
    meta: Dict[str, Any] = {'as_id_only': bool(as_id_only)}
    if alias:
        meta['alias'] = alias
    return FieldDescriptor(kind='field', **meta)


def relation(
    target: Any = None,
    *,
    single: bool | None = None,
    as_id_only: bool = False,
    alias: Optional[str] = None,
) -> FieldDescriptor:
    """Declare a field as a relation to another persistable object.

    SQLAlchemy relationships are detected automatically; use this for plain
    classes and dataclasses, or to refine a detected relationship.

    Args:
        target: Related class. Needed to build id-only placeholders when the
            annotation does not name it.
        single: True for a to-one relation, False for to-many. When omitted
            it is inferred from the field's declared collection shape.
        as_id_only: Expose ``with_<alias>_id`` instead of ``with_<alias>``;
            the builder then places a placeholder (or looked-up) instance of
            ``target`` on the field.
        alias: Custom base name for the fluent methods.

    Examples:
        class EmployeeBuilder(Builder):
            department = relation(Department, single=True, as_id_only=True)
            reports = relation(Employee)

    Returns:
        FieldDescriptor: A descriptor captured by the schema.
    """
    meta: Dict[str, Any] = {'as_id_only': bool(as_id_only)}
    if target is not None:
        meta['target'] = target
    if single is not None:
        meta['single'] = bool(single)
    if alias:
        meta['alias'] = alias
    return FieldDescriptor(kind='relation', **meta)


def ignore() -> FieldDescriptor:
    """Exclude a field from the builder API and from the build step."""
    return FieldDescriptor(kind='ignore')


def identifier_field(default: Any = None, **kwargs: Any) -> Any:
    """``dataclasses.field`` marking the identifier of a dataclass domain type.

    Example:
        @dataclass
        class Ticket:
            key: Optional[str] = identifier_field()
    """
    metadata = dict(kwargs.pop('metadata', None) or {})
    metadata[ID_MARKER] = True
    return dataclasses.field(default=default, metadata=metadata, **kwargs)


__all__ = [
    'ID_MARKER',
    'FieldDef',
    'FieldDescriptor',
    'field',
    'relation',
    'ignore',
    'identifier_field',
]
