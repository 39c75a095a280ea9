"""Field collection for builder targets.

Turns a domain type into an ordered list of :class:`FieldModel` from one of
three sources, tried in order:

1. a SQLAlchemy mapped class (columns and relationships of its mapper),
2. a dataclass (``dataclasses.fields`` plus resolved type hints),
3. any other class with annotations (``typing.get_type_hints``).

Descriptors declared in a builder body (or in ``Annotated`` metadata) are
merged over what the source reports. The result is sorted by alias,
case-insensitively.
"""
from __future__ import annotations
import collections.abc as cabc
import dataclasses
import logging
import types
from typing import Annotated, Any, ClassVar, Dict, List, Mapping, Optional, Union, get_args, get_origin, get_type_hints

from sqlalchemy import Column

from .core.accessor import find_method, own_annotations
from .core.fields import ID_MARKER, FieldDef, FieldDescriptor
from .core.identity import mapper_for, marked_identifier_name
from .core.model import SCALAR_TYPES, CollectionShape, FieldModel, RelKind, TypeCategory
from .core.naming import default_alias_for
from .errors import BuilderConfigError

_logger = logging.getLogger("berrybuild")

__all__ = ['collect_fields', 'classify_annotation', 'sort_by_alias']

_LIST_ORIGINS = (list, tuple, cabc.Sequence, cabc.MutableSequence, cabc.Iterable, cabc.Collection)
_SET_ORIGINS = (set, frozenset, cabc.Set, cabc.MutableSet)


def sort_by_alias(fields: List[FieldModel]) -> List[FieldModel]:
    return sorted(fields, key=lambda f: f.alias.lower())


def _is_scalar(tp: Any) -> bool:
    return any(tp is s for s in SCALAR_TYPES)


def _strip_annotated(tp: Any, meta: List[Any]) -> Any:
    while get_origin(tp) is Annotated:
        base, *extra = get_args(tp)
        meta.extend(extra)
        tp = base
    return tp


def classify_annotation(tp: Any) -> Dict[str, Any]:
    """Map a type annotation onto :class:`FieldModel` keyword arguments.

    ``Annotated`` metadata is returned under the ``descriptors`` key when it
    carries :class:`FieldDescriptor` objects.
    """
    meta: List[Any] = []
    tp = _strip_annotated(tp, meta)
    optional = False
    origin = get_origin(tp)
    if origin is Union or (hasattr(types, 'UnionType') and origin is getattr(types, 'UnionType')):
        args = [a for a in get_args(tp) if a is not type(None)]
        optional = len(args) < len(get_args(tp))
        tp = args[0] if len(args) == 1 else Any
        tp = _strip_annotated(tp, meta)
        origin = get_origin(tp)
    out: Dict[str, Any] = {
        'descriptors': [m for m in meta if isinstance(m, FieldDescriptor)],
        'is_boolean': tp is bool,
    }
    if origin in _SET_ORIGINS or tp in (set, frozenset):
        args = get_args(tp)
        out.update(
            type_category=TypeCategory.COLLECTION,
            collection_shape=CollectionShape.SET,
            element_type=args[0] if args and isinstance(args[0], type) else None,
            value_type=set,
        )
        return out
    if origin in _LIST_ORIGINS or tp in (list, tuple):
        args = get_args(tp)
        out.update(
            type_category=TypeCategory.COLLECTION,
            collection_shape=CollectionShape.LIST,
            element_type=args[0] if args and isinstance(args[0], type) else None,
            value_type=list,
        )
        return out
    if _is_scalar(tp):
        out.update(type_category=TypeCategory.BOXED if optional else TypeCategory.PRIMITIVE, value_type=tp)
        return out
    out.update(type_category=TypeCategory.REFERENCE, value_type=tp if isinstance(tp, type) else None)
    return out


def _safe_hints(target: type) -> Dict[str, Any]:
    try:
        return get_type_hints(target, include_extras=True)
    except Exception as e:
        _logger.debug("berrybuild.introspect: resolving hints of %s failed: %r", target.__name__, e)
        raw: Dict[str, Any] = {}
        for klass in reversed(target.__mro__):
            raw.update(own_annotations(klass))
        return raw


def _is_classvar(tp: Any) -> bool:
    return tp is ClassVar or get_origin(tp) is ClassVar


def _python_type(col: Any) -> Optional[type]:
    try:
        return col.type.python_type
    except Exception:
        return None


def _from_mapper(target: type, mapper: Any, include_super: bool) -> Dict[str, Dict[str, Any]]:
    inherited = set()
    if not include_super:
        for base in target.__mro__[1:]:
            bm = mapper_for(base)
            if bm is not None:
                inherited.update(p.key for p in bm.attrs)
    raw: Dict[str, Dict[str, Any]] = {}
    for prop in mapper.column_attrs:
        key = prop.key
        if key in inherited or key.startswith('_'):
            continue
        col = prop.columns[0] if prop.columns else None
        if not isinstance(col, Column):
            # column_property() over an expression
            continue
        py = _python_type(col)
        boxed = bool(col.primary_key or col.foreign_keys or col.nullable)
        if py is not None and _is_scalar(py):
            category = TypeCategory.BOXED if boxed else TypeCategory.PRIMITIVE
        else:
            category = TypeCategory.BOXED if boxed else TypeCategory.REFERENCE
        raw[key] = {
            'type_category': category,
            'value_type': py,
            'is_boolean': py is bool,
            'descriptors': [],
        }
    for rel in mapper.relationships:
        key = rel.key
        if key in inherited or rel.viewonly:
            continue
        related = rel.mapper.class_
        if not rel.uselist:
            raw[key] = {
                'type_category': TypeCategory.REFERENCE,
                'relation_kind': RelKind.TO_ONE,
                'value_type': related,
                'descriptors': [],
            }
            continue
        coll = rel.collection_class
        if coll is None or (isinstance(coll, type) and issubclass(coll, list)):
            shape = CollectionShape.LIST
        elif isinstance(coll, type) and issubclass(coll, (set, frozenset)):
            shape = CollectionShape.SET
        else:
            _logger.debug("berrybuild.introspect: %s.%s uses unsupported collection %r", target.__name__, key, coll)
            continue
        raw[key] = {
            'type_category': TypeCategory.COLLECTION,
            'collection_shape': shape,
            'element_type': related,
            'relation_kind': RelKind.TO_MANY,
            'value_type': set if shape is CollectionShape.SET else list,
            'descriptors': [],
        }
    return raw


def _from_dataclass(target: type, include_super: bool) -> Dict[str, Dict[str, Any]]:
    hints = _safe_hints(target)
    inherited = set()
    if not include_super:
        for base in target.__mro__[1:]:
            if dataclasses.is_dataclass(base):
                inherited.update(f.name for f in dataclasses.fields(base))
    raw: Dict[str, Dict[str, Any]] = {}
    for f in dataclasses.fields(target):
        if f.name.startswith('_') or f.name in inherited:
            continue
        info = classify_annotation(hints.get(f.name, f.type))
        if f.metadata.get(ID_MARKER) and info['type_category'] is TypeCategory.PRIMITIVE:
            info['type_category'] = TypeCategory.BOXED
        raw[f.name] = info
    return raw


def _from_annotations(target: type, include_super: bool) -> Dict[str, Dict[str, Any]]:
    hints = _safe_hints(target)
    if include_super:
        names: List[str] = []
        for klass in reversed(target.__mro__):
            for n in own_annotations(klass):
                if n not in names:
                    names.append(n)
    else:
        names = list(own_annotations(target))
    raw: Dict[str, Dict[str, Any]] = {}
    for n in names:
        if n.startswith('_'):
            continue
        tp = hints.get(n, Any)
        if _is_classvar(tp) or (isinstance(tp, str) and tp.startswith("ClassVar")):
            continue
        raw[n] = classify_annotation(tp) if not isinstance(tp, str) else {
            'type_category': TypeCategory.REFERENCE,
            'descriptors': [],
        }
    return raw


def _merge(name: str, info: Dict[str, Any], fdef: Optional[FieldDef], target: type, id_name: str) -> FieldModel:
    meta = dict(fdef.meta) if fdef is not None else {}
    kwargs: Dict[str, Any] = {
        k: info[k] for k in (
            'type_category', 'collection_shape', 'element_type', 'relation_kind', 'value_type', 'is_boolean',
        ) if k in info
    }
    if fdef is not None and fdef.kind == 'relation':
        shape = kwargs.get('collection_shape', CollectionShape.NONE)
        single = meta.get('single')
        if single is None:
            single = shape is CollectionShape.NONE
        related = meta.get('target') or (kwargs.get('element_type') if shape is not CollectionShape.NONE else kwargs.get('value_type'))
        if single:
            kwargs.update(
                type_category=TypeCategory.REFERENCE,
                collection_shape=CollectionShape.NONE,
                element_type=None,
                relation_kind=RelKind.TO_ONE,
                value_type=related,
            )
        else:
            if shape is CollectionShape.NONE:
                shape = CollectionShape.LIST
            kwargs.update(
                type_category=TypeCategory.COLLECTION,
                collection_shape=shape,
                element_type=related,
                relation_kind=RelKind.TO_MANY,
                value_type=set if shape is CollectionShape.SET else list,
            )
    is_boolean = bool(kwargs.get('is_boolean'))
    alias = meta.get('alias') or default_alias_for(name, is_boolean)
    setter_name = f"set_{name}"
    fm = FieldModel(
        name=name,
        alias=alias,
        identifier_only=bool(meta.get('as_id_only')),
        is_identifier=(name == id_name),
        setter_name=setter_name,
        has_setter=find_method(target, setter_name, 1) is not None,
        **kwargs,
    )
    if fm.identifier_only and fm.relation_kind is not RelKind.TO_ONE:
        raise BuilderConfigError(
            f"{target.__name__}.{name}: as_id_only is only allowed on to-one relations"
        )
    return fm


def collect_fields(
    target: type,
    *,
    include_super: bool = True,
    declared: Optional[Mapping[str, FieldDef]] = None,
    explicit: bool = False,
) -> List[FieldModel]:
    """Collect the buildable fields of ``target``.

    Args:
        target: Domain type to inspect.
        include_super: Keep fields inherited from mapped/dataclass/annotated bases.
        declared: Field definitions from a builder body, keyed by attribute name.
            Names unknown to the source are added as reference fields.
        explicit: Keep only fields with a declared or ``Annotated`` descriptor.

    Returns:
        Field models sorted by alias (case-insensitive).

    Raises:
        BuilderConfigError: A field is flagged id-only but is not a to-one relation.
    """
    declared = dict(declared or {})
    mapper = mapper_for(target)
    if mapper is not None:
        raw = _from_mapper(target, mapper, include_super)
    elif dataclasses.is_dataclass(target):
        raw = _from_dataclass(target, include_super)
    else:
        raw = _from_annotations(target, include_super)
    for name, fdef in declared.items():
        if name not in raw and not fdef.ignored:
            raw[name] = {'type_category': TypeCategory.REFERENCE, 'descriptors': []}
    id_name = marked_identifier_name(target) or 'id'
    out: List[FieldModel] = []
    for name, info in raw.items():
        fdef = declared.get(name)
        if fdef is None:
            descs = info.get('descriptors') or []
            if descs:
                fdef = descs[-1].build(name)
        if fdef is not None and fdef.ignored:
            continue
        if explicit and fdef is None:
            continue
        if name == id_name and info.get('type_category') is TypeCategory.PRIMITIVE:
            info = dict(info, type_category=TypeCategory.BOXED)
        out.append(_merge(name, info, fdef, target, id_name))
    # an id-only relation takes over the column holding its key (role -> role_id)
    absorbed = {fm.override_key for fm in out if fm.is_id_only}
    out = [fm for fm in out if fm.is_id_only or fm.name not in absorbed or fm.name in declared]
    return sort_by_alias(out)

