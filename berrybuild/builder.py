from __future__ import annotations
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field as dc_field
from typing import Any, Callable, ClassVar, Dict, List, Optional, Sequence, Tuple

from .adapters import get_adapter
from .core.accessor import Accessor, default_accessor
from .core.defaults import DefaultsProvider, resolve_provider, zero_value
from .core.identity import IdentifierResolver, default_identity
from .core.model import CollectionShape, FieldModel, FieldPolicy, Mode, RelKind, TypeCategory
from .core.outcome import MISSING
from .errors import BuilderConfigError
from .persistence import DEFAULT_DEPTH_LIMIT, RelationGraphPersister

_logger = logging.getLogger("berrybuild")

__all__ = ['BuilderOptions', 'BuilderSpec', 'BuildContext', 'Builder']


@dataclass(frozen=True)
class BuilderOptions:
    """Effective configuration of one builder (schema defaults plus decorator overrides)."""

    default_mode: Mode = Mode.TRANSIENT
    auto_relations: bool = True
    depth_limit: int = DEFAULT_DEPTH_LIMIT
    field_policy: FieldPolicy = FieldPolicy.ALL
    include_super: bool = True


@dataclass(frozen=True)
class BuilderSpec:
    """Everything a builder needs at runtime, produced once by the schema."""

    target: type
    fields: Tuple[FieldModel, ...]
    options: BuilderOptions = dc_field(default_factory=BuilderOptions)
    defaults: Any = None
    fields_for: Optional[Callable[[type], Sequence[FieldModel]]] = None

    def field(self, name: str) -> FieldModel:
        for fm in self.fields:
            if fm.name == name:
                return fm
        raise KeyError(name)

    def relation_fields(self, cls: type) -> Sequence[FieldModel]:
        if self.fields_for is not None:
            return self.fields_for(cls)
        if cls is self.target:
            return self.fields
        from .introspect import collect_fields
        return collect_fields(cls)


def _copy_collection(fm: FieldModel, value: Any) -> Any:
    if isinstance(value, Mapping):
        value = value.values()
    if fm.collection_shape is CollectionShape.SET:
        return set(value)
    return list(value)


class BuildContext:
    """Mutable state behind a fluent builder: mode, overrides and collaborators.

    ``overrides`` is sparse. A missing key means the field was never set and
    falls back to the defaults provider, then to the zero value; a key holding
    ``None`` is an explicit null.
    """

    def __init__(
        self,
        spec: BuilderSpec,
        *,
        adapter: Any = None,
        defaults: Any = None,
        mode: Optional[Mode] = None,
        accessor: Optional[Accessor] = None,
        identity: Optional[IdentifierResolver] = None,
    ):
        self.spec = spec
        self.adapter = get_adapter(adapter)
        self.mode: Mode = mode or spec.options.default_mode
        self.overrides: Dict[str, Any] = {}
        self.accessor = accessor or default_accessor
        self.identity = identity or default_identity
        source = defaults if defaults is not None else spec.defaults
        self.defaults: Optional[DefaultsProvider] = resolve_provider(source, self.adapter)

    # --- override bookkeeping -------------------------------------------------
    def set(self, key: str, value: Any) -> None:
        self.overrides[key] = value

    def add(self, fm: FieldModel, item: Any) -> None:
        current = self.overrides.get(fm.name)
        coll = _copy_collection(fm, current) if current is not None else fm.new_collection()
        if isinstance(coll, set):
            coll.add(item)
        else:
            coll.append(item)
        self.overrides[fm.name] = coll

    def add_all(self, fm: FieldModel, items: Any) -> None:
        if not items:
            return
        current = self.overrides.get(fm.name)
        coll = _copy_collection(fm, current) if current is not None else fm.new_collection()
        extra = _copy_collection(fm, items)
        if isinstance(coll, set):
            coll.update(extra)
        else:
            coll.extend(extra)
        self.overrides[fm.name] = coll

    def clear(self, fm: FieldModel) -> None:
        self.overrides[fm.name] = fm.new_collection()

    # --- build ------------------------------------------------------------------
    def effective_value(self, fm: FieldModel) -> Any:
        key = fm.override_key
        if key in self.overrides:
            value = self.overrides[key]
        else:
            value = MISSING
            if self.defaults is not None:
                value = self.defaults.lookup(key).or_else(MISSING)
            if value is MISSING:
                value = zero_value(fm)
        if value is None and fm.type_category in (TypeCategory.PRIMITIVE, TypeCategory.COLLECTION):
            value = zero_value(fm)
        if fm.is_collection and value is not None:
            value = _copy_collection(fm, value)
        return value

    def reference_for(self, fm: FieldModel, ident: Any) -> Any:
        related = fm.value_type
        if self.mode is Mode.PERSISTENT and self.adapter is not None and self.adapter.supports_lookup():
            found = self.adapter.find_by_id(related, ident)
            if found is not None:
                return found
            _logger.debug("berrybuild.builder: no %s with id %r, using a placeholder", related.__name__, ident)
        placeholder = related()
        self.identity.write_identifier(placeholder, ident)
        return placeholder

    def assign(self, obj: Any, fm: FieldModel, value: Any) -> None:
        if fm.has_setter:
            getattr(obj, fm.setter_name)(value)
        else:
            self.accessor.write(obj, fm.name, value)

    def build(self) -> Any:
        obj = self.spec.target()
        for fm in self.spec.fields:
            value = self.effective_value(fm)
            if fm.is_id_only:
                if value is None:
                    continue
                value = self.reference_for(fm, value)
            elif value is None and fm.relation_kind is RelKind.TO_ONE and fm.override_key not in self.overrides:
                # unset reference: leave whatever the target holds
                continue
            self.assign(obj, fm, value)
        return obj

    def persister(self) -> RelationGraphPersister:
        opts = self.spec.options
        return RelationGraphPersister(
            self.adapter,
            self.spec.relation_fields,
            auto_relations=opts.auto_relations,
            depth_limit=opts.depth_limit,
            accessor=self.accessor,
            identity=self.identity,
        )

    def create(self) -> Any:
        obj = self.build()
        if self.mode is Mode.PERSISTENT:
            return self.persister().persist_if_needed(obj)
        return obj

    def create_many(self, count: int) -> List[Any]:
        if count <= 0:
            return []
        return [self.create() for _ in range(count)]


class Builder:
    """Base class of generated fluent builders.

    Subclasses are produced by :meth:`BuilderSchema.builder`, which attaches
    the runtime spec and installs ``with_*``/``add_*``/``add_all_*``/``clear_*``
    methods for the target's fields.

    Example:
        user = (
            UserBuilder(session)
            .persistent()
            .with_name("Alice")
            .add_supervisor(boss)
            .create()
        )
    """

    __berrybuild_spec__: ClassVar[Optional[BuilderSpec]] = None

    def __init__(self, adapter: Any = None, defaults: Any = None, *, mode: Optional[Mode] = None):
        spec = type(self).__berrybuild_spec__
        if spec is None:
            raise BuilderConfigError(f"{type(self).__name__} is not registered with a BuilderSchema")
        self._ctx = BuildContext(spec, adapter=adapter, defaults=defaults, mode=mode)

    @property
    def current_mode(self) -> Mode:
        return self._ctx.mode

    @property
    def adapter(self) -> Any:
        return self._ctx.adapter

    def mode(self, mode: Optional[Mode]) -> 'Builder':
        self._ctx.mode = mode or Mode.TRANSIENT
        return self

    def transient_mode(self) -> 'Builder':
        return self.mode(Mode.TRANSIENT)

    def persistent(self) -> 'Builder':
        return self.mode(Mode.PERSISTENT)

    def using(self, adapter: Any) -> 'Builder':
        self._ctx.adapter = get_adapter(adapter)
        return self

    def build(self) -> Any:
        return self._ctx.build()

    def create(self) -> Any:
        return self._ctx.create()

    def create_many(self, count: int) -> List[Any]:
        return self._ctx.create_many(count)

    def __repr__(self) -> str:
        spec = type(self).__berrybuild_spec__
        target = spec.target.__name__ if spec is not None else '?'
        return f"<{type(self).__name__} target={target} mode={self._ctx.mode.value} overrides={sorted(self._ctx.overrides)}>"
