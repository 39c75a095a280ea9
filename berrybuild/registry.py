from __future__ import annotations
import dataclasses
import inspect
import logging
from collections import Counter
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Type

from .builder import Builder, BuilderOptions, BuilderSpec
from .core.defaults import DefaultsProvider
from .core.fields import FieldDef, FieldDescriptor
from .core.model import FieldModel, FieldPolicy, Mode
from .core.naming import add_all_method, add_method, api_methods_for, clear_method, with_id_method, with_method
from .errors import BuilderConfigError
from .introspect import collect_fields
from .persistence import DEFAULT_DEPTH_LIMIT

_logger = logging.getLogger("berrybuild")

__all__ = ['BuilderSchema']

_RESERVED = frozenset(n for n in dir(Builder) if not n.startswith('_'))


def _check_constructible(target: type) -> None:
    if not isinstance(target, type):
        raise BuilderConfigError(f"Builder target must be a class, got {target!r}")
    if inspect.isabstract(target):
        raise BuilderConfigError(f"{target.__name__} is abstract and cannot be instantiated")
    try:
        sig = inspect.signature(target)
    except (TypeError, ValueError):
        # builtins without introspectable signatures; instantiation is tried at build time
        return
    required = [
        p.name for p in sig.parameters.values()
        if p.default is p.empty and p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
    ]
    if required:
        raise BuilderConfigError(
            f"{target.__name__} cannot be constructed without arguments (requires: {', '.join(required)})"
        )


def _declared_fields(cls: type) -> Dict[str, FieldDef]:
    declared: Dict[str, FieldDef] = {}
    for k, v in list(vars(cls).items()):
        if isinstance(v, FieldDescriptor):
            v.__set_name__(cls, k)
            declared[k] = v.build(k)
            delattr(cls, k)
    return declared


def _with(fm: FieldModel) -> Callable[..., Any]:
    key = fm.name

    def method(self, value):
        self._ctx.set(key, value)
        return self
    method.__doc__ = f"Set ``{fm.name}`` on the built object."
    return method


def _with_id(fm: FieldModel) -> Callable[..., Any]:
    key = fm.override_key
    related = getattr(fm.value_type, '__name__', 'object')

    def method(self, value):
        self._ctx.set(key, value)
        return self
    method.__doc__ = f"Reference an existing {related} by identifier for ``{fm.name}``."
    return method


def _add(fm: FieldModel) -> Callable[..., Any]:
    def method(self, item):
        self._ctx.add(fm, item)
        return self
    method.__doc__ = f"Append one element to ``{fm.name}``."
    return method


def _add_all(fm: FieldModel) -> Callable[..., Any]:
    def method(self, items):
        self._ctx.add_all(fm, items)
        return self
    method.__doc__ = f"Append every element of ``items`` to ``{fm.name}``; empty or None is ignored."
    return method


def _clear(fm: FieldModel) -> Callable[..., Any]:
    def method(self):
        self._ctx.clear(fm)
        return self
    method.__doc__ = f"Reset ``{fm.name}`` to an empty collection."
    return method


def _fluent_methods(fm: FieldModel) -> List[Tuple[str, Callable[..., Any]]]:
    if fm.is_id_only:
        return [(with_id_method(fm), _with_id(fm))]
    out = [(with_method(fm), _with(fm))]
    if fm.is_collection:
        out.extend([
            (add_method(fm), _add(fm)),
            (add_all_method(fm), _add_all(fm)),
            (clear_method(fm), _clear(fm)),
        ])
    return out


class BuilderSchema:
    """Registry of generated builders and schema-wide builder defaults.

    Example:
        schema = BuilderSchema(default_mode=Mode.TRANSIENT)

        @schema.builder(User)
        class UserBuilder(Builder):
            role = relation(Role, as_id_only=True)

        user = UserBuilder().with_name("Alice").with_role_id(3).build()
    """

    def __init__(
        self,
        *,
        default_mode: Mode = Mode.TRANSIENT,
        auto_relations: bool = True,
        depth_limit: int = DEFAULT_DEPTH_LIMIT,
    ):
        self.options = BuilderOptions(
            default_mode=default_mode,
            auto_relations=auto_relations,
            depth_limit=depth_limit,
        )
        self.builders: Dict[type, Type[Builder]] = {}
        self._defaults: Dict[type, Any] = {}
        self._fields_cache: Dict[type, Tuple[FieldModel, ...]] = {}

    # --- registration -----------------------------------------------------------
    def builder(
        self,
        target: type,
        *,
        default_mode: Optional[Mode] = None,
        field_policy: FieldPolicy = FieldPolicy.ALL,
        auto_relations: Optional[bool] = None,
        defaults: Any = None,
        include_super: bool = True,
        depth_limit: Optional[int] = None,
    ):
        """Class decorator turning ``cls`` into the fluent builder of ``target``.

        Args:
            target: Domain class the builder instantiates.
            default_mode: Mode of fresh builder instances; schema default when None.
            field_policy: ALL exposes every eligible field, EXPLICIT only those
                declared with :func:`field`/:func:`relation`.
            auto_relations: Pre-persist related objects before the root.
            defaults: Defaults provider class or instance.
            include_super: Include fields inherited from base classes.
            depth_limit: Relation hops walked when persisting.

        Raises:
            BuilderConfigError: The target cannot be constructed without
                arguments, a field declaration is invalid or generated method
                names collide.
        """
        options = dataclasses.replace(
            self.options,
            default_mode=default_mode or self.options.default_mode,
            auto_relations=self.options.auto_relations if auto_relations is None else bool(auto_relations),
            depth_limit=self.options.depth_limit if depth_limit is None else int(depth_limit),
            field_policy=field_policy,
            include_super=include_super,
        )

        def deco(cls: type) -> Type[Builder]:
            return self._generate(cls, target, options, defaults)
        return deco

    def builder_for(self, target: type, **options: Any) -> Type[Builder]:
        """Generate ``<Target>Builder`` for ``target`` without a class body."""
        cls = type(f"{target.__name__}Builder", (Builder,), {'__module__': target.__module__})
        return self.builder(target, **options)(cls)

    def defaults(self, target: type):
        """Register a defaults provider (class or instance) for ``target``.

        Builders that declare their own ``defaults=`` keep it.

        Example:
            @schema.defaults(User)
            class UserDefaults:
                def name(self):
                    return "Alice"
        """
        def deco(provider: Any) -> Any:
            self._defaults[target] = provider
            existing = self.builders.get(target)
            spec = getattr(existing, '__berrybuild_spec__', None)
            if spec is not None and spec.defaults is None:
                DefaultsProvider(provider).validate(spec.fields)
                existing.__berrybuild_spec__ = dataclasses.replace(spec, defaults=provider)
            return provider
        return deco

    # --- lookup -------------------------------------------------------------------
    def get(self, target: type) -> Optional[Type[Builder]]:
        return self.builders.get(target)

    def fields_for(self, cls: type) -> Sequence[FieldModel]:
        cached = self._fields_cache.get(cls)
        if cached is None:
            cached = tuple(collect_fields(cls))
            self._fields_cache[cls] = cached
        return cached

    # --- generation -------------------------------------------------------------------
    def _generate(self, cls: type, target: type, options: BuilderOptions, defaults: Any) -> Type[Builder]:
        _check_constructible(target)
        declared = _declared_fields(cls)
        fields = collect_fields(
            target,
            include_super=options.include_super,
            declared=declared,
            explicit=options.field_policy is FieldPolicy.EXPLICIT,
        )
        for fm in fields:
            if fm.is_id_only and not isinstance(fm.value_type, type):
                raise BuilderConfigError(
                    f"{target.__name__}.{fm.name}: id-only relation needs a target class, use relation(Target, as_id_only=True)"
                )
        provider = defaults if defaults is not None else self._defaults.get(target)
        if provider is not None:
            DefaultsProvider(provider).validate(fields)
        self._check_conflicts(cls, target, fields)
        if not issubclass(cls, Builder):
            cls = type(cls.__name__, (cls, Builder), {'__module__': cls.__module__, '__qualname__': cls.__qualname__})
        for fm in fields:
            for name, method in _fluent_methods(fm):
                method.__name__ = name
                method.__qualname__ = f"{cls.__qualname__}.{name}"
                setattr(cls, name, method)
        cls.__berrybuild_spec__ = BuilderSpec(
            target=target,
            fields=tuple(fields),
            options=options,
            defaults=provider,
            fields_for=self.fields_for,
        )
        if target in self.builders:
            _logger.warning("berrybuild.registry: replacing builder for %s", target.__name__)
        self.builders[target] = cls
        self._fields_cache[target] = tuple(fields)
        _logger.debug("berrybuild.registry: %s generated with %d fields", cls.__name__, len(fields))
        return cls

    def _check_conflicts(self, cls: type, target: type, fields: Sequence[FieldModel]) -> None:
        names: List[str] = []
        for fm in fields:
            names.extend(api_methods_for(fm))
        problems: List[str] = []
        for name, n in Counter(names).items():
            if n > 1:
                owners = [fm.name for fm in fields if name in api_methods_for(fm)]
                problems.append(f"{name} generated for {', '.join(owners)}")
        for name in names:
            if name in _RESERVED:
                problems.append(f"{name} clashes with a Builder method")
            elif name in vars(cls):
                problems.append(f"{name} is already defined on {cls.__name__}")
        if problems:
            raise BuilderConfigError(f"Conflicting builder methods for {target.__name__}: " + '; '.join(problems))
