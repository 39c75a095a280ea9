"""berrybuild public API with lazy exports.

Submodules are imported on first attribute access so that domain model
modules can import the declaration helpers (``field``, ``relation``,
``identifier_field``) without pulling in the registry and adapters.

Exposes:
- BuilderSchema, Builder, BuilderOptions
- Mode, FieldPolicy
- field, relation, ignore, identifier_field
- PersistAdapter, MemoryPersistAdapter, SQLAlchemyPersistAdapter, create_async, get_adapter
- BuilderConfigError, UnsupportedOperation
"""
from __future__ import annotations

import importlib as _importlib

_EXPORTS = {
    'BuilderSchema': '.registry',
    'Builder': '.builder',
    'BuilderOptions': '.builder',
    'Mode': '.core.model',
    'FieldPolicy': '.core.model',
    'field': '.core.fields',
    'relation': '.core.fields',
    'ignore': '.core.fields',
    'identifier_field': '.core.fields',
    'PersistAdapter': '.adapters',
    'MemoryPersistAdapter': '.adapters',
    'SQLAlchemyPersistAdapter': '.adapters',
    'create_async': '.adapters',
    'get_adapter': '.adapters',
    'BuilderConfigError': '.errors',
    'UnsupportedOperation': '.errors',
}


def __getattr__(name: str):  # PEP 562 lazy exports
    if name in ('registry', 'builder', 'persistence', 'introspect', 'adapters', 'core', 'errors'):
        return _importlib.import_module(__name__ + '.' + name)
    mod = _EXPORTS.get(name)
    if mod is None:
        raise AttributeError(name)
    return getattr(_importlib.import_module(mod, __name__), name)


__all__ = list(_EXPORTS)
