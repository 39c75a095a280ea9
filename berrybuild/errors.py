from __future__ import annotations

__all__ = ['BuilderConfigError', 'UnsupportedOperation']


class BuilderConfigError(ValueError):
    """Raised when a builder declaration cannot be turned into a working builder.

    Covers problems detected while a builder class is generated or constructed:
    a target type without a no-argument construction path, an id-only flag on a
    field that is not a to-one relation, clashing fluent method names, or a
    defaults provider class that cannot be resolved.
    """


class UnsupportedOperation(NotImplementedError):
    """Raised by persistence adapters for optional operations they do not offer."""
