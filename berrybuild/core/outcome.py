from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Optional

__all__ = ['MISSING', 'Outcome']


class _Missing:
    """Sentinel for "no value at all", distinct from an explicit ``None``."""

    _instance: Optional['_Missing'] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return '<MISSING>'


MISSING: Any = _Missing()


@dataclass(frozen=True)
class Outcome:
    """Result of a best-effort operation.

    ``ok`` is True when the operation produced ``value``. A failed outcome
    carries the exception (if one was raised) so callers and tests can inspect
    why a fallback was taken; ``error is None`` on a failure means a plain miss.
    """

    ok: bool
    value: Any = None
    error: Optional[BaseException] = None

    @classmethod
    def success(cls, value: Any = None) -> 'Outcome':
        return cls(True, value)

    @classmethod
    def miss(cls) -> 'Outcome':
        return cls(False)

    @classmethod
    def failure(cls, error: BaseException) -> 'Outcome':
        return cls(False, None, error)

    @property
    def missed(self) -> bool:
        return not self.ok and self.error is None

    def or_else(self, fallback: Any) -> Any:
        return self.value if self.ok else fallback
