"""Naming rules for builder fields and their generated fluent methods."""
from __future__ import annotations

import re
from typing import List

import inflection

from .model import FieldModel

__all__ = [
    'default_alias_for',
    'singular_alias',
    'with_method',
    'with_id_method',
    'add_method',
    'add_all_method',
    'clear_method',
    'api_methods_for',
]

_camel_is_pattern = re.compile(r'^is([A-Z])')


def default_alias_for(name: str, is_boolean: bool) -> str:
    """Return the public alias of a field.

    Boolean fields following the ``is_x`` (or camelCase ``isX``) convention
    drop the prefix, so ``is_active`` is exposed as ``active``.
    """
    if not is_boolean or not name:
        return name
    if name.startswith('is_') and len(name) > 3:
        return name[3:]
    m = _camel_is_pattern.match(name)
    if m:
        return m.group(1).lower() + name[3:]
    return name


def singular_alias(alias: str) -> str:
    singular = inflection.singularize(alias)
    if not singular or singular == alias:
        return f"{alias}_item"
    return singular


def with_method(fm: FieldModel) -> str:
    return f"with_{fm.alias}"


def with_id_method(fm: FieldModel) -> str:
    return f"with_{fm.alias}_id"


def add_method(fm: FieldModel) -> str:
    return f"add_{singular_alias(fm.alias)}"


def add_all_method(fm: FieldModel) -> str:
    return f"add_all_{fm.alias}"


def clear_method(fm: FieldModel) -> str:
    return f"clear_{fm.alias}"


def api_methods_for(fm: FieldModel) -> List[str]:
    """Names of every fluent method generated for ``fm``, in generation order."""
    if fm.is_id_only:
        return [with_id_method(fm)]
    names = [with_method(fm)]
    if fm.is_collection:
        names.extend([add_method(fm), add_all_method(fm), clear_method(fm)])
    return names
