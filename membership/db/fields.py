"""
Per-model field setter tables for map-driven entity construction and patching.

Each mapped model gets a lookup table from field name to a typed setter,
built once from the SQLAlchemy mapper and cached. The table has two tiers:
fields declared on the concrete model itself, then fields it inherits from its
immediate supertype. Managed columns (id and the audit timestamps) are never
assignable through a field map.

Custom setters can be registered per model, e.g. to hash a password before it
is stored.
"""
from __future__ import annotations

import inspect
import threading
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional, Type

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import ColumnProperty, RelationshipProperty

Setter = Callable[[Any, Any], None]

MANAGED_FIELDS = frozenset({"id", "created_at", "updated_at", "deleted_at"})

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off"}


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"Cannot interpret {value!r} as a boolean")


def _coerce_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return datetime.fromisoformat(value)
    raise TypeError(f"Expected datetime or ISO-8601 string, got {type(value).__name__}")


def _coerce_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        return date.fromisoformat(value)
    raise TypeError(f"Expected date or ISO-8601 string, got {type(value).__name__}")


def _coerce_int(value: Any) -> int:
    if isinstance(value, bool):
        raise TypeError("Booleans are not valid integers")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{value!r} has a fractional part")
    if isinstance(value, Decimal) and value != value.to_integral_value():
        raise ValueError(f"{value!r} has a fractional part")
    return int(value)


def _coerce_str(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float, Decimal, uuid.UUID, date)):
        return str(value)
    raise TypeError(f"Expected a scalar for a text field, got {type(value).__name__}")


def _coerce_uuid(value: Any) -> uuid.UUID:
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))


def _coerce_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Booleans are not valid amounts")
    return Decimal(str(value))


_COERCERS: Dict[type, Callable[[Any], Any]] = {
    bool: _coerce_bool,
    int: _coerce_int,
    float: float,
    str: _coerce_str,
    Decimal: _coerce_decimal,
    datetime: _coerce_datetime,
    date: _coerce_date,
    uuid.UUID: _coerce_uuid,
}


def _column_setter(key: str, prop: ColumnProperty) -> Setter:
    column = prop.columns[0]
    try:
        python_type = column.type.python_type
    except NotImplementedError:
        python_type = None
    coerce = _COERCERS.get(python_type) if python_type is not None else None

    def setter(entity: Any, value: Any) -> None:
        if value is not None and coerce is not None:
            value = coerce(value)
        setattr(entity, key, value)

    return setter


def _relationship_setter(key: str, prop: RelationshipProperty) -> Setter:
    target = prop.mapper.class_

    def setter(entity: Any, value: Any) -> None:
        if prop.uselist:
            items = list(value or [])
            for item in items:
                if not isinstance(item, target):
                    raise TypeError(f"{key} expects {target.__name__} instances")
            setattr(entity, key, items)
            return
        if value is not None and not isinstance(value, target):
            raise TypeError(f"{key} expects a {target.__name__} instance")
        setattr(entity, key, value)

    return setter


# PUBLIC_INTERFACE
@dataclass
class FieldSetterTable:
    """Field name -> setter lookup for one model type."""
    model: type
    own: Dict[str, Setter] = field(default_factory=dict)
    inherited: Dict[str, Setter] = field(default_factory=dict)

    def lookup(self, name: str) -> Optional[Setter]:
        setter = self.own.get(name)
        if setter is None:
            setter = self.inherited.get(name)
        return setter

    def __contains__(self, name: object) -> bool:
        return name in self.own or name in self.inherited


def _build_table(model: type) -> FieldSetterTable:
    table = FieldSetterTable(model=model)
    declared_here = set(inspect.get_annotations(model))
    mapper = sa_inspect(model)
    for prop in mapper.attrs:
        key = prop.key
        if key in MANAGED_FIELDS:
            continue
        if isinstance(prop, ColumnProperty):
            setter = _column_setter(key, prop)
        elif isinstance(prop, RelationshipProperty):
            if prop.viewonly:
                continue
            setter = _relationship_setter(key, prop)
        else:
            continue
        tier = table.own if key in declared_here else table.inherited
        tier[key] = setter
    for name, setter in _custom.get(model, {}).items():
        table.inherited.pop(name, None)
        table.own[name] = setter
    return table


_tables: Dict[type, FieldSetterTable] = {}
_custom: Dict[type, Dict[str, Setter]] = {}
_tables_lock = threading.Lock()


# PUBLIC_INTERFACE
def field_setters(model: Type[Any]) -> FieldSetterTable:
    """Return the cached setter table for ``model``, building it on first use."""
    table = _tables.get(model)
    if table is not None:
        return table
    with _tables_lock:
        table = _tables.get(model)
        if table is None:
            table = _build_table(model)
            _tables[model] = table
        return table


# PUBLIC_INTERFACE
def register_field_setter(model: Type[Any], name: str, setter: Setter) -> None:
    """
    Install a custom setter for ``name`` on ``model``, replacing the generated one.

    Safe to call at import time: mappers are not inspected until the table is
    first needed.
    """
    if name in MANAGED_FIELDS:
        raise ValueError(f"Field '{name}' is managed and cannot be assigned")
    with _tables_lock:
        _custom.setdefault(model, {})[name] = setter
        table = _tables.get(model)
        if table is not None:
            table.inherited.pop(name, None)
            table.own[name] = setter
