"""Map Python objects to and from Salesforce record JSON.

Only *read/write properties* take part in the mapping: class attributes that
are ``property`` objects with both a getter and a setter. Plain attributes,
whether set on the instance or the class, are skipped when reading and
omitted when writing::

    class Contact:
        def __init__(self):
            self._name = None
            self.email = None          # ignored by the mapper

        @property
        def Name(self) -> Optional[str]:
            return self._name

        @Name.setter
        def Name(self, value):
            self._name = value

Types that want full control over what gets written can implement
``to_field_map()``; plain mappings are sent as they are.

The getter's return annotation drives conversion of incoming values. A value
that does not fit raises :class:`FieldConversionError`.
"""

from __future__ import annotations

import logging
import re
import typing
from datetime import date, datetime
from types import UnionType
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union

from .exceptions import FieldConversionError

_logger = logging.getLogger(__name__)

T = TypeVar("T")

_TZ_NO_COLON = re.compile(r"([+-]\d{2})(\d{2})$")


def _is_read_write(attr: Any) -> bool:
    return isinstance(attr, property) and attr.fget is not None and attr.fset is not None


def _class_members(cls: type) -> Dict[str, Any]:
    """Public class-level members, subclasses overriding bases."""
    members: Dict[str, Any] = {}
    for klass in reversed(cls.__mro__):
        if klass is object:
            continue
        for name, attr in vars(klass).items():
            if not name.startswith("_"):
                members[name] = attr
    return members


def record_fields(cls: type) -> List[str]:
    """Names of the read/write properties of *cls*, in definition order."""
    return [name for name, attr in _class_members(cls).items() if _is_read_write(attr)]


def _field_type(cls: type, name: str) -> Any:
    prop = _class_members(cls)[name]
    try:
        hints = typing.get_type_hints(prop.fget)
    except (NameError, TypeError):  # unresolvable forward references
        _logger.debug("Could not resolve annotations for %s.%s", cls.__name__, name)
        return Any
    return hints.get("return", Any)


def parse_datetime(value: str) -> datetime:
    """Parse Salesforce datetimes such as ``2013-12-01T12:00:00.000+0000``."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    text = _TZ_NO_COLON.sub(r"\1:\2", text)
    return datetime.fromisoformat(text)


def convert_value(field: str, target: Any, value: Any) -> Any:
    """Convert one wire value to *target*, raising FieldConversionError."""
    if value is None or target is Any:
        return value

    origin = typing.get_origin(target)
    if origin is Union or origin is UnionType:
        options = [a for a in typing.get_args(target) if a is not type(None)]
        if len(options) == 1:
            return convert_value(field, options[0], value)
        return value
    if origin is not None:
        # Parametrised containers (List[str], Dict[str, Any]...) check the outer type only.
        if isinstance(value, origin):
            return value
        raise FieldConversionError(field, target, value)

    if target is bool:
        if isinstance(value, bool):
            return value
        raise FieldConversionError(field, target, value)

    if target is str:
        if isinstance(value, str):
            return value
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        raise FieldConversionError(field, target, value)

    if target is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, float) and value.is_integer():
            return int(value)
        raise FieldConversionError(field, target, value)

    if target is float:
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        raise FieldConversionError(field, target, value)

    if target is datetime:
        if not isinstance(value, str):
            raise FieldConversionError(field, target, value)
        try:
            return parse_datetime(value)
        except ValueError as e:
            raise FieldConversionError(field, target, value) from e

    if target is date:
        if not isinstance(value, str):
            raise FieldConversionError(field, target, value)
        try:
            return date.fromisoformat(value[:10])
        except ValueError as e:
            raise FieldConversionError(field, target, value) from e

    if isinstance(target, type):
        # Relationship fields (e.g. Owner) arrive as nested records.
        if isinstance(value, Mapping) and record_fields(target):
            return from_record(target, value)
        if isinstance(value, target):
            return value
        raise FieldConversionError(field, target, value)

    return value


def from_record(cls: Type[T], data: Mapping[str, Any]) -> T:
    """Instantiate *cls* and populate its read/write properties from *data*.

    Keys match property names case-insensitively; the ``attributes`` envelope
    and keys without a matching property are ignored.
    """
    instance = cls()
    values = {k.lower(): v for k, v in data.items() if k != "attributes"}
    for name in record_fields(cls):
        key = name.lower()
        if key in values:
            setattr(instance, name, convert_value(name, _field_type(cls, name), values[key]))
    return instance


def _to_wire(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def to_field_map(record: Any) -> Dict[str, Any]:
    """Return the JSON-ready field map for *record*.

    Accepts a mapping, an object implementing ``to_field_map()``, or an
    instance whose read/write properties are enumerated.
    """
    if isinstance(record, Mapping):
        fields = dict(record)
    elif callable(getattr(record, "to_field_map", None)):
        fields = dict(record.to_field_map())
    else:
        fields = {name: getattr(record, name) for name in record_fields(type(record))}
    return {k: _to_wire(v) for k, v in fields.items()}


def strip_attributes(data: Mapping[str, Any]) -> Dict[str, Any]:
    """Drop the ``attributes`` envelope Salesforce adds to every record."""
    return {k: v for k, v in data.items() if k != "attributes"}


def map_records(records: List[Mapping[str, Any]], record_type: Optional[type]) -> List[Any]:
    if record_type is None:
        return [strip_attributes(r) for r in records]
    return [from_record(record_type, r) for r in records]
