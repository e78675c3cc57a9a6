"""Map JSON payloads onto dataclasses and build request bodies.

Field names are matched case-insensitively with ``-`` and ``_`` ignored, so a
``build_number`` field picks up ``buildNumber``, ``build_number`` or
``BUILD-NUMBER``. A field can name its JSON key explicitly with
``field(metadata={"json": "self"})``. Absent keys and explicit ``null`` leave
the dataclass default in place; fields without a default are required.
"""

import dataclasses
import logging
import types
from typing import Any, TypeVar, Union, get_args, get_origin, get_type_hints

from atlcli.common.errors import DeserializationFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

_hints_cache: dict[type, dict[str, Any]] = {}


class MappingError(ValueError):
    """A payload value does not fit the declared field type."""


def _normalize(key: str) -> str:
    return key.replace("_", "").replace("-", "").lower()


def _field_hints(cls: type) -> dict[str, Any]:
    if cls not in _hints_cache:
        _hints_cache[cls] = get_type_hints(cls)
    return _hints_cache[cls]


def _build(cls: type, data: Any, path: str) -> Any:
    if not isinstance(data, dict):
        raise MappingError(f"{path}: expected an object, got {type(data).__name__}")

    lookup: dict[str, Any] = {}
    for key, value in data.items():
        lookup.setdefault(_normalize(str(key)), value)

    hints = _field_hints(cls)
    kwargs = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        json_name = f.metadata.get("json", f.name)
        value = lookup.get(_normalize(json_name))
        if value is None:
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise MappingError(f"{path}.{json_name}: required field is missing")
            continue
        kwargs[f.name] = _convert(hints[f.name], value, f"{path}.{json_name}")
    return cls(**kwargs)


def _convert(tp: Any, value: Any, path: str) -> Any:
    if tp is Any:
        return value

    origin = get_origin(tp)
    if origin is Union or origin is types.UnionType:
        if value is None:
            return None
        candidates = [arg for arg in get_args(tp) if arg is not type(None)]
        for candidate in candidates:
            try:
                return _convert(candidate, value, path)
            except MappingError:
                continue
        raise MappingError(f"{path}: {value!r} does not match {tp}")

    if origin is list:
        if not isinstance(value, list):
            raise MappingError(f"{path}: expected a list, got {type(value).__name__}")
        (item_type,) = get_args(tp) or (Any,)
        return [_convert(item_type, item, f"{path}[{i}]") for i, item in enumerate(value)]

    if origin is dict:
        if not isinstance(value, dict):
            raise MappingError(f"{path}: expected an object, got {type(value).__name__}")
        _, value_type = get_args(tp) or (Any, Any)
        return {key: _convert(value_type, item, f"{path}.{key}") for key, item in value.items()}

    if dataclasses.is_dataclass(tp):
        return _build(tp, value, path)

    if tp is bool:
        if isinstance(value, bool):
            return value
        raise MappingError(f"{path}: expected a boolean, got {value!r}")

    if tp is int:
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            try:
                return int(value)
            except ValueError:
                pass
        raise MappingError(f"{path}: expected an integer, got {value!r}")

    if tp is float:
        if isinstance(value, int | float) and not isinstance(value, bool):
            return float(value)
        raise MappingError(f"{path}: expected a number, got {value!r}")

    if tp is str:
        if isinstance(value, str):
            return value
        if isinstance(value, int | float) and not isinstance(value, bool):
            return str(value)
        raise MappingError(f"{path}: expected a string, got {type(value).__name__}")

    return value


def from_payload(tp: type[T] | Any, data: Any, *, operation: str, resource: str) -> T:
    """Map decoded JSON onto ``tp`` (a dataclass, or e.g. ``list[SomeDataclass]``).

    Raises:
        DeserializationFailure: If a required field is missing or a value has the wrong shape.
    """
    try:
        return _convert(tp, data, resource)
    except MappingError as e:
        logger.debug(f"Payload for {resource} did not map onto {tp}: {e}")
        raise DeserializationFailure(operation, resource, e) from e


def compact(value: Any) -> Any:
    """Drop None entries from dicts, recursively, for use as a JSON request body."""
    if isinstance(value, dict):
        return {key: compact(item) for key, item in value.items() if item is not None}
    if isinstance(value, list):
        return [compact(item) for item in value]
    return value


def to_dict(record: Any) -> Any:
    """Convert a mapped record back to plain data for JSON output, without None values."""
    if dataclasses.is_dataclass(record) and not isinstance(record, type):
        return compact(dataclasses.asdict(record))
    if isinstance(record, list):
        return [to_dict(item) for item in record]
    return record
