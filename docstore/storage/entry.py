"""Entry model: the identity contract and JSON document conversion.

Typed entries are dataclasses extending ``BaseEntry``; untyped entries are
open ``dict`` documents. Both satisfy the ``Entry`` protocol structurally.
The identity is always stored under the ``"ID"`` key of the JSON document.
"""
import dataclasses
import types
import typing
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Dict, Mapping, Protocol, Type, TypeVar, Union, runtime_checkable

NIL_ID = uuid.UUID(int=0)
ID_KEY = "ID"
ID_FIELD = "id"

E = TypeVar("E")


@runtime_checkable
class Entry(Protocol):
    def get_id(self) -> uuid.UUID: ...

    def set_id(self, id: uuid.UUID) -> None: ...


def new_id() -> uuid.UUID:
    return uuid.uuid4()


@dataclass
class BaseEntry:
    """Identity carrier for typed entries; subclass it with ``@dataclass``."""

    id: uuid.UUID = NIL_ID

    def get_id(self) -> uuid.UUID:
        return self.id

    def set_id(self, id: uuid.UUID) -> None:
        self.id = id


class UntypedEntry(dict):
    """Schema-less entry. The identifier lives under ``"ID"`` as a string."""

    def get_id(self) -> uuid.UUID:
        raw = self.get(ID_KEY)
        if raw is None or raw == "":
            return NIL_ID
        if isinstance(raw, uuid.UUID):
            return raw
        if not isinstance(raw, str):
            raise ValueError(f"{ID_KEY} must be a string, got {type(raw).__name__}")
        return uuid.UUID(raw)

    def set_id(self, id: uuid.UUID) -> None:
        self[ID_KEY] = str(id)


def field_key(name: str) -> str:
    """JSON key for a dataclass field name."""
    return ID_KEY if name == ID_FIELD else name


def attribute_name(key: str) -> str:
    """Dataclass attribute for a JSON key."""
    return ID_FIELD if key == ID_KEY else key


def is_record(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def to_document(value: Any) -> Any:
    """Convert an entry (or any nested value) into JSON-ready data."""
    if is_record(value):
        return {
            field_key(f.name): to_document(getattr(value, f.name))
            for f in dataclasses.fields(value)
        }
    if isinstance(value, Mapping):
        return {str(k): to_document(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_document(v) for v in value]
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def from_document(document: Any, entry_type: Type[E] = UntypedEntry) -> E:
    """Build an ``entry_type`` from a decoded JSON object.

    Raises TypeError or ValueError when the document does not fit the shape.
    """
    if not isinstance(document, Mapping):
        raise TypeError(f"expected a JSON object, got {type(document).__name__}")
    if dataclasses.is_dataclass(entry_type):
        return _decode_record(document, entry_type)
    return entry_type(document)


def _decode_record(document: Mapping, cls):
    hints = typing.get_type_hints(cls)
    kwargs: Dict[str, Any] = {}
    for f in dataclasses.fields(cls):
        if not f.init:
            continue
        key = field_key(f.name)
        if key not in document:
            continue
        kwargs[f.name] = _decode_value(document[key], hints.get(f.name, Any))
    return cls(**kwargs)


def _expect(value, kinds, hint):
    if isinstance(value, bool) and bool not in kinds:
        raise TypeError(f"expected {hint}, got bool")
    if not isinstance(value, kinds):
        raise TypeError(f"expected {hint}, got {type(value).__name__}")
    return value


def _decode_value(value: Any, hint: Any) -> Any:
    if hint is Any:
        return value

    origin = typing.get_origin(hint)
    args = typing.get_args(hint)

    if origin is Union or origin is types.UnionType:
        if value is None and type(None) in args:
            return None
        options = [a for a in args if a is not type(None)]
        if len(options) == 1:
            return _decode_value(value, options[0])
        return value
    if origin in (list, tuple, set, frozenset):
        _expect(value, (list,), hint)
        item = args[0] if args else Any
        return origin(_decode_value(v, item) for v in value)
    if origin is dict:
        _expect(value, (dict,), hint)
        item = args[1] if len(args) == 2 else Any
        return {k: _decode_value(v, item) for k, v in value.items()}

    if hint is uuid.UUID:
        return uuid.UUID(_expect(value, (str,), hint))
    if hint is datetime:
        return datetime.fromisoformat(_expect(value, (str,), hint).replace("Z", "+00:00"))
    if hint is date:
        return date.fromisoformat(_expect(value, (str,), hint))
    if dataclasses.is_dataclass(hint):
        return _decode_record(_expect(value, (Mapping,), hint), hint)
    if hint is bool:
        return _expect(value, (bool,), hint)
    if hint is int:
        return _expect(value, (int,), hint)
    if hint is float:
        return float(_expect(value, (int, float), hint))
    if hint is str:
        return _expect(value, (str,), hint)
    return value
