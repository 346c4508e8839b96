"""Structural filter matching.

A filter is a partially populated entry: a dataclass instance or a mapping.
Its non-zero fields constrain a query and its zero fields (``""``, ``0``,
``NIL_ID``, ``None``) are wildcards. Because of that, a filter can never ask
for ``rating == 0`` or ``title == ""``.

Filters are compiled once into a tree of filter values and then matched
against any number of candidates, which may be dataclasses or mappings
regardless of the filter's own representation.

Only text, integer, identifier and nested values constrain a field. Every
other type (bool, float, list, datetime, ...) compiles to a wildcard.
"""
import dataclasses
import uuid
from dataclasses import dataclass
from typing import Any, Iterator, Mapping, Tuple, Union

from .entry import NIL_ID, attribute_name, field_key, is_record

MISSING = object()


def as_query_text(value: Any) -> str:
    """Text form of a scalar as it travels in a query string."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return ""
    return str(value)


def is_structured(value: Any) -> bool:
    return is_record(value) or isinstance(value, Mapping)


def field_items(value: Any) -> Iterator[Tuple[str, Any]]:
    if is_record(value):
        for f in dataclasses.fields(value):
            yield field_key(f.name), getattr(value, f.name)
    else:
        for key, item in value.items():
            yield str(key), item


def field_value(candidate: Any, key: str) -> Any:
    if isinstance(candidate, Mapping):
        return candidate.get(key, MISSING)
    if is_record(candidate):
        return getattr(candidate, attribute_name(key), MISSING)
    return MISSING


class Wildcard:
    def matches(self, candidate: Any) -> bool:
        return True

    def __repr__(self):
        return "Wildcard()"


WILDCARD = Wildcard()


@dataclass(frozen=True)
class ExactText:
    value: str

    def matches(self, candidate: Any) -> bool:
        if isinstance(candidate, str):
            return candidate == self.value
        # query strings carry numbers and identifiers as text
        if isinstance(candidate, (int, float, uuid.UUID)):
            return as_query_text(candidate) == self.value
        return False


@dataclass(frozen=True)
class ExactInteger:
    value: int

    def matches(self, candidate: Any) -> bool:
        if isinstance(candidate, bool) or not isinstance(candidate, (int, float)):
            return False
        return candidate == self.value


@dataclass(frozen=True)
class ExactIdentifier:
    value: uuid.UUID

    def matches(self, candidate: Any) -> bool:
        if isinstance(candidate, uuid.UUID):
            return candidate == self.value
        if isinstance(candidate, str):
            try:
                return uuid.UUID(candidate) == self.value
            except ValueError:
                return False
        return False


@dataclass(frozen=True)
class NestedFilter:
    filter: "Filter"

    def matches(self, candidate: Any) -> bool:
        return self.filter.matches(candidate)


FilterValue = Union[Wildcard, ExactText, ExactInteger, ExactIdentifier, NestedFilter]


@dataclass(frozen=True)
class Filter:
    fields: Tuple[Tuple[str, FilterValue], ...] = ()

    @property
    def is_wildcard(self) -> bool:
        return all(isinstance(value, Wildcard) for _, value in self.fields)

    def matches(self, candidate: Any) -> bool:
        if not is_structured(candidate):
            return False
        for key, value in self.fields:
            if not value.matches(field_value(candidate, key)):
                return False
        return True

    def constraints(self, prefix: Tuple[str, ...] = ()) -> Iterator[Tuple[Tuple[str, ...], FilterValue]]:
        """Yield ``(path, value)`` for every leaf that is not a wildcard."""
        for key, value in self.fields:
            if isinstance(value, NestedFilter):
                yield from value.filter.constraints(prefix + (key,))
            elif not isinstance(value, Wildcard):
                yield prefix + (key,), value


class RejectingFilter:
    """Compiled form of a filter that is neither a record nor a mapping."""

    is_wildcard = False

    def matches(self, candidate: Any) -> bool:
        return False

    def constraints(self, prefix=()):
        return iter(())


def compile_value(value: Any) -> FilterValue:
    if isinstance(value, uuid.UUID):
        return WILDCARD if value == NIL_ID else ExactIdentifier(value)
    if is_structured(value):
        nested = compile_filter(value)
        return WILDCARD if nested.is_wildcard else NestedFilter(nested)
    if isinstance(value, str):
        return WILDCARD if value == "" else ExactText(value)
    if isinstance(value, bool):
        return WILDCARD
    if isinstance(value, int):
        return WILDCARD if value == 0 else ExactInteger(value)
    return WILDCARD


def compile_filter(filter: Any) -> Union[Filter, RejectingFilter]:
    if not is_structured(filter):
        return RejectingFilter()
    return Filter(tuple((key, compile_value(value)) for key, value in field_items(filter)))


def passes_filter(filter: Any, candidate: Any) -> bool:
    return compile_filter(filter).matches(candidate)
