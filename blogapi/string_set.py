"""
Comma-joined id lists stored in a single text column.

A relationship list is either ``None`` (no relation recorded) or a
non-empty string of ids joined by ``DELIMITER`` in insertion order.

Semantics kept for compatibility with existing rows:

- adding never checks for duplicates;
- removing drops only the first matching entry and is a no-op when the
  value is absent;
- removing the last entry (or removing from an absent list) yields ``None``,
  never ``""``;
- an empty value leaves the field untouched, signalled by ``NO_CHANGE``;
- ids are compared after trimming surrounding whitespace, as ``decode``
  reads them, so a successful removal also rewrites the remaining ids
  trimmed.
"""
from __future__ import annotations

from typing import Final, Iterable, Optional, Union

DELIMITER: Final = ","


class _NoChange:
    """Sentinel type: the field must not be written at all."""

    _instance: Optional["_NoChange"] = None

    def __new__(cls) -> "_NoChange":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_CHANGE"

    def __bool__(self) -> bool:
        return False


NO_CHANGE: Final = _NoChange()

FieldValue = Union[Optional[str], _NoChange]


def decode(field: Optional[str]) -> list[str]:
    """Return the ids in *field* in stored order (``None`` -> ``[]``)."""
    if not field:
        return []
    return [item.strip() for item in field.split(DELIMITER)]


def encode(items: Iterable[str]) -> Optional[str]:
    """Join *items* back into a field value; an empty sequence is ``None``."""
    items = list(items)
    if not items:
        return None
    return DELIMITER.join(items)


def add(field: Optional[str], value: Optional[str]) -> FieldValue:
    if not value:
        return NO_CHANGE
    if not field:
        return value
    return field + DELIMITER + value


def remove(field: Optional[str], value: Optional[str]) -> FieldValue:
    if not value:
        return NO_CHANGE
    if not field:
        return None
    items = decode(field)
    try:
        items.remove(value)
    except ValueError:
        return field
    return encode(items)


def apply(field: Optional[str], value: Optional[str], is_delete: bool = False) -> FieldValue:
    """Dispatch to :func:`remove` or :func:`add` depending on *is_delete*."""
    if is_delete:
        return remove(field, value)
    return add(field, value)


def update_field(record, key: str, value: Optional[str], is_delete: bool = False) -> bool:
    """
    Mutate ``record.<key>`` in place.

    Returns True when the attribute was written, False for ``NO_CHANGE``.
    """
    new_value = apply(getattr(record, key), value, is_delete)
    if new_value is NO_CHANGE:
        return False
    setattr(record, key, new_value)
    return True
