"""
String <-> ImageRecord conversion for the index store.

`decode` never raises: callers get `Ok`, `NotFound` (the key held nothing) or
`Malformed` (the key held something unreadable) and must treat the last two
differently.
"""

from dataclasses import dataclass
from typing import Optional, Union

from pydantic import ValidationError

from galleria.schemas.image import ImageRecord


@dataclass(frozen=True)
class Ok:
    record: ImageRecord


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class Malformed:
    reason: str


DecodeResult = Union[Ok, NotFound, Malformed]


def encode(record: ImageRecord) -> str:
    return record.model_dump_json(by_alias=True)


def decode(raw: Optional[Union[str, bytes]]) -> DecodeResult:
    if raw is None:
        return NotFound()
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            return Malformed(f"not utf-8: {e}")
    if not raw.strip():
        return Malformed("empty payload")
    try:
        return Ok(ImageRecord.model_validate_json(raw))
    except ValidationError as e:
        errors = e.errors()
        detail = errors[0].get("msg", "invalid") if errors else "invalid"
        return Malformed(f"unreadable record: {detail}")
