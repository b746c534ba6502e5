"""Snapshot file names: building and parsing."""

from __future__ import annotations

import hashlib
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Tuple, Union

EXTENSION = "pb.gz"

_NANOS_PER_SECOND = 10**9
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_TIMESTAMP_LENGTH = len("20060102-150405-000000000")
_SEPARATOR_INDEX = 15
_TIMESTAMP_RE = re.compile(
    r"([0-9]{4})([0-9]{2})([0-9]{2})-([0-9]{2})([0-9]{2})([0-9]{2})-([0-9]{9})"
)

Timestamp = Union[datetime, int]


class InvalidNameError(ValueError):
    """Raised when a snapshot file name cannot be parsed."""


def _split(ts: Timestamp) -> Tuple[datetime, int]:
    """Return a whole-second UTC datetime and the nanoseconds past it."""
    if isinstance(ts, datetime):
        if ts.tzinfo is None:
            ts = ts.replace(tzinfo=timezone.utc)
        ts = ts.astimezone(timezone.utc)
        return ts.replace(microsecond=0), ts.microsecond * 1000
    seconds, nanos = divmod(int(ts), _NANOS_PER_SECOND)
    return _EPOCH + timedelta(seconds=seconds), nanos


def name_timestamp(ts: Timestamp) -> str:
    """Format a timestamp for use in a snapshot name.

    ``ts`` is a datetime (naive ones are taken as UTC) or an integer number
    of nanoseconds since the Unix epoch.
    """
    whole, nanos = _split(ts)
    return f"{whole.strftime('%Y%m%d-%H%M%S')}-{nanos:09d}"


def name_timestamp_from_nano(ts_nano: int) -> str:
    """Format a nanosecond Unix timestamp for use in a snapshot name."""
    return name_timestamp(int(ts_nano))


def name(syncer_name: str, instance_id: str, generation_id: str, ts: Timestamp) -> str:
    """Build the file name of a snapshot."""
    return f"{syncer_name}__{instance_id}__{name_timestamp(ts)}__{generation_id}.{EXTENSION}"


def short_hash(instance: str, timestamp: str) -> str:
    """Return a short hash to tell snapshots apart in logs."""
    digest = hashlib.sha256(f"{instance}-{timestamp}".encode("utf-8", "surrogateescape"))
    return digest.hexdigest()[:7]


@dataclass(frozen=True)
class NameInfo:
    """The parts of a parsed snapshot name."""

    full_name: str = ""
    extension: str = ""
    syncer_name: str = ""
    instance_id: str = ""
    generation_id: str = ""
    timestamp_string: str = ""
    timestamp: datetime = _EPOCH
    timestamp_nano: int = 0

    def short_hash(self) -> str:
        """Return a short hash to tell snapshots apart in logs."""
        return short_hash(self.instance_id, self.timestamp_string)


def parse_name(name: str) -> NameInfo:
    """Parse a snapshot file name; raise InvalidNameError if it is not one."""
    basename, dot, ext = name.partition(".")
    if not dot:
        raise InvalidNameError(f"invalid name: no dot: {name}")
    if ext != EXTENSION:
        raise InvalidNameError(f"unexpected extension: {name}")
    parts = basename.split("__")
    if len(parts) < 4:
        raise InvalidNameError(f"not enough name parts: {name}")
    syncer_name, instance_id, tss, generation_id = parts[:4]

    if len(tss) != _TIMESTAMP_LENGTH or tss[_SEPARATOR_INDEX] != "-":
        raise InvalidNameError(f"invalid timestamp format: {tss} in {name}")
    match = _TIMESTAMP_RE.fullmatch(tss)
    if match is None:
        raise InvalidNameError(f"timestamp parse error: cannot parse {tss!r}")
    *fields, nanos_text = match.groups()
    try:
        whole = datetime(*(int(f) for f in fields), tzinfo=timezone.utc)
    except ValueError as exc:
        raise InvalidNameError(f"timestamp parse error: {exc}") from exc
    nanos = int(nanos_text)
    seconds = (whole - _EPOCH) // timedelta(seconds=1)

    return NameInfo(
        full_name=name,
        extension=ext,
        syncer_name=syncer_name,
        instance_id=instance_id,
        generation_id=generation_id,
        timestamp_string=tss,
        timestamp=whole.replace(microsecond=nanos // 1000),
        timestamp_nano=seconds * _NANOS_PER_SECOND + nanos,
    )