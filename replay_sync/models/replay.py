"""Replay descriptor model."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from ..errors import InvalidRecordError, TimestampParseError


REPLAY_EXTENSIONS: frozenset[str] = frozenset({".ttr", ".ttrm"})

# Changing this format makes every file from a previous run look missing.
FILENAME_TIMESTAMP_FORMAT = "%Y%m%dT%H%M%SZ"

RFC3339_PATTERN = re.compile(
    r"(?P<year>[0-9]{4})-(?P<month>[0-9]{2})-(?P<day>[0-9]{2})"
    r"[Tt ]"
    r"(?P<hour>[0-9]{2}):(?P<minute>[0-9]{2}):(?P<second>[0-9]{2})"
    r"(?:\.(?P<fraction>[0-9]+))?"
    r"(?:(?P<utc>[Zz])|(?P<sign>[+-])(?P<offset_hour>[0-9]{2}):(?P<offset_minute>[0-9]{2}))"
)


def parse_timestamp(value: Any) -> datetime:
    """Parse an RFC 3339 timestamp and normalize it to UTC.

    Only the RFC 3339 profile is accepted: a full date, ``T``, ``t`` or a
    space, ``HH:MM:SS`` with an optional fraction, and ``Z`` or a
    ``+HH:MM``/``-HH:MM`` offset. Digits past microseconds are truncated.

    Raises:
        TimestampParseError: If the value is not a string or not an
            RFC 3339 timestamp.
    """
    if not isinstance(value, str):
        raise TimestampParseError(value)
    match = RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise TimestampParseError(value)

    if match["utc"]:
        offset = timedelta(0)
    else:
        offset = timedelta(hours=int(match["offset_hour"]), minutes=int(match["offset_minute"]))
        if match["sign"] == "-":
            offset = -offset

    fraction = (match["fraction"] or "")[:6].ljust(6, "0")
    try:
        parsed = datetime(
            int(match["year"]),
            int(match["month"]),
            int(match["day"]),
            int(match["hour"]),
            int(match["minute"]),
            int(match["second"]),
            int(fraction),
            tzinfo=timezone(offset),
        )
    except ValueError as e:
        raise TimestampParseError(value, cause=e) from e
    return parsed.astimezone(timezone.utc)


def parse_multiplayer_flag(value: Any) -> bool:
    """Read the optional ``isMulti`` flag; absent or null means single player.

    Raises:
        InvalidRecordError: If the flag is present but not a boolean
    """
    if value is None:
        return False
    if not isinstance(value, bool):
        raise InvalidRecordError("Record has a non-boolean multiplayer flag", field="isMulti", value=value)
    return value


@dataclass(frozen=True)
class ReplayDescriptor:
    """Identity of a remote replay.

    Equality covers every field, so two records sharing an id but
    disagreeing on the timestamp or multiplayer flag stay distinct.
    """
    id: str
    is_multi: bool
    recorded_at: datetime

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "ReplayDescriptor":
        """Build a descriptor from a raw stream record.

        Args:
            record: Record with ``replayId``, ``recordedAt`` and an optional
                ``isMulti`` flag

        Returns:
            The replay descriptor

        Raises:
            InvalidRecordError: If ``replayId`` is missing or empty, or
                ``isMulti`` is not a boolean
            TimestampParseError: If ``recordedAt`` is not a valid timestamp
        """
        replay_id = record.get("replayId")
        if not isinstance(replay_id, str) or not replay_id:
            raise InvalidRecordError("Record has no replay id", field="replayId", value=replay_id)

        return cls(
            id=replay_id,
            is_multi=parse_multiplayer_flag(record.get("isMulti")),
            recorded_at=parse_timestamp(record.get("recordedAt")),
        )

    @property
    def extension(self) -> str:
        return "ttrm" if self.is_multi else "ttr"

    @property
    def filename(self) -> str:
        """Canonical local filename, e.g. ``20230501T123000Z-abc123.ttr``."""
        timestamp = self.recorded_at.astimezone(timezone.utc).strftime(FILENAME_TIMESTAMP_FORMAT)
        return f"{timestamp}-{self.id}.{self.extension}"

    def path_in(self, directory: Path) -> Path:
        return directory / self.filename

    def url(self, content_base_url: str) -> str:
        return f"{content_base_url}/api/replay/{self.id}"
