"""Documents as stored in the search indexes."""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)

_TIME_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})T(\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?(Z|[+-]\d{2}:\d{2})$"
)


def _format_time(moment: datetime) -> str:
    """Format a timestamp as RFC 3339, naive values taken as UTC."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    text = (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
    )
    if moment.microsecond:
        text += "." + f"{moment.microsecond:06d}".rstrip("0")
    offset = moment.utcoffset() or timedelta(0)
    if not offset:
        return text + "Z"
    sign = "+" if offset > timedelta(0) else "-"
    minutes = abs(int(offset.total_seconds())) // 60
    return text + f"{sign}{minutes // 60:02d}:{minutes % 60:02d}"


def _parse_time(value: Any, key: str) -> datetime:
    if not isinstance(value, str):
        raise ValueError(f"{key}: expected a timestamp string, got {value!r}")
    match = _TIME_RE.match(value)
    if match is None:
        raise ValueError(f"{key}: invalid timestamp {value!r}")
    year, month, day, hour, minute, second, fraction, zone = match.groups()
    micro = int((fraction or "")[:6].ljust(6, "0"))
    if zone == "Z":
        tz = timezone.utc
    else:
        sign = -1 if zone[0] == "-" else 1
        tz = timezone(sign * timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6])))
    try:
        return datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micro, tzinfo=tz
        )
    except ValueError as exc:
        raise ValueError(f"{key}: invalid timestamp {value!r}") from exc


def _expect(value: Any, kind: type | tuple[type, ...], key: str) -> Any:
    if isinstance(value, bool) and kind is not bool:
        raise ValueError(f"{key}: unexpected value {value!r}")
    if not isinstance(value, kind):
        raise ValueError(f"{key}: unexpected value {value!r}")
    return value


def _expect_size(value: Any, key: str) -> int:
    size = _expect(value, int, key)
    if size < 0:
        raise ValueError(f"{key}: size cannot be negative")
    return size


def _parse_references(value: Any, key: str) -> list[DocumentReference]:
    items = _expect(value, list, key)
    return [DocumentReference.from_dict(_expect(item, Mapping, key)) for item in items]


class LinkType(str, enum.Enum):
    """Type of a directory link."""

    DIRECTORY = "Directory"
    FILE = "File"
    UNKNOWN = "Unknown"
    UNSUPPORTED = "Unsupported"


@dataclass(frozen=True)
class Link:
    """A link from a directory to one of its entries."""

    hash: str
    name: str
    size: int
    type: LinkType

    def to_dict(self) -> dict[str, Any]:
        return {"Hash": self.hash, "Name": self.name, "Size": self.size, "Type": self.type.value}


@dataclass(frozen=True)
class DocumentReference:
    """A named reference to a document from a parent."""

    parent_hash: str
    name: str

    def to_dict(self) -> dict[str, Any]:
        return {"parent_hash": self.parent_hash, "name": self.name}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> DocumentReference:
        return cls(
            parent_hash=_expect(data.get("parent_hash", ""), str, "parent_hash"),
            name=_expect(data.get("name", ""), str, "name"),
        )


@dataclass
class Document:
    """Properties common to every indexed resource."""

    first_seen: datetime = ZERO_TIME
    last_seen: datetime = ZERO_TIME
    references: list[DocumentReference] = field(default_factory=list)
    size: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "first-seen": _format_time(self.first_seen),
            "last-seen": _format_time(self.last_seen),
            "references": [ref.to_dict() for ref in self.references],
            "size": self.size,
        }

    def _apply_document_field(self, key: str, value: Any) -> bool:
        if key == "first-seen":
            self.first_seen = _parse_time(value, key)
        elif key == "last-seen":
            self.last_seen = _parse_time(value, key)
        elif key == "references":
            self.references = _parse_references(value, key)
        elif key == "size":
            self.size = _expect_size(value, key)
        else:
            return False
        return True


@dataclass
class Directory(Document):
    """A directory resource and its entries."""

    links: list[Link] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "links": [link.to_dict() for link in self.links]}


@dataclass
class Language:
    """Detected language of a file."""

    confidence: str = ""
    language: str = ""
    raw_score: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {"confidence": self.confidence, "language": self.language, "rawScore": self.raw_score}

    def _update_from(self, data: Mapping[str, Any]) -> None:
        for key, value in data.items():
            if value is None:
                continue
            if key == "confidence":
                self.confidence = _expect(value, str, key)
            elif key == "language":
                self.language = _expect(value, str, key)
            elif key == "rawScore":
                self.raw_score = float(_expect(value, (int, float), key))


@dataclass
class File(Document):
    """A file resource with its extracted content and metadata."""

    content: str = ""
    ipfs_tika_version: str = ""
    language: Language = field(default_factory=Language)
    metadata: dict[str, Any] = field(default_factory=dict)
    urls: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "content": self.content,
            "ipfs_tika_version": self.ipfs_tika_version,
            "language": self.language.to_dict(),
            "metadata": dict(self.metadata),
            "urls": list(self.urls),
        }

    def update_from(self, data: Any) -> None:
        """Merge decoded JSON into this file; unknown keys and nulls are ignored."""
        if not isinstance(data, Mapping):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        for key, value in data.items():
            if value is None or self._apply_document_field(key, value):
                continue
            if key == "content":
                self.content = _expect(value, str, key)
            elif key == "ipfs_tika_version":
                self.ipfs_tika_version = _expect(value, str, key)
            elif key == "language":
                self.language._update_from(_expect(value, Mapping, key))
            elif key == "metadata":
                self.metadata.update(_expect(value, Mapping, key))
            elif key == "urls":
                self.urls = [_expect(url, str, key) for url in _expect(value, list, key)]


@dataclass(frozen=True)
class Invalid:
    """An invalid, unindexable resource and the reason why."""

    error: str

    def to_dict(self) -> dict[str, Any]:
        return {"error": self.error}


@dataclass
class Update:
    """The updatable part of a document."""

    last_seen: datetime = ZERO_TIME
    references: list[DocumentReference] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"last-seen": _format_time(self.last_seen)}
        if self.references:
            result["references"] = [ref.to_dict() for ref in self.references]
        return result

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Update:
        update = cls()
        last_seen = data.get("last-seen")
        if last_seen is not None:
            update.last_seen = _parse_time(last_seen, "last-seen")
        references = data.get("references")
        if references is not None:
            update.references = _parse_references(references, "references")
        return update