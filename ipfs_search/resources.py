"""Resources handled by the crawler, their annotations and the errors about them."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class ResourceProtocol(enum.Enum):
    """Protocol through which a resource is reachable."""

    INVALID = "invalid"
    IPFS = "ipfs"

    def __str__(self) -> str:
        return self.value


class ResourceType(enum.Enum):
    """Kind of content a resource holds."""

    UNDEFINED = "undefined"
    FILE = "file"
    DIRECTORY = "directory"
    UNSUPPORTED = "unsupported"
    PARTIAL = "partial"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Resource:
    """A resource identified by protocol and content identifier."""

    protocol: ResourceProtocol
    id: str

    def __str__(self) -> str:
        return f"{self.protocol}://{self.id}"


@dataclass(frozen=True)
class Reference:
    """A named link from a parent resource."""

    parent: Resource | None = None
    name: str = ""


@dataclass(frozen=True)
class Stat:
    """Type and size of a resource."""

    type: ResourceType = ResourceType.UNDEFINED
    size: int = 0


@dataclass
class AnnotatedResource:
    """A resource together with the reference it was found through and its stat."""

    resource: Resource
    reference: Reference = field(default_factory=Reference)
    stat: Stat = field(default_factory=Stat)

    @property
    def id(self) -> str:
        return self.resource.id

    @property
    def protocol(self) -> ResourceProtocol:
        return self.resource.protocol

    @property
    def type(self) -> ResourceType:
        return self.stat.type

    @property
    def size(self) -> int:
        return self.stat.size

    def __str__(self) -> str:
        text = str(self.resource)
        if self.reference.parent is not None:
            text += f" (in {self.reference.parent} as {self.reference.name!r})"
        return text


class _DetailedError(Exception):
    """Error with a fixed message, optionally followed by a detail."""

    message = "error"

    def __init__(self, detail: object = None) -> None:
        self.detail = detail
        text = self.message if detail is None else f"{self.message}: {detail}"
        super().__init__(text)


class InvalidResourceError(_DetailedError):
    """The resource cannot be indexed: its content is invalid."""

    message = "resource invalid"


class UnsupportedTypeError(InvalidResourceError):
    """The resource is of a type the crawler does not support."""

    message = "unsupported type"


class DirectoryTooLargeError(InvalidResourceError):
    """A directory holds more entries than the configured maximum."""

    message = "directory too large"


class ExtractorError(_DetailedError):
    """Metadata extraction failed."""

    message = "extraction failed"


class FileTooLargeError(ExtractorError):
    """The file is larger than the configured maximum file size."""

    message = "file too large"


class UnexpectedResponseError(ExtractorError):
    """The extraction backend answered unexpectedly."""

    message = "unexpected response from backend"


class RequestError(ExtractorError):
    """A request to the extraction backend failed."""

    message = "request error"