"""Access to content over IPFS through its HTTP API and gateway."""

from __future__ import annotations

import codecs
import json
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote, urlencode, urljoin, urlsplit

import requests

from .interfaces import ProtocolClient
from .resources import (
    AnnotatedResource,
    InvalidResourceError,
    Reference,
    Resource,
    ResourceProtocol,
    ResourceType,
    Stat,
)

log = logging.getLogger(__name__)

# Numeric data types of UnixFS nodes.
_PB_RAW = 0
_PB_DIRECTORY = 1
_PB_FILE = 2
_PB_METADATA = 3
_PB_HAMT_SHARD = 5

# Characters that path segment escaping leaves alone besides letters, digits and "-_.~".
_PATH_SEGMENT_SAFE = "$&+:=@"

_INVALID_RESOURCE_MESSAGES = frozenset(
    {
        'proto: required field "Type" not set',
        "proto: unixfs_pb.Data: illegal tag 0 (wire type 0)",
        "proto: unixfs_pb.Data: illegal tag 0 (wire type 2)",
        "unexpected EOF",
        "unrecognized object type: 144",
        "not unixfs node (proto or raw)",
        "failed to decode Protocol Buffers: incorrectly formatted merkledag node: "
        "unmarshal failed. proto: illegal wireType 6",
        "proto: can't skip unknown wire type 6",
    }
)


@dataclass
class IPFSConfig:
    """Configuration for the IPFS protocol."""

    api_url: str = "http://localhost:5001"
    gateway_url: str = "http://localhost:8080"
    # 256KB is the default chunker block size; unreferenced files of exactly this
    # size are very likely chunks of larger files rather than files of their own.
    partial_size: int = 262144


class IPFSError(Exception):
    """An error reported by the IPFS API."""

    def __init__(self, message: str, code: int = 0, command: str = "", type: str = "error") -> None:
        self.message = message
        self.code = code
        self.command = command
        self.type = type
        super().__init__(message)

    def __str__(self) -> str:
        text = f"{self.command}: " if self.command else ""
        if self.code:
            text += f"{self.code}: "
        return text + self.message


def is_invalid_resource_error(err: BaseException) -> bool:
    """Tell whether an error from the API means the content itself is invalid."""
    if isinstance(err, (TimeoutError, requests.Timeout)):
        # Timeouts are explicitly not protocol errors.
        return False
    if not isinstance(err, IPFSError):
        log.warning("Unexpected protocol error: %s: %s", type(err).__name__, err)
        return False
    log.info("IPFS error: %s", err.message)
    return err.message in _INVALID_RESOURCE_MESSAGES


def type_from_pb(pb_type: int) -> ResourceType:
    """Map a UnixFS data type, as listed by ls, to a resource type."""
    if pb_type == _PB_RAW:
        # Either a file or a type that was not resolved.
        return ResourceType.UNDEFINED
    if pb_type == _PB_FILE:
        return ResourceType.FILE
    if pb_type in (_PB_HAMT_SHARD, _PB_DIRECTORY, _PB_METADATA):
        return ResourceType.DIRECTORY
    return ResourceType.UNSUPPORTED


def type_from_string(name: str) -> ResourceType:
    """Map the type name reported by files/stat to a resource type."""
    if name == "file":
        return ResourceType.FILE
    if name == "directory":
        return ResourceType.DIRECTORY
    return ResourceType.UNSUPPORTED


def _absolute_path(resource: AnnotatedResource) -> str:
    return f"/ipfs/{resource.id}"


def _named_path(resource: AnnotatedResource) -> str:
    ref = resource.reference
    if ref.name and ref.parent is not None:
        return f"/ipfs/{ref.parent.id}/{quote(ref.name, safe=_PATH_SEGMENT_SAFE)}"
    return _absolute_path(resource)


def _drain(decoder: json.JSONDecoder, buffer: str, final: bool) -> Iterator[Any]:
    """Yield complete JSON values from buffer; return what is left over."""
    while True:
        stripped = buffer.lstrip()
        if not stripped:
            return ""
        try:
            value, end = decoder.raw_decode(stripped)
        except json.JSONDecodeError as exc:
            if final:
                raise ValueError(f"decoding json: {exc}") from exc
            return stripped
        yield value
        buffer = stripped[end:]


def _json_stream(chunks: Iterable[bytes]) -> Iterator[Any]:
    """Decode a stream of concatenated JSON values."""
    decoder = json.JSONDecoder()
    text_decoder = codecs.getincrementaldecoder("utf-8")()
    buffer = ""
    for chunk in chunks:
        buffer += text_decoder.decode(chunk)
        buffer = yield from _drain(decoder, buffer, final=False)
    buffer += text_decoder.decode(b"", final=True)
    yield from _drain(decoder, buffer, final=True)


def _decode_link(output: Any) -> dict[str, Any]:
    if not isinstance(output, dict):
        raise ValueError(f"decoding json: unexpected value {output!r}")
    objects = output.get("Objects") or []
    if len(objects) != 1:
        raise ValueError("unexpected Objects len")
    links = objects[0].get("Links") or []
    if len(links) != 1:
        raise ValueError("unexpected Links len")
    return links[0]


class IPFS(ProtocolClient):
    """The IPFS protocol; safe to share between threads."""

    def __init__(self, config: IPFSConfig | None = None, session: requests.Session | None = None) -> None:
        self.config = config or IPFSConfig()
        parts = urlsplit(self.config.gateway_url)
        if not parts.scheme:
            raise ValueError(f"gateway URL is not absolute: {self.config.gateway_url}")
        self._gateway_url = self.config.gateway_url

        api_url = self.config.api_url
        if "://" not in api_url:
            api_url = "http://" + api_url
        self._api_base = api_url.rstrip("/") + "/api/v0"
        self._session = session or requests.Session()

    def gateway_url(self, resource: AnnotatedResource) -> str:
        """Return the gateway URL of a resource, named after its reference when it has one."""
        return urljoin(self._gateway_url, _named_path(resource))

    def _request(self, command: str, path: str, stream: bool = False, **options: bool) -> requests.Response:
        params = [("arg", path)] + sorted(
            (key, "true" if value else "false") for key, value in options.items()
        )
        url = f"{self._api_base}/{command}?{urlencode(params)}"
        response = self._session.post(url, stream=stream)
        if response.status_code >= 400:
            try:
                raise self._error_from(command, response)
            finally:
                response.close()
        return response

    @staticmethod
    def _error_from(command: str, response: requests.Response) -> IPFSError:
        if response.status_code == 404:
            return IPFSError("command not found", command=command)
        content_type = response.headers.get("Content-Type", "").split(";")[0].strip()
        text = response.text
        if content_type == "application/json":
            try:
                data = json.loads(text)
            except ValueError:
                data = None
            if isinstance(data, dict):
                return IPFSError(
                    str(data.get("Message", "")),
                    code=int(data.get("Code") or 0),
                    command=command,
                    type=str(data.get("Type", "error")),
                )
        return IPFSError(text, command=command)

    @staticmethod
    def _wrap(err: IPFSError) -> Exception:
        if is_invalid_resource_error(err):
            return InvalidResourceError(err)
        return err

    def stat(self, resource: AnnotatedResource) -> None:
        """Fill in the type and size of a resource."""
        try:
            response = self._request("files/stat", _absolute_path(resource))
        except IPFSError as err:
            wrapped = self._wrap(err)
            if wrapped is err:
                raise
            raise wrapped from err

        with response:
            try:
                result = response.json()
            except ValueError as exc:
                raise ValueError(f"decoding json: {exc}") from exc
        if not isinstance(result, dict):
            raise ValueError(f"decoding json: unexpected value {result!r}")

        rtype = type_from_string(result.get("Type", ""))
        if rtype == ResourceType.FILE:
            size = int(result.get("Size") or 0)
        else:
            size = int(result.get("CumulativeSize") or 0)

        # Unreferenced items of exactly the chunk size are taken as partials.
        if size == self.config.partial_size and resource.reference.parent is None:
            rtype = ResourceType.PARTIAL

        resource.stat = Stat(type=rtype, size=size)

    def ls(self, resource: AnnotatedResource) -> Iterator[AnnotatedResource]:
        """List a directory; the request is made at once, entries are yielded as they arrive."""
        try:
            response = self._request(
                "ls", _absolute_path(resource), stream=True, **{"resolve-type": False, "size": False, "stream": True}
            )
        except IPFSError as err:
            wrapped = self._wrap(err)
            if wrapped is err:
                raise
            raise wrapped from err
        return self._entries(response, resource)

    @staticmethod
    def _entries(response: requests.Response, parent: AnnotatedResource) -> Iterator[AnnotatedResource]:
        with response:
            for output in _json_stream(response.iter_content(chunk_size=8192)):
                link = _decode_link(output)
                yield AnnotatedResource(
                    resource=Resource(ResourceProtocol.IPFS, str(link.get("Hash", ""))),
                    reference=Reference(parent=parent.resource, name=str(link.get("Name", ""))),
                    stat=Stat(type=type_from_pb(int(link.get("Type") or 0)), size=int(link.get("Size") or 0)),
                )