"""Metadata extraction through an ipfs-tika server."""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlsplit

import requests

from .interfaces import Extractor, ProtocolClient
from .resources import (
    AnnotatedResource,
    FileTooLargeError,
    RequestError,
    UnexpectedResponseError,
)

log = logging.getLogger(__name__)


@dataclass
class TikaConfig:
    """Configuration for the Tika extractor."""

    tika_server_url: str = "http://localhost:8081"
    request_timeout: float = 300.0  # seconds
    max_file_size: int = 4 * 1024 * 1024 * 1024  # 4GB


def _merge(document: Any, data: Any) -> None:
    if hasattr(document, "update_from"):
        document.update_from(data)
    elif isinstance(document, MutableMapping):
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        document.update(data)
    else:
        raise TypeError(f"cannot store metadata in {type(document).__name__}")


class TikaExtractor(Extractor):
    """Extracts metadata from resources using the ipfs-tika server."""

    def __init__(
        self,
        config: TikaConfig | None = None,
        protocol: ProtocolClient | None = None,
        session: requests.Session | None = None,
    ) -> None:
        if protocol is None:
            raise ValueError("a protocol client is required")
        self.config = config or TikaConfig()
        self.protocol = protocol
        self._session = session or requests.Session()

    def _extract_url(self, resource: AnnotatedResource) -> str:
        gateway_url = self.protocol.gateway_url(resource)
        # The path of a gateway URL is already escaped; keep it as is.
        return self.config.tika_server_url + urlsplit(gateway_url).path

    def extract(self, resource: AnnotatedResource, document: Any) -> None:
        """Fetch metadata for the resource and merge it into document."""
        if resource.size > self.config.max_file_size:
            raise FileTooLargeError(resource.size)

        url = self._extract_url(resource)
        try:
            response = self._session.get(url, timeout=self.config.request_timeout)
        except requests.RequestException as exc:
            raise RequestError(exc) from exc

        with response:
            if response.status_code != 200:
                raise UnexpectedResponseError(
                    f"unexpected status {response.status_code} {response.reason or ''}".rstrip()
                )
            try:
                data = response.json()
            except ValueError as exc:
                raise UnexpectedResponseError(exc) from exc

        try:
            _merge(document, data)
        except ValueError as exc:
            raise UnexpectedResponseError(exc) from exc

        log.info("Got metadata for '%s'", resource)