"""An index stored in Elasticsearch."""

from __future__ import annotations

import json
import logging
from typing import Any
from urllib.parse import quote

import requests

from .index import Index

log = logging.getLogger(__name__)


def _body(properties: Any) -> Any:
    return properties.to_dict() if hasattr(properties, "to_dict") else properties


class ElasticsearchIndex(Index):
    """Stores and retrieves documents in one Elasticsearch index over its REST API."""

    def __init__(self, url: str, name: str, session: requests.Session | None = None) -> None:
        self.url = url.rstrip("/")
        self.name = name
        self._session = session or requests.Session()

    def __str__(self) -> str:
        return self.name

    def _doc_url(self, endpoint: str, doc_id: str) -> str:
        return f"{self.url}/{quote(self.name, safe='')}/{endpoint}/{quote(doc_id, safe='')}"

    def index(self, doc_id: str, properties: Any) -> None:
        """Store a document's properties under doc_id."""
        response = self._session.put(self._doc_url("_doc", doc_id), json=_body(properties))
        response.raise_for_status()

    def update(self, doc_id: str, properties: Any) -> None:
        """Merge properties into the document stored under doc_id."""
        response = self._session.post(
            self._doc_url("_update", doc_id), json={"doc": _body(properties)}
        )
        if not response.ok:
            log.warning("Updating %s in %s failed: %s", doc_id, self.name, response.status_code)
        response.raise_for_status()

    def get(self, doc_id: str, *fields: str) -> dict[str, Any] | None:
        """Return the given source fields of a document, or None when it is not found."""
        params = {"_source_includes": ",".join(fields)} if fields else None
        response = self._session.get(self._doc_url("_doc", doc_id), params=params)
        if response.status_code == 404:
            return None
        response.raise_for_status()

        try:
            result = response.json()
        except json.JSONDecodeError as exc:
            raise ValueError(f"decoding response: {exc}") from exc
        if not isinstance(result, dict):
            raise ValueError(f"unexpected response {result!r}")
        source = result.get("_source", {})
        if not isinstance(source, dict):
            raise ValueError(f"unexpected source {source!r}")
        return source