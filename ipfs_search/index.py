"""Indexes storing and retrieving document properties."""

from __future__ import annotations

import abc
from collections.abc import Iterable
from typing import Any


class Index(abc.ABC):
    """An index which stores and retrieves document properties."""

    @abc.abstractmethod
    def index(self, doc_id: str, properties: Any) -> None:
        """Store the properties of the document identified by doc_id."""

    @abc.abstractmethod
    def update(self, doc_id: str, properties: Any) -> None:
        """Update the stored properties of the document identified by doc_id."""

    @abc.abstractmethod
    def get(self, doc_id: str, *fields: str) -> dict[str, Any] | None:
        """Return the given fields of the document, or None when it is not found."""


def multi_get(
    indexes: Iterable[Index], doc_id: str, *fields: str
) -> tuple[Index, dict[str, Any]] | None:
    """Return the first index holding doc_id with the fetched fields, or None."""
    for index in indexes:
        source = index.get(doc_id, *fields)
        if source is not None:
            return index, source
    return None