"""Interfaces of the components the crawler works with."""

from __future__ import annotations

import abc
from collections.abc import Iterable, Iterator
from typing import Any

from .resources import AnnotatedResource


class ProtocolClient(abc.ABC):
    """Access to content over one or more protocols; safe to share between threads."""

    @abc.abstractmethod
    def gateway_url(self, resource: AnnotatedResource) -> str:
        """Return the URL at which the resource's content can be fetched."""

    @abc.abstractmethod
    def stat(self, resource: AnnotatedResource) -> None:
        """Fill in the type and size of the resource."""

    @abc.abstractmethod
    def ls(self, resource: AnnotatedResource) -> Iterator[AnnotatedResource]:
        """Yield the entries of a directory resource with type and size filled in."""


class Publisher(abc.ABC):
    """Publishes items onto a queue."""

    @abc.abstractmethod
    def publish(self, item: Any, priority: int) -> None:
        """Publish item; a higher priority is delivered sooner."""


class Consumer(abc.ABC):
    """Consumes published items."""

    @abc.abstractmethod
    def consume(self) -> Iterable[Any]:
        """Return the deliveries of the queue."""


class Queue(Publisher, Consumer):
    """A queue that is both published to and consumed from."""


class Extractor(abc.ABC):
    """Extracts metadata from a resource into a document."""

    @abc.abstractmethod
    def extract(self, resource: AnnotatedResource, document: Any) -> None:
        """Update document with the resource's metadata or raise an error."""