"""Crawling and indexing of resources: files, directories and invalid content."""

from __future__ import annotations

import logging
import queue
import random
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from .documents import (
    Directory,
    DocumentReference,
    File,
    Invalid,
    Link,
    LinkType,
    Update,
)
from .index import Index, multi_get
from .interfaces import Extractor, ProtocolClient, Publisher
from .resources import (
    AnnotatedResource,
    DirectoryTooLargeError,
    FileTooLargeError,
    InvalidResourceError,
    Reference,
    ResourceProtocol,
    ResourceType,
    UnsupportedTypeError,
)

log = logging.getLogger(__name__)

_CRAWLABLE_TYPES = frozenset({ResourceType.UNDEFINED, ResourceType.FILE, ResourceType.DIRECTORY})
_EXISTING_FIELDS = ("references", "last-seen")
_PUT_POLL_INTERVAL = 0.1


@dataclass
class CrawlerConfig:
    """Configuration for a Crawler; durations are in seconds."""

    dir_entry_buffer_size: int = 8192  # Entries buffered while listing a directory.
    min_update_age: float = 3600.0  # Minimum age before an existing item is updated.
    stat_timeout: float = 60.0  # Timeout for stat calls.
    dir_entry_timeout: float = 60.0  # Timeout *between* directory entries.
    max_dir_size: int = 32768  # Maximum number of directory entries indexed.


@dataclass
class Indexes:
    """Indexes used for crawling."""

    files: Index
    directories: Index
    invalids: Index


@dataclass
class Queues:
    """Queues used for crawling."""

    files: Publisher
    directories: Publisher
    hashes: Publisher


@dataclass(frozen=True)
class _EndOfList:
    """Marks the end of a directory listing, with the error that ended it if any."""

    error: BaseException | None = None


def _call_with_timeout(func: Callable[[], None], timeout: float, what: str) -> None:
    """Run func in a worker thread, raising TimeoutError when it takes too long."""
    failure: list[BaseException] = []
    done = threading.Event()

    def target() -> None:
        try:
            func()
        except BaseException as exc:  # handed over to the calling thread
            failure.append(exc)
        finally:
            done.set()

    threading.Thread(target=target, name=what, daemon=True).start()
    if not done.wait(timeout):
        raise TimeoutError(f"{what} timed out after {timeout}s")
    if failure:
        raise failure[0]


def _put(entries: queue.Queue, item: Any, stop: threading.Event) -> bool:
    """Put item on entries unless stop is set first; tell whether it was put."""
    while not stop.is_set():
        try:
            entries.put(item, timeout=_PUT_POLL_INTERVAL)
            return True
        except queue.Full:
            continue
    return False


def _link_type(entry: AnnotatedResource) -> LinkType:
    if entry.type is ResourceType.FILE:
        return LinkType.FILE
    if entry.type is ResourceType.DIRECTORY:
        return LinkType.DIRECTORY
    if entry.type is ResourceType.UNDEFINED:
        return LinkType.UNKNOWN
    if entry.type is ResourceType.UNSUPPORTED:
        return LinkType.UNSUPPORTED
    raise ValueError(f"unexpected type: {entry.type}")


def _append_reference(
    refs: Iterable[DocumentReference], reference: Reference
) -> tuple[list[DocumentReference], bool]:
    """Add reference to refs when new; tell whether anything was added."""
    refs = list(refs)
    if reference.parent is None:
        return refs, False
    new = DocumentReference(parent_hash=reference.parent.id, name=reference.name)
    if new in refs:
        return refs, False
    return [*refs, new], True


def _now() -> datetime:
    # Whole seconds only, as the legacy index format has no milliseconds.
    return datetime.now(timezone.utc).replace(microsecond=0)


class Crawler:
    """Crawls resources, updating known ones and indexing new ones."""

    def __init__(
        self,
        config: CrawlerConfig,
        indexes: Indexes,
        queues: Queues,
        protocol: ProtocolClient,
        extractor: Extractor,
    ) -> None:
        self.config = config
        self.indexes = indexes
        self.queues = queues
        self.protocol = protocol
        self.extractor = extractor

    def crawl(self, resource: AnnotatedResource) -> None:
        """Update an existing resource or crawl a new one, extracting metadata where applicable."""
        if resource.protocol is ResourceProtocol.INVALID:
            raise ValueError("invalid protocol")
        if resource.type not in _CRAWLABLE_TYPES:
            raise ValueError(f"invalid type for crawler: {resource.type}")

        if self._update_maybe_existing(resource):
            log.info("Not updating existing resource %s", resource)
            return

        try:
            self._ensure_type(resource)
        except InvalidResourceError as err:
            log.info("Indexing invalid resource %s", resource)
            self._index_invalid(resource, err)
            return

        log.info("Indexing new item %s", resource)
        self._index(resource)

    # Existing items

    def _update_maybe_existing(self, resource: AnnotatedResource) -> bool:
        found = multi_get(
            [self.indexes.files, self.indexes.directories, self.indexes.invalids],
            resource.id,
            *_EXISTING_FIELDS,
        )
        if found is None:
            return False

        index, source = found
        if index is self.indexes.invalids:
            # Already indexed as invalid; nothing to do.
            return True

        self._update_existing(resource, index, Update.from_dict(source))
        return True

    def _update_existing(self, resource: AnnotatedResource, index: Index, existing: Update) -> None:
        refs, refs_updated = _append_reference(existing.references, resource.reference)
        now = _now()
        is_stale = (now - existing.last_seen).total_seconds() > self.config.min_update_age

        if refs_updated or is_stale:
            log.debug(
                "Updating %s (reference added: %s, last seen: %s)",
                resource,
                refs_updated,
                existing.last_seen,
            )
            index.update(resource.id, Update(last_seen=now, references=refs))
        else:
            log.debug("Not updating %s", resource)

    # Types

    def _ensure_type(self, resource: AnnotatedResource) -> None:
        if resource.type is ResourceType.UNDEFINED:
            _call_with_timeout(
                lambda: self.protocol.stat(resource), self.config.stat_timeout, "stat"
            )

    # Indexing

    def _index_invalid(self, resource: AnnotatedResource, err: BaseException) -> None:
        self.indexes.invalids.index(resource.id, Invalid(error=str(err)))

    @staticmethod
    def _document_fields(resource: AnnotatedResource) -> dict[str, Any]:
        now = _now()
        parent = resource.reference.parent
        references = (
            [DocumentReference(parent_hash=parent.id, name=resource.reference.name)]
            if parent is not None
            else []
        )
        return {"first_seen": now, "last_seen": now, "references": references, "size": resource.size}

    def _index(self, resource: AnnotatedResource) -> None:
        try:
            target = self._properties(resource)
        except InvalidResourceError as err:
            log.info("Indexing invalid '%s', err: %s", resource, err)
            self._index_invalid(resource, err)
            return

        if target is None:
            return
        index, properties = target
        index.index(resource.id, properties)

    def _properties(self, resource: AnnotatedResource) -> tuple[Index, Any] | None:
        rtype = resource.type
        if rtype is ResourceType.FILE:
            document = File(**self._document_fields(resource))
            try:
                self.extractor.extract(resource, document)
            except FileTooLargeError as exc:
                # Too large files are invalid; prevents repeated attempts.
                raise InvalidResourceError(exc) from exc
            return self.indexes.files, document

        if rtype is ResourceType.DIRECTORY:
            directory = Directory(**self._document_fields(resource))
            self._crawl_dir(resource, directory)
            return self.indexes.directories, directory

        if rtype is ResourceType.UNSUPPORTED:
            raise UnsupportedTypeError()

        if rtype is ResourceType.PARTIAL:
            # Partials are not indexed.
            return None

        if rtype is ResourceType.UNDEFINED:
            raise ValueError("undefined type after stat call")

        raise ValueError(f"unexpected type: {rtype}")

    # Directories

    def _list_entries(
        self, resource: AnnotatedResource, entries: queue.Queue, stop: threading.Event
    ) -> None:
        try:
            for entry in self.protocol.ls(resource):
                if not _put(entries, entry, stop):
                    return
            end = _EndOfList()
        except BaseException as exc:  # handed over to the consuming thread
            end = _EndOfList(exc)
        _put(entries, end, stop)

    def _crawl_dir(self, resource: AnnotatedResource, directory: Directory) -> None:
        entries: queue.Queue = queue.Queue(maxsize=max(1, self.config.dir_entry_buffer_size))
        stop = threading.Event()
        lister = threading.Thread(
            target=self._list_entries, args=(resource, entries, stop), name="ls", daemon=True
        )
        lister.start()
        try:
            self._process_dir_entries(entries, directory)
        except Exception as err:
            # Prefer less over incomplete or inconsistent data.
            log.warning("Unexpected error processing directory entries: %s", err)
            raise
        finally:
            stop.set()

    def _process_dir_entries(self, entries: queue.Queue, directory: Directory) -> None:
        count = 0
        is_large = False
        timeout = self.config.dir_entry_timeout

        while True:
            try:
                item = entries.get(timeout=timeout)
            except queue.Empty:
                raise TimeoutError(f"no directory entry within {timeout}s") from None

            if isinstance(item, _EndOfList):
                if item.error is not None:
                    raise item.error
                break

            if count > 0 and count % 1024 == 0:
                log.info("Processed %d directory entries in %s.", count, item.reference.parent)
                log.info("Latest entry: %s", item)

            # Links are kept up to the limit, but all entries are queued.
            if count == self.config.max_dir_size:
                log.info(
                    "Directory %s is large, crawling entries but not directory itself.",
                    item.reference.parent,
                )
                is_large = True

            if not is_large:
                directory.links.append(
                    Link(hash=item.id, name=item.reference.name, size=item.size, type=_link_type(item))
                )

            self._queue_dir_entry(item)
            count += 1

        if is_large:
            raise DirectoryTooLargeError()

    def _queue_dir_entry(self, entry: AnnotatedResource) -> None:
        # Random lower priority: entries of one directory tend to share availability,
        # consumers should get a varied mixture of it.
        priority = random.randint(1, 7)

        if entry.type is ResourceType.UNDEFINED:
            self.queues.hashes.publish(entry, priority)
        elif entry.type is ResourceType.FILE:
            self.queues.files.publish(entry, priority)
        elif entry.type is ResourceType.DIRECTORY:
            self.queues.directories.publish(entry, priority)
        elif entry.type is ResourceType.UNSUPPORTED:
            # Indexing right away is as fast as queueing.
            self._index_invalid(entry, UnsupportedTypeError())
        else:
            raise ValueError(f"unexpected type: {entry.type}")