import pytest

from ipfs_search.resources import (
    AnnotatedResource,
    DirectoryTooLargeError,
    ExtractorError,
    FileTooLargeError,
    InvalidResourceError,
    Reference,
    RequestError,
    Resource,
    ResourceProtocol,
    ResourceType,
    Stat,
    UnexpectedResponseError,
    UnsupportedTypeError,
)

CID = "QmSKboVigcD3AY4kLsob117KJcMHvMUu6vNFqk1PQzYUpp"
PARENT_CID = "QmYAqhbqNDpU7X9VW6FV5imtngQ3oBRY35zuDXduuZnyA8"


def test_annotated_resource_delegates_to_parts():
    r = AnnotatedResource(
        Resource(ResourceProtocol.IPFS, CID),
        stat=Stat(ResourceType.FILE, 15),
    )
    assert r.id == CID
    assert r.protocol is ResourceProtocol.IPFS
    assert r.type is ResourceType.FILE
    assert r.size == 15


def test_annotated_resource_defaults():
    r = AnnotatedResource(Resource(ResourceProtocol.IPFS, CID))
    assert r.type is ResourceType.UNDEFINED
    assert r.size == 0
    assert r.reference.parent is None
    assert r.reference.name == ""


def test_replacing_stat_changes_type_and_size():
    r = AnnotatedResource(Resource(ResourceProtocol.IPFS, CID))
    r.stat = Stat(ResourceType.DIRECTORY, 6544)
    assert r.type is ResourceType.DIRECTORY
    assert r.size == 6544


def test_reference_holds_parent():
    parent = Resource(ResourceProtocol.IPFS, PARENT_CID)
    r = AnnotatedResource(
        Resource(ResourceProtocol.IPFS, CID),
        reference=Reference(parent, "fileName.pdf"),
    )
    assert r.reference.parent.id == PARENT_CID
    assert r.reference.name == "fileName.pdf"


def test_resources_compare_by_value():
    a = Resource(ResourceProtocol.IPFS, CID)
    b = Resource(ResourceProtocol.IPFS, CID)
    assert a == b
    assert len({a, b}) == 1


def test_annotated_resources_compare_by_value():
    parent = Resource(ResourceProtocol.IPFS, PARENT_CID)
    a = AnnotatedResource(Resource(ResourceProtocol.IPFS, CID), Reference(parent, "x"), Stat(ResourceType.FILE, 3))
    b = AnnotatedResource(Resource(ResourceProtocol.IPFS, CID), Reference(parent, "x"), Stat(ResourceType.FILE, 3))
    assert a == b


@pytest.mark.parametrize(
    "error, text",
    [
        (InvalidResourceError(), "resource invalid"),
        (UnsupportedTypeError(), "unsupported type"),
        (DirectoryTooLargeError(), "directory too large"),
        (FileTooLargeError(), "file too large"),
        (UnexpectedResponseError(), "unexpected response from backend"),
        (RequestError(), "request error"),
    ],
)
def test_error_messages(error, text):
    assert str(error) == text


def test_error_detail_follows_message():
    err = InvalidResourceError("test error")
    assert str(err) == "resource invalid: test error"
    assert err.detail == "test error"


@pytest.mark.parametrize(
    "cls, text",
    [(UnsupportedTypeError, "unsupported type"), (DirectoryTooLargeError, "directory too large")],
)
def test_invalid_resource_family(cls, text):
    err = cls()
    assert isinstance(err, InvalidResourceError)
    assert str(err) == text


@pytest.mark.parametrize(
    "cls, text",
    [
        (FileTooLargeError, "file too large"),
        (UnexpectedResponseError, "unexpected response from backend"),
        (RequestError, "request error"),
    ],
)
def test_extractor_error_family(cls, text):
    err = cls()
    assert isinstance(err, ExtractorError)
    assert not isinstance(err, InvalidResourceError)
    assert str(err) == text