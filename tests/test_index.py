import pytest

from ipfs_search.index import Index, multi_get


class FakeIndex(Index):
    def __init__(self, result=None, error=None):
        self.result = result
        self.error = error
        self.get_calls = []

    def index(self, doc_id, properties):
        raise AssertionError("unexpected index call")

    def update(self, doc_id, properties):
        raise AssertionError("unexpected update call")

    def get(self, doc_id, *fields):
        self.get_calls.append((doc_id, fields))
        if self.error is not None:
            raise self.error
        return self.result


def test_multi_get_not_found():
    idx = FakeIndex()
    assert multi_get([idx], "objId", "testField") is None
    assert idx.get_calls == [("objId", ("testField",))]


def test_multi_get_found():
    idx = FakeIndex(result={})
    found = multi_get([idx], "objId", "testField")
    assert found is not None
    index, source = found
    assert index is idx
    assert source == {}
    assert idx.get_calls == [("objId", ("testField",))]


def test_multi_get_returns_first_match_and_stops():
    first = FakeIndex()
    second = FakeIndex(result={"last-seen": "2020-12-06T21:15:42Z"})
    third = FakeIndex(result={})
    index, source = multi_get([first, second, third], "objId", "references", "last-seen")
    assert index is second
    assert source == {"last-seen": "2020-12-06T21:15:42Z"}
    assert third.get_calls == []
    assert first.get_calls == [("objId", ("references", "last-seen"))]


def test_multi_get_propagates_errors():
    failing = FakeIndex(error=RuntimeError("test"))
    later = FakeIndex(result={})
    with pytest.raises(RuntimeError, match="test"):
        multi_get([failing, later], "objId")
    assert later.get_calls == []


def test_multi_get_empty_indexes():
    assert multi_get([], "objId") is None


def test_index_is_abstract():
    with pytest.raises(TypeError):
        Index()