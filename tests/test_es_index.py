import json
from datetime import datetime, timezone

import pytest
import requests
import responses
from responses import matchers

from ipfs_search.documents import DocumentReference, Invalid, Update
from ipfs_search.es_index import ElasticsearchIndex
from ipfs_search.index import multi_get

ES_URL = "http://localhost:9200"
DOC_ID = "QmSKboVigcD3AY4kLsob117KJcMHvMUu6vNFqk1PQzYUpp"


@pytest.fixture
def rsps():
    with responses.RequestsMock() as mock:
        yield mock


def _index(name="ipfs_files"):
    return ElasticsearchIndex(ES_URL, name, requests.Session())


def test_str_is_name():
    assert str(_index("ipfs_invalids")) == "ipfs_invalids"


def test_index_sends_document(rsps):
    rsps.add(responses.PUT, f"{ES_URL}/ipfs_invalids/_doc/{DOC_ID}", json={"result": "created"})
    _index("ipfs_invalids").index(DOC_ID, Invalid(error="unsupported type"))
    assert json.loads(rsps.calls[0].request.body) == {"error": "unsupported type"}


def test_index_plain_mapping(rsps):
    rsps.add(responses.PUT, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", json={})
    _index().index(DOC_ID, {"size": 15})
    assert json.loads(rsps.calls[0].request.body) == {"size": 15}


def test_index_error_raises(rsps):
    rsps.add(responses.PUT, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", status=500)
    with pytest.raises(requests.HTTPError):
        _index().index(DOC_ID, {"size": 1})


def test_update_wraps_doc(rsps):
    update = Update(
        last_seen=datetime(2020, 12, 6, 21, 15, 42, tzinfo=timezone.utc),
        references=[DocumentReference("QmYAqhbqNDpU7X9VW6FV5imtngQ3oBRY35zuDXduuZnyA8", "a.pdf")],
    )
    rsps.add(responses.POST, f"{ES_URL}/ipfs_files/_update/{DOC_ID}", json={"result": "updated"})
    _index().update(DOC_ID, update)
    sent = json.loads(rsps.calls[0].request.body)
    assert sent == {"doc": update.to_dict()}
    assert Update.from_dict(sent["doc"]) == update


def test_update_omits_empty_references(rsps):
    rsps.add(responses.POST, f"{ES_URL}/ipfs_files/_update/{DOC_ID}", json={})
    _index().update(DOC_ID, Update())
    assert "references" not in json.loads(rsps.calls[0].request.body)["doc"]


def test_update_error_raises(rsps):
    rsps.add(responses.POST, f"{ES_URL}/ipfs_files/_update/{DOC_ID}", status=409)
    with pytest.raises(requests.HTTPError):
        _index().update(DOC_ID, Update())


def test_get_found_returns_source(rsps):
    source = {"last-seen": "2020-12-06T21:15:42Z", "references": []}
    rsps.add(
        responses.GET,
        f"{ES_URL}/ipfs_files/_doc/{DOC_ID}",
        json={"found": True, "_source": source},
        match=[matchers.query_param_matcher({"_source_includes": "references,last-seen"})],
    )
    result = _index().get(DOC_ID, "references", "last-seen")
    assert result == source
    assert Update.from_dict(result).last_seen == datetime(2020, 12, 6, 21, 15, 42, tzinfo=timezone.utc)


def test_get_not_found_returns_none(rsps):
    rsps.add(responses.GET, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", status=404, json={"found": False})
    assert _index().get(DOC_ID) is None


def test_get_error_raises(rsps):
    rsps.add(responses.GET, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", status=500, json={})
    with pytest.raises(requests.HTTPError):
        _index().get(DOC_ID)


def test_get_invalid_json_raises(rsps):
    rsps.add(responses.GET, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", body="not json")
    with pytest.raises(ValueError):
        _index().get(DOC_ID)


def test_multi_get_across_indexes(rsps):
    files, dirs = _index("ipfs_files"), _index("ipfs_directories")
    rsps.add(responses.GET, f"{ES_URL}/ipfs_files/_doc/{DOC_ID}", status=404, json={"found": False})
    rsps.add(
        responses.GET,
        f"{ES_URL}/ipfs_directories/_doc/{DOC_ID}",
        json={"found": True, "_source": {"size": 23}},
    )
    found = multi_get([files, dirs], DOC_ID)
    assert found == (dirs, {"size": 23})