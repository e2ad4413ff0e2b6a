"""Tests for the tag catalog client."""

import logging
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
import requests

from mirror.catalog import CatalogClient, tag_from_entry
from mirror.config import Repository
from mirror.errors import CatalogError
from mirror.validation import MIN_TIMESTAMP

REPO = Repository.from_name("org/repo")

SAMPLE_RESPONSE = {
    "tags": [
        {"name": "v2", "last_modified": "Tue, 03 Jan 2006 15:04:05 -0700", "reversion": False},
        {"name": "v1", "last_modified": "Mon, 02 Jan 2006 15:04:05 -0700"},
    ],
    "page": 1,
    "has_additional": False,
}


def make_client(status=200, body=None, json_error=None, get_error=None):
    response = MagicMock()
    response.status_code = status
    if json_error is not None:
        response.json.side_effect = json_error
    else:
        response.json.return_value = body
    session = MagicMock()
    if get_error is not None:
        session.get.side_effect = get_error
    else:
        session.get.return_value = response
    return CatalogClient("quay.io", timeout=7, session=session), session


class TestFetchTags:
    def test_requests_tag_endpoint_with_timeout(self) -> None:
        client, session = make_client(body=SAMPLE_RESPONSE)

        client.fetch_tags(REPO)

        session.get.assert_called_once_with(
            "https://quay.io/api/v1/repository/org/repo/tag/", timeout=7
        )

    def test_parses_tags_in_response_order(self) -> None:
        client, _ = make_client(body=SAMPLE_RESPONSE)

        tags = client.fetch_tags(REPO)

        assert [t.name for t in tags] == ["v2", "v1"]
        expected = datetime(2006, 1, 2, 15, 4, 5, tzinfo=timezone(timedelta(hours=-7)))
        assert tags[1].last_modified == expected
        assert tags[1].raw_last_modified == "Mon, 02 Jan 2006 15:04:05 -0700"
        assert tags[1].has_timestamp

    def test_transport_error(self) -> None:
        client, _ = make_client(get_error=requests.ConnectionError("refused"))
        with pytest.raises(CatalogError, match="failed"):
            client.fetch_tags(REPO)

    def test_timeout_is_catalog_error(self) -> None:
        client, _ = make_client(get_error=requests.Timeout("slow"))
        with pytest.raises(CatalogError):
            client.fetch_tags(REPO)

    def test_bad_status(self) -> None:
        client, _ = make_client(status=404, body={})
        with pytest.raises(CatalogError, match="404"):
            client.fetch_tags(REPO)

    def test_malformed_json(self) -> None:
        client, _ = make_client(json_error=ValueError("Expecting value"))
        with pytest.raises(CatalogError, match="decode"):
            client.fetch_tags(REPO)

    @pytest.mark.parametrize("body", [[], {"tags": None}, {"other": 1}, "tags"])
    def test_missing_tag_list(self, body) -> None:
        client, _ = make_client(body=body)
        with pytest.raises(CatalogError):
            client.fetch_tags(REPO)

    def test_empty_tag_list(self) -> None:
        client, _ = make_client(body={"tags": []})
        with pytest.raises(CatalogError, match="no tags"):
            client.fetch_tags(REPO)

    def test_unparsable_timestamp_does_not_abort(self, caplog: pytest.LogCaptureFixture) -> None:
        body = {
            "tags": [
                {"name": "broken", "last_modified": "2006-01-02T15:04:05Z"},
                {"name": "v1", "last_modified": "Mon, 02 Jan 2006 15:04:05 -0700"},
            ]
        }
        client, _ = make_client(body=body)

        with caplog.at_level(logging.WARNING, logger="mirror.catalog"):
            tags = client.fetch_tags(REPO)

        assert [t.name for t in tags] == ["broken", "v1"]
        assert tags[0].last_modified == MIN_TIMESTAMP
        assert not tags[0].has_timestamp
        assert "broken" in caplog.text

    def test_nameless_entries_are_dropped(self) -> None:
        body = {"tags": [{"last_modified": "x"}, {"name": "v1", "last_modified": "x"}]}
        client, _ = make_client(body=body)

        assert [t.name for t in client.fetch_tags(REPO)] == ["v1"]

    def test_no_usable_entries(self) -> None:
        client, _ = make_client(body={"tags": [{"name": ""}, "v1"]})
        with pytest.raises(CatalogError, match="no usable tags"):
            client.fetch_tags(REPO)


class TestTagFromEntry:
    def test_missing_timestamp_is_minimum(self) -> None:
        tag = tag_from_entry({"name": "v1"})
        assert tag.last_modified == MIN_TIMESTAMP
        assert tag.raw_last_modified == ""

    def test_non_string_timestamp_is_minimum(self) -> None:
        assert tag_from_entry({"name": "v1", "last_modified": 1136239445}).last_modified == MIN_TIMESTAMP
