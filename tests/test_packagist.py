"""Tests for the Packagist resolver."""

from unittest.mock import MagicMock

import httpx

from typo3_upgrade_planner.cache import TTLCache
from typo3_upgrade_planner.packagist import PackagistClient


def _responder(packages=None, results=None):
    """Fake get_json answering package and search URLs."""
    packages = packages or {}
    results = results or {}

    def get_json(url):
        if "/packages/" in url:
            name = url.split("/packages/", 1)[1][: -len(".json")]
            if name in packages:
                return {"package": {"name": name}}
            request = httpx.Request("GET", url)
            raise httpx.HTTPStatusError("Not found", request=request, response=httpx.Response(404, request=request))
        query = url.split("?q=", 1)[1]
        return {"results": results.get(query, [])}

    return get_json


class TestResolve:
    """Test key to package resolution."""

    def test_direct_lookup_with_vendor_hint(self):
        """Test the hinted vendor is tried first."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder(packages={"georgringer/news"})
        client = PackagistClient(http_client)

        assert client.resolve("news", "georgringer") == "georgringer/news"
        http_client.get_json.assert_called_once_with("https://packagist.org/packages/georgringer/news.json")

    def test_search_exact_match(self):
        """Test search results must match the key exactly."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder(results={
            "tt_address%20typo3": [
                {"name": "someone/tt-address-extra", "type": "typo3-cms-extension"},
                {"name": "FriendsOfTYPO3/tt-address", "type": "typo3-cms-extension"},
            ],
        })
        client = PackagistClient(http_client)

        assert client.resolve("tt_address") == "friendsoftypo3/tt-address"

    def test_search_ignores_unrelated_packages(self):
        """Test packages unrelated to TYPO3 are never picked."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder(results={
            "seo%20typo3": [{"name": "acme/seo", "type": "library", "description": "SEO helpers"}],
            "typo3-cms-extension%20seo": [
                {"name": "yoast/seo", "type": "library", "description": "Yoast SEO for TYPO3"},
            ],
        })
        client = PackagistClient(http_client)

        assert client.resolve("seo") == "yoast/seo"

    def test_no_match(self):
        """Test all queries are tried before giving up."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder()
        client = PackagistClient(http_client)

        assert client.resolve("unknown_ext") is None
        assert http_client.get_json.call_count == 3

    def test_misses_are_memoized(self):
        """Test a miss is not looked up again."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder()
        client = PackagistClient(http_client, cache=TTLCache())

        client.resolve("unknown_ext")
        client.resolve("unknown_ext")

        assert client.lookups == 1
        assert http_client.get_json.call_count == 3

    def test_hits_are_memoized(self):
        """Test a hit is served from the memo."""
        http_client = MagicMock()
        http_client.get_json.side_effect = _responder(packages={"georgringer/news"})
        client = PackagistClient(http_client)

        client.resolve("news", "georgringer")
        assert client.resolve("news", "georgringer") == "georgringer/news"
        assert http_client.get_json.call_count == 1


class TestFailures:
    """Test remote failures degrade to None."""

    def test_search_failure(self):
        """Test transport errors produce empty results."""
        http_client = MagicMock()
        http_client.get_json.side_effect = httpx.ConnectError("offline")
        client = PackagistClient(http_client)

        assert client.search("news typo3") == []
        assert client.resolve("news", "georgringer") is None

    def test_invalid_json(self):
        """Test undecodable answers produce empty results."""
        http_client = MagicMock()
        http_client.get_json.side_effect = ValueError("not json")
        client = PackagistClient(http_client)

        assert client.package_exists("georgringer/news") is False
        assert client.search("news") == []

    def test_unexpected_shape(self):
        """Test malformed result lists are filtered."""
        http_client = MagicMock()
        http_client.get_json.return_value = {"results": [{"name": 42}, "junk", {"name": "b13/container"}]}
        client = PackagistClient(http_client)

        assert client.search("container") == [{"name": "b13/container"}]

    def test_custom_base_url(self):
        """Test the base URL is configurable."""
        http_client = MagicMock()
        http_client.get_json.return_value = {"package": {}}
        client = PackagistClient(http_client, base_url="https://repo.example.com/")

        assert client.package_exists("acme/site")
        http_client.get_json.assert_called_once_with("https://repo.example.com/packages/acme/site.json")
