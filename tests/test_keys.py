"""Tests for cache key generation."""

from swr_fetch import make_cache_key, normalize_url


class TestNormalizeUrl:
    """Tests for normalize_url."""

    def test_sorts_query_parameters(self) -> None:
        assert normalize_url("https://api.test.dev/demo?b=2&a=1") == normalize_url(
            "https://api.test.dev/demo?a=1&b=2"
        )

    def test_drops_fragment(self) -> None:
        assert (
            normalize_url("https://api.test.dev/demo#top")
            == "https://api.test.dev/demo"
        )

    def test_keeps_path(self) -> None:
        assert normalize_url("https://api.test.dev/a") != normalize_url(
            "https://api.test.dev/b"
        )


class TestMakeCacheKey:
    """Tests for make_cache_key."""

    def test_plain_get(self) -> None:
        key = make_cache_key("https://api.test.dev/demo")
        assert key == "swr:GET:https://api.test.dev/demo"

    def test_prefix_and_method(self) -> None:
        key = make_cache_key("https://api.test.dev/demo", method="post", prefix="app")
        assert key.startswith("app:POST:")

    def test_body_changes_key(self) -> None:
        a = make_cache_key("https://api.test.dev/q", method="POST", content=b"a")
        b = make_cache_key("https://api.test.dev/q", method="POST", content=b"b")
        assert a != b

    def test_only_varied_headers_matter(self) -> None:
        url = "https://api.test.dev/demo"
        plain = make_cache_key(url, headers={"X-Request-Id": "1"})
        assert plain == make_cache_key(url, headers={"X-Request-Id": "2"})

        vary = ["accept-language"]
        en = make_cache_key(url, headers={"Accept-Language": "en"}, vary=vary)
        fr = make_cache_key(url, headers={"Accept-Language": "fr"}, vary=vary)
        assert en != fr

    def test_stable(self) -> None:
        url = "https://api.test.dev/q"
        assert make_cache_key(url, content=b"x") == make_cache_key(url, content=b"x")
