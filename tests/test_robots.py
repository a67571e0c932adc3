from pathlib import Path

import httpx
import pytest

from robotrie.errors import RobotsFetchError
from robotrie.robots import (
    fetch_robots,
    is_allowed,
    parse_robots,
    request_path,
    robots_url,
)


def _sample() -> str:
    return Path(__file__).with_name("sample_robots.txt").read_text(encoding="utf-8")


def test_robots_url():
    assert robots_url("https://example.com/a/b?c=1") == "https://example.com/robots.txt"


def test_request_path():
    assert request_path("https://example.com") == "/"
    assert request_path("https://example.com/search?q=x") == "/search?q=x"


def test_parse_groups_and_sitemaps():
    robots = parse_robots(_sample())
    assert len(robots.groups) == 3
    assert robots.groups[1].agents == ["googlebot", "bingbot"]
    assert robots.groups[0].rules[:2] == [("/private/", "disallow"), ("/private/public/", "allow")]
    assert robots.sitemaps == ["https://example.com/sitemap.xml"]


def test_rules_before_user_agent_are_dropped():
    robots = parse_robots("Disallow: /x\nUser-agent: *\nDisallow: /y\n")
    assert robots.rules_for("*") == [("/y", "disallow")]


def test_agent_selection():
    robots = parse_robots(_sample())
    assert robots.rules_for("Googlebot-Image/1.0") == [("/images/", "disallow")]
    assert robots.rules_for("Googlebot/2.1") == [("/nogoogle", "disallow"), ("/", "allow")]
    assert robots.rules_for("bingbot") == [("/nogoogle", "disallow"), ("/", "allow")]
    assert robots.rules_for("SomeBot")[0] == ("/private/", "disallow")


def test_is_allowed_end_to_end():
    robots = parse_robots(_sample())
    assert is_allowed("https://example.com/private/public/page", robots)
    assert not is_allowed("https://example.com/private/secret", robots)
    assert not is_allowed("https://example.com/report.pdf", robots)
    assert not is_allowed("https://example.com/search?q=robots", robots)
    assert is_allowed("https://example.com/search", robots)
    assert not is_allowed("https://example.com/nogoogle/x", robots, "Googlebot")
    assert is_allowed("https://example.com/private/secret", robots, "Googlebot")


def test_empty_disallow_allows_everything():
    robots = parse_robots("User-agent: *\nDisallow:\n")
    assert is_allowed("https://example.com/anything", robots)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_fetch_robots_ok():
    def handler(request):
        assert request.url.path == "/robots.txt"
        return httpx.Response(200, text=_sample())

    with _client(handler) as client:
        robots = fetch_robots("https://example.com/some/page", client=client)
    assert not is_allowed("https://example.com/private/x", robots)


def test_fetch_robots_missing_means_no_rules():
    with _client(lambda request: httpx.Response(404)) as client:
        robots = fetch_robots("https://example.com/", client=client)
    assert robots.groups == []
    assert is_allowed("https://example.com/private/x", robots)


def test_fetch_robots_retries_then_succeeds():
    calls = []

    def handler(request):
        calls.append(request)
        if len(calls) < 3:
            return httpx.Response(503)
        return httpx.Response(200, text="User-agent: *\nDisallow: /\n")

    with _client(handler) as client:
        robots = fetch_robots("https://example.com/", client=client, delay=0)
    assert len(calls) == 3
    assert not is_allowed("https://example.com/x", robots)


def test_fetch_robots_gives_up():
    def handler(request):
        raise httpx.ConnectError("boom", request=request)

    with _client(handler) as client:
        with pytest.raises(RobotsFetchError) as exc_info:
            fetch_robots("https://example.com/", client=client, tries=2, delay=0)
    assert exc_info.value.url == "https://example.com/robots.txt"
    assert "boom" in exc_info.value.reason


def test_fetch_robots_redirect_loop():
    def handler(request):
        return httpx.Response(302, headers={"Location": str(request.url)})

    transport = httpx.MockTransport(handler)
    with httpx.Client(transport=transport, follow_redirects=True) as client:
        with pytest.raises(RobotsFetchError) as exc_info:
            fetch_robots("https://example.com/", client=client, tries=2, delay=0)
    assert "redirects" in exc_info.value.reason


@pytest.mark.parametrize("status", [501, 505, 520])
def test_fetch_robots_retries_any_5xx(status):
    calls = []

    def handler(request):
        calls.append(request)
        return httpx.Response(status)

    with _client(handler) as client:
        with pytest.raises(RobotsFetchError) as exc_info:
            fetch_robots("https://example.com/", client=client, tries=2, delay=0)
    assert len(calls) == 2
    assert exc_info.value.reason == f"HTTP {status}"
