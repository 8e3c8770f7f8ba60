from unittest.mock import AsyncMock, patch

import httpx
import pytest

from fetch.http_client import collect_headers, retrieve_page, retrieve_robots_txt, robots_url


def _response(status_code, url="https://example.com/", headers=None, content=b""):
    return httpx.Response(status_code, headers=headers or [], content=content, request=httpx.Request("GET", url))


@pytest.mark.asyncio
async def test_retrieve_page_collects_headers_and_cookies():
    response = _response(
        200,
        headers=[
            ("Content-Type", "text/html; charset=utf-8"),
            ("Set-Cookie", "PHPSESSID=abc; path=/"),
            ("Set-Cookie", "_ga=GA1.2.3"),
            ("Server", "nginx"),
        ],
        content=b"<html><body>hi</body></html>",
    )
    with patch("fetch.http_client.fetch_url", AsyncMock(return_value=response)):
        page = await retrieve_page("https://example.com")

    assert page.error is None
    assert page.status == 200
    assert page.html == "<html><body>hi</body></html>"
    assert page.final_url == "https://example.com/"
    assert page.headers["server"] == "nginx"
    assert page.headers["set-cookie"] == ["PHPSESSID=abc; path=/", "_ga=GA1.2.3"]
    assert page.cookies == "PHPSESSID=abc; path=/\n_ga=GA1.2.3"


@pytest.mark.asyncio
async def test_retrieve_page_non_success_status():
    with patch("fetch.http_client.fetch_url", AsyncMock(return_value=_response(503))):
        page = await retrieve_page("https://example.com")

    assert page.html is None
    assert page.status == 503
    assert page.error == "Failed to fetch: 503 Service Unavailable"


@pytest.mark.asyncio
async def test_retrieve_page_timeout():
    with patch("fetch.http_client.fetch_url", AsyncMock(side_effect=httpx.ConnectTimeout("too slow"))):
        page = await retrieve_page("https://example.com")

    assert page.html is None
    assert page.error == "Request timed out while fetching content."


@pytest.mark.asyncio
async def test_retrieve_page_request_error():
    with patch("fetch.http_client.fetch_url", AsyncMock(side_effect=httpx.ConnectError("connection refused"))):
        page = await retrieve_page("https://example.com")

    assert page.error == "connection refused"


def test_collect_headers_lowercases_names():
    headers = collect_headers(_response(200, headers=[("X-Powered-By", "PHP/8.2"), ("Via", "a"), ("via", "b")]))
    assert headers["x-powered-by"] == "PHP/8.2"
    assert headers["via"] == ["a", "b"]


def test_robots_url():
    assert robots_url("https://example.com/blog/post?id=1") == "https://example.com/robots.txt"
    assert robots_url("http://example.com:8080") == "http://example.com:8080/robots.txt"
    assert robots_url("not a url") is None


@pytest.mark.asyncio
async def test_retrieve_robots_txt():
    found = _response(200, url="https://example.com/robots.txt", content=b"User-agent: *\nDisallow: /wp-admin/\n")
    with patch("fetch.http_client.fetch_url", AsyncMock(return_value=found)) as fetch:
        robots = await retrieve_robots_txt("https://example.com/some/page")

    assert robots == "User-agent: *\nDisallow: /wp-admin/\n"
    assert fetch.await_args.args[0] == "https://example.com/robots.txt"


@pytest.mark.asyncio
async def test_retrieve_robots_txt_failures_yield_none():
    with patch("fetch.http_client.fetch_url", AsyncMock(return_value=_response(404))):
        assert await retrieve_robots_txt("https://example.com") is None
    with patch("fetch.http_client.fetch_url", AsyncMock(return_value=_response(500))):
        assert await retrieve_robots_txt("https://example.com") is None
    with patch("fetch.http_client.fetch_url", AsyncMock(side_effect=httpx.ReadTimeout("slow"))):
        assert await retrieve_robots_txt("https://example.com") is None
