import httpx
import logging
from dataclasses import dataclass, field
from urllib.parse import urlparse
from typing import Optional, Dict, List, Union

# Default timeout configuration (in seconds)
DEFAULT_TIMEOUT = 15.0
DEFAULT_CONNECT_TIMEOUT = 5.0
ROBOTS_TIMEOUT = 10.0

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

ROBOTS_HEADERS = {"User-Agent": "web-fingerprint/1.0"}

logger = logging.getLogger(__name__)


@dataclass
class PageContent:
    """Result of retrieving the analyzed page."""
    html: Optional[str]
    headers: Dict[str, Union[str, List[str]]] = field(default_factory=dict)
    cookies: Optional[str] = None  # Set-Cookie values joined by newlines
    status: Optional[int] = None
    final_url: Optional[str] = None
    error: Optional[str] = None


async def fetch_url(
    url: str,
    method: str = "GET",
    timeout: Optional[float] = None,
    connect_timeout: Optional[float] = None,
    headers: Optional[Dict[str, str]] = None,
):
    """
    Fetches the content of a URL with configurable timeouts.

    Args:
        url: The URL to fetch
        method: HTTP method (GET, HEAD, ...)
        timeout: Total request timeout in seconds (default: 15s)
        connect_timeout: Connection timeout in seconds (default: 5s)
        headers: Optional dictionary of HTTP headers

    Returns:
        httpx.Response object
    """
    logger.debug(f"HTTP {method} {url} (timeout: {timeout or DEFAULT_TIMEOUT}s)")

    timeout_config = httpx.Timeout(
        timeout=timeout or DEFAULT_TIMEOUT,
        connect=connect_timeout or DEFAULT_CONNECT_TIMEOUT
    )

    try:
        async with httpx.AsyncClient(timeout=timeout_config, follow_redirects=True) as client:
            response = await client.request(method, url, headers=headers)
            logger.debug(f"HTTP {response.status_code} {url} ({len(response.content)} bytes)")
            # Don't raise for status - callers decide what an error code means
            return response
    except httpx.TimeoutException as e:
        logger.warning(f"HTTP timeout for {url}: {e}")
        raise
    except httpx.RequestError as e:
        logger.warning(f"HTTP request error for {url}: {e}")
        raise


def collect_headers(response: httpx.Response) -> Dict[str, Union[str, List[str]]]:
    """Lower-cased response headers; repeated headers become lists."""
    collected: Dict[str, Union[str, List[str]]] = {}
    for name, value in response.headers.multi_items():
        name = name.lower()
        existing = collected.get(name)
        if existing is None:
            collected[name] = value
        elif isinstance(existing, list):
            existing.append(value)
        else:
            collected[name] = [existing, value]
    return collected


async def retrieve_page(url: str, timeout: Optional[float] = None) -> PageContent:
    """
    Retrieve the page HTML, headers and cookies.

    Timeouts, request errors and non-2xx statuses are reported through
    `PageContent.error` instead of raising.
    """
    try:
        response = await fetch_url(url, timeout=timeout, headers=DEFAULT_HEADERS)
    except httpx.TimeoutException:
        return PageContent(html=None, error="Request timed out while fetching content.")
    except httpx.RequestError as e:
        return PageContent(html=None, error=str(e) or "Unknown error fetching content")

    headers = collect_headers(response)
    set_cookies = response.headers.get_list("set-cookie")
    cookies = "\n".join(set_cookies) if set_cookies else None
    final_url = str(response.url)

    if not response.is_success:
        logger.warning(f"Failed to fetch {url}: {response.status_code} {response.reason_phrase}")
        return PageContent(
            html=None,
            headers=headers,
            cookies=cookies,
            status=response.status_code,
            final_url=final_url,
            error=f"Failed to fetch: {response.status_code} {response.reason_phrase}",
        )

    content_type = response.headers.get("content-type", "")
    if "text/html" not in content_type:
        # header and cookie signatures still apply
        logger.warning(f"{url} returned non-HTML content-type: {content_type or 'none'}")

    logger.info(f"Fetched {url} (status {response.status_code}, {len(response.text)} chars, final URL {final_url})")
    return PageContent(
        html=response.text,
        headers=headers,
        cookies=cookies,
        status=response.status_code,
        final_url=final_url,
    )


def robots_url(url: str) -> Optional[str]:
    parsed = urlparse(url)
    if not parsed.scheme or not parsed.hostname:
        return None
    return f"{parsed.scheme}://{parsed.netloc}/robots.txt"


async def retrieve_robots_txt(url: str, timeout: Optional[float] = None) -> Optional[str]:
    """Fetch /robots.txt from the site root; any failure yields None."""
    target = robots_url(url)
    if target is None:
        logger.warning(f"Invalid base URL for robots.txt: {url}")
        return None

    try:
        response = await fetch_url(target, timeout=timeout or ROBOTS_TIMEOUT, headers=ROBOTS_HEADERS)
    except httpx.HTTPError:
        return None

    if response.status_code == 404:
        logger.debug(f"robots.txt not found at {target}")
        return None
    if not response.is_success:
        logger.warning(f"Failed to fetch {target}: {response.status_code} {response.reason_phrase}")
        return None
    return response.text
