"""Utilities for deriving structured slices from raw HTML and cookie text.

Every function is a single pass of regular expressions over the input and
never raises: malformed markup yields empty or partial results.
"""
import re
import logging
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

TAG_SCRIPT = re.compile(r'<script\b([^>]*)>', re.IGNORECASE)
TAG_LINK = re.compile(r'<link\b([^>]*)>', re.IGNORECASE)
TAG_META = re.compile(r'<meta\b([^>]*)>', re.IGNORECASE)
SCRIPT_BLOCK = re.compile(r'<script\b([^>]*)>(.*?)</script\s*>', re.IGNORECASE | re.DOTALL)
ATTRIBUTE = re.compile(
    r'([^\s"\'<>/=]+)(?:\s*=\s*(?:"([^"]*)"|\'([^\']*)\'|([^\s"\'>]+)))?',
    re.DOTALL,
)

STRIP_BLOCKS = re.compile(
    r'<style\b[^>]*>.*?</style\s*>|<script\b[^>]*>.*?</script\s*>|<!--.*?-->',
    re.IGNORECASE | re.DOTALL,
)
STRIP_TAGS = re.compile(r'<[^>]*>')
WHITESPACE = re.compile(r'\s+')

# Set-Cookie attributes that are not cookies themselves
COOKIE_ATTRIBUTES = {
    "path", "domain", "expires", "max-age", "secure", "httponly",
    "samesite", "priority", "partitioned", "version", "comment",
}


def parse_attributes(attribute_text: str) -> Dict[str, str]:
    """Parse the attribute section of a start tag into a lower-cased name -> value dict."""
    attributes: Dict[str, str] = {}
    for match in ATTRIBUTE.finditer(attribute_text or ""):
        name = match.group(1).lower()
        value = next((g for g in match.group(2, 3, 4) if g is not None), "")
        # first occurrence wins, as in browsers
        attributes.setdefault(name, value)
    return attributes


def _attribute_values(pattern: re.Pattern, html: Optional[str], attribute: str) -> List[str]:
    if not html:
        return []
    values = []
    for match in pattern.finditer(html):
        value = parse_attributes(match.group(1)).get(attribute, "").strip()
        if value:
            values.append(value)
    return values


def script_sources(html: Optional[str]) -> List[str]:
    """URLs of external scripts, in source order, duplicates retained."""
    return _attribute_values(TAG_SCRIPT, html, "src")


def link_hrefs(html: Optional[str]) -> List[str]:
    """hrefs of <link> elements, in source order, duplicates retained."""
    return _attribute_values(TAG_LINK, html, "href")


def meta_tags(html: Optional[str]) -> Dict[str, List[str]]:
    """
    Map each meta tag name (or property / http-equiv) to its content values.

    Example:
        <meta name="Generator" content="WordPress 6.2"> -> {"generator": ["WordPress 6.2"]}
    """
    tags: Dict[str, List[str]] = {}
    if not html:
        return tags
    for match in TAG_META.finditer(html):
        attributes = parse_attributes(match.group(1))
        key = attributes.get("name") or attributes.get("property") or attributes.get("http-equiv")
        if not key or "content" not in attributes:
            continue
        tags.setdefault(key.strip().lower(), []).append(attributes["content"])
    return tags


def inline_script_bodies(html: Optional[str]) -> List[str]:
    """Bodies of <script> elements without a src attribute, in source order."""
    if not html:
        return []
    bodies = []
    for match in SCRIPT_BLOCK.finditer(html):
        if parse_attributes(match.group(1)).get("src", "").strip():
            continue
        body = match.group(2)
        if body.strip():
            bodies.append(body)
    return bodies


def plain_text(html: Optional[str]) -> str:
    """Visible text: style/script/comment blocks and tags removed, whitespace collapsed."""
    if not html:
        return ""
    text = STRIP_BLOCKS.sub(" ", html)
    text = STRIP_TAGS.sub(" ", text)
    return WHITESPACE.sub(" ", text).strip()


def cookie_map(cookie_text: Optional[str]) -> Dict[str, str]:
    """
    Parse raw cookie text into a name -> value mapping.

    Accepts a Cookie header ("a=1; b=2") as well as Set-Cookie lines separated
    by newlines. Entries without '=' are skipped; the last occurrence of a
    name wins.
    """
    cookies: Dict[str, str] = {}
    if not cookie_text:
        return cookies
    for line in cookie_text.splitlines():
        for entry in line.split(";"):
            name, sep, value = entry.partition("=")
            name = name.strip()
            if not sep or not name:
                continue
            if name.lower() in COOKIE_ATTRIBUTES:
                continue
            cookies[name] = value.strip()
    logger.debug(f"Parsed {len(cookies)} cookies")
    return cookies
