from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from core import html_utils

# subject/issuer are {"CN": ..., "O": ...}; plus validFrom, validTo, fingerprint, error
TLSInfo = Dict[str, Any]

HeaderValue = Union[str, List[str]]


@dataclass(frozen=True)
class DetectionInput:
    """Artifacts produced by the retrieval layer for one analysis."""
    url: str
    html_content: str
    headers: Dict[str, HeaderValue] = field(default_factory=dict)
    cookies: Optional[str] = None  # raw Set-Cookie derived text
    robots_txt_content: Optional[str] = None
    tls_info: Optional[TLSInfo] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DetectionInput":
        """Build from the camelCase (or snake_case) JSON contract."""
        def pick(*keys):
            for key in keys:
                if data.get(key) is not None:
                    return data[key]
            return None

        return cls(
            url=pick("url") or "",
            html_content=pick("htmlContent", "html_content", "html") or "",
            headers=pick("headers") or {},
            cookies=pick("cookies"),
            robots_txt_content=pick("robotsTxtContent", "robots_txt_content", "robotsTxt"),
            tls_info=pick("tlsInfo", "tls_info"),
        )


def _normalize_headers(headers: Optional[Dict[str, HeaderValue]]) -> Dict[str, List[str]]:
    normalized: Dict[str, List[str]] = {}
    for name, value in (headers or {}).items():
        if value is None:
            continue
        values = value if isinstance(value, (list, tuple)) else [value]
        normalized.setdefault(str(name).lower(), []).extend(str(v) for v in values)
    return normalized


@dataclass(frozen=True)
class ScanContext:
    """Everything the analyzers probe, derived once per analysis from a DetectionInput."""
    url: str
    html: str
    headers: Dict[str, List[str]]  # lower-cased names, every value kept
    cookies: Dict[str, str]
    raw_cookies: str
    scripts: List[str]  # external script URLs
    links: List[str]  # <link> hrefs
    inline_scripts: List[str]
    meta: Dict[str, List[str]]
    text: str
    robots_txt: Optional[str] = None
    tls: Optional[TLSInfo] = None

    @classmethod
    def from_input(cls, detection_input: DetectionInput) -> "ScanContext":
        html = detection_input.html_content or ""
        raw_cookies = detection_input.cookies or ""
        return cls(
            url=detection_input.url or "",
            html=html,
            headers=_normalize_headers(detection_input.headers),
            cookies=html_utils.cookie_map(raw_cookies),
            raw_cookies=raw_cookies,
            scripts=html_utils.script_sources(html),
            links=html_utils.link_hrefs(html),
            inline_scripts=html_utils.inline_script_bodies(html),
            meta=html_utils.meta_tags(html),
            text=html_utils.plain_text(html),
            robots_txt=detection_input.robots_txt_content,
            tls=detection_input.tls_info,
        )
