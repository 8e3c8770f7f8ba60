"""Static category table: integer id -> display label."""
from typing import Dict, Iterable, Optional, Union

CATEGORIES: Dict[int, str] = {
    1: "Self-Hosted CMS",
    2: "Hosted CMS",
    3: "Analytics",
    4: "JavaScript Libraries",
    5: "Payment Processors",
    6: "Security",
    7: "Miscellaneous",
    8: "Cookie Compliance",
    9: "UI Frameworks",
    10: "Web Servers",
    11: "Hosting",
    12: "Reverse Proxies",
    13: "Programming Languages",
    14: "Databases",
    15: "Marketing Automation",
    16: "Ecommerce",
    17: "CDN",
    18: "SSL/TLS Certificate Authorities",
}

_IDS_BY_LABEL = {label.lower(): cat_id for cat_id, label in CATEGORIES.items()}


def category_label(cat_id: int) -> str:
    return CATEGORIES.get(cat_id, f"Category {cat_id}")


def label_for(cat_ids: Iterable[int]) -> str:
    """Render a signature's category ids as a comma-joined label string."""
    return ", ".join(category_label(cat_id) for cat_id in cat_ids)


def resolve_category(value: Union[int, str]) -> Optional[int]:
    """Resolve a category id or (case-insensitive) label to an id, None if unknown."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value in CATEGORIES else None
    if isinstance(value, str):
        text = value.strip()
        if text.isdigit():
            return resolve_category(int(text))
        return _IDS_BY_LABEL.get(text.lower())
    return None
