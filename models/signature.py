from dataclasses import dataclass, field, replace
from enum import Enum
from functools import cached_property
from typing import Any, Dict, Iterator, Optional, Tuple

# Slots matched against a list of plain pattern strings
LIST_SLOTS = ("url", "html", "text", "scripts", "script_src", "link_href", "robots", "cert_issuer")
# Slots matched against a mapping of key -> pattern string
KEYED_SLOTS = ("headers", "cookies", "meta", "js")
PATTERN_SLOTS = LIST_SLOTS + KEYED_SLOTS

DEFAULT_BASE_CONFIDENCE = 1.0


class VersionTemplateKind(Enum):
    SUBSTITUTION = "substitution"  # e.g. "\1" or "v\1.\2"
    TERNARY = "ternary"  # e.g. "\1?next:legacy"


@dataclass(frozen=True)
class VersionTemplate:
    """A parsed `version:` directive."""
    kind: VersionTemplateKind
    raw: str
    group: Optional[int] = None  # ternary only
    true_value: str = ""
    false_value: Optional[str] = None


@dataclass(frozen=True)
class TaggedPattern:
    """A compiled pattern together with its inline directives."""
    source: str  # the pattern string as written in the corpus
    regex: Any  # compiled `regex` pattern, case-insensitive
    confidence: Optional[int] = None  # 0-100, overrides the signature's base confidence
    version: Optional[VersionTemplate] = None

    @property
    def expression(self) -> str:
        return self.regex.pattern


@dataclass(frozen=True)
class KeyedPattern:
    """A pattern applied to one named artifact (header, cookie, meta tag, JS property)."""
    key: str
    pattern: TaggedPattern


@dataclass(frozen=True)
class ImpliedTechnology:
    name: str
    confidence: Optional[int] = None  # 0-100 override of the implication dampening


@dataclass(frozen=True)
class Signature:
    """Declarative description of how to detect one technology."""
    id: str
    name: str
    cats: Tuple[int, ...] = ()
    website: Optional[str] = None
    icon: Optional[str] = None
    version: Optional[str] = None  # static version, used when no pattern extracts one
    confidence: Optional[float] = None  # base confidence as a 0-1 fraction

    url: Tuple[TaggedPattern, ...] = ()
    html: Tuple[TaggedPattern, ...] = ()
    text: Tuple[TaggedPattern, ...] = ()
    scripts: Tuple[TaggedPattern, ...] = ()
    script_src: Tuple[TaggedPattern, ...] = ()
    link_href: Tuple[TaggedPattern, ...] = ()
    robots: Tuple[TaggedPattern, ...] = ()
    cert_issuer: Tuple[TaggedPattern, ...] = ()

    headers: Tuple[KeyedPattern, ...] = ()
    cookies: Tuple[KeyedPattern, ...] = ()
    meta: Tuple[KeyedPattern, ...] = ()
    js: Tuple[KeyedPattern, ...] = ()

    implies: Tuple[ImpliedTechnology, ...] = ()
    requires: Tuple[str, ...] = ()
    requires_category: Tuple[int, ...] = ()
    excludes: Tuple[str, ...] = ()

    @property
    def base_confidence(self) -> float:
        return DEFAULT_BASE_CONFIDENCE if self.confidence is None else self.confidence

    def has_slot(self, slot: str) -> bool:
        return bool(getattr(self, slot, ()))

    def declared_slots(self) -> Tuple[str, ...]:
        return tuple(slot for slot in PATTERN_SLOTS if self.has_slot(slot))


@dataclass(frozen=True)
class CorpusDiagnostic:
    """A load-time or validation-time problem found in the signature corpus."""
    message: str
    signature: Optional[str] = None
    slot: Optional[str] = None
    pattern: Optional[str] = None
    source_file: Optional[str] = None

    def __str__(self) -> str:
        location = " / ".join(p for p in (self.source_file, self.signature, self.slot) if p)
        suffix = f" (pattern: {self.pattern})" if self.pattern is not None else ""
        return f"[{location}] {self.message}{suffix}" if location else f"{self.message}{suffix}"


@dataclass(frozen=True)
class SignatureCorpus:
    """Immutable, versioned snapshot of the signature corpus.

    Mutation never happens in place: `with_signature` and `without_signature`
    return a new snapshot with an incremented version, so an evaluation that
    holds a snapshot is never affected by administrative edits.
    """
    signatures: Tuple[Signature, ...] = ()
    version: int = 1
    diagnostics: Tuple[CorpusDiagnostic, ...] = field(default=(), compare=False)

    @cached_property
    def _by_name(self) -> Dict[str, Signature]:
        return {sig.name: sig for sig in self.signatures}

    def get(self, name: str) -> Optional[Signature]:
        return self._by_name.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def __iter__(self) -> Iterator[Signature]:
        return iter(self.signatures)

    def __len__(self) -> int:
        return len(self.signatures)

    def names(self) -> Tuple[str, ...]:
        return tuple(sig.name for sig in self.signatures)

    def with_signature(self, signature: Signature) -> "SignatureCorpus":
        """Return a new snapshot containing `signature`, replacing any same-named entry."""
        kept = tuple(sig for sig in self.signatures if sig.name != signature.name)
        return replace(self, signatures=kept + (signature,), version=self.version + 1)

    def without_signature(self, name: str) -> "SignatureCorpus":
        """Return a new snapshot without the named signature (same snapshot if absent)."""
        if name not in self:
            return self
        kept = tuple(sig for sig in self.signatures if sig.name != name)
        return replace(self, signatures=kept, version=self.version + 1)
