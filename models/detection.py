from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class PatternMatch:
    """Result of evaluating one tagged pattern against one candidate string."""
    confidence: float  # 0.0 - 1.0
    version: Optional[str] = None
    matched_value: Optional[str] = None  # truncated full match


@dataclass(frozen=True)
class Evidence:
    """Represents a piece of evidence for a technology detection."""
    type: str  # slot name, e.g. 'headers', 'meta', 'script_src'
    name: Optional[str] = None  # header/cookie/meta name or JS property path
    pattern: Optional[str] = None
    value: Optional[str] = None

    def describe(self) -> str:
        """Human readable provenance used as the detection method."""
        target = f"{self.type}[{self.name}]" if self.name else self.type
        if self.pattern:
            return f"{target} matched /{self.pattern[:50]}/"
        return f"{target} present"


@dataclass(frozen=True)
class Detection:
    """One candidate hit for a technology, produced by a single analyzer."""
    name: str
    confidence: float
    evidence: Evidence
    version: Optional[str] = None


@dataclass(frozen=True)
class DetectedTechnology:
    """A resolved technology in the final result, at most one per name."""
    id: str
    name: str
    confidence: float
    category: str
    detection_method: str
    category_ids: FrozenSet[int] = frozenset()
    version: Optional[str] = None
    matched_value: Optional[str] = None
    website: Optional[str] = None
    icon: Optional[str] = None

    def to_dict(self, value_max_length: Optional[int] = None) -> Dict[str, Any]:
        matched_value = self.matched_value
        if value_max_length and matched_value:
            matched_value = matched_value[:value_max_length]
        return {
            "id": self.id,
            "name": self.name,
            "version": self.version,
            "confidence": self.confidence,
            "category": self.category,
            "categoryIds": sorted(self.category_ids),
            "detectionMethod": self.detection_method,
            "matchedValue": matched_value,
            "website": self.website,
            "icon": self.icon,
        }


@dataclass
class WebsiteAnalysisResult:
    detected_technologies: List[DetectedTechnology]
    analysis_summary: str
    error: Optional[str] = None
    final_url: Optional[str] = None
    status: Optional[int] = None
    ip_address: Optional[str] = None
    tls_info: Optional[Dict[str, Any]] = None

    def to_dict(self, value_max_length: Optional[int] = None) -> Dict[str, Any]:
        return {
            "analysisSummary": self.analysis_summary,
            "error": self.error,
            "finalUrl": self.final_url,
            "status": self.status,
            "ipAddress": self.ip_address,
            "tlsInfo": self.tls_info,
            "detectedTechnologies": [tech.to_dict(value_max_length) for tech in self.detected_technologies],
        }
