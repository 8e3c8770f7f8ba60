"""Tagged pattern parsing and evaluation.

A tagged pattern is a case-insensitive regular expression optionally followed
by directives separated by `\\;`, for example::

    jquery-([0-9.]+)\\.js\\;version:\\1\\;confidence:80

Patterns are parsed once when the corpus is loaded; evaluation only runs the
compiled expression and applies the directives.
"""
import logging
from functools import lru_cache
from typing import Iterable, List, Optional, Union

import regex

from core.version_utils import apply_version_template, parse_version_template
from models.detection import Detection, Evidence, PatternMatch
from models.signature import Signature, TaggedPattern

DIRECTIVE_DELIMITER = "\\;"
MATCHED_VALUE_MAX_LENGTH = 200
# Hard timeout per search to contain catastrophic backtracking (seconds)
REGEX_TIMEOUT_SECONDS = 1.0

logger = logging.getLogger(__name__)


class PatternError(ValueError):
    """Raised when a pattern string cannot be compiled."""


def truncate_value(value: Optional[str], max_length: int = MATCHED_VALUE_MAX_LENGTH) -> Optional[str]:
    """Truncate a string to max_length characters, ellipsis included."""
    if not value or len(value) <= max_length:
        return value
    if max_length <= 3:
        return value[:max_length]
    return value[:max_length - 3] + "..."


def compile_expression(expression: str):
    try:
        return regex.compile(expression, regex.IGNORECASE)
    except (regex.error, TypeError, ValueError) as e:
        raise PatternError(f"Invalid regular expression '{expression}': {e}") from e


def _parse_confidence(value: str, pattern_string: str) -> Optional[int]:
    try:
        confidence = int(value.strip())
    except ValueError:
        logger.warning(f"Ignoring non-numeric confidence directive '{value}' in pattern {pattern_string!r}")
        return None
    if not 0 <= confidence <= 100:
        logger.warning(f"Clamping confidence directive {confidence} to 0-100 in pattern {pattern_string!r}")
        confidence = min(100, max(0, confidence))
    return confidence


@lru_cache(maxsize=4096)
def parse_pattern(pattern_string: str) -> TaggedPattern:
    """
    Parse a tagged pattern string.

    Args:
        pattern_string: Regex optionally followed by `\\;confidence:<int>` and/or
            `\\;version:<template>` directives

    Returns:
        TaggedPattern with the compiled expression and parsed directives

    Raises:
        PatternError: if the expression does not compile
    """
    pattern_string = pattern_string or ""
    expression, *directives = pattern_string.split(DIRECTIVE_DELIMITER)

    confidence: Optional[int] = None
    version = None
    for directive in directives:
        key, _, value = directive.partition(":")
        key = key.strip().lower()
        if key == "confidence":
            confidence = _parse_confidence(value, pattern_string)
        elif key == "version":
            version = parse_version_template(value)
        # anything else is an unknown directive and ignored

    return TaggedPattern(
        source=pattern_string,
        regex=compile_expression(expression),
        confidence=confidence,
        version=version,
    )


def search(compiled, text: str):
    """Run a search with the timeout guard; a timed out search counts as no match."""
    try:
        return compiled.search(text, timeout=REGEX_TIMEOUT_SECONDS)
    except TimeoutError:
        logger.warning(f"Pattern timeout after {REGEX_TIMEOUT_SECONDS}s for /{compiled.pattern[:50]}/")
        return None


def evaluate(
    candidate: Optional[str],
    pattern: Union[TaggedPattern, str],
    base_confidence: float,
) -> Optional[PatternMatch]:
    """
    Evaluate one tagged pattern against one candidate string.

    Args:
        candidate: Text to search (header value, script URL, HTML, ...)
        pattern: Parsed tagged pattern (a raw string is parsed on the fly)
        base_confidence: Signature-level confidence (0-1) used when the pattern
            has no confidence directive

    Returns:
        PatternMatch with effective confidence, derived version and a
        truncated excerpt of the full match, or None if it does not match
    """
    if not isinstance(candidate, str):
        return None
    if isinstance(pattern, str):
        pattern = parse_pattern(pattern)

    match = search(pattern.regex, candidate)
    if match is None:
        return None

    if pattern.confidence is not None:
        confidence = pattern.confidence / 100
    else:
        confidence = base_confidence

    return PatternMatch(
        confidence=min(1.0, max(0.0, confidence)),
        version=apply_version_template(match, pattern.version),
        matched_value=truncate_value(match.group(0)),
    )


def match_patterns(
    signature: Signature,
    patterns: Iterable[TaggedPattern],
    candidates: Iterable[Optional[str]],
    evidence_type: str,
    evidence_name: Optional[str] = None,
) -> List[Detection]:
    """
    Evaluate every pattern against every candidate string.

    Each hit becomes one Detection carrying the signature name and the
    evidence of where it matched; the evaluator later folds them.
    """
    candidates = [c for c in candidates if isinstance(c, str)]
    detections: List[Detection] = []
    for pattern in patterns:
        for candidate in candidates:
            match = evaluate(candidate, pattern, signature.base_confidence)
            if match is None:
                continue
            detections.append(
                Detection(
                    name=signature.name,
                    confidence=match.confidence,
                    evidence=Evidence(
                        type=evidence_type,
                        name=evidence_name,
                        pattern=pattern.expression,
                        value=match.matched_value,
                    ),
                    version=match.version,
                )
            )
    return detections
