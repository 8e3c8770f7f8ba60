from typing import List, Optional
import logging
import regex
from core.context import ScanContext
from core.pattern_matcher import compile_expression, evaluate, PatternError
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection, Evidence
from models.signature import KeyedPattern, Signature, TaggedPattern

# Matches against the unparsed cookie text are less reliable
RAW_COOKIE_FACTOR = 0.8

logger = logging.getLogger(__name__)


def raw_cookie_pattern(rule: KeyedPattern) -> Optional[TaggedPattern]:
    """Build a `name=value` pattern for searching the raw cookie text.

    The value expression is wrapped in a non-capturing group so backreferences
    in the version template keep their numbering.
    """
    expression = rf'(?<![^\s;,]){regex.escape(rule.key)}=(?:{rule.pattern.expression})'
    try:
        compiled = compile_expression(expression)
    except PatternError as e:
        logger.debug(f"Cannot build raw cookie pattern for {rule.key}: {e}")
        return None
    return TaggedPattern(
        source=rule.pattern.source,
        regex=compiled,
        confidence=rule.pattern.confidence,
        version=rule.pattern.version,
    )


@AnalyzerRegistry.register("cookies", slots=("cookies",))
class CookiesAnalyzer:
    """Match parsed cookies by name and value, then the raw cookie text at reduced confidence."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        detections: List[Detection] = []
        cookies_by_name = {name.lower(): (name, value) for name, value in context.cookies.items()}

        for rule in signature.cookies:
            # Check the parsed cookie of that name
            cookie = cookies_by_name.get(rule.key.lower())
            if cookie:
                cookie_name, cookie_value = cookie
                match = evaluate(cookie_value, rule.pattern, signature.base_confidence)
                if match:
                    detections.append(
                        Detection(
                            name=signature.name,
                            confidence=match.confidence,
                            evidence=Evidence(
                                type="cookies",
                                name=cookie_name,
                                pattern=rule.pattern.expression or None,
                                value=match.matched_value or cookie_value,
                            ),
                            version=match.version,
                        )
                    )

            # Check the raw text to tolerate malformed or concatenated cookie strings
            if not context.raw_cookies:
                continue
            raw_pattern = raw_cookie_pattern(rule)
            if raw_pattern is None:
                continue
            match = evaluate(context.raw_cookies, raw_pattern, signature.base_confidence)
            if match:
                detections.append(
                    Detection(
                        name=signature.name,
                        confidence=match.confidence * RAW_COOKIE_FACTOR,
                        evidence=Evidence(
                            type="cookie_header",
                            name=rule.key,
                            pattern=rule.pattern.expression or None,
                            value=match.matched_value,
                        ),
                        version=match.version,
                    )
                )

        return detections
