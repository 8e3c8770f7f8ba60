from functools import lru_cache
from typing import List, Optional, Tuple
import logging
import regex
from core.context import ScanContext
from core.pattern_matcher import PatternError, compile_expression, evaluate
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection, Evidence
from models.signature import KeyedPattern, Signature, TaggedPattern

logger = logging.getLogger(__name__)


def _property_expression(path: str) -> str:
    return r'(?<![\w$])' + r'\.'.join(regex.escape(part.strip()) for part in path.split("."))


@lru_cache(maxsize=1024)
def _property_patterns(path: str, value_expression: str) -> Tuple[Optional[object], Optional[object]]:
    """Compile (assignment, existence) patterns for a dotted property path."""
    prop = _property_expression(path)
    try:
        existence = compile_expression(prop + r'(?![\w$])')
    except PatternError as e:
        logger.warning(f"Cannot build JS property pattern for '{path}': {e}")
        return None, None

    if not value_expression:
        return None, existence
    try:
        assignment = compile_expression(prop + r'\s*[:=]\s*["\']?(?:' + value_expression + ')')
    except PatternError as e:
        logger.warning(f"Cannot build JS assignment pattern for '{path}': {e}")
        assignment = None
    return assignment, existence


@AnalyzerRegistry.register("js", slots=("js",))
class JsAnalyzer:
    """
    Detect JavaScript globals declared in inline scripts.

    The page is never executed. A property path such as `wp.i18n` matches an
    assignment `wp.i18n = "..."` or `wp.i18n: "..."` whose value satisfies the
    pattern; failing that, a plain reference to the path counts as presence at
    the signature's base confidence with no version. A rule without a value
    expression is a presence check and keeps its own directives.
    """

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        detections: List[Detection] = []
        if not context.inline_scripts:
            return detections

        for rule in signature.js:
            detection = self._match_property(signature, rule, context.inline_scripts)
            if detection:
                detections.append(detection)

        return detections

    def _match_property(self, signature: Signature, rule: KeyedPattern, bodies: List[str]) -> Optional[Detection]:
        assignment, existence = _property_patterns(rule.key, rule.pattern.expression)

        if assignment is not None:
            tagged = TaggedPattern(
                source=rule.pattern.source,
                regex=assignment,
                confidence=rule.pattern.confidence,
                version=rule.pattern.version,
            )
            for body in bodies:
                match = evaluate(body, tagged, signature.base_confidence)
                if match:
                    return Detection(
                        name=signature.name,
                        confidence=match.confidence,
                        evidence=Evidence(type="js", name=rule.key, pattern=rule.pattern.expression, value=match.matched_value),
                        version=match.version,
                    )

        if existence is None:
            return None
        if rule.pattern.expression:
            presence = TaggedPattern(source=rule.key, regex=existence)
        else:
            presence = TaggedPattern(
                source=rule.pattern.source,
                regex=existence,
                confidence=rule.pattern.confidence,
                version=rule.pattern.version,
            )
        for body in bodies:
            match = evaluate(body, presence, signature.base_confidence)
            if match:
                return Detection(
                    name=signature.name,
                    confidence=match.confidence,
                    evidence=Evidence(type="js", name=rule.key, value=match.matched_value),
                    version=match.version,
                )
        return None
