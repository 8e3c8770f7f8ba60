from typing import List
import logging
from core.context import ScanContext
from core.pattern_matcher import evaluate
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection, Evidence
from models.signature import Signature


@AnalyzerRegistry.register("headers", slots=("headers",))
class HeadersAnalyzer:
    """Match response header values; a multi-valued header is probed value by value."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        logger = logging.getLogger(__name__)
        detections: List[Detection] = []

        for rule in signature.headers:
            header_name = rule.key.lower()
            for header_value in context.headers.get(header_name, []):
                match = evaluate(header_value, rule.pattern, signature.base_confidence)
                if not match:
                    continue
                logger.debug(f"HeadersAnalyzer matched {signature.name} on header {header_name}")
                detections.append(
                    Detection(
                        name=signature.name,
                        confidence=match.confidence,
                        evidence=Evidence(
                            type="headers",
                            name=header_name,
                            pattern=rule.pattern.expression,
                            value=match.matched_value or header_value,
                        ),
                        version=match.version,
                    )
                )

        return detections
