from typing import List
from core.context import ScanContext
from core.pattern_matcher import evaluate
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection, Evidence
from models.signature import Signature


@AnalyzerRegistry.register("meta_tags", slots=("meta",))
class MetaTagsAnalyzer:
    """Analyze meta tags (name, property or http-equiv) for CMS/framework signatures."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        detections: List[Detection] = []

        for rule in signature.meta:
            meta_name = rule.key.lower()
            for content in context.meta.get(meta_name, []):
                match = evaluate(content, rule.pattern, signature.base_confidence)
                if not match:
                    continue
                detections.append(
                    Detection(
                        name=signature.name,
                        confidence=match.confidence,
                        evidence=Evidence(
                            type="meta",
                            name=meta_name,
                            pattern=rule.pattern.expression,
                            value=match.matched_value or content,
                        ),
                        version=match.version,
                    )
                )

        return detections
