from typing import List
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature


@AnalyzerRegistry.register("url", slots=("url",))
class UrlAnalyzer:
    """Match the analyzed URL itself (hosted platforms often show in the hostname)."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        if not context.url:
            return []
        return match_patterns(signature, signature.url, [context.url], "url")
