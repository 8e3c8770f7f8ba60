from typing import List
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature


@AnalyzerRegistry.register("robots", slots=("robots",))
class RobotsAnalyzer:
    """Match robots.txt content; CMSes tend to disallow their admin paths."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        if not context.robots_txt:
            return []
        return match_patterns(signature, signature.robots, [context.robots_txt], "robots")
