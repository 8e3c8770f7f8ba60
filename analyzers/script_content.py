from typing import List
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature


@AnalyzerRegistry.register("script_content", slots=("scripts",))
class ScriptContentAnalyzer:
    """Analyze the bodies of inline <script> blocks."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        return match_patterns(signature, signature.scripts, context.inline_scripts, "scripts")
