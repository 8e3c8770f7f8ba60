from typing import List
import logging
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature

logger = logging.getLogger(__name__)


@AnalyzerRegistry.register("assets", slots=("script_src", "link_href"))
class AssetsAnalyzer:
    """Analyze external asset URLs: <script src> and <link href> values."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        detections: List[Detection] = []

        # Each URL is probed on its own so a version is taken from the URL that matched
        if signature.script_src and context.scripts:
            detections.extend(match_patterns(signature, signature.script_src, context.scripts, "script_src"))

        if signature.link_href and context.links:
            detections.extend(match_patterns(signature, signature.link_href, context.links, "link_href"))

        if detections:
            logger.debug(f"AssetsAnalyzer: {len(detections)} hits for {signature.name}")
        return detections
