from typing import List
import logging
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature

# Raw HTML beyond this many characters is not searched (1 MB)
MAX_HTML_SCAN_LENGTH = 1_000_000

logger = logging.getLogger(__name__)


@AnalyzerRegistry.register("html", slots=("html", "text"))
class HtmlAnalyzer:
    """Match the raw HTML document and its visible text."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        detections: List[Detection] = []

        if signature.html and context.html:
            html = context.html
            if len(html) > MAX_HTML_SCAN_LENGTH:
                logger.debug(f"Scanning first {MAX_HTML_SCAN_LENGTH} of {len(html)} HTML characters")
                html = html[:MAX_HTML_SCAN_LENGTH]
            detections.extend(match_patterns(signature, signature.html, [html], "html"))

        if signature.text and context.text:
            detections.extend(match_patterns(signature, signature.text, [context.text], "text"))

        return detections
