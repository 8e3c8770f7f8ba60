"""Signature evaluation: run every analyzer over every signature and fold the hits.

Each analyzer probes the pattern slots it registered for. The hits of all
analyzers for one technology are folded into a single DetectedTechnology:
the highest confidence wins, a candidate with a version beats an equally
confident one without, otherwise the first hit is kept.
"""
from typing import Dict, List, Optional
import logging

from core.analyzer_registry import AnalyzerRegistry
from core.categories import label_for
from core.context import ScanContext
from models.detection import DetectedTechnology, Detection
from models.signature import Signature, SignatureCorpus

logger = logging.getLogger(__name__)


def _fold(current: Optional[Detection], candidate: Detection) -> Detection:
    if current is None:
        return candidate
    if candidate.confidence > current.confidence:
        return candidate
    if candidate.confidence == current.confidence and candidate.version and not current.version:
        return candidate
    return current


def to_detected_technology(signature: Signature, detection: Detection) -> DetectedTechnology:
    """Build the output record for a signature from its winning detection."""
    return DetectedTechnology(
        id=signature.id,
        name=signature.name,
        confidence=min(1.0, max(0.0, detection.confidence)),
        category=label_for(signature.cats),
        category_ids=frozenset(signature.cats),
        detection_method=detection.evidence.describe(),
        version=detection.version or signature.version,
        matched_value=detection.evidence.value,
        website=signature.website,
        icon=signature.icon,
    )


class SignatureEvaluator:
    """Evaluates a corpus snapshot against one ScanContext."""

    def __init__(self, corpus: SignatureCorpus, analyzers: Dict[str, object]):
        self.corpus = corpus
        self.analyzers = analyzers

    def evaluate_signature(self, signature: Signature, context: ScanContext) -> Optional[Detection]:
        """Fold every analyzer hit for one signature into the best Detection (or None)."""
        best: Optional[Detection] = None
        for name, analyzer in self.analyzers.items():
            if not AnalyzerRegistry.applies_to(name, signature):
                continue
            try:
                hits: List[Detection] = analyzer.analyze(signature, context)
            except Exception as e:
                logger.error(f"Error in {name} analyzer for {signature.name}: {e}", exc_info=True)
                continue
            for hit in hits:
                logger.debug(f"{name}: {signature.name} {hit.confidence:.2f} via {hit.evidence.describe()}")
                best = _fold(best, hit)
        return best

    def evaluate(self, context: ScanContext) -> Dict[str, DetectedTechnology]:
        """
        Evaluate all signatures.

        Returns:
            Mapping of technology name to its DetectedTechnology, one per name
        """
        detected: Dict[str, DetectedTechnology] = {}
        for signature in self.corpus:
            best = self.evaluate_signature(signature, context)
            if best is None:
                continue
            detected[signature.name] = to_detected_technology(signature, best)

        logger.debug(f"Evaluated {len(self.corpus)} signatures, {len(detected)} matched")
        return detected
