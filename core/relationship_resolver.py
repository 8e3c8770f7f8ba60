"""Relationship resolution over evaluated technologies.

Pass A closes the set over `implies`; pass B prunes technologies whose
`requires`, `requires_category` or `excludes` constraints do not hold.
"""
from dataclasses import replace
from typing import Dict, Optional
import logging

from core.categories import label_for
from models.detection import DetectedTechnology
from models.signature import ImpliedTechnology, SignatureCorpus

# Implied technologies are less certain than their source
IMPLICATION_DAMPENING = 0.8
# Pass A is capped at len(corpus) * IMPLICATION_PASS_FACTOR iterations
IMPLICATION_PASS_FACTOR = 2

logger = logging.getLogger(__name__)


def implied_confidence(source_confidence: float, implied: ImpliedTechnology) -> float:
    if implied.confidence is not None:
        confidence = implied.confidence / 100
    else:
        confidence = source_confidence * IMPLICATION_DAMPENING
    return min(1.0, max(0.0, confidence))


class RelationshipResolver:
    """Applies the corpus relations to a name -> DetectedTechnology mapping."""

    def __init__(self, corpus: SignatureCorpus):
        self.corpus = corpus

    def _implied_technology(self, name: str, confidence: float, source: str) -> Optional[DetectedTechnology]:
        signature = self.corpus.get(name)
        if signature is None:
            return None
        return DetectedTechnology(
            id=signature.id,
            name=signature.name,
            confidence=confidence,
            category=label_for(signature.cats),
            category_ids=frozenset(signature.cats),
            detection_method=f"implied by {source}",
            version=signature.version,
            website=signature.website,
            icon=signature.icon,
        )

    def apply_implications(self, detected: Dict[str, DetectedTechnology]) -> Dict[str, DetectedTechnology]:
        """
        Pass A: add or strengthen every implied technology until nothing changes.

        Returns a new mapping; the input is left untouched.
        """
        result = dict(detected)
        max_passes = max(1, len(self.corpus) * IMPLICATION_PASS_FACTOR)

        for _ in range(max_passes):
            changed = False
            for source_name in sorted(result):
                signature = self.corpus.get(source_name)
                if signature is None:
                    continue
                source = result[source_name]
                for implied in signature.implies:
                    confidence = implied_confidence(source.confidence, implied)
                    current = result.get(implied.name)
                    if current is None:
                        tech = self._implied_technology(implied.name, confidence, source_name)
                        if tech is None:
                            logger.debug(f"{source_name} implies unknown technology '{implied.name}', skipping")
                            continue
                        logger.info(f"Adding {implied.name} ({confidence:.2f}) implied by {source_name}")
                        result[implied.name] = tech
                        changed = True
                    elif current.confidence < confidence:
                        logger.info(
                            f"Raising {implied.name} {current.confidence:.2f} -> {confidence:.2f} "
                            f"implied by {source_name}"
                        )
                        result[implied.name] = replace(
                            current,
                            confidence=confidence,
                            detection_method=f"{current.detection_method}, implied by {source_name}",
                        )
                        changed = True
            if not changed:
                return result

        logger.warning(f"Implication resolution stopped after {max_passes} passes without converging")
        return result

    def _violation(self, name: str, present: Dict[str, DetectedTechnology]) -> Optional[str]:
        signature = self.corpus.get(name)
        if signature is None:
            return None

        missing = [req for req in signature.requires if req not in present]
        if missing:
            return f"requires {', '.join(missing)}"

        for category_id in signature.requires_category:
            if not any(category_id in tech.category_ids for other, tech in present.items() if other != name):
                return f"requires category {category_id}"

        excluded = [ex for ex in signature.excludes if ex in present and ex != name]
        if excluded:
            return f"excludes {', '.join(excluded)}"
        return None

    def apply_constraints(self, detected: Dict[str, DetectedTechnology]) -> Dict[str, DetectedTechnology]:
        """
        Pass B: drop technologies whose constraints fail against the live set.

        Technologies are checked in name order and removed immediately, so a
        removal can satisfy or break the constraints of names checked later.
        """
        result = dict(detected)
        max_passes = len(result) + 1

        for _ in range(max_passes):
            removed = False
            for name in sorted(result):
                if name not in result:
                    continue
                reason = self._violation(name, result)
                if reason:
                    logger.info(f"Removing {name}: {reason}")
                    del result[name]
                    removed = True
            if not removed:
                break
        return result

    def resolve(self, detected: Dict[str, DetectedTechnology]) -> Dict[str, DetectedTechnology]:
        return self.apply_constraints(self.apply_implications(detected))
