import os
import re
import logging
import yaml
from typing import Any, Dict, List, Optional, Tuple
from core.categories import resolve_category
from core.pattern_matcher import DIRECTIVE_DELIMITER, PatternError, parse_pattern
from models.signature import (
    KEYED_SLOTS,
    LIST_SLOTS,
    CorpusDiagnostic,
    ImpliedTechnology,
    KeyedPattern,
    Signature,
    SignatureCorpus,
    TaggedPattern,
)

DEFAULT_RULES_DIR = os.path.dirname(os.path.abspath(__file__))

logger = logging.getLogger(__name__)


def slugify(name: str) -> str:
    return re.sub(r'[^a-z0-9]+', '-', name.lower()).strip('-')


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


class _SignatureBuilder:
    """Turns one YAML mapping into a Signature, collecting diagnostics as it goes."""

    def __init__(self, data: Dict[str, Any], source_file: str):
        self.data = data
        self.source_file = source_file
        self.name = str(data.get("name", "")).strip()
        self.diagnostics: List[CorpusDiagnostic] = []

    def _diagnostic(self, message: str, slot: Optional[str] = None, pattern: Optional[str] = None):
        diagnostic = CorpusDiagnostic(
            message=message,
            signature=self.name or None,
            slot=slot,
            pattern=pattern,
            source_file=self.source_file,
        )
        logger.warning(f"Corpus diagnostic: {diagnostic}")
        self.diagnostics.append(diagnostic)

    def _parse(self, pattern: Any, slot: str) -> Optional[TaggedPattern]:
        text = "" if pattern is None else str(pattern)
        try:
            return parse_pattern(text)
        except PatternError as e:
            self._diagnostic(str(e), slot=slot, pattern=text)
            return None

    def list_slot(self, slot: str) -> Tuple[TaggedPattern, ...]:
        parsed = (self._parse(p, slot) for p in _as_list(self.data.get(slot)))
        return tuple(p for p in parsed if p is not None)

    def keyed_slot(self, slot: str) -> Tuple[KeyedPattern, ...]:
        value = self.data.get(slot)
        if value is None:
            return ()
        if not isinstance(value, dict):
            self._diagnostic(f"'{slot}' must be a mapping of name to pattern", slot=slot)
            return ()
        patterns = []
        for key, pattern in value.items():
            parsed = self._parse(pattern, slot)
            if parsed is not None:
                patterns.append(KeyedPattern(key=str(key), pattern=parsed))
        return tuple(patterns)

    def implies(self) -> Tuple[ImpliedTechnology, ...]:
        implied = []
        for entry in _as_list(self.data.get("implies")):
            # Same directive syntax as patterns: "PHP\;confidence:50"
            name, *directives = str(entry).split(DIRECTIVE_DELIMITER)
            confidence = None
            for directive in directives:
                key, _, value = directive.partition(":")
                if key.strip().lower() != "confidence":
                    continue
                try:
                    confidence = min(100, max(0, int(value.strip())))
                except ValueError:
                    self._diagnostic("Invalid confidence in implies entry", slot="implies", pattern=str(entry))
            implied.append(ImpliedTechnology(name=name.strip(), confidence=confidence))
        return tuple(implied)

    def categories(self, key: str) -> Tuple[int, ...]:
        ids = []
        for value in _as_list(self.data.get(key)):
            cat_id = resolve_category(value)
            if cat_id is None:
                if isinstance(value, int) and not isinstance(value, bool):
                    # unknown numeric ids are kept, the validator reports them
                    ids.append(value)
                else:
                    self._diagnostic(f"Unknown category '{value}'", slot=key)
                continue
            ids.append(cat_id)
        return tuple(ids)

    def confidence(self) -> Optional[float]:
        value = self.data.get("confidence")
        if value is None:
            return None
        try:
            confidence = float(value)
        except (TypeError, ValueError):
            self._diagnostic(f"Invalid base confidence '{value}'", slot="confidence")
            return None
        return min(1.0, max(0.0, confidence))

    def build(self) -> Optional[Signature]:
        if not self.name or not self.data.get("cats"):
            self._diagnostic("Signature is missing 'name' or 'cats', skipped")
            return None

        slots = {slot: self.list_slot(slot) for slot in LIST_SLOTS}
        slots.update({slot: self.keyed_slot(slot) for slot in KEYED_SLOTS})
        version = self.data.get("version")

        return Signature(
            id=str(self.data.get("id") or slugify(self.name)),
            name=self.name,
            cats=self.categories("cats"),
            website=self.data.get("website"),
            icon=self.data.get("icon"),
            version=str(version) if version is not None else None,
            confidence=self.confidence(),
            implies=self.implies(),
            requires=tuple(str(r).strip() for r in _as_list(self.data.get("requires"))),
            requires_category=self.categories("requires_category"),
            excludes=tuple(str(e).strip() for e in _as_list(self.data.get("excludes"))),
            **slots,
        )


def load_signatures(data: List[Dict[str, Any]], source_file: str = "<memory>") -> Tuple[List[Signature], List[CorpusDiagnostic]]:
    """
    Build signatures from already parsed YAML data.

    Returns:
        (signatures, diagnostics); invalid patterns are dropped individually
    """
    signatures: List[Signature] = []
    diagnostics: List[CorpusDiagnostic] = []
    for entry in data or []:
        if not isinstance(entry, dict):
            diagnostics.append(CorpusDiagnostic(message=f"Expected a mapping, got {type(entry).__name__}", source_file=source_file))
            logger.warning(f"Skipping non-mapping entry in {source_file}")
            continue
        builder = _SignatureBuilder(entry, source_file)
        signature = builder.build()
        diagnostics.extend(builder.diagnostics)
        if signature is not None:
            signatures.append(signature)
    return signatures, diagnostics


def load_corpus(rules_dir: str = DEFAULT_RULES_DIR, version: int = 1) -> SignatureCorpus:
    """
    Loads signatures from all .yaml files in a directory into a corpus snapshot.
    """
    signatures: List[Signature] = []
    diagnostics: List[CorpusDiagnostic] = []
    for filename in sorted(os.listdir(rules_dir)):
        if filename.endswith(".yaml") or filename.endswith(".yml"):
            filepath = os.path.join(rules_dir, filename)
            with open(filepath, "r", encoding="utf-8") as f:
                rules_data = yaml.safe_load(f)
            if not rules_data:
                continue
            file_signatures, file_diagnostics = load_signatures(rules_data, filename)
            logger.debug(f"Loaded {len(file_signatures)} signatures from {filename}")
            signatures.extend(file_signatures)
            diagnostics.extend(file_diagnostics)

    logger.info(f"Loaded {len(signatures)} signatures from {rules_dir} ({len(diagnostics)} diagnostics)")
    return SignatureCorpus(signatures=tuple(signatures), version=version, diagnostics=tuple(diagnostics))


# Example usage (for testing)
if __name__ == "__main__":
    corpus = load_corpus()
    print(f"Loaded {len(corpus)} signatures.")
    for signature in corpus:
        print(f"  - {signature.name} ({', '.join(str(c) for c in signature.cats)}): {', '.join(signature.declared_slots())}")
    for diagnostic in corpus.diagnostics:
        print(f"  ! {diagnostic}")
