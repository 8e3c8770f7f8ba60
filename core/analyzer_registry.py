"""Dynamic analyzer registration system."""
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple, Type

from models.signature import PATTERN_SLOTS, Signature

logger = logging.getLogger(__name__)


class AnalyzerRegistry:
    """Registry mapping analyzer names to the pattern slots they probe."""

    _analyzers: Dict[str, Type] = {}
    _slots: Dict[str, Tuple[str, ...]] = {}
    _order: List[str] = []  # Preserve registration order

    @classmethod
    def register(cls, name: str, slots: Iterable[str]):
        """Decorator to register an analyzer class.

        Args:
            name: Unique identifier for the analyzer (e.g., "headers", "html")
            slots: Signature pattern slots the analyzer evaluates

        Example:
            @AnalyzerRegistry.register("headers", slots=("headers",))
            class HeadersAnalyzer:
                def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
                    ...
        """
        slots = tuple(slots)
        unknown = [slot for slot in slots if slot not in PATTERN_SLOTS]
        if unknown:
            raise ValueError(f"Unknown pattern slots for analyzer '{name}': {', '.join(unknown)}")

        def decorator(analyzer_class: Type):
            if name in cls._analyzers:
                logger.warning(f"Analyzer '{name}' already registered, overwriting")
            else:
                cls._order.append(name)

            cls._analyzers[name] = analyzer_class
            cls._slots[name] = slots
            logger.debug(f"Registered analyzer: {name} {slots} -> {analyzer_class.__name__}")
            return analyzer_class
        return decorator

    @classmethod
    def get_all_names(cls) -> List[str]:
        """Get names of all registered analyzers in registration order."""
        return cls._order.copy()

    @classmethod
    def get_slots(cls, name: str) -> Tuple[str, ...]:
        return cls._slots.get(name, ())

    @classmethod
    def instantiate_all(cls, exclude: Optional[Set[str]] = None) -> Dict[str, object]:
        """Instantiate registered analyzers.

        Args:
            exclude: Set of analyzer names to exclude from instantiation

        Returns:
            Dictionary mapping analyzer name to instantiated analyzer object

        Raises:
            ValueError: if an excluded name is not a registered analyzer
        """
        exclude = exclude or set()
        unknown = set(exclude) - set(cls._analyzers)
        if unknown:
            raise ValueError(f"Unknown analyzers: {', '.join(sorted(unknown))}")
        instances = {}

        for name in cls._order:
            if name in exclude:
                logger.info(f"Skipping excluded analyzer: {name}")
                continue
            instances[name] = cls._analyzers[name]()
            logger.debug(f"Instantiated analyzer: {name}")

        return instances

    @classmethod
    def applies_to(cls, name: str, signature: Signature) -> bool:
        """Whether the signature declares any slot the named analyzer probes."""
        return any(signature.has_slot(slot) for slot in cls.get_slots(name))

    @classmethod
    def clear(cls):
        """Clear all registered analyzers (useful for testing)."""
        cls._analyzers.clear()
        cls._slots.clear()
        cls._order.clear()


def filter_by_slots(signatures: Iterable[Signature], allowed_slots: Set[str]) -> List[Signature]:
    """Signatures declaring at least one of the allowed slots.

    Args:
        signatures: Signatures to filter
        allowed_slots: Slot names to keep (e.g., {"headers", "cookies"})
    """
    return [sig for sig in signatures if any(sig.has_slot(slot) for slot in allowed_slots)]
