"""
Process-wide holder of the current signature corpus snapshot.
"""
import logging
import threading
from typing import Callable, Optional

from models.signature import Signature, SignatureCorpus

logger = logging.getLogger(__name__)


class CorpusStore:
    """
    Single-writer store for SignatureCorpus snapshots.

    Readers take a snapshot and keep using it for the whole evaluation;
    administrative edits swap in a new snapshot under the lock and never
    touch one already handed out.
    """

    def __init__(self, corpus: Optional[SignatureCorpus] = None, loader: Optional[Callable[[], SignatureCorpus]] = None):
        """
        Initialize the store.

        Args:
            corpus: Initial snapshot
            loader: Called on first access when no corpus was given
        """
        self._corpus = corpus
        self._loader = loader
        self._lock = threading.Lock()

    def snapshot(self) -> SignatureCorpus:
        """Get the current corpus snapshot, loading it on first use."""
        with self._lock:
            if self._corpus is None:
                if self._loader is None:
                    from rules.rules_loader import load_corpus
                    self._corpus = load_corpus()
                else:
                    self._corpus = self._loader()
                logger.info(f"Loaded signature corpus v{self._corpus.version} ({len(self._corpus)} signatures)")
            return self._corpus

    def replace(self, corpus: SignatureCorpus) -> SignatureCorpus:
        """Install a whole new corpus (e.g. after reloading the rules directory)."""
        with self._lock:
            self._corpus = corpus
            logger.info(f"Installed signature corpus v{corpus.version} ({len(corpus)} signatures)")
            return corpus

    def add_signature(self, signature: Signature) -> SignatureCorpus:
        """Add or replace a signature by name; returns the new snapshot."""
        self.snapshot()
        with self._lock:
            # another writer may have swapped the snapshot in between
            base = self._corpus
            self._corpus = base.with_signature(signature)
            logger.info(f"Added signature {signature.name} (corpus v{self._corpus.version})")
            return self._corpus

    def remove_signature(self, name: str) -> SignatureCorpus:
        """Remove a signature by name; returns the (possibly unchanged) snapshot."""
        self.snapshot()
        with self._lock:
            base = self._corpus
            self._corpus = base.without_signature(name)
            if self._corpus is base:
                logger.debug(f"Signature {name} not in corpus, nothing removed")
            else:
                logger.info(f"Removed signature {name} (corpus v{self._corpus.version})")
            return self._corpus


# Global store instance
_global_store = CorpusStore()


def get_corpus_store() -> CorpusStore:
    """Get the global corpus store instance."""
    return _global_store
