import os
import sys
import pytest

# Ensure project root is on sys.path for imports like `core.*`
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

# Configure pytest-asyncio
pytest_plugins = ('pytest_asyncio',)

from core.context import DetectionInput, ScanContext
from models.signature import SignatureCorpus
from rules.rules_loader import load_signatures


def build_corpus(entries, version=1):
    signatures, diagnostics = load_signatures(entries, "test.yaml")
    return SignatureCorpus(signatures=tuple(signatures), version=version, diagnostics=tuple(diagnostics))


def build_context(url="https://example.com", html="", **kwargs):
    return ScanContext.from_input(DetectionInput(url=url, html_content=html, **kwargs))


@pytest.fixture
def make_corpus():
    """Build a SignatureCorpus from YAML-shaped signature dicts."""
    return build_corpus


@pytest.fixture
def make_context():
    """Build a ScanContext from DetectionInput keyword arguments."""
    return build_context
