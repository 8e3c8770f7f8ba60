"""Certificate-based detection: identifies certificate authorities from TLS issuer data."""
from typing import Any, List
import logging
from core.context import ScanContext
from core.pattern_matcher import match_patterns
from core.analyzer_registry import AnalyzerRegistry
from models.detection import Detection
from models.signature import Signature

logger = logging.getLogger(__name__)

# Order of distinguished name fields in the rendered issuer
ISSUER_FIELDS = ("CN", "O", "OU", "C")


def render_issuer(issuer: Any) -> str:
    """
    Render a certificate issuer as "CN=..., O=...".

    Accepts the {"CN": ..., "O": ...} mapping produced by the TLS client or an
    already rendered string.
    """
    if not issuer:
        return ""
    if isinstance(issuer, str):
        return issuer
    if isinstance(issuer, dict):
        keys = [k for k in ISSUER_FIELDS if issuer.get(k)]
        keys += [k for k in issuer if k not in ISSUER_FIELDS and issuer.get(k)]
        return ", ".join(f"{k}={issuer[k]}" for k in keys)
    return str(issuer)


@AnalyzerRegistry.register("certificate", slots=("cert_issuer",))
class CertificateAnalyzer:
    """Passive analyzer over the certificate issuer of the TLS connection."""

    def analyze(self, signature: Signature, context: ScanContext) -> List[Detection]:
        if not context.tls or context.tls.get("error"):
            return []

        issuer = render_issuer(context.tls.get("issuer"))
        if not issuer:
            return []

        logger.debug(f"Analyzing certificate issuer '{issuer}' for {signature.name}")
        return match_patterns(signature, signature.cert_issuer, [issuer], "cert_issuer")
