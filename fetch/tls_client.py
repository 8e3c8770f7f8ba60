import ssl
import socket
import hashlib
import logging
from typing import Any, Dict, Optional, Tuple

# Default TLS connection timeout (in seconds)
DEFAULT_TLS_TIMEOUT = 5.0
TLS_PORT = 443

# ssl name attributes -> short distinguished name keys
NAME_FIELDS = {
    "commonName": "CN",
    "organizationName": "O",
    "organizationalUnitName": "OU",
    "countryName": "C",
}


def _flatten_name(name_field: Tuple[Tuple[Tuple[str, str], ...], ...]) -> Dict[str, str]:
    """Flatten the nested tuple structure of a certificate subject/issuer."""
    result = {}
    for rdn in name_field or ():
        for key, value in rdn:
            if key in NAME_FIELDS:
                result[NAME_FIELDS[key]] = value
    return result


def _fingerprint(der: Optional[bytes]) -> Optional[str]:
    if not der:
        return None
    digest = hashlib.sha256(der).hexdigest().upper()
    return ":".join(digest[i:i + 2] for i in range(0, len(digest), 2))


def get_tls_info(hostname: str, timeout: Optional[float] = None) -> Dict[str, Any]:
    """
    Gets TLS certificate information for a hostname with timeout.

    Args:
        hostname: The hostname to connect to on port 443
        timeout: Connection timeout in seconds (default: 5s)

    Returns:
        {"subject", "issuer", "validFrom", "validTo", "fingerprint"} on success,
        {"error": message} when the handshake or verification fails
    """
    logger = logging.getLogger(__name__)
    if not hostname:
        return {"error": "No hostname to check"}

    logger.debug(f"TLS certificate fetch for {hostname}:{TLS_PORT}")
    context = ssl.create_default_context()
    timeout_value = timeout or DEFAULT_TLS_TIMEOUT

    try:
        with socket.create_connection((hostname, TLS_PORT), timeout=timeout_value) as sock:
            with context.wrap_socket(sock, server_hostname=hostname) as ssock:
                cert = ssock.getpeercert()
                der = ssock.getpeercert(binary_form=True)
    except ssl.SSLCertVerificationError as e:
        logger.warning(f"TLS verification failed for {hostname}: {e.verify_message}")
        return {"error": f"Certificate verification failed: {e.verify_message}"}
    except (socket.gaierror, ConnectionRefusedError, ssl.SSLError, socket.timeout, OSError) as e:
        logger.warning(f"TLS error for {hostname}: {type(e).__name__}")
        return {"error": f"TLS connection failed: {type(e).__name__}: {e}"}

    info = {
        "subject": _flatten_name(cert.get("subject", ())),
        "issuer": _flatten_name(cert.get("issuer", ())),
        "validFrom": cert.get("notBefore"),
        "validTo": cert.get("notAfter"),
        "fingerprint": _fingerprint(der),
    }
    logger.debug(f"TLS certificate found for {hostname} (issuer: {info['issuer'].get('O', 'N/A')})")
    return info
