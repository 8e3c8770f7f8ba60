import dns.exception
import dns.resolver
import logging
from typing import List, Dict, Optional

# Default DNS timeout (in seconds)
DEFAULT_DNS_TIMEOUT = 5.0

DNS_ERRORS = (
    dns.resolver.NoAnswer,
    dns.resolver.NXDOMAIN,
    dns.resolver.NoNameservers,
    dns.exception.Timeout,
)


def get_dns_records(
    hostname: str,
    record_types: List[str],
    timeout: Optional[float] = None
) -> Dict[str, List[str]]:
    """
    Gets specified DNS records for a given hostname with timeout.

    Args:
        hostname: The hostname to query
        record_types: List of DNS record types to query (A, AAAA, CNAME, ...)
        timeout: DNS query timeout in seconds (default: 5s)

    Returns:
        Dictionary mapping record types to lists of record values
    """
    logger = logging.getLogger(__name__)
    logger.debug(f"DNS query for {hostname}: {record_types}")

    resolver = dns.resolver.Resolver()
    resolver.lifetime = timeout or DEFAULT_DNS_TIMEOUT

    records: Dict[str, List[str]] = {}
    for record_type in record_types:
        try:
            answers = resolver.resolve(hostname, record_type)
            records[record_type] = [r.to_text() for r in answers]
            logger.debug(f"DNS {record_type} {hostname}: {len(records[record_type])} records")
        except DNS_ERRORS as e:
            records[record_type] = []
            logger.debug(f"DNS {record_type} {hostname}: no records ({type(e).__name__})")

    return records


def resolve_ip_address(hostname: str, timeout: Optional[float] = None) -> Optional[str]:
    """First IPv4 address of the hostname, falling back to IPv6; None when unresolvable."""
    records = get_dns_records(hostname, ["A", "AAAA"], timeout=timeout)
    for record_type in ("A", "AAAA"):
        if records.get(record_type):
            return records[record_type][0]
    logging.getLogger(__name__).warning(f"Failed to resolve IP for {hostname}")
    return None
