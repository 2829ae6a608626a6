"""
DNS resolver adapter - Implements TxtResolver protocol with dnspython.

Every lookup is bounded by `lifetime` seconds in total. Any resolver
failure (no such domain, no TXT answer, no reachable nameserver, timeout)
surfaces as DnsLookupFailed so callers can tell it apart from a clean
lookup that simply lacks the token.
"""

import logging

import dns.exception
import dns.resolver

from src.domain.exceptions import DnsLookupFailed

logger = logging.getLogger(__name__)


class DnspythonTxtResolver:
    """
    Implements TxtResolver protocol via dns.resolver.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, timeout: float = 5.0, resolver: dns.resolver.Resolver | None = None) -> None:
        """
        Args:
            timeout: Total seconds allowed per lookup (applies to all retries)
            resolver: Preconfigured resolver, defaults to the system configuration
        """
        self._resolver = resolver or dns.resolver.Resolver()
        self._resolver.timeout = timeout
        self._resolver.lifetime = timeout

    def resolve_txt(self, domain: str) -> list[list[str]]:
        """
        Resolve TXT records for a domain.

        Returns:
            One list of decoded character-strings per TXT record
        """
        try:
            answers = self._resolver.resolve(domain, "TXT")
        except dns.resolver.NXDOMAIN:
            logger.warning("TXT lookup failed - no such domain %s", domain)
            raise DnsLookupFailed(domain, "domain does not exist") from None
        except dns.resolver.NoAnswer:
            logger.warning("TXT lookup failed - no TXT record for %s", domain)
            raise DnsLookupFailed(domain, "no TXT records") from None
        except dns.resolver.NoNameservers:
            logger.warning("TXT lookup failed - no nameservers answered for %s", domain)
            raise DnsLookupFailed(domain, "no nameservers available") from None
        except dns.exception.Timeout:
            logger.warning("TXT lookup timed out for %s", domain)
            raise DnsLookupFailed(domain, "timed out") from None
        except dns.exception.DNSException as e:
            logger.warning("TXT lookup error for %s: %s", domain, e)
            raise DnsLookupFailed(domain, str(e) or type(e).__name__) from None

        return [
            [s.decode("utf-8", errors="replace") for s in rdata.strings]
            for rdata in answers
        ]
