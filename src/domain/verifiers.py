"""
Proof verifiers for the self-service claim methods.

DnsVerifier checks a TXT token through the resolver port.
EmailOtpVerifier checks a one-time code against its send time.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from .claims import EmailClaim
from .exceptions import CodeExpired, InvalidCode, TokenNotFound
from .ports import TxtResolver

logger = logging.getLogger(__name__)

OTP_TTL = timedelta(minutes=15)


def flatten_txt_records(records: list[list[str]]) -> list[str]:
    """
    Join the character-strings of each TXT record.

    A single TXT record longer than 255 bytes is split into several strings
    on the wire; the token is only recognisable after joining them.
    Each raw string is kept as well so tokens published as one string of a
    multi-string record still match.
    """
    values: list[str] = []
    for strings in records:
        values.append("".join(strings))
        values.extend(strings)
    return values


@dataclass
class DnsVerifier:
    resolver: TxtResolver

    def check(self, domain: str, token: str) -> None:
        """
        Require an exact, case-sensitive TXT match for token on domain.

        Raises:
            TokenNotFound: Lookup succeeded but no record holds the token
            DnsLookupFailed: Resolver error (propagated from the port)
        """
        values = flatten_txt_records(self.resolver.resolve_txt(domain))
        logger.debug("Found %d TXT value(s) for %s", len(values), domain)
        if token not in values:
            raise TokenNotFound()


@dataclass
class EmailOtpVerifier:
    ttl: timedelta = OTP_TTL

    def is_expired(self, claim: EmailClaim, now: datetime) -> bool:
        return now - claim.last_sent_at > self.ttl

    def check(self, claim: EmailClaim, submitted_code: str, now: datetime) -> None:
        """
        Validate a submitted code.

        Expiration is checked before equality: a correct code outside the
        window is still rejected.

        Raises:
            CodeExpired: More than ttl has passed since last_sent_at
            InvalidCode: Code does not match (or was already consumed)
        """
        if self.is_expired(claim, now):
            raise CodeExpired()

        stored = claim.otp_code or ""
        submitted = (submitted_code or "").strip()
        # Compare first so a consumed code costs the same as a wrong one
        matches = secrets.compare_digest(stored.encode(), submitted.encode())
        if not stored or not matches:
            raise InvalidCode()
