"""
Verification secret generation.

Codes come from the secrets module so they cannot be predicted from
wall-clock time or claimant identity.
"""

import secrets
from dataclasses import dataclass

DNS_TOKEN_PREFIX = "verify="


@dataclass(frozen=True)
class VerificationCodeGenerator:
    """Produces one-time email codes and DNS TXT tokens."""

    dns_token_prefix: str = DNS_TOKEN_PREFIX

    def generate_otp(self) -> str:
        """
        Generate a 6-digit numeric code, uniform over [100000, 999999].

        Returns a string so callers compare it as text.
        """
        return str(100000 + secrets.randbelow(900000))

    def generate_dns_token(self) -> str:
        """Generate a prefixed TXT token carrying 128 bits of entropy."""
        return f"{self.dns_token_prefix}{secrets.token_hex(16)}"
