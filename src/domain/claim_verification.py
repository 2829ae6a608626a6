"""
Claim verification domain service - Self-service proof checks.

Dispatches on the claim variant:

- DnsClaim:      TXT lookup must contain the stored token
- EmailClaim:    code must match and be younger than the OTP window
- DocumentClaim: no self-service step; a moderator judges the upload

Verification only ever moves verification_status forward. It never touches
the moderation status: a verified claim still needs a moderator's approval.
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import timedelta

from .claim_request import normalize_domain
from .claims import Claim, DnsClaim, EmailClaim, VerificationStatus
from .clock import Clock, utc_now
from .exceptions import MethodNotVerifiable, NoPendingClaim, ProofFailure, TransientFailure
from .ports import ClaimRepository, TxtResolver
from .verifiers import OTP_TTL, DnsVerifier, EmailOtpVerifier

logger = logging.getLogger(__name__)


@dataclass
class ClaimVerificationService:
    """Domain service for the claimant's proof submission."""

    repository: ClaimRepository
    resolver: TxtResolver
    otp_ttl: timedelta = OTP_TTL
    clock: Clock = utc_now
    dns_verifier: DnsVerifier = field(init=False)
    otp_verifier: EmailOtpVerifier = field(init=False)

    def __post_init__(self) -> None:
        self.dns_verifier = DnsVerifier(self.resolver)
        self.otp_verifier = EmailOtpVerifier(ttl=self.otp_ttl)

    def verify(
        self, business_id: str, claimant_id: str, submitted_proof: str | None = None
    ) -> Claim:
        """
        Check the claimant's proof for their pending claim.

        Args:
            business_id: Business being claimed
            claimant_id: Authenticated claimant
            submitted_proof: OTP code for email claims; optional domain override
                for DNS claims (defaults to the domain given at creation)

        Returns:
            The claim with verification_status VERIFIED

        Raises:
            NoPendingClaim, MethodNotVerifiable,
            TokenNotFound, DnsLookupFailed, CodeExpired, InvalidCode
        """
        claim = self.repository.find_pending_claim(business_id, claimant_id)
        if claim is None:
            raise NoPendingClaim()
        if not isinstance(claim, (DnsClaim, EmailClaim)):
            raise MethodNotVerifiable()
        if claim.is_verified:
            return claim

        try:
            if isinstance(claim, DnsClaim):
                verified = self._verify_dns(claim, submitted_proof)
            else:
                verified = self._verify_email(claim, submitted_proof)
        except (ProofFailure, TransientFailure) as e:
            logger.info("Verification of claim %s failed: %s", claim.id, e.code)
            raise

        if not self.repository.update_verification(verified):
            # Decided by a moderator while the proof was being checked
            raise NoPendingClaim()

        logger.info("Claim %s verified via %s", claim.id, claim.method.value)
        return verified

    def current_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        """Latest claim of this claimant on the business, for the claim-status view."""
        return self.repository.find_latest_claim(business_id, claimant_id)

    def _verify_dns(self, claim: DnsClaim, submitted_domain: str | None) -> DnsClaim:
        domain = normalize_domain(submitted_domain) if submitted_domain else claim.domain
        self.dns_verifier.check(domain, claim.verification_token)
        return replace(
            claim, domain=domain, verification_status=VerificationStatus.VERIFIED
        )

    def _verify_email(self, claim: EmailClaim, submitted_code: str | None) -> EmailClaim:
        self.otp_verifier.check(claim, submitted_code or "", self.clock())
        # The consumed code must not stay retrievable; only the address is kept
        return replace(
            claim, otp_code=None, verification_status=VerificationStatus.VERIFIED
        )
