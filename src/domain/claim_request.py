"""
Claim request domain service - Claim creation and code resend.

Preconditions for a new claim are checked in order, first failure wins:

1. Business exists and has no owner         -> BusinessNotFound / AlreadyOwned
2. No pending claim by this claimant        -> DuplicatePendingClaim
3. Method payload is well-formed            -> InvalidInput

The read-side checks give early, precise errors. The repository repeats the
ownership and duplicate guards atomically when the claim is inserted, so a
concurrent request that slips past steps 1-2 still loses cleanly.

Email claims fail closed: if the code cannot be delivered nothing is stored,
since the claimant could never verify such a claim.
"""

import logging
import math
import uuid
from dataclasses import dataclass, field, replace
from datetime import timedelta

from email_validator import EmailNotValidError, validate_email

from .claims import (
    Claim,
    DnsClaim,
    DnsProof,
    DocumentClaim,
    DocumentProof,
    EmailClaim,
    EmailProof,
    MethodData,
)
from .clock import Clock, utc_now
from .codes import VerificationCodeGenerator
from .exceptions import (
    AlreadyOwned,
    AlreadyVerified,
    BusinessNotFound,
    DuplicatePendingClaim,
    InvalidInput,
    MethodNotVerifiable,
    NoPendingClaim,
    NotificationDeliveryFailed,
    ResendTooSoon,
)
from .ports import (
    ClaimRepository,
    EmailSender,
    InsertResult,
    NotificationSink,
    NotificationType,
)

logger = logging.getLogger(__name__)

RESEND_COOLDOWN = timedelta(minutes=3)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase, then a syntax check.
    """
    normalized = email.strip().lower()
    if not normalized:
        raise InvalidInput("Email is required")
    try:
        validate_email(normalized, check_deliverability=False)
    except EmailNotValidError as e:
        raise InvalidInput(f"Invalid email address: {e}") from None
    return normalized


def normalize_domain(domain: str) -> str:
    """Lowercase a domain name and drop the root dot."""
    normalized = domain.strip().lower().rstrip(".")
    if not normalized or " " in normalized or "." not in normalized:
        raise InvalidInput("A valid domain name is required")
    return normalized


def normalize_proof_url(proof_url: str) -> str:
    normalized = proof_url.strip()
    if not normalized:
        raise InvalidInput("Proof URL is required")
    return normalized


@dataclass
class ClaimRequestService:
    """
    Domain service for starting a claim and re-sending email codes.

    Picks the verification strategy from the payload type, generates the
    secret, persists via the repository and alerts moderators.
    """

    repository: ClaimRepository
    email_sender: EmailSender
    notifier: NotificationSink
    codes: VerificationCodeGenerator = field(default_factory=VerificationCodeGenerator)
    admin_ids: tuple[str, ...] = ()
    resend_cooldown: timedelta = RESEND_COOLDOWN
    clock: Clock = utc_now

    def initiate_claim(
        self, business_id: str, claimant_id: str, method_data: MethodData
    ) -> Claim:
        """
        Create a pending claim for a business.

        Args:
            business_id: Business being claimed
            claimant_id: Authenticated user making the claim
            method_data: DocumentProof, DnsProof or EmailProof

        Returns:
            The stored claim. DNS claims carry the token to publish.

        Raises:
            BusinessNotFound, AlreadyOwned, DuplicatePendingClaim, InvalidInput,
            NotificationDeliveryFailed
        """
        business = self.repository.get_business(business_id)
        if business is None:
            raise BusinessNotFound()
        if business.is_owned:
            raise AlreadyOwned()
        if self.repository.find_pending_claim(business_id, claimant_id) is not None:
            raise DuplicatePendingClaim()

        claim = self._build_claim(business_id, claimant_id, method_data)

        if isinstance(claim, EmailClaim):
            self._send_code(claim.email_address, claim.otp_code)

        result = self.repository.insert_claim(claim)
        if result == InsertResult.BUSINESS_NOT_FOUND:
            raise BusinessNotFound()
        if result == InsertResult.ALREADY_OWNED:
            raise AlreadyOwned()
        if result == InsertResult.DUPLICATE_PENDING:
            raise DuplicatePendingClaim()

        logger.info(
            "Claim %s created: business=%s claimant=%s method=%s",
            claim.id,
            business_id,
            claimant_id,
            claim.method.value,
        )
        self._alert_admins(business.name, claim)
        return claim

    def resend_code(self, business_id: str, claimant_id: str) -> EmailClaim:
        """
        Send a fresh code for a pending email claim.

        The previous code stays valid if delivery of the new one fails.

        Raises:
            NoPendingClaim, MethodNotVerifiable, AlreadyVerified, ResendTooSoon,
            NotificationDeliveryFailed
        """
        claim = self.repository.find_pending_claim(business_id, claimant_id)
        if claim is None:
            raise NoPendingClaim()
        if not isinstance(claim, EmailClaim):
            raise MethodNotVerifiable("Only email claims have a code to resend")
        if claim.is_verified:
            raise AlreadyVerified()

        now = self.clock()
        elapsed = now - claim.last_sent_at
        if elapsed < self.resend_cooldown:
            remaining = self.resend_cooldown - elapsed
            raise ResendTooSoon(max(1, math.ceil(remaining.total_seconds())))

        code = self.codes.generate_otp()
        self._send_code(claim.email_address, code)

        if not self.repository.replace_code(claim.id, code, now):
            # Verified or decided between the read and the write
            current = self.repository.get_claim(claim.id)
            if current is not None and not current.is_terminal and current.is_verified:
                raise AlreadyVerified()
            raise NoPendingClaim()

        refreshed = replace(claim, otp_code=code, last_sent_at=now)

        logger.info("Verification code resent for claim %s", claim.id)
        return refreshed

    def _build_claim(
        self, business_id: str, claimant_id: str, method_data: MethodData
    ) -> Claim:
        common = {
            "id": uuid.uuid4().hex,
            "business_id": business_id,
            "claimant_id": claimant_id,
            "created_at": self.clock(),
        }
        if isinstance(method_data, DocumentProof):
            return DocumentClaim(proof_url=normalize_proof_url(method_data.proof_url), **common)
        if isinstance(method_data, DnsProof):
            return DnsClaim(
                domain=normalize_domain(method_data.domain),
                verification_token=self.codes.generate_dns_token(),
                **common,
            )
        if isinstance(method_data, EmailProof):
            return EmailClaim(
                email_address=normalize_email(method_data.email_address),
                otp_code=self.codes.generate_otp(),
                last_sent_at=common["created_at"],
                **common,
            )
        raise InvalidInput("Unknown verification method")

    def _send_code(self, email: str, code: str | None) -> None:
        if not code or not self.email_sender.send_verification_code(email, code):
            logger.warning("Verification email to %s could not be delivered", email)
            raise NotificationDeliveryFailed()

    def _alert_admins(self, business_name: str, claim: Claim) -> None:
        """Best-effort moderator alert; failures never undo the claim."""
        if not self.admin_ids:
            logger.warning(
                "No admin ids configured (ADMIN_USER_IDS); claim %s raised no moderator alert",
                claim.id,
            )
            return
        for admin_id in self.admin_ids:
            try:
                delivered = self.notifier.notify(
                    admin_id,
                    NotificationType.CLAIM_PENDING,
                    "New business claim",
                    f"User {claim.claimant_id} claimed {business_name} "
                    f"via {claim.method.value} verification.",
                    link=f"/admin/claims/{claim.id}",
                    metadata={
                        "business_id": claim.business_id,
                        "claim_id": claim.id,
                        "claimant_id": claim.claimant_id,
                        "method": claim.method.value,
                    },
                )
            except Exception:
                logger.exception("Admin alert for claim %s raised", claim.id)
                continue
            if not delivered:
                logger.warning("Admin alert for claim %s to %s not delivered", claim.id, admin_id)
