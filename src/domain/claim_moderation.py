"""
Claim moderation domain service - The privileged approval gate.

approve:
    claim PENDING -> APPROVED, business owner_id <- claimant,
    business claim_status -> approved
reject:
    claim PENDING -> REJECTED, business claim_status -> unclaimed
    (reopened for anyone, including the same claimant)

Ownership transfer happens inside one repository transaction that only
writes owner_id while it is still unset, so of two claims approved at the
same time exactly one wins and the other gets AlreadyOwned.

Every decision is an audit event, logged on the "src.audit" logger.
"""

import logging
from dataclasses import dataclass

from .claims import (
    Claim,
    ClaimMethod,
    ClaimStatus,
    Decision,
    ModerationResult,
)
from .clock import Clock, utc_now
from .exceptions import AlreadyDecided, AlreadyOwned, ClaimNotFound, ClaimNotVerified
from .ports import ClaimRepository, DecisionOutcome, NotificationSink, NotificationType

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("src.audit")


@dataclass
class ClaimModerationService:
    """Domain service for moderator decisions on claims."""

    repository: ClaimRepository
    notifier: NotificationSink
    clock: Clock = utc_now

    def decide(self, claim_id: str, decision: Decision, moderator_id: str) -> ModerationResult:
        """
        Approve or reject a pending claim.

        Args:
            claim_id: Claim being decided
            decision: Decision.APPROVE or Decision.REJECT
            moderator_id: Moderator identity (authorized at the API boundary)

        Returns:
            ModerationResult with the updated business and claim

        Raises:
            ClaimNotFound: Unknown claim id
            AlreadyDecided: Claim is already approved or rejected
            ClaimNotVerified: Approving a DNS/email claim whose proof never verified
            AlreadyOwned: Another claim already won ownership of the business
        """
        claim = self.repository.get_claim(claim_id)
        if claim is None:
            raise ClaimNotFound()
        if claim.is_terminal:
            raise AlreadyDecided()
        if (
            decision == Decision.APPROVE
            and claim.method != ClaimMethod.DOCUMENT
            and not claim.is_verified
        ):
            raise ClaimNotVerified()

        record = self.repository.decide(claim_id, decision, moderator_id, self.clock())

        if record.outcome == DecisionOutcome.CLAIM_NOT_FOUND:
            raise ClaimNotFound()
        if record.outcome == DecisionOutcome.ALREADY_DECIDED:
            raise AlreadyDecided()
        if record.outcome == DecisionOutcome.ALREADY_OWNED:
            audit_logger.info(
                "claim=%s decision=%s moderator=%s outcome=already_owned",
                claim_id,
                decision.value,
                moderator_id,
            )
            raise AlreadyOwned()

        decided = record.claim
        business = record.business
        audit_logger.info(
            "claim=%s business=%s claimant=%s method=%s decision=%s moderator=%s "
            "status=%s business_status=%s owner=%s",
            decided.id,
            business.id,
            decided.claimant_id,
            decided.method.value,
            decision.value,
            moderator_id,
            decided.status.value,
            business.claim_status.value,
            business.owner_id,
        )

        self._notify_claimant(decided, business.name)
        return ModerationResult(business=business, claim=decided)

    def list_claims(self, status: ClaimStatus = ClaimStatus.PENDING) -> list[Claim]:
        """Moderator queue: claims in the given status, oldest first."""
        return self.repository.list_claims(status)

    def _notify_claimant(self, claim: Claim, business_name: str) -> None:
        """Best-effort claimant alert; the decision is already committed."""
        if claim.status == ClaimStatus.APPROVED:
            type_ = NotificationType.CLAIM_APPROVED
            title = "Claim approved"
            message = f"Your claim for {business_name} has been approved. You now manage this listing."
            link = f"/business/{claim.business_id}/dashboard"
        else:
            type_ = NotificationType.CLAIM_REJECTED
            title = "Claim rejected"
            message = f"Your claim for {business_name} was not approved."
            link = f"/business/{claim.business_id}"

        try:
            delivered = self.notifier.notify(
                claim.claimant_id,
                type_,
                title,
                message,
                link=link,
                metadata={"business_id": claim.business_id, "claim_id": claim.id},
            )
        except Exception:
            logger.exception("Claimant notification for claim %s raised", claim.id)
            return
        if not delivered:
            logger.warning("Claimant notification for claim %s not delivered", claim.id)
