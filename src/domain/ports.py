"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Protocol

from .claims import Business, Claim, ClaimStatus, Decision


class InsertResult(Enum):
    """
    Result of an atomic claim insert.

    Used by ClaimRepository.insert_claim() to report which guard, if any,
    rejected the insert.
    """

    CREATED = "created"
    BUSINESS_NOT_FOUND = "business_not_found"
    ALREADY_OWNED = "already_owned"
    DUPLICATE_PENDING = "duplicate_pending"


class DecisionOutcome(Enum):
    """Result of an atomic moderation decision."""

    DECIDED = "decided"
    CLAIM_NOT_FOUND = "claim_not_found"
    ALREADY_DECIDED = "already_decided"
    ALREADY_OWNED = "already_owned"


@dataclass(frozen=True)
class DecisionRecord:
    """What the repository did with a decision; claim and business are post-write."""

    outcome: DecisionOutcome
    claim: Claim | None = None
    business: Business | None = None


class NotificationType(str, Enum):
    CLAIM_PENDING = "claim_pending"
    CLAIM_APPROVED = "claim_approved"
    CLAIM_REJECTED = "claim_rejected"


class ClaimRepository(Protocol):
    """Port interface for claim and business ownership persistence."""

    def get_business(self, business_id: str) -> Business | None:
        ...

    def get_claim(self, claim_id: str) -> Claim | None:
        ...

    def find_pending_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        """Return the single pending claim for (business, claimant), if any."""
        ...

    def find_latest_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        """Return the most recently created claim for (business, claimant), if any."""
        ...

    def list_claims(self, status: ClaimStatus) -> list[Claim]:
        """Return claims with the given status, oldest first."""
        ...

    def insert_claim(self, claim: Claim) -> InsertResult:
        """
        Atomically persist a new pending claim.

        In one critical section the implementation must:
        1. Confirm the business exists and has no owner
        2. Insert the claim, refusing a second pending claim for the same
           (business_id, claimant_id) via a uniqueness guard
        3. Advance the business claim_status to pending

        Returns:
            InsertResult.CREATED on success, otherwise the guard that failed.
            Nothing is written unless the result is CREATED.
        """
        ...

    def update_verification(self, claim: Claim) -> bool:
        """
        Store self-service verification fields of a pending claim.

        Writes verification_status and the method payload (confirmed domain,
        OTP code, last_sent_at). Never touches status.

        Returns:
            True if the claim was still pending and got updated, False otherwise
        """
        ...

    def replace_code(self, claim_id: str, otp_code: str, sent_at: datetime) -> bool:
        """
        Swap in a freshly sent OTP code for a pending, unverified email claim.

        Returns:
            False if the claim was decided or verified since it was read;
            nothing is written in that case.
        """
        ...

    def decide(
        self,
        claim_id: str,
        decision: Decision,
        moderator_id: str,
        decided_at: datetime,
    ) -> DecisionRecord:
        """
        Atomically apply a moderation decision.

        approve: set business owner only while owner_id is still unset, mark
        business approved and claim approved. If the business already has an
        owner nothing is written and ALREADY_OWNED is returned.

        reject: mark claim rejected and reopen the business (claim_status back
        to unclaimed unless it is owned or another claim is still pending).

        Terminal claims are never modified (ALREADY_DECIDED).
        """
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_code(self, email: str, code: str) -> bool:
        """
        Send verification code to email address.

        Args:
            email: Recipient email address
            code: 6-digit verification code

        Returns:
            True if the message was handed to the transport, False on failure
        """
        ...


class NotificationSink(Protocol):
    """Port interface for in-app notifications (read/unread store)."""

    def notify(
        self,
        user_id: str,
        type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> bool:
        ...


class TxtResolver(Protocol):
    """Port interface for DNS TXT lookups."""

    def resolve_txt(self, domain: str) -> list[list[str]]:
        """
        Resolve TXT records for a domain.

        Returns:
            One list of character-strings per TXT record (records may be split)

        Raises:
            DnsLookupFailed: NXDOMAIN, no answer, timeout or network failure
        """
        ...
