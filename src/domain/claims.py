"""
Claim data model - Business listings and ownership claims.

A claim is one attempt by a user to prove control of a business listing.
Each verification method is its own frozen dataclass, so a claim only
carries the fields its method needs:

    Claim = DocumentClaim | DnsClaim | EmailClaim

Claim State Machine
===================

    (none) --initiate--> PENDING / verification PENDING
                           |  verify() ok          verify() fails -> same state
                           v
                         PENDING / verification VERIFIED
                           |  approve          |  reject
                           v                   v
                         APPROVED            REJECTED

APPROVED and REJECTED are terminal. Document claims skip the VERIFIED step
and are decided directly by a moderator.
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class ClaimMethod(str, Enum):
    """Verification channel chosen when the claim is created."""

    DOCUMENT = "document"
    DNS = "dns"
    EMAIL = "email"


class ClaimStatus(str, Enum):
    """Moderation outcome of a claim."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class VerificationStatus(str, Enum):
    """Self-service proof outcome, independent of ClaimStatus."""

    PENDING = "pending"
    VERIFIED = "verified"
    FAILED = "failed"


class BusinessClaimStatus(str, Enum):
    """Claim state as shown on the business listing."""

    UNCLAIMED = "unclaimed"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Decision(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


@dataclass(frozen=True)
class Business:
    id: str
    name: str
    owner_id: str | None = None
    claim_status: BusinessClaimStatus = BusinessClaimStatus.UNCLAIMED

    @property
    def is_owned(self) -> bool:
        return self.owner_id is not None


@dataclass(frozen=True, kw_only=True)
class ClaimBase:
    """Fields shared by every claim variant."""

    id: str
    business_id: str
    claimant_id: str
    created_at: datetime
    status: ClaimStatus = ClaimStatus.PENDING
    verification_status: VerificationStatus = VerificationStatus.PENDING
    decided_at: datetime | None = None
    decided_by: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ClaimStatus.PENDING

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.VERIFIED


@dataclass(frozen=True, kw_only=True)
class DocumentClaim(ClaimBase):
    proof_url: str

    method = ClaimMethod.DOCUMENT


@dataclass(frozen=True, kw_only=True)
class DnsClaim(ClaimBase):
    domain: str
    verification_token: str

    method = ClaimMethod.DNS


@dataclass(frozen=True, kw_only=True)
class EmailClaim(ClaimBase):
    email_address: str
    last_sent_at: datetime
    # Cleared once the code has been consumed
    otp_code: str | None = None

    method = ClaimMethod.EMAIL


Claim = DocumentClaim | DnsClaim | EmailClaim


@dataclass(frozen=True)
class DocumentProof:
    """Proof payload for a document claim: URL of an uploaded artifact."""

    proof_url: str

    method = ClaimMethod.DOCUMENT


@dataclass(frozen=True)
class DnsProof:
    domain: str

    method = ClaimMethod.DNS


@dataclass(frozen=True)
class EmailProof:
    email_address: str

    method = ClaimMethod.EMAIL


MethodData = DocumentProof | DnsProof | EmailProof


def method_data_for(method: ClaimMethod, value: str) -> MethodData:
    """Build the method-specific payload from a raw request value."""
    if method == ClaimMethod.DOCUMENT:
        return DocumentProof(proof_url=value)
    if method == ClaimMethod.DNS:
        return DnsProof(domain=value)
    return EmailProof(email_address=value)


@dataclass(frozen=True)
class ModerationResult:
    """Business and claim as they stand after a moderation decision."""

    business: Business
    claim: Claim
