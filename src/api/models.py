"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema generation.
Secrets never leave through these models, except the DNS token in the
initiate response which the claimant has to publish.
"""

from datetime import datetime

from pydantic import BaseModel, Field

from src.domain.claims import (
    Business,
    BusinessClaimStatus,
    Claim,
    ClaimMethod,
    ClaimStatus,
    Decision,
    DnsClaim,
    DocumentClaim,
    EmailClaim,
    VerificationStatus,
)


class InitiateClaimRequest(BaseModel):
    """Request model for starting a claim."""

    method: ClaimMethod
    data: str = Field(
        ...,
        max_length=2048,
        description="Proof URL (document), domain (dns) or email address (email)",
    )


class VerifyClaimRequest(BaseModel):
    """Request model for submitting proof."""

    proof: str | None = Field(
        default=None,
        max_length=255,
        description="6-digit code (email) or domain to check (dns, optional)",
    )


class DecisionRequest(BaseModel):
    """Request model for a moderation decision."""

    decision: Decision


class ClaimResponse(BaseModel):
    """Public view of a claim."""

    id: str
    business_id: str
    claimant_id: str
    method: ClaimMethod
    status: ClaimStatus
    verification_status: VerificationStatus
    created_at: datetime
    decided_at: datetime | None = None
    proof_url: str | None = None
    domain: str | None = None
    email_address: str | None = None
    last_sent_at: datetime | None = None

    @classmethod
    def from_claim(cls, claim: Claim) -> "ClaimResponse":
        extra: dict = {}
        if isinstance(claim, DocumentClaim):
            extra["proof_url"] = claim.proof_url
        elif isinstance(claim, DnsClaim):
            extra["domain"] = claim.domain
        elif isinstance(claim, EmailClaim):
            extra["email_address"] = claim.email_address
            extra["last_sent_at"] = claim.last_sent_at
        return cls(
            id=claim.id,
            business_id=claim.business_id,
            claimant_id=claim.claimant_id,
            method=claim.method,
            status=claim.status,
            verification_status=claim.verification_status,
            created_at=claim.created_at,
            decided_at=claim.decided_at,
            **extra,
        )


class BusinessResponse(BaseModel):
    """Public view of a business's ownership state."""

    id: str
    name: str
    owner_id: str | None
    claim_status: BusinessClaimStatus

    @classmethod
    def from_business(cls, business: Business) -> "BusinessResponse":
        return cls(
            id=business.id,
            name=business.name,
            owner_id=business.owner_id,
            claim_status=business.claim_status,
        )


class InitiateClaimResponse(BaseModel):
    """Response model for a newly created claim."""

    message: str
    claim: ClaimResponse
    verification_token: str | None = Field(
        default=None, description="TXT record value to publish (dns method only)"
    )


class VerifyClaimResponse(BaseModel):
    message: str
    claim: ClaimResponse


class ResendCodeResponse(BaseModel):
    message: str
    claim: ClaimResponse
    expires_in_seconds: int
    resend_available_in_seconds: int


class CurrentClaimResponse(BaseModel):
    """Claimant's latest claim on a business, or null when there is none."""

    claim: ClaimResponse | None
    code_expires_at: datetime | None = None
    resend_available_at: datetime | None = None


class ClaimListResponse(BaseModel):
    claims: list[ClaimResponse]


class DecisionResponse(BaseModel):
    message: str
    business: BusinessResponse
    claim: ClaimResponse


class ErrorDetail(BaseModel):
    code: str
    message: str
    retryable: bool


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: ErrorDetail | str
