"""
API v1 routes.

Defines REST endpoints for business-ownership claims:
- POST /v1/businesses/{business_id}/claims          - start a claim
- POST /v1/businesses/{business_id}/claims/verify   - submit proof
- POST /v1/businesses/{business_id}/claims/resend   - resend email code
- GET  /v1/businesses/{business_id}/claims/current  - claimant's claim status
- GET  /v1/admin/claims                             - moderator queue
- POST /v1/admin/claims/{claim_id}/decision         - approve or reject
"""

from fastapi import APIRouter, Depends, Query, status

from src.api.dependencies import (
    get_claim_moderation_service,
    get_claim_request_service,
    get_claim_verification_service,
    get_current_user_id,
    require_moderator,
)
from src.api.errors import to_http_exception
from src.api.models import (
    BusinessResponse,
    ClaimListResponse,
    ClaimResponse,
    CurrentClaimResponse,
    DecisionRequest,
    DecisionResponse,
    ErrorResponse,
    InitiateClaimRequest,
    InitiateClaimResponse,
    ResendCodeResponse,
    VerifyClaimRequest,
    VerifyClaimResponse,
)
from src.config.settings import Settings, get_settings
from src.domain.claim_moderation import ClaimModerationService
from src.domain.claim_request import ClaimRequestService
from src.domain.claim_verification import ClaimVerificationService
from src.domain.claims import ClaimStatus, Decision, DnsClaim, EmailClaim, method_data_for
from src.domain.exceptions import ClaimError

router = APIRouter(tags=["v1"])

_INITIATE_MESSAGES = {
    "document": "Claim submitted for review",
    "dns": "Add the TXT record to your domain, then verify",
    "email": "Verification code sent to your email",
}


@router.post(
    "/businesses/{business_id}/claims",
    response_model=InitiateClaimResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        404: {"model": ErrorResponse, "description": "Business not found"},
        409: {"model": ErrorResponse, "description": "Already owned or claim pending"},
        422: {"model": ErrorResponse, "description": "Invalid verification data"},
        502: {"model": ErrorResponse, "description": "Verification email not delivered"},
    },
    summary="Start a business claim",
    description="Choose a verification method and supply its data: a proof URL, "
    "a domain to publish a TXT token on, or an email address to receive a code.",
)
def initiate_claim(
    business_id: str,
    request_data: InitiateClaimRequest,
    claimant_id: str = Depends(get_current_user_id),
    service: ClaimRequestService = Depends(get_claim_request_service),
) -> InitiateClaimResponse:
    method_data = method_data_for(request_data.method, request_data.data)
    try:
        claim = service.initiate_claim(business_id, claimant_id, method_data)
    except ClaimError as e:
        raise to_http_exception(e) from None

    token = claim.verification_token if isinstance(claim, DnsClaim) else None
    return InitiateClaimResponse(
        message=_INITIATE_MESSAGES[claim.method.value],
        claim=ClaimResponse.from_claim(claim),
        verification_token=token,
    )


@router.post(
    "/businesses/{business_id}/claims/verify",
    response_model=VerifyClaimResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Proof did not verify"},
        404: {"model": ErrorResponse, "description": "No pending claim"},
        503: {"model": ErrorResponse, "description": "DNS lookup failed, retry later"},
    },
    summary="Verify a pending claim",
)
def verify_claim(
    business_id: str,
    request_data: VerifyClaimRequest,
    claimant_id: str = Depends(get_current_user_id),
    service: ClaimVerificationService = Depends(get_claim_verification_service),
) -> VerifyClaimResponse:
    """
    Submit proof for the caller's pending claim.

    - **proof**: the emailed code, or for DNS claims optionally the domain to check
    """
    try:
        claim = service.verify(business_id, claimant_id, request_data.proof)
    except ClaimError as e:
        raise to_http_exception(e) from None
    return VerifyClaimResponse(
        message=f"{claim.method.value.upper()} verified successfully",
        claim=ClaimResponse.from_claim(claim),
    )


@router.post(
    "/businesses/{business_id}/claims/resend",
    response_model=ResendCodeResponse,
    responses={
        404: {"model": ErrorResponse, "description": "No pending claim"},
        429: {"model": ErrorResponse, "description": "Code sent too recently"},
        502: {"model": ErrorResponse, "description": "Verification email not delivered"},
    },
    summary="Resend the email verification code",
)
def resend_code(
    business_id: str,
    claimant_id: str = Depends(get_current_user_id),
    service: ClaimRequestService = Depends(get_claim_request_service),
    settings: Settings = Depends(get_settings),
) -> ResendCodeResponse:
    try:
        claim = service.resend_code(business_id, claimant_id)
    except ClaimError as e:
        raise to_http_exception(e) from None
    return ResendCodeResponse(
        message="Verification code resent",
        claim=ClaimResponse.from_claim(claim),
        expires_in_seconds=settings.otp_ttl_seconds,
        resend_available_in_seconds=int(service.resend_cooldown.total_seconds()),
    )


@router.get(
    "/businesses/{business_id}/claims/current",
    response_model=CurrentClaimResponse,
    summary="Current claim status for the caller",
)
def current_claim(
    business_id: str,
    claimant_id: str = Depends(get_current_user_id),
    service: ClaimVerificationService = Depends(get_claim_verification_service),
    request_service: ClaimRequestService = Depends(get_claim_request_service),
) -> CurrentClaimResponse:
    """Latest claim on this business by the caller; drives the claim-status page."""
    claim = service.current_claim(business_id, claimant_id)
    if claim is None:
        return CurrentClaimResponse(claim=None)

    code_expires_at = resend_available_at = None
    if isinstance(claim, EmailClaim) and not claim.is_terminal and not claim.is_verified:
        code_expires_at = claim.last_sent_at + service.otp_ttl
        resend_available_at = claim.last_sent_at + request_service.resend_cooldown
    return CurrentClaimResponse(
        claim=ClaimResponse.from_claim(claim),
        code_expires_at=code_expires_at,
        resend_available_at=resend_available_at,
    )


@router.get(
    "/admin/claims",
    response_model=ClaimListResponse,
    responses={403: {"model": ErrorResponse, "description": "Moderator role required"}},
    summary="List claims for moderation",
)
def list_claims(
    claim_status: ClaimStatus = Query(default=ClaimStatus.PENDING, alias="status"),
    moderator_id: str = Depends(require_moderator),
    service: ClaimModerationService = Depends(get_claim_moderation_service),
) -> ClaimListResponse:
    claims = service.list_claims(claim_status)
    return ClaimListResponse(claims=[ClaimResponse.from_claim(c) for c in claims])


@router.post(
    "/admin/claims/{claim_id}/decision",
    response_model=DecisionResponse,
    responses={
        403: {"model": ErrorResponse, "description": "Moderator role required"},
        404: {"model": ErrorResponse, "description": "Claim not found"},
        409: {"model": ErrorResponse, "description": "Already decided, owned or unverified"},
    },
    summary="Approve or reject a claim",
)
def decide_claim(
    claim_id: str,
    request_data: DecisionRequest,
    moderator_id: str = Depends(require_moderator),
    service: ClaimModerationService = Depends(get_claim_moderation_service),
) -> DecisionResponse:
    try:
        result = service.decide(claim_id, request_data.decision, moderator_id)
    except ClaimError as e:
        raise to_http_exception(e) from None
    verb = "approved" if request_data.decision == Decision.APPROVE else "rejected"
    return DecisionResponse(
        message=f"Claim {verb}",
        business=BusinessResponse.from_business(result.business),
        claim=ClaimResponse.from_claim(result.claim),
    )
