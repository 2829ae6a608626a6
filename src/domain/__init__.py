"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for business-ownership claim
verification. It defines its own port interfaces for infrastructure
abstraction, ensuring true hexagonal architecture decoupling.
"""

from .claim_moderation import ClaimModerationService
from .claim_request import ClaimRequestService
from .claim_verification import ClaimVerificationService
from .claims import (
    Business,
    BusinessClaimStatus,
    Claim,
    ClaimMethod,
    ClaimStatus,
    Decision,
    DnsClaim,
    DnsProof,
    DocumentClaim,
    DocumentProof,
    EmailClaim,
    EmailProof,
    MethodData,
    ModerationResult,
    VerificationStatus,
)
from .codes import VerificationCodeGenerator
from .exceptions import ClaimError
from .ports import ClaimRepository, EmailSender, NotificationSink, TxtResolver

__all__ = [
    "Business",
    "BusinessClaimStatus",
    "Claim",
    "ClaimError",
    "ClaimMethod",
    "ClaimModerationService",
    "ClaimRepository",
    "ClaimRequestService",
    "ClaimStatus",
    "ClaimVerificationService",
    "Decision",
    "DnsClaim",
    "DnsProof",
    "DocumentClaim",
    "DocumentProof",
    "EmailClaim",
    "EmailProof",
    "EmailSender",
    "MethodData",
    "ModerationResult",
    "NotificationSink",
    "TxtResolver",
    "VerificationCodeGenerator",
    "VerificationStatus",
]
