"""
Domain exceptions - Semantic error types for business claims.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.

Errors fall into three families:
- PreconditionViolation: client errors, surfaced verbatim, never retried
- TransientFailure: external collaborator failed, safe to retry immediately
- ProofFailure: the submitted proof was wrong or stale, user needs a new one
"""


class ClaimError(Exception):
    """Base class for claim domain errors."""

    retryable = False
    default_message = "Claim operation failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)

    @property
    def code(self) -> str:
        """Stable machine-readable error code (the class name)."""
        return type(self).__name__

    @property
    def message(self) -> str:
        return str(self)


class PreconditionViolation(ClaimError):
    """Request is not allowed in the current state."""

    pass


class TransientFailure(ClaimError):
    """External collaborator failed; the same request may succeed later."""

    retryable = True


class ProofFailure(ClaimError):
    """Submitted proof did not verify."""

    pass


class BusinessNotFound(PreconditionViolation):
    default_message = "Business not found"


class ClaimNotFound(PreconditionViolation):
    default_message = "Claim not found"


class NoPendingClaim(PreconditionViolation):
    default_message = "No pending claim found for this user"


class AlreadyOwned(PreconditionViolation):
    """Business already has an owner."""

    default_message = "Business is already owned"


class DuplicatePendingClaim(PreconditionViolation):
    """Claimant already has a pending claim on this business."""

    default_message = "A pending claim already exists for this business"


class InvalidInput(PreconditionViolation):
    default_message = "Invalid verification data"


class MethodNotVerifiable(PreconditionViolation):
    """Claim method has no self-service verification step."""

    default_message = "This verification method cannot be verified by the claimant"


class AlreadyDecided(PreconditionViolation):
    """Claim is already approved or rejected."""

    default_message = "Claim has already been decided"


class ClaimNotVerified(PreconditionViolation):
    """DNS and email claims must be verified before approval."""

    default_message = "Claim must be verified before it can be approved"


class AlreadyVerified(PreconditionViolation):
    default_message = "Claim is already verified"


class ResendTooSoon(PreconditionViolation):
    """Verification code was sent too recently."""

    def __init__(self, retry_after_seconds: int) -> None:
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            f"Please wait {retry_after_seconds} seconds before requesting a new code"
        )


class DnsLookupFailed(TransientFailure):
    """TXT lookup failed (NXDOMAIN, timeout, network), distinct from a non-match."""

    def __init__(self, domain: str, reason: str = "lookup failed") -> None:
        self.domain = domain
        self.reason = reason
        super().__init__(f"DNS lookup for {domain} failed: {reason}")


class NotificationDeliveryFailed(TransientFailure):
    default_message = "Failed to send verification email"


class TokenNotFound(ProofFailure):
    default_message = "Verification token not found in DNS records"


class InvalidCode(ProofFailure):
    default_message = "Invalid verification code"


class CodeExpired(ProofFailure):
    default_message = "Verification code has expired"
