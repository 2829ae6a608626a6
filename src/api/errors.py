"""
Domain error to HTTP response mapping.

Routes catch ClaimError and re-raise the HTTPException built here, so every
error reaches the client as {"detail": {"code", "message", "retryable"}}.
"""

from fastapi import HTTPException, status

from src.domain import exceptions as errors

STATUS_BY_ERROR: dict[type[errors.ClaimError], int] = {
    errors.BusinessNotFound: status.HTTP_404_NOT_FOUND,
    errors.ClaimNotFound: status.HTTP_404_NOT_FOUND,
    errors.NoPendingClaim: status.HTTP_404_NOT_FOUND,
    errors.AlreadyOwned: status.HTTP_409_CONFLICT,
    errors.DuplicatePendingClaim: status.HTTP_409_CONFLICT,
    errors.AlreadyDecided: status.HTTP_409_CONFLICT,
    errors.ClaimNotVerified: status.HTTP_409_CONFLICT,
    errors.AlreadyVerified: status.HTTP_409_CONFLICT,
    errors.InvalidInput: 422,
    errors.MethodNotVerifiable: status.HTTP_400_BAD_REQUEST,
    errors.ResendTooSoon: status.HTTP_429_TOO_MANY_REQUESTS,
    errors.TokenNotFound: status.HTTP_400_BAD_REQUEST,
    errors.InvalidCode: status.HTTP_400_BAD_REQUEST,
    errors.CodeExpired: status.HTTP_400_BAD_REQUEST,
    errors.DnsLookupFailed: status.HTTP_503_SERVICE_UNAVAILABLE,
    errors.NotificationDeliveryFailed: status.HTTP_502_BAD_GATEWAY,
}


def to_http_exception(exc: errors.ClaimError) -> HTTPException:
    """Build the HTTPException for a domain error."""
    status_code = STATUS_BY_ERROR.get(type(exc), status.HTTP_400_BAD_REQUEST)
    headers = None
    if isinstance(exc, errors.ResendTooSoon):
        headers = {"Retry-After": str(exc.retry_after_seconds)}
    return HTTPException(
        status_code=status_code,
        detail={"code": exc.code, "message": exc.message, "retryable": exc.retryable},
        headers=headers,
    )
