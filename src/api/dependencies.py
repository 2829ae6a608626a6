"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting
domain services and infrastructure adapters into routes.
"""

from datetime import timedelta

from fastapi import Depends, Header, HTTPException, Request, status
from psycopg_pool import ConnectionPool

from src.adapters.dns.resolver import DnspythonTxtResolver
from src.adapters.notifications.postgres import PostgresNotificationSink
from src.adapters.repository.postgres import PostgresClaimRepository
from src.adapters.smtp.console import ConsoleEmailSender
from src.adapters.smtp.smtp import SmtpEmailSender
from src.config.settings import Settings, get_settings
from src.domain.claim_moderation import ClaimModerationService
from src.domain.claim_request import ClaimRequestService
from src.domain.claim_verification import ClaimVerificationService
from src.domain.codes import VerificationCodeGenerator
from src.domain.ports import EmailSender

# Module-level singleton - ConsoleEmailSender is stateless
_console_sender = ConsoleEmailSender()


def get_pool(request: Request) -> ConnectionPool:
    """
    Get connection pool from app state.

    The pool is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.pool


def get_repository(request: Request) -> PostgresClaimRepository:
    """Create repository with connection pool from app state."""
    return PostgresClaimRepository(get_pool(request))


def get_notifier(request: Request) -> PostgresNotificationSink:
    return PostgresNotificationSink(get_pool(request))


def get_email_sender(settings: Settings) -> EmailSender:
    """Pick the email transport configured by EMAIL_BACKEND."""
    if settings.email_backend == "smtp":
        return SmtpEmailSender(
            host=settings.smtp_host,
            port=settings.smtp_port,
            from_address=settings.smtp_from_address,
            username=settings.smtp_username,
            password=settings.smtp_password,
            use_ssl=settings.smtp_use_ssl,
            timeout=settings.smtp_timeout_seconds,
        )
    return _console_sender


def get_claim_request_service(request: Request) -> ClaimRequestService:
    """
    Create claim request service with injected dependencies.

    Wires together the repository, email sender and notifier for the domain service.
    """
    settings = get_settings()
    return ClaimRequestService(
        repository=get_repository(request),
        email_sender=get_email_sender(settings),
        notifier=get_notifier(request),
        codes=VerificationCodeGenerator(dns_token_prefix=settings.dns_token_prefix),
        admin_ids=tuple(settings.admin_user_ids),
        resend_cooldown=timedelta(seconds=settings.resend_cooldown_seconds),
    )


def get_claim_verification_service(request: Request) -> ClaimVerificationService:
    settings = get_settings()
    return ClaimVerificationService(
        repository=get_repository(request),
        resolver=DnspythonTxtResolver(timeout=settings.dns_timeout_seconds),
        otp_ttl=timedelta(seconds=settings.otp_ttl_seconds),
    )


def get_claim_moderation_service(request: Request) -> ClaimModerationService:
    return ClaimModerationService(
        repository=get_repository(request),
        notifier=get_notifier(request),
    )


def get_current_user_id(
    x_user_id: str | None = Header(default=None, description="Authenticated user id"),
) -> str:
    """
    Identity supplied by the upstream session gateway.

    The gateway authenticates the user and forwards the id; this service
    trusts it without re-validating credentials.
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return user_id


def require_moderator(
    user_id: str = Depends(get_current_user_id),
    x_user_role: str | None = Header(default=None, description="Authenticated user role"),
) -> str:
    """Allow only roles listed in MODERATOR_ROLES; returns the moderator id."""
    role = (x_user_role or "").strip().lower()
    allowed = {r.lower() for r in get_settings().moderator_roles}
    if role not in allowed:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Moderator role required",
        )
    return user_id
