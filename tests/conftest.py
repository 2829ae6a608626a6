"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- The in-process claim repository seeded with unclaimed businesses
- Mocked email, notification and DNS collaborators
- Domain services wired to all of the above
- A PostgreSQL pool and repository for adversarial and integration tests
  (skipped when the database is unreachable)
"""

from collections.abc import Generator
from datetime import UTC, datetime, timedelta
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import InMemoryClaimRepository
from src.adapters.repository.postgres import PostgresClaimRepository, run_migrations
from src.config.settings import get_settings
from src.domain.claim_moderation import ClaimModerationService
from src.domain.claim_request import ClaimRequestService
from src.domain.claim_verification import ClaimVerificationService
from src.domain.claims import Business
from src.domain.codes import VerificationCodeGenerator

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)

SEED_BUSINESSES = [
    ("business-1", "Golden Lotus Tea House"),
    ("business-2", "Shwe Bakery"),
]


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemoryClaimRepository:
    repo = InMemoryClaimRepository()
    for business_id, name in SEED_BUSINESSES:
        repo.add_business(Business(id=business_id, name=name))
    return repo


@pytest.fixture
def email_sender() -> Mock:
    sender = Mock()
    sender.send_verification_code.return_value = True
    return sender


@pytest.fixture
def notifier() -> Mock:
    sink = Mock()
    sink.notify.return_value = True
    return sink


@pytest.fixture
def resolver() -> Mock:
    return Mock()


@pytest.fixture
def codes() -> VerificationCodeGenerator:
    return VerificationCodeGenerator()


@pytest.fixture
def request_service(
    repository: InMemoryClaimRepository,
    email_sender: Mock,
    notifier: Mock,
    codes: VerificationCodeGenerator,
    clock: FakeClock,
) -> ClaimRequestService:
    return ClaimRequestService(
        repository=repository,
        email_sender=email_sender,
        notifier=notifier,
        codes=codes,
        admin_ids=("admin-1",),
        clock=clock,
    )


@pytest.fixture
def verification_service(
    repository: InMemoryClaimRepository, resolver: Mock, clock: FakeClock
) -> ClaimVerificationService:
    return ClaimVerificationService(repository=repository, resolver=resolver, clock=clock)


@pytest.fixture
def moderation_service(
    repository: InMemoryClaimRepository, notifier: Mock, clock: FakeClock
) -> ClaimModerationService:
    return ClaimModerationService(repository=repository, notifier=notifier, clock=clock)


@pytest.fixture(scope="session")
def pg_pool() -> Generator[ConnectionPool, None, None]:
    """Connection pool with migrations applied."""
    settings = get_settings()
    pool = ConnectionPool(
        conninfo=settings.database_url,
        min_size=1,
        max_size=10,
        open=True,
    )
    try:
        pool.wait(timeout=5.0)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


def reset_database(pool: ConnectionPool) -> None:
    """Empty all tables and re-seed the unclaimed test businesses."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM notifications")
        conn.execute("DELETE FROM business_claims")
        conn.execute("DELETE FROM businesses")
        for business_id, name in SEED_BUSINESSES:
            conn.execute(
                "INSERT INTO businesses (id, name) VALUES (%s, %s)", (business_id, name)
            )
        conn.commit()


@pytest.fixture
def pg_repository(pg_pool: ConnectionPool) -> PostgresClaimRepository:
    """Repository over a freshly seeded database."""
    reset_database(pg_pool)
    return PostgresClaimRepository(pg_pool)
