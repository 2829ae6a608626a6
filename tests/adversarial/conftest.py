"""
Shared fixtures for adversarial tests.

Every scenario runs against both repository adapters: the in-process one
always, PostgreSQL when a database is reachable.
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryClaimRepository
from src.domain.claim_moderation import ClaimModerationService
from src.domain.claim_request import ClaimRequestService
from src.domain.claims import Business

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture(params=["memory", "postgres"])
def claim_repository(request: pytest.FixtureRequest):
    """Repository seeded with business-1 and business-2, both unclaimed."""
    if request.param == "postgres":
        return request.getfixturevalue("pg_repository")
    repo = InMemoryClaimRepository()
    repo.add_business(Business(id="business-1", name="Golden Lotus Tea House"))
    repo.add_business(Business(id="business-2", name="Shwe Bakery"))
    return repo


@pytest.fixture
def claim_service(claim_repository, clock) -> ClaimRequestService:
    sender = Mock()
    sender.send_verification_code.return_value = True
    return ClaimRequestService(
        repository=claim_repository,
        email_sender=sender,
        notifier=Mock(),
        clock=clock,
    )


@pytest.fixture
def decision_service(claim_repository, clock) -> ClaimModerationService:
    return ClaimModerationService(repository=claim_repository, notifier=Mock(), clock=clock)
