"""
Integration tests for PostgresClaimRepository and PostgresNotificationSink.

Tests repository operations against a real PostgreSQL database.
Skipped when PostgreSQL is not reachable.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.notifications.postgres import PostgresNotificationSink
from src.adapters.repository.postgres import PostgresClaimRepository
from src.domain.claims import (
    BusinessClaimStatus,
    ClaimStatus,
    Decision,
    DnsClaim,
    DocumentClaim,
    EmailClaim,
    VerificationStatus,
)
from src.domain.ports import DecisionOutcome, InsertResult, NotificationType

pytestmark = pytest.mark.integration

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=UTC)


def document_claim(claim_id: str, claimant_id: str = "user-1", **kw) -> DocumentClaim:
    return DocumentClaim(
        id=claim_id,
        business_id=kw.pop("business_id", "business-1"),
        claimant_id=claimant_id,
        created_at=kw.pop("created_at", T0),
        proof_url="https://files.example.com/a.pdf",
        **kw,
    )


def email_claim(claim_id: str = "email-1") -> EmailClaim:
    return EmailClaim(
        id=claim_id,
        business_id="business-1",
        claimant_id="user-1",
        created_at=T0,
        email_address="owner@example.com",
        otp_code="482931",
        last_sent_at=T0,
    )


class TestInsertClaim:
    """Tests for insert_claim method."""

    def test_round_trips_every_variant(self, pg_repository: PostgresClaimRepository) -> None:
        dns = DnsClaim(
            id="dns-1",
            business_id="business-2",
            claimant_id="user-1",
            created_at=T0,
            domain="example.com",
            verification_token="verify=abc123",
        )
        for claim in (document_claim("doc-1"), dns, email_claim()):
            assert pg_repository.insert_claim(claim) == InsertResult.CREATED
            assert pg_repository.get_claim(claim.id) == claim

    def test_business_becomes_pending(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1"))
        business = pg_repository.get_business("business-1")
        assert business.claim_status == BusinessClaimStatus.PENDING

    def test_unknown_business(self, pg_repository: PostgresClaimRepository) -> None:
        claim = document_claim("c1", business_id="missing")
        assert pg_repository.insert_claim(claim) == InsertResult.BUSINESS_NOT_FOUND

    def test_duplicate_pending_uses_unique_index(
        self, pg_repository: PostgresClaimRepository
    ) -> None:
        pg_repository.insert_claim(document_claim("c1"))
        assert pg_repository.insert_claim(document_claim("c2")) == InsertResult.DUPLICATE_PENDING
        assert pg_repository.get_claim("c2") is None

    def test_owned_business(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1"))
        pg_repository.decide("c1", Decision.APPROVE, "mod-1", T0)

        result = pg_repository.insert_claim(document_claim("c2", "user-2"))

        assert result == InsertResult.ALREADY_OWNED


class TestQueries:
    def test_find_pending_and_latest(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1"))
        pg_repository.decide("c1", Decision.REJECT, "mod-1", T0)
        pg_repository.insert_claim(document_claim("c2", created_at=T0 + timedelta(minutes=1)))

        assert pg_repository.find_pending_claim("business-1", "user-1").id == "c2"
        assert pg_repository.find_latest_claim("business-1", "user-1").id == "c2"
        assert pg_repository.find_latest_claim("business-1", "user-9") is None

    def test_list_claims_oldest_first(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("late", "user-1", created_at=T0 + timedelta(hours=1)))
        pg_repository.insert_claim(document_claim("early", "user-2"))

        pending = pg_repository.list_claims(ClaimStatus.PENDING)

        assert [c.id for c in pending] == ["early", "late"]


class TestUpdateVerification:
    def test_consumes_code(self, pg_repository: PostgresClaimRepository) -> None:
        claim = email_claim()
        pg_repository.insert_claim(claim)

        verified = replace(claim, otp_code=None, verification_status=VerificationStatus.VERIFIED)
        assert pg_repository.update_verification(verified) is True

        stored = pg_repository.get_claim(claim.id)
        assert stored.otp_code is None
        assert stored.is_verified

    def test_terminal_claim_untouched(self, pg_repository: PostgresClaimRepository) -> None:
        claim = email_claim()
        pg_repository.insert_claim(claim)
        pg_repository.decide(claim.id, Decision.REJECT, "mod-1", T0)

        assert pg_repository.update_verification(replace(claim, otp_code="111111")) is False
        assert pg_repository.get_claim(claim.id).otp_code == "482931"


class TestReplaceCode:
    def test_swaps_code_while_unverified(self, pg_repository: PostgresClaimRepository) -> None:
        claim = email_claim()
        pg_repository.insert_claim(claim)
        sent_at = T0 + timedelta(minutes=4)

        assert pg_repository.replace_code(claim.id, "105277", sent_at) is True

        stored = pg_repository.get_claim(claim.id)
        assert stored.otp_code == "105277"
        assert stored.last_sent_at == sent_at

    def test_verified_claim_not_reset(self, pg_repository: PostgresClaimRepository) -> None:
        claim = email_claim()
        pg_repository.insert_claim(claim)
        pg_repository.update_verification(
            replace(claim, otp_code=None, verification_status=VerificationStatus.VERIFIED)
        )

        assert pg_repository.replace_code(claim.id, "105277", T0) is False

        stored = pg_repository.get_claim(claim.id)
        assert stored.is_verified
        assert stored.otp_code is None

    def test_decided_claim_untouched(self, pg_repository: PostgresClaimRepository) -> None:
        claim = email_claim()
        pg_repository.insert_claim(claim)
        pg_repository.decide(claim.id, Decision.REJECT, "mod-1", T0)

        assert pg_repository.replace_code(claim.id, "105277", T0) is False
        assert pg_repository.get_claim(claim.id).otp_code == "482931"


class TestDecide:
    def test_approve_transfers_ownership(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1"))

        record = pg_repository.decide("c1", Decision.APPROVE, "mod-1", T0)

        assert record.outcome == DecisionOutcome.DECIDED
        assert record.business.owner_id == "user-1"
        assert record.business.claim_status == BusinessClaimStatus.APPROVED
        assert record.claim.status == ClaimStatus.APPROVED
        assert record.claim.decided_by == "mod-1"

    def test_second_approval_rolls_back(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1", "user-1"))
        pg_repository.insert_claim(document_claim("c2", "user-2"))
        pg_repository.decide("c1", Decision.APPROVE, "mod-1", T0)

        record = pg_repository.decide("c2", Decision.APPROVE, "mod-1", T0)

        assert record.outcome == DecisionOutcome.ALREADY_OWNED
        assert pg_repository.get_claim("c2").status == ClaimStatus.PENDING
        assert pg_repository.get_business("business-1").owner_id == "user-1"

    def test_already_decided(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1"))
        pg_repository.decide("c1", Decision.REJECT, "mod-1", T0)

        record = pg_repository.decide("c1", Decision.APPROVE, "mod-2", T0)

        assert record.outcome == DecisionOutcome.ALREADY_DECIDED

    def test_unknown_claim(self, pg_repository: PostgresClaimRepository) -> None:
        record = pg_repository.decide("missing", Decision.REJECT, "mod-1", T0)
        assert record.outcome == DecisionOutcome.CLAIM_NOT_FOUND

    def test_reject_reopens_or_keeps_pending(self, pg_repository: PostgresClaimRepository) -> None:
        pg_repository.insert_claim(document_claim("c1", "user-1"))
        pg_repository.insert_claim(document_claim("c2", "user-2"))

        first = pg_repository.decide("c1", Decision.REJECT, "mod-1", T0)
        assert first.business.claim_status == BusinessClaimStatus.PENDING

        second = pg_repository.decide("c2", Decision.REJECT, "mod-1", T0)
        assert second.business.claim_status == BusinessClaimStatus.UNCLAIMED


class TestNotificationSink:
    def test_stores_unread_notification(
        self, pg_repository: PostgresClaimRepository, pg_pool: ConnectionPool
    ) -> None:
        sink = PostgresNotificationSink(pg_pool)

        delivered = sink.notify(
            "user-1",
            NotificationType.CLAIM_APPROVED,
            "Claim approved",
            "Your claim was approved.",
            link="/business/business-1/dashboard",
            metadata={"claim_id": "c1"},
        )

        assert delivered is True
        with pg_pool.connection() as conn:
            row = conn.execute(
                "SELECT type, link, metadata, is_read FROM notifications WHERE user_id = %s",
                ("user-1",),
            ).fetchone()
        assert row == ("claim_approved", "/business/business-1/dashboard", {"claim_id": "c1"}, False)
