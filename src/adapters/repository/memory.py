"""
In-process repository adapter - Implements ClaimRepository protocol.

Keeps businesses and claims in dictionaries behind a single lock. Every
method runs entirely inside the lock, which gives the same guarantees the
PostgreSQL adapter gets from its unique index and conditional updates:
one pending claim per (business, claimant) and one ownership transfer per
business. Used for local runs and the domain test-suite.
"""

import logging
import threading
from dataclasses import replace
from datetime import datetime

from src.domain.claims import (
    Business,
    BusinessClaimStatus,
    Claim,
    ClaimStatus,
    Decision,
    EmailClaim,
)
from src.domain.ports import DecisionOutcome, DecisionRecord, InsertResult

logger = logging.getLogger(__name__)


class InMemoryClaimRepository:
    """
    Implements ClaimRepository protocol with process-local state.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._businesses: dict[str, Business] = {}
        self._claims: dict[str, Claim] = {}

    def add_business(self, business: Business) -> Business:
        """Register a listing (listing CRUD lives outside this service)."""
        with self._lock:
            self._businesses[business.id] = business
        return business

    def get_business(self, business_id: str) -> Business | None:
        with self._lock:
            return self._businesses.get(business_id)

    def get_claim(self, claim_id: str) -> Claim | None:
        with self._lock:
            return self._claims.get(claim_id)

    def find_pending_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        with self._lock:
            return self._pending_claim(business_id, claimant_id)

    def find_latest_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        with self._lock:
            claims = [
                c
                for c in self._claims.values()
                if c.business_id == business_id and c.claimant_id == claimant_id
            ]
        if not claims:
            return None
        # dict order is insertion order, so ties keep the later claim
        return max(reversed(claims), key=lambda c: c.created_at)

    def list_claims(self, status: ClaimStatus) -> list[Claim]:
        with self._lock:
            claims = [c for c in self._claims.values() if c.status == status]
        return sorted(claims, key=lambda c: c.created_at)

    def insert_claim(self, claim: Claim) -> InsertResult:
        with self._lock:
            business = self._businesses.get(claim.business_id)
            if business is None:
                return InsertResult.BUSINESS_NOT_FOUND
            if business.is_owned:
                return InsertResult.ALREADY_OWNED
            if self._pending_claim(claim.business_id, claim.claimant_id) is not None:
                return InsertResult.DUPLICATE_PENDING

            self._claims[claim.id] = claim
            if business.claim_status in (
                BusinessClaimStatus.UNCLAIMED,
                BusinessClaimStatus.REJECTED,
            ):
                self._businesses[business.id] = replace(
                    business, claim_status=BusinessClaimStatus.PENDING
                )
            return InsertResult.CREATED

    def update_verification(self, claim: Claim) -> bool:
        with self._lock:
            stored = self._claims.get(claim.id)
            if stored is None or stored.is_terminal:
                return False
            # Only self-service fields move; moderation fields stay as stored
            self._claims[claim.id] = replace(
                claim,
                status=stored.status,
                decided_at=stored.decided_at,
                decided_by=stored.decided_by,
            )
            return True

    def replace_code(self, claim_id: str, otp_code: str, sent_at: datetime) -> bool:
        with self._lock:
            stored = self._claims.get(claim_id)
            if (
                not isinstance(stored, EmailClaim)
                or stored.is_terminal
                or stored.is_verified
            ):
                return False
            self._claims[claim_id] = replace(stored, otp_code=otp_code, last_sent_at=sent_at)
            return True

    def decide(
        self,
        claim_id: str,
        decision: Decision,
        moderator_id: str,
        decided_at: datetime,
    ) -> DecisionRecord:
        with self._lock:
            claim = self._claims.get(claim_id)
            if claim is None:
                return DecisionRecord(DecisionOutcome.CLAIM_NOT_FOUND)
            business = self._businesses[claim.business_id]
            if claim.is_terminal:
                return DecisionRecord(DecisionOutcome.ALREADY_DECIDED, claim, business)

            if decision == Decision.APPROVE:
                if business.is_owned:
                    return DecisionRecord(DecisionOutcome.ALREADY_OWNED, claim, business)
                business = replace(
                    business,
                    owner_id=claim.claimant_id,
                    claim_status=BusinessClaimStatus.APPROVED,
                )
                status = ClaimStatus.APPROVED
            else:
                status = ClaimStatus.REJECTED

            claim = replace(
                claim, status=status, decided_at=decided_at, decided_by=moderator_id
            )
            self._claims[claim.id] = claim

            if decision == Decision.REJECT and not business.is_owned:
                others_pending = any(
                    c.business_id == business.id and c.status == ClaimStatus.PENDING
                    for c in self._claims.values()
                )
                business = replace(
                    business,
                    claim_status=(
                        BusinessClaimStatus.PENDING
                        if others_pending
                        else BusinessClaimStatus.UNCLAIMED
                    ),
                )
            self._businesses[business.id] = business

            logger.info(
                "Claim %s %s; business %s is %s",
                claim_id,
                claim.status.value,
                business.id,
                business.claim_status.value,
            )
            return DecisionRecord(DecisionOutcome.DECIDED, claim, business)

    def _pending_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        for claim in self._claims.values():
            if (
                claim.business_id == business_id
                and claim.claimant_id == claimant_id
                and claim.status == ClaimStatus.PENDING
            ):
                return claim
        return None
