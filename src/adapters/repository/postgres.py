"""
PostgreSQL repository adapter - Implements ClaimRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Concurrency Design:
-------------------
Both critical sections of the claim workflow are enforced by the database,
never by an application-level read-then-write:

1. **Duplicate pending claims**: a partial UNIQUE index on
   (business_id, claimant_id) WHERE status = 'pending' plus
   INSERT ... ON CONFLICT DO NOTHING. Of two concurrent inserts exactly one
   reports rowcount 1.

2. **Ownership transfer**: UPDATE businesses ... WHERE owner_id IS NULL in
   the same transaction as the claim decision. Of two concurrent approvals
   for the same business only one matches a row.

Lock Ordering:
--------------
Every transaction that locks both rows takes the business row first
(SELECT ... FOR UPDATE) and the claim row second, so claim creation and
moderation cannot deadlock each other.
"""

import logging
from datetime import datetime
from pathlib import Path

from psycopg_pool import ConnectionPool

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
from src.domain.ports import DecisionOutcome, DecisionRecord, InsertResult

logger = logging.getLogger(__name__)

_CLAIM_COLUMNS = """
    id, business_id, claimant_id, method, status, verification_status,
    proof_url, domain, verification_token, email_address, otp_code,
    last_sent_at, created_at, decided_at, decided_by
"""

_BUSINESS_COLUMNS = "id, name, owner_id, claim_status"


def _row_to_business(row: tuple) -> Business:
    return Business(
        id=row[0],
        name=row[1],
        owner_id=row[2],
        claim_status=BusinessClaimStatus(row[3]),
    )


def _row_to_claim(row: tuple) -> Claim:
    """Build the claim variant matching the stored method column."""
    (
        claim_id,
        business_id,
        claimant_id,
        method,
        status,
        verification_status,
        proof_url,
        domain,
        verification_token,
        email_address,
        otp_code,
        last_sent_at,
        created_at,
        decided_at,
        decided_by,
    ) = row
    common = {
        "id": claim_id,
        "business_id": business_id,
        "claimant_id": claimant_id,
        "status": ClaimStatus(status),
        "verification_status": VerificationStatus(verification_status),
        "created_at": created_at,
        "decided_at": decided_at,
        "decided_by": decided_by,
    }
    method = ClaimMethod(method)
    if method == ClaimMethod.DOCUMENT:
        return DocumentClaim(proof_url=proof_url, **common)
    if method == ClaimMethod.DNS:
        return DnsClaim(domain=domain, verification_token=verification_token, **common)
    return EmailClaim(
        email_address=email_address,
        otp_code=otp_code,
        last_sent_at=last_sent_at,
        **common,
    )


def _claim_to_params(claim: Claim) -> tuple:
    proof_url = domain = token = email = code = last_sent_at = None
    if isinstance(claim, DocumentClaim):
        proof_url = claim.proof_url
    elif isinstance(claim, DnsClaim):
        domain, token = claim.domain, claim.verification_token
    else:
        email, code, last_sent_at = claim.email_address, claim.otp_code, claim.last_sent_at
    return (
        claim.id,
        claim.business_id,
        claim.claimant_id,
        claim.method.value,
        claim.status.value,
        claim.verification_status.value,
        proof_url,
        domain,
        token,
        email,
        code,
        last_sent_at,
        claim.created_at,
    )


class PostgresClaimRepository:
    """
    Implements ClaimRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def get_business(self, business_id: str) -> Business | None:
        sql = f"SELECT {_BUSINESS_COLUMNS} FROM businesses WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (business_id,))
            row = cursor.fetchone()
        return _row_to_business(row) if row else None

    def get_claim(self, claim_id: str) -> Claim | None:
        sql = f"SELECT {_CLAIM_COLUMNS} FROM business_claims WHERE id = %s"
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (claim_id,))
            row = cursor.fetchone()
        return _row_to_claim(row) if row else None

    def find_pending_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        sql = f"""
            SELECT {_CLAIM_COLUMNS} FROM business_claims
            WHERE business_id = %s AND claimant_id = %s AND status = 'pending'
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (business_id, claimant_id))
            row = cursor.fetchone()
        return _row_to_claim(row) if row else None

    def find_latest_claim(self, business_id: str, claimant_id: str) -> Claim | None:
        sql = f"""
            SELECT {_CLAIM_COLUMNS} FROM business_claims
            WHERE business_id = %s AND claimant_id = %s
            ORDER BY created_at DESC, id DESC
            LIMIT 1
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (business_id, claimant_id))
            row = cursor.fetchone()
        return _row_to_claim(row) if row else None

    def list_claims(self, status: ClaimStatus) -> list[Claim]:
        sql = f"""
            SELECT {_CLAIM_COLUMNS} FROM business_claims
            WHERE status = %s
            ORDER BY created_at, id
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (status.value,))
            rows = cursor.fetchall()
        return [_row_to_claim(row) for row in rows]

    def insert_claim(self, claim: Claim) -> InsertResult:
        """
        Atomically persist a new pending claim.

        Locks the business row so ownership cannot change underneath the
        insert, relies on the partial UNIQUE index for the one-pending-claim
        rule, and advances the business to 'pending' in the same transaction.
        """
        lock_business_sql = "SELECT owner_id FROM businesses WHERE id = %s FOR UPDATE"

        insert_sql = """
            INSERT INTO business_claims (
                id, business_id, claimant_id, method, status, verification_status,
                proof_url, domain, verification_token, email_address, otp_code,
                last_sent_at, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
            ON CONFLICT (business_id, claimant_id) WHERE status = 'pending' DO NOTHING
        """

        advance_sql = """
            UPDATE businesses
            SET claim_status = 'pending', updated_at = NOW()
            WHERE id = %s AND claim_status IN ('unclaimed', 'rejected')
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(lock_business_sql, (claim.business_id,))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return InsertResult.BUSINESS_NOT_FOUND
            if row[0] is not None:
                conn.rollback()
                return InsertResult.ALREADY_OWNED

            cursor.execute(insert_sql, _claim_to_params(claim))
            # 0 rows: the unique index already holds a pending claim for this pair
            if cursor.rowcount != 1:
                conn.rollback()
                return InsertResult.DUPLICATE_PENDING

            cursor.execute(advance_sql, (claim.business_id,))
            conn.commit()
            return InsertResult.CREATED

    def update_verification(self, claim: Claim) -> bool:
        if isinstance(claim, DnsClaim):
            sql = """
                UPDATE business_claims
                SET verification_status = %s, domain = %s
                WHERE id = %s AND status = 'pending'
            """
            params: tuple = (claim.verification_status.value, claim.domain, claim.id)
        elif isinstance(claim, EmailClaim):
            sql = """
                UPDATE business_claims
                SET verification_status = %s, otp_code = %s, last_sent_at = %s
                WHERE id = %s AND status = 'pending'
            """
            params = (
                claim.verification_status.value,
                claim.otp_code,
                claim.last_sent_at,
                claim.id,
            )
        else:
            sql = """
                UPDATE business_claims
                SET verification_status = %s
                WHERE id = %s AND status = 'pending'
            """
            params = (claim.verification_status.value, claim.id)

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, params)
            conn.commit()
            return cursor.rowcount == 1

    def replace_code(self, claim_id: str, otp_code: str, sent_at: datetime) -> bool:
        # A verify committed after our read makes this match nothing
        sql = """
            UPDATE business_claims
            SET otp_code = %s, last_sent_at = %s
            WHERE id = %s
              AND method = 'email'
              AND status = 'pending'
              AND verification_status = 'pending'
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (otp_code, sent_at, claim_id))
            conn.commit()
            return cursor.rowcount == 1

    def decide(
        self,
        claim_id: str,
        decision: Decision,
        moderator_id: str,
        decided_at: datetime,
    ) -> DecisionRecord:
        """
        Atomically apply a moderation decision.

        Approval writes owner_id conditionally (WHERE owner_id IS NULL); when
        that matches nothing the transaction is rolled back and the claim stays
        pending. Rejection reopens the business unless it is owned or another
        claim is still pending for it.
        """
        find_business_sql = "SELECT business_id FROM business_claims WHERE id = %s"

        lock_business_sql = f"SELECT {_BUSINESS_COLUMNS} FROM businesses WHERE id = %s FOR UPDATE"

        lock_claim_sql = f"SELECT {_CLAIM_COLUMNS} FROM business_claims WHERE id = %s FOR UPDATE"

        transfer_sql = f"""
            UPDATE businesses
            SET owner_id = %s, claim_status = 'approved', updated_at = NOW()
            WHERE id = %s AND owner_id IS NULL
            RETURNING {_BUSINESS_COLUMNS}
        """

        close_claim_sql = f"""
            UPDATE business_claims
            SET status = %s, decided_at = %s, decided_by = %s
            WHERE id = %s AND status = 'pending'
            RETURNING {_CLAIM_COLUMNS}
        """

        reopen_sql = f"""
            UPDATE businesses
            SET claim_status = CASE
                    WHEN EXISTS (
                        SELECT 1 FROM business_claims
                        WHERE business_id = %s AND status = 'pending'
                    ) THEN 'pending'
                    ELSE 'unclaimed'
                END,
                updated_at = NOW()
            WHERE id = %s AND owner_id IS NULL
            RETURNING {_BUSINESS_COLUMNS}
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(find_business_sql, (claim_id,))
            row = cursor.fetchone()
            if row is None:
                conn.rollback()
                return DecisionRecord(DecisionOutcome.CLAIM_NOT_FOUND)
            business_id = row[0]

            cursor.execute(lock_business_sql, (business_id,))
            business = _row_to_business(cursor.fetchone())

            cursor.execute(lock_claim_sql, (claim_id,))
            claim = _row_to_claim(cursor.fetchone())
            if claim.is_terminal:
                conn.rollback()
                return DecisionRecord(DecisionOutcome.ALREADY_DECIDED, claim, business)

            if decision == Decision.APPROVE:
                cursor.execute(transfer_sql, (claim.claimant_id, business_id))
                row = cursor.fetchone()
                if row is None:
                    conn.rollback()
                    return DecisionRecord(DecisionOutcome.ALREADY_OWNED, claim, business)
                business = _row_to_business(row)
                cursor.execute(
                    close_claim_sql,
                    (ClaimStatus.APPROVED.value, decided_at, moderator_id, claim_id),
                )
                claim = _row_to_claim(cursor.fetchone())
            else:
                cursor.execute(
                    close_claim_sql,
                    (ClaimStatus.REJECTED.value, decided_at, moderator_id, claim_id),
                )
                claim = _row_to_claim(cursor.fetchone())
                cursor.execute(reopen_sql, (business_id, business_id))
                row = cursor.fetchone()
                if row is not None:
                    business = _row_to_business(row)

            conn.commit()
            logger.info(
                "Claim %s %s; business %s is %s",
                claim_id,
                claim.status.value,
                business_id,
                business.claim_status.value,
            )
            return DecisionRecord(DecisionOutcome.DECIDED, claim, business)


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Find migrations directory relative to this file
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
