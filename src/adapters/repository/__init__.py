"""Repository adapters - Database implementations."""

from .memory import InMemoryClaimRepository
from .postgres import PostgresClaimRepository, run_migrations

__all__ = ["InMemoryClaimRepository", "PostgresClaimRepository", "run_migrations"]
