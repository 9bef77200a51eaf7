"""Repository adapters - Database implementations."""

from .memory import InMemoryPendingRegistrationRepository, InMemoryUserRepository
from .postgres import PostgresPendingRegistrationRepository, PostgresUserRepository, run_migrations

__all__ = [
    "InMemoryPendingRegistrationRepository",
    "InMemoryUserRepository",
    "PostgresPendingRegistrationRepository",
    "PostgresUserRepository",
    "run_migrations",
]
