"""Shared fixtures: a frozen clock, a seeded random source and an in-memory audit trail."""

import random
from datetime import datetime, timedelta, timezone

import pytest

from finboard.audit import AuditLogger, InMemoryAuditStorage
from finboard.config import SavingsSettings
from finboard.savings import SavingsLedger


class FakeClock:
    """Returns a fixed time that tests can move forward by hand."""

    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 6, 1, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def audit_storage():
    return InMemoryAuditStorage()


@pytest.fixture
def audit_logger(audit_storage):
    return AuditLogger(audit_storage, user="Test User")


@pytest.fixture
def ledger(audit_logger, rng, clock):
    return SavingsLedger(
        audit_sink=audit_logger,
        rng=rng,
        clock=clock,
        settings=SavingsSettings(),
    )
