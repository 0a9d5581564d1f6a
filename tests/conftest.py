"""
Shared fixtures: pinned clock, wired registries, parameter factories.
"""

import pytest

from intentledger.core.crypto import JournalKey
from intentledger.core.facts import MemoryFactLog
from intentledger.core.vocabulary import FailReason, IntentStatus, Preference, RecipientType
from intentledger.registry.intents import IntentRegistry
from intentledger.registry.models import (
    CommitReceiptParams,
    CreateIntentParams,
    UpdateIntentParams,
)
from intentledger.registry.receipts import ReceiptRegistry


ADMIN     = "ops-admin"
EXECUTOR  = "orchestrator"
COMMITTER = "settler"
STRANGER  = "mallory"

T0 = 1_700_000_000


def h(n: int) -> str:
    """Deterministic non-zero 32-byte reference for n >= 1."""
    return f"{n:064x}"


class FixedClock:
    """Pinned unix clock. Advance explicitly."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def sink():
    return MemoryFactLog()


@pytest.fixture
def intents(sink, clock):
    registry = IntentRegistry(admin=ADMIN, sink=sink, clock=clock)
    registry.manage_executors(ADMIN, EXECUTOR, True)
    return registry


@pytest.fixture
def receipts(sink, clock):
    registry = ReceiptRegistry(admin=ADMIN, sink=sink, clock=clock)
    registry.manage_committers(ADMIN, COMMITTER, True)
    return registry


@pytest.fixture
def key():
    return JournalKey.generate()


@pytest.fixture
def make_create():
    def _make(**overrides) -> CreateIntentParams:
        fields = dict(
            external_reference_id=    h(0xE1),
            amount=                   1000,
            deadline=                 3600,
            recipient_type=           RecipientType.MOBILE,
            sender_hash=              h(0x5E),
            recipient_hash=           h(0xAC),
            metadata_hash=            h(0x3D),
            preference=               Preference.CHEAPEST,
            chosen_provider_ref_hash= h(0xB1),
        )
        fields.update(overrides)
        return CreateIntentParams(**fields)
    return _make


@pytest.fixture
def make_update():
    def _make(status=IntentStatus.QUOTING, **overrides) -> UpdateIntentParams:
        fields = dict(
            deadline=                 7200,
            status=                   status,
            chosen_provider_ref_hash= h(0xB2),
        )
        fields.update(overrides)
        return UpdateIntentParams(**fields)
    return _make


@pytest.fixture
def make_commit():
    def _make(intent_id=1, **overrides) -> CommitReceiptParams:
        fields = dict(
            intent_id=         intent_id,
            receipt_hash=      h(0xCE),
            receipt_version=   1,
            provider_ref_hash= h(0xB2),
            final_status=      IntentStatus.CONFIRMED,
            final_reason=      FailReason.NONE,
            receipt_uri_hash=  h(0x0F),
        )
        fields.update(overrides)
        return CommitReceiptParams(**fields)
    return _make
