"""
intentledger/registry/intents.py

Intent Registry — the authoritative state machine for payment intents.

Every mutating call, in this exact order:
  1. Acquire the registry lock
  2. Require the caller's role (before ANY other validation)
  3. Validate params and the current status
  4. Build the replacement record
  5. Emit the fact to the sink   — must succeed before state advances
  6. Publish the record (and advance the id counter on create)

A raise anywhere in 2–5 leaves no state change and no fact.

Status policy:
    update_intent rejects only intents that are already terminal.
    It does NOT check that the requested status is a forward step;
    the orchestrator is trusted to walk
        CREATED → QUOTING → ROUTED → SENT → PENDING → {CONFIRMED|FAILED|NEEDS_REVIEW}
    cancel_intent is legal only from CANCELLABLE_STATUSES.
"""

import logging
import threading
from dataclasses import replace
from typing import Dict, Iterable, List, Optional

from intentledger.core.access import AccessControl, Role, require_identity
from intentledger.core.exceptions import Reason, StateConflictError, ValidationError
from intentledger.core.facts import Fact, FactSink, FactType, MemoryFactLog
from intentledger.core.hashes import ZERO_HASH
from intentledger.core.time import Clock, unix_time
from intentledger.core.vocabulary import (
    FailReason,
    IntentStatus,
    Preference,
    RecipientType,
    is_cancellable,
    is_terminal,
)
from intentledger.registry.models import (
    CreateIntentParams,
    PaymentIntent,
    UpdateIntentParams,
)
from intentledger.registry.validation import (
    rejections_logged,
    require_deadline,
    require_enum,
    require_flag,
    require_hash,
    require_intent_id,
    require_nonzero_hash,
    require_uint,
)


logger = logging.getLogger(__name__)


class IntentRegistry:
    """
    Owns every PaymentIntent, the executor role set and the id counter.

    Usage:
        registry = IntentRegistry(admin="ops-admin")
        registry.manage_executors("ops-admin", "orchestrator", True)
        intent = registry.create_intent("orchestrator", params)
        registry.update_intent("orchestrator", intent.id, update)
    """

    MIN_DEADLINE = 1
    SOURCE       = "intent-registry"

    def __init__(
        self,
        admin:  str,
        sink:   Optional[FactSink] = None,
        clock:  Optional[Clock] = None,
    ) -> None:
        self._access = AccessControl(admin, Role.EXECUTOR)
        self._sink   = sink if sink is not None else MemoryFactLog()
        self._clock  = clock or unix_time

        self._lock:       threading.Lock          = threading.Lock()
        self._intents:    Dict[int, PaymentIntent] = {}
        self._current_id: int                      = 0

    # ── Read views ────────────────────────────────────────────

    @property
    def owner(self) -> str:
        return self._access.admin

    @property
    def current_intent_id(self) -> int:
        """Highest id allocated so far; 0 before the first creation."""
        return self._current_id

    @property
    def sink(self) -> FactSink:
        return self._sink

    def is_executor(self, identity: str) -> bool:
        return self._access.has_role(identity, Role.EXECUTOR)

    def executors(self) -> List[str]:
        return self._access.members()

    def get_intent(self, intent_id: int) -> PaymentIntent:
        """
        Pure read. Never raises for an unknown id: returns
        PaymentIntent.empty() (status NONE, all fields zero).
        """
        return self._intents.get(require_intent_id(intent_id), PaymentIntent.empty())

    def intent_ids(self) -> List[int]:
        """Every id holding a record, created or not, ascending."""
        return sorted(self._intents)

    # ── Mutations ─────────────────────────────────────────────

    def create_intent(self, caller: str, params: CreateIntentParams) -> PaymentIntent:
        """
        Allocate the next id and store a CREATED intent.

        Raises:
            AuthorizationError — caller is not an executor
            ValidationError    — amount 0, zero recipient/metadata/provider
                                 hash, deadline <= MIN_DEADLINE, malformed input
        """
        with self._lock, rejections_logged(logger, "create_intent", caller):
            self._access.require(caller, Role.EXECUTOR)

            amount = require_uint(params.amount, "amount", Reason.INVALID_AMOUNT)
            if amount == 0:
                raise ValidationError(
                    "amount must be positive",
                    reason=Reason.INVALID_AMOUNT,
                    details={"field": "amount"},
                )

            recipient_hash = require_nonzero_hash(
                params.recipient_hash, "recipient_hash", Reason.INVALID_RECIPIENT_HASH
            )
            metadata_hash = require_nonzero_hash(
                params.metadata_hash, "metadata_hash", Reason.INVALID_METADATA_HASH
            )
            provider_ref = require_nonzero_hash(
                params.chosen_provider_ref_hash,
                "chosen_provider_ref_hash",
                Reason.INVALID_PROVIDER_REF,
            )
            deadline = require_deadline(params.deadline, self.MIN_DEADLINE)

            intent_id = self._next_free_id()
            now       = self._clock()
            intent = PaymentIntent(
                id=                       intent_id,
                external_reference_id=    require_hash(
                    params.external_reference_id, "external_reference_id"
                ),
                amount=                   amount,
                recipient_type=           require_enum(
                    RecipientType, params.recipient_type, "recipient_type"
                ),
                sender_hash=              require_hash(params.sender_hash, "sender_hash"),
                recipient_hash=           recipient_hash,
                metadata_hash=            metadata_hash,
                preference=               require_enum(
                    Preference, params.preference, "preference"
                ),
                chosen_provider_ref_hash= provider_ref,
                created_at=               now,
                deadline=                 deadline,
                last_updated_at=          now,
                status=                   IntentStatus.CREATED,
                attempts=                 0,
                last_fail_reason=         FailReason.NONE,
                last_fail_detail_hash=    ZERO_HASH,
            )

            self._sink.emit(Fact.create(
                FactType.INTENT_CREATED,
                source=                self.SOURCE,
                id=                    intent.id,
                external_reference_id= intent.external_reference_id,
                amount=                intent.amount,
                sender_hash=           intent.sender_hash,
                recipient_type=        intent.recipient_type,
                recipient_hash=        intent.recipient_hash,
                metadata_hash=         intent.metadata_hash,
                deadline=              intent.deadline,
            ))

            self._intents[intent_id] = intent
            self._current_id         = intent_id

        logger.debug("intent %d created by %r (amount=%d)", intent_id, caller, amount)
        return intent

    def update_intent(
        self,
        caller:    str,
        intent_id: int,
        params:    UpdateIntentParams,
    ) -> PaymentIntent:
        """
        Overwrite status, provider, attempts, fail reason/detail and deadline.

        The terminal check runs on the PRE-update status.

        Raises:
            AuthorizationError — caller is not an executor
            ValidationError    — deadline <= MIN_DEADLINE, zero provider hash,
                                 malformed input
            StateConflictError — intent already CONFIRMED, FAILED or CANCELLED
        """
        with self._lock, rejections_logged(logger, "update_intent", caller):
            self._access.require(caller, Role.EXECUTOR)

            intent_id = require_intent_id(intent_id)
            deadline  = require_deadline(params.deadline, self.MIN_DEADLINE)
            provider_ref = require_nonzero_hash(
                params.chosen_provider_ref_hash,
                "chosen_provider_ref_hash",
                Reason.INVALID_PROVIDER_REF,
            )
            status      = require_enum(IntentStatus, params.status, "status")
            attempts    = require_uint(params.attempts, "attempts", Reason.INVALID_ATTEMPTS)
            fail_reason = require_enum(FailReason, params.last_fail_reason, "last_fail_reason")
            fail_detail = require_hash(params.last_fail_detail_hash, "last_fail_detail_hash")

            current = self._intents.get(intent_id, PaymentIntent.empty())
            if is_terminal(current.status):
                raise StateConflictError(
                    f"intent {intent_id} is {current.status.name} and can no longer change",
                    reason=Reason.INTENT_FINALIZED,
                    details={"intent_id": intent_id, "status": current.status.name},
                )

            updated = replace(
                current,
                id=                       intent_id,
                status=                   status,
                chosen_provider_ref_hash= provider_ref,
                attempts=                 attempts,
                last_fail_reason=         fail_reason,
                last_fail_detail_hash=    fail_detail,
                deadline=                 deadline,
                last_updated_at=          self._clock(),
            )

            self._sink.emit(Fact.create(
                FactType.INTENT_STATUS_UPDATED,
                source=                   self.SOURCE,
                id=                       intent_id,
                status=                   status,
                chosen_provider_ref_hash= provider_ref,
                last_fail_reason=         fail_reason,
            ))

            self._intents[intent_id] = updated

        logger.debug(
            "intent %d %s -> %s by %r",
            intent_id, current.status.name, status.name, caller,
        )
        return updated

    def cancel_intent(self, caller: str, intent_id: int) -> PaymentIntent:
        """
        Move the intent to CANCELLED.

        Legal only from NONE, CREATED, QUOTING, ROUTED or NEEDS_REVIEW.
        From SENT onward funds may be in flight, so cancellation is refused.

        Raises:
            AuthorizationError — caller is not an executor
            StateConflictError — status not cancellable
        """
        with self._lock, rejections_logged(logger, "cancel_intent", caller):
            self._access.require(caller, Role.EXECUTOR)

            intent_id = require_intent_id(intent_id)
            current   = self._intents.get(intent_id, PaymentIntent.empty())
            if not is_cancellable(current.status):
                raise StateConflictError(
                    f"intent {intent_id} cannot be cancelled from {current.status.name}",
                    reason=Reason.INTENT_NOT_CANCELLABLE,
                    details={"intent_id": intent_id, "status": current.status.name},
                )

            cancelled = replace(
                current,
                id=              intent_id,
                status=          IntentStatus.CANCELLED,
                last_updated_at= self._clock(),
            )

            self._sink.emit(Fact.create(
                FactType.INTENT_CANCELLED,
                source= self.SOURCE,
                id=     intent_id,
            ))

            self._intents[intent_id] = cancelled

        logger.debug("intent %d cancelled by %r", intent_id, caller)
        return cancelled

    def manage_executors(self, caller: str, identity: str, authorized: bool) -> None:
        """
        Grant or revoke the executor role. Admin only. Idempotent.
        Existing intents are untouched.
        """
        with self._lock, rejections_logged(logger, "manage_executors", caller):
            self._access.require(caller, Role.ADMIN)
            identity   = require_identity(identity)
            authorized = require_flag(authorized, "authorized")

            self._sink.emit(Fact.create(
                FactType.EXECUTOR_UPDATED,
                source=     self.SOURCE,
                executor=   identity,
                authorized= authorized,
            ))

            self._access.set_member(identity, authorized)

    # ── Internal ──────────────────────────────────────────────

    def _next_free_id(self) -> int:
        """
        Next sequential id. Skips ids already holding a record, which only
        happens when update/cancel addressed an id before it was created.
        """
        candidate = self._current_id + 1
        while candidate in self._intents:
            candidate += 1
        return candidate

    # ── Restore ───────────────────────────────────────────────

    def restore(self, facts: Iterable[Fact]) -> int:
        """
        Rebuild records, executor roles and the id counter from facts this
        registry emitted in an earlier run, oldest first. Emits nothing.

        Facts do not carry preference, attempts, the fail detail hash or
        timestamps; restored records hold zero values there. Receipt facts
        are ignored.

        Returns the number of facts applied.

        Raises:
            RuntimeError — the registry already holds records or roles
        """
        with self._lock:
            if self._intents or self._current_id or self._access.members():
                raise RuntimeError("restore() requires a freshly constructed IntentRegistry")
            applied = sum(1 for fact in facts if self._apply(fact))

        logger.info(
            "intent registry restored from %d facts (current id %d, %d executors)",
            applied, self._current_id, len(self._access.members()),
        )
        return applied

    def _apply(self, fact: Fact) -> bool:
        p = fact.payload

        if fact.fact_type == FactType.EXECUTOR_UPDATED:
            self._access.set_member(p["executor"], p["authorized"])
            return True

        if fact.fact_type == FactType.INTENT_CREATED:
            intent = replace(
                PaymentIntent.empty(),
                id=                    p["id"],
                external_reference_id= p["external_reference_id"],
                amount=                p["amount"],
                recipient_type=        RecipientType(p["recipient_type"]),
                sender_hash=           p["sender_hash"],
                recipient_hash=        p["recipient_hash"],
                metadata_hash=         p["metadata_hash"],
                deadline=              p["deadline"],
                status=                IntentStatus.CREATED,
            )
            self._current_id = max(self._current_id, intent.id)
        elif fact.fact_type == FactType.INTENT_STATUS_UPDATED:
            intent = replace(
                self._intents.get(p["id"], PaymentIntent.empty()),
                id=                       p["id"],
                status=                   IntentStatus(p["status"]),
                chosen_provider_ref_hash= p["chosen_provider_ref_hash"],
                last_fail_reason=         FailReason(p["last_fail_reason"]),
            )
        elif fact.fact_type == FactType.INTENT_CANCELLED:
            intent = replace(
                self._intents.get(p["id"], PaymentIntent.empty()),
                id=     p["id"],
                status= IntentStatus.CANCELLED,
            )
        else:
            return False

        self._intents[intent.id] = intent
        return True
