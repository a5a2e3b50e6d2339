# MIT License
# Copyright (c) 2025 Hashborn

"""
Delegation engine.

Turns balance moves and delegation set replacements into the minimal set of
checkpoint writes. Every entry point validates first, then plans all writes,
checks them, and only then commits, so a rejected operation leaves no trace.
"""
from typing import Callable, List, Optional, Sequence, Tuple
import logging
import threading

from ...protocol.types.common import (
    EventType, ValidationError, InvalidAddress, UnsortedOrDuplicate, LimitExceeded,
    InvariantViolation,
)
from ...protocol.types.delegation import (
    Delegation, DelegationSetChanged, VotingPowerChanged, TotalSupplyChanged,
)
from ...protocol.config.params import CURRENT_NETWORK, EngineConfig, TOTAL_SUPPLY_KEY
from ...protocol.crypto.addresses import address_sort_key, canonical_address, zero_address, ADDRESS_LENGTH
from ..storage.db import StorageDB
from ..observability.metrics import (
    checkpoint_writes_total, delegation_changes_total, balance_moves_total, rejected_operations_total,
)
from .checkpoints import CheckpointStore
from .clock import BlockClock, make_clock
from .delegations import DelegationSetStore
from .distributor import distribute
from .events import EventBus
from .query import VotingPowerQuery
from .reconcile import merge_diff, pairwise_delta

logger = logging.getLogger(__name__)

_ZERO_KEY = b'\x00' * ADDRESS_LENGTH


class DelegationEngine:
    def __init__(self,
                 balance_of: Callable[[str], int],
                 clock=None,
                 config: Optional[EngineConfig] = None,
                 bus: Optional[EventBus] = None,
                 db: Optional[StorageDB] = None):
        """
        Args:
            balance_of: Ledger collaborator returning the current (post-move) balance
            clock: Clock collaborator (defaults to one matching config.clock_mode)
            config: Engine parameters (default: CURRENT_NETWORK)
            bus: Event bus for notifications
            db: Optional storage for checkpoints and delegation sets
        """
        self.config = config or CURRENT_NETWORK
        self.clock = clock or make_clock(self.config.clock_mode)
        self.balance_of = balance_of
        self.bus = bus or EventBus()
        self.db = db

        self.checkpoints = CheckpointStore(self.clock, self.config.max_value, db)
        self.delegations = DelegationSetStore(db)
        self.query = VotingPowerQuery(self.checkpoints, self.delegations, self.config, self.clock)
        self.zero = zero_address(self.config.bech32_prefix_acc)

        # One global lock: the old/new diff is only valid if nothing moves in between
        self._lock = threading.RLock()

    # --- Entry points ---
    def set_delegations(self, account: str, delegations: Sequence[Delegation],
                        current_balance: Optional[int] = None) -> List[VotingPowerChanged]:
        """
        Replaces `account`'s delegation set and moves its votes accordingly.

        Args:
            account: Delegator address
            delegations: Complete new set, sorted by delegatee
            current_balance: Delegator balance (default: ledger balance_of)

        Returns:
            One VotingPowerChanged per delegatee whose votes changed
        """
        with self._lock:
            try:
                account = self.canonical(account)
                if account == self.zero:
                    raise InvalidAddress(account)
                new_set = self.validate_delegations(delegations)
                balance = self.balance_of(account) if current_balance is None else current_balance
                old_set = self.delegations.get(account)
                old_adjustments = self._distribution(old_set, balance)
                new_adjustments = self._distribution(new_set, balance)
            except ValidationError as e:
                self._reject(f"delegation change for {account}", e)
                raise

            deltas = list(merge_diff(old_adjustments, new_adjustments, address_sort_key))
            now = self.clock.now()
            planned = self._plan(deltas, now)
            self._commit(planned, now)
            self.delegations.set(account, new_set)
            delegation_changes_total.inc()

            logger.info(f"Delegations of {account} replaced: {len(old_set)} -> {len(new_set)} entries, "
                        f"{len(planned)} checkpoint write(s) at {now}")

            self._emit(EventType.DELEGATION_SET_CHANGED, DelegationSetChanged(
                account=account,
                old_delegations=old_set,
                new_delegations=new_set,
            ))
            return self._emit_vote_changes(planned)

    def delegate(self, account: str, delegatee: str,
                 current_balance: Optional[int] = None) -> List[VotingPowerChanged]:
        """Delegates 100% to `delegatee`. The zero address clears the set."""
        try:
            clears = self.is_zero(delegatee)
        except ValidationError as e:
            self._reject(f"delegation change for {account}", e)
            raise
        if clears:
            return self.set_delegations(account, [], current_balance)
        return self.set_delegations(
            account,
            [Delegation(delegatee=delegatee, numerator=self.config.denominator)],
            current_balance,
        )

    def on_balance_changed(self, from_address: str, to_address: str, amount: int) -> List[VotingPowerChanged]:
        """
        Moves votes after the ledger moved `amount` from `from_address` to
        `to_address`. The zero address as sender means mint, as receiver burn.

        Must be called after the ledger updated its balances.
        """
        with self._lock:
            try:
                if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
                    raise ValidationError(f"Balance move amount must be a non-negative integer, got {amount!r}")
                from_address = self.canonical(from_address)
                to_address = self.canonical(to_address)
            except ValidationError as e:
                self._reject(f"balance move {from_address} -> {to_address}", e)
                raise

            if from_address == to_address or amount == 0:
                return []

            is_mint = from_address == self.zero
            is_burn = to_address == self.zero

            writes: List[Tuple[str, int]] = []
            if is_mint:
                writes.append((TOTAL_SUPPLY_KEY, amount))
            elif is_burn:
                writes.append((TOTAL_SUPPLY_KEY, -amount))

            decreases = []
            if not is_mint:
                from_set = self.delegations.get(from_address)
                if from_set:
                    after = self.balance_of(from_address)
                    decreases = pairwise_delta(
                        self._distribution(from_set, after + amount),
                        self._distribution(from_set, after),
                        sign=-1,
                    )

            increases = []
            if not is_burn:
                to_set = self.delegations.get(to_address)
                if to_set:
                    after = self.balance_of(to_address)
                    if after < amount:
                        raise InvariantViolation(
                            f"Receiver {to_address} holds {after} after receiving {amount}")
                    increases = pairwise_delta(
                        self._distribution(to_set, after - amount),
                        self._distribution(to_set, after),
                    )

            writes.extend(merge_diff(decreases, increases, address_sort_key))

            now = self.clock.now()
            planned = self._plan(writes, now)
            self._commit(planned, now)

            kind = "mint" if is_mint else ("burn" if is_burn else "transfer")
            balance_moves_total.labels(kind=kind).inc()
            logger.debug(f"{kind} of {amount} from {from_address} to {to_address}: "
                         f"{len(planned)} checkpoint write(s) at {now}")

            for key, old, new in planned:
                if key == TOTAL_SUPPLY_KEY:
                    self._emit(EventType.TOTAL_SUPPLY_CHANGED, TotalSupplyChanged(old_value=old, new_value=new))
            return self._emit_vote_changes(planned)

    # --- Validation ---
    def validate_delegations(self, delegations: Sequence[Delegation]) -> List[Delegation]:
        """
        Checks length, ordering and uniqueness of a delegation set and returns
        it with every delegatee in canonical form. Numerator checks happen in
        distribute().
        """
        delegations = list(delegations)
        maximum = self.config.max_partial_delegations
        if len(delegations) > maximum:
            raise LimitExceeded(len(delegations), maximum)

        canonical = []
        previous = None
        for i, d in enumerate(delegations):
            delegatee = self.canonical(d.delegatee)
            key = address_sort_key(delegatee)
            # Zero address means "no delegate" and may only stand alone
            if key == _ZERO_KEY and (i > 0 or len(delegations) > 1):
                raise UnsortedOrDuplicate(d.delegatee)
            if previous is not None and key <= previous:
                raise UnsortedOrDuplicate(d.delegatee)
            previous = key
            if delegatee != d.delegatee:
                d = Delegation(delegatee=delegatee, numerator=d.numerator)
            canonical.append(d)
        return canonical

    # --- Internals ---
    def canonical(self, address: str) -> str:
        """Key form of an address on this network; raises InvalidAddress otherwise."""
        try:
            return canonical_address(address, self.config.bech32_prefix_acc)
        except (TypeError, AttributeError):
            raise InvalidAddress(address)

    def is_zero(self, address: str) -> bool:
        return self.canonical(address) == self.zero

    def _reject(self, operation: str, error: ValidationError) -> None:
        rejected_operations_total.labels(error=type(error).__name__).inc()
        logger.warning(f"Rejected {operation}: {error}")

    def _distribution(self, delegations: Sequence[Delegation], balance: int) -> List[Tuple[str, int]]:
        # Votes given to the zero address are not counted for anyone
        return [
            (adj.delegatee, adj.amount)
            for adj in distribute(delegations, balance, self.config.denominator)
            if adj.delegatee != self.zero
        ]

    def _plan(self, writes: Sequence[Tuple[str, int]], now: int) -> List[Tuple[str, int, int]]:
        """Resolves (key, delta) into (key, old, new) and checks every write before any is made."""
        planned = []
        for key, delta in writes:
            if delta == 0:
                continue
            old = self.checkpoints.latest(key)
            new = old + delta
            if new < 0:
                raise InvariantViolation(f"Checkpoint underflow for {key}: {old} + ({delta})")
            self.checkpoints.check_write(now, new)
            planned.append((key, old, new))
        return planned

    def _commit(self, planned: Sequence[Tuple[str, int, int]], now: int) -> None:
        for key, _old, new in planned:
            self.checkpoints.push(key, now, new)
            checkpoint_writes_total.labels(kind="supply" if key == TOTAL_SUPPLY_KEY else "votes").inc()

    def _emit_vote_changes(self, planned: Sequence[Tuple[str, int, int]]) -> List[VotingPowerChanged]:
        changes = []
        for key, old, new in planned:
            if key == TOTAL_SUPPLY_KEY:
                continue
            event = VotingPowerChanged(delegatee=key, old_value=old, new_value=new)
            self._emit(EventType.VOTING_POWER_CHANGED, event)
            changes.append(event)
        return changes

    def _emit(self, event_type: EventType, event) -> None:
        self.bus.emit(event_type.value, **dict(event))

    # --- Persistence ---
    def persist(self) -> None:
        """Writes checkpoints, delegation sets and the block clock to DB."""
        if self.db is None:
            return
        with self._lock:
            rows = self.checkpoints.persist()
            sets = self.delegations.persist()
            if isinstance(self.clock, BlockClock):
                self.db.set_state("clock_height", str(self.clock.now()))
        logger.info(f"Persisted {rows} checkpoint row(s) and {sets} delegation set(s)")

    def load(self) -> None:
        if self.db is None:
            return
        with self._lock:
            self.checkpoints.load()
            self.delegations.clear_cache()
            if isinstance(self.clock, BlockClock):
                height = self.db.get_state("clock_height")
                if height:
                    self.clock.set(max(int(height), self.clock.now()))
