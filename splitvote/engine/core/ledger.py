# MIT License
# Copyright (c) 2025 Hashborn

"""
Reference token ledger.

Owns balances and drives the delegation engine: every balance move is
applied here first, then reported through on_balance_changed. Access control
(who may mint, burn or delegate on behalf of whom) is left to the caller.
"""
from typing import Dict, List, Optional, Sequence
import logging
import threading

from ...protocol.types.common import ValidationError, InvalidAddress, InsufficientBalance, SupplyCapExceeded
from ...protocol.types.delegation import Delegation, VotingPowerChanged
from ...protocol.config.params import CURRENT_NETWORK, EngineConfig
from ..storage.db import StorageDB
from .accounts import Account
from .engine import DelegationEngine
from .events import EventBus

logger = logging.getLogger(__name__)


class TokenLedger:
    def __init__(self,
                 config: Optional[EngineConfig] = None,
                 clock=None,
                 bus: Optional[EventBus] = None,
                 db: Optional[StorageDB] = None):
        self.config = config or CURRENT_NETWORK
        self.db = db
        # Cache for modified/accessed accounts: address -> Account
        self._accounts: Dict[str, Account] = {}
        self._total_supply = 0
        self._lock = threading.RLock()

        self.engine = DelegationEngine(self.balance_of, clock=clock, config=self.config, bus=bus, db=db)
        self.zero = self.engine.zero

    @property
    def clock(self):
        return self.engine.clock

    @property
    def query(self):
        return self.engine.query

    @property
    def supply_cap(self) -> int:
        # Supply must fit a checkpoint value
        return self.config.max_value

    # --- Accounts ---
    def get_account(self, address: str) -> Account:
        if address in self._accounts:
            return self._accounts[address]

        # Try load from DB
        if self.db is not None:
            raw_json = self.db.get_state(f"acc:{address}")
            if raw_json:
                acc = Account.model_validate_json(raw_json)
                self._accounts[address] = acc
                return acc

        # Return generic new account
        return Account(address=address)

    def set_account(self, account: Account):
        """Updates account in local cache."""
        self._accounts[account.address] = account

    def balance_of(self, address: str) -> int:
        return self.get_account(self.engine.canonical(address)).balance

    def total_supply(self) -> int:
        return self._total_supply

    # --- Balance moves ---
    def mint(self, to_address: str, amount: int) -> List[VotingPowerChanged]:
        with self._lock:
            self._require_amount(amount)
            to_address = self._require_account(to_address)
            new_supply = self._total_supply + amount
            if new_supply > self.supply_cap:
                raise SupplyCapExceeded(new_supply, self.supply_cap)
            return self._move(self.zero, to_address, amount)

    def burn(self, from_address: str, amount: int) -> List[VotingPowerChanged]:
        with self._lock:
            self._require_amount(amount)
            from_address = self._require_account(from_address)
            self._require_balance(from_address, amount)
            return self._move(from_address, self.zero, amount)

    def transfer(self, from_address: str, to_address: str, amount: int) -> List[VotingPowerChanged]:
        with self._lock:
            self._require_amount(amount)
            from_address = self._require_account(from_address)
            to_address = self._require_account(to_address)
            self._require_balance(from_address, amount)
            return self._move(from_address, to_address, amount)

    # --- Delegation ---
    def delegate(self, account: str, delegatee: str) -> List[VotingPowerChanged]:
        with self._lock:
            return self.engine.delegate(account, delegatee)

    def set_delegations(self, account: str, delegations: Sequence[Delegation]) -> List[VotingPowerChanged]:
        with self._lock:
            return self.engine.set_delegations(account, delegations)

    def delegates_of(self, account: str) -> List[Delegation]:
        return self.engine.query.current_delegations(account)

    # --- Internals ---
    def _move(self, from_address: str, to_address: str, amount: int) -> List[VotingPowerChanged]:
        is_mint = from_address == self.zero
        is_burn = to_address == self.zero
        snapshot = {
            addr: self.get_account(addr).model_copy()
            for addr in (from_address, to_address) if addr != self.zero
        }
        supply_before = self._total_supply

        if not is_mint:
            sender = self.get_account(from_address)
            sender.balance -= amount
            self.set_account(sender)
        if not is_burn:
            recipient = self.get_account(to_address)
            recipient.balance += amount
            self.set_account(recipient)
        if is_mint:
            self._total_supply += amount
        elif is_burn:
            self._total_supply -= amount

        try:
            return self.engine.on_balance_changed(from_address, to_address, amount)
        except Exception:
            # Engine rejected the move: discard the balance change too
            for acc in snapshot.values():
                self.set_account(acc)
            self._total_supply = supply_before
            logger.error(f"Balance move {from_address} -> {to_address} ({amount}) aborted", exc_info=True)
            raise

    def _require_amount(self, amount: int):
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise ValidationError(f"Amount must be a non-negative integer, got {amount!r}")

    def _require_account(self, address: str) -> str:
        """Returns the canonical form of a non-zero account address."""
        address = self.engine.canonical(address)
        if address == self.zero:
            raise InvalidAddress(address)
        return address

    def _require_balance(self, address: str, amount: int):
        balance = self.balance_of(address)
        if balance < amount:
            raise InsufficientBalance(address, balance, amount)

    # --- Persistence ---
    def persist(self):
        """Writes modified accounts, supply and engine state to DB."""
        if self.db is None:
            return
        with self._lock:
            items = {f"acc:{addr}": acc.model_dump_json() for addr, acc in self._accounts.items()}
            items["total_supply"] = str(self._total_supply)
            self.db.set_state_many(items)
            self.engine.persist()

    def load(self):
        if self.db is None:
            return
        with self._lock:
            self._accounts.clear()
            val = self.db.get_state("total_supply")
            self._total_supply = int(val) if val else 0
            self.engine.load()
        logger.info(f"Ledger loaded (total supply {self._total_supply})")
