# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict, List, Optional, Sequence, Tuple
import json
import logging
from ...protocol.types.delegation import Delegation
from ..storage.db import StorageDB

logger = logging.getLogger(__name__)

_PREFIX = "dlg:"


class DelegationSetStore:
    """Current delegation set per account. Sets are replaced wholesale, never patched."""

    def __init__(self, db: Optional[StorageDB] = None):
        self.db = db
        self._sets: Dict[str, Tuple[Delegation, ...]] = {}
        self._dirty = set()

    def get(self, account: str) -> List[Delegation]:
        if account in self._sets:
            return list(self._sets[account])

        # Try load from DB
        if self.db is not None:
            raw_json = self.db.get_state(f"{_PREFIX}{account}")
            if raw_json:
                loaded = tuple(Delegation.model_validate(d) for d in json.loads(raw_json))
                self._sets[account] = loaded
                return list(loaded)

        return []

    def set(self, account: str, delegations: Sequence[Delegation]) -> None:
        self._sets[account] = tuple(delegations)
        self._dirty.add(account)

    def persist(self) -> int:
        """Writes modified delegation sets to DB."""
        if self.db is None:
            return 0
        items = {
            f"{_PREFIX}{account}": json.dumps([d.model_dump() for d in self._sets[account]])
            for account in self._dirty
        }
        self.db.set_state_many(items)
        self._dirty.clear()
        logger.debug(f"Persisted {len(items)} delegation sets")
        return len(items)

    def clear_cache(self) -> None:
        self._sets.clear()
        self._dirty.clear()
