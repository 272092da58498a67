"""
Fingerprint cache for duplicate notification suppression.

Holds, per user, a digest of the stock data last sent to them, plus a flag
for users with a delayed cache clear already scheduled.
"""

import hashlib
import json
import logging
import threading
from typing import Dict, Iterable, List, Optional, Set

from type_definitions.stock_types import FINGERPRINT_CATEGORIES, StockSnapshot

logger = logging.getLogger("GagStock.FingerprintCache")


def compute_fingerprint(snapshot: StockSnapshot) -> str:
    """
    Deterministic digest of the gear and seed categories.

    Changes to eggs, cosmetics, honey or weather do not change it.
    """
    subset = {category: snapshot[category] for category in FINGERPRINT_CATEGORIES}  # type: ignore[literal-required]
    canonical = json.dumps(subset, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


class FingerprintCache:
    """Thread-safe user -> fingerprint mapping."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._fingerprints: Dict[str, str] = {}
        self._pending_clears: Set[str] = set()

    def get(self, user_id: str) -> Optional[str]:
        with self._lock:
            return self._fingerprints.get(user_id)

    def set(self, user_id: str, fingerprint: str) -> None:
        with self._lock:
            self._fingerprints[user_id] = fingerprint

    def discard(self, user_id: str) -> bool:
        """Forget the user's fingerprint and any pending clear."""
        with self._lock:
            self._pending_clears.discard(user_id)
            return self._fingerprints.pop(user_id, None) is not None

    def mark_clear_pending(self, user_id: str) -> bool:
        """Flag a delayed clear for the user. False if one is already pending."""
        with self._lock:
            if user_id in self._pending_clears:
                return False
            self._pending_clears.add(user_id)
            return True

    def is_clear_pending(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._pending_clears

    def prune(self, active_user_ids: Iterable[str]) -> List[str]:
        """Drop entries for users without a session. Returns the removed IDs."""
        active = set(active_user_ids)
        with self._lock:
            stale = [user_id for user_id in self._fingerprints if user_id not in active]
            for user_id in stale:
                del self._fingerprints[user_id]
            self._pending_clears &= active
        if stale:
            logger.debug(f"Pruned {len(stale)} orphaned fingerprints")
        return stale

    def clear(self) -> None:
        with self._lock:
            self._fingerprints.clear()
            self._pending_clears.clear()

    def __contains__(self, user_id: object) -> bool:
        with self._lock:
            return user_id in self._fingerprints

    def __len__(self) -> int:
        with self._lock:
            return len(self._fingerprints)
