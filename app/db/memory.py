import copy
import logging
import threading
from collections import defaultdict
from typing import Any, Dict, List, Optional, Tuple

from app.models.filters import ExpenseFilter
from app.utils.dates import format_timestamp, utcnow

logger = logging.getLogger(__name__)


class InMemoryExpenseStore:
    """
    Process-local store with the same contract as DynamoExpenseStore.
    Used for local development (STORE_BACKEND=memory) and tests.
    """

    def __init__(self):
        self._items: Dict[Tuple[str, str], Dict[str, Any]] = {}
        self._lock = threading.Lock()

    def insert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._items[(item["user_id"], item["expense_id"])] = copy.deepcopy(item)
        return copy.deepcopy(item)

    def get(self, user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
        item = self._items.get((user_id, expense_id))
        return copy.deepcopy(item) if item else None

    def find(self, user_id: str, criteria: Optional[ExpenseFilter] = None) -> List[Dict[str, Any]]:
        if not user_id:
            raise ValueError("user_id is required for every expense query")
        with self._lock:
            owned = [item for (owner, _), item in self._items.items() if owner == user_id]
        return [copy.deepcopy(item) for item in owned if criteria is None or criteria.matches(item)]

    def count(self, user_id: str, criteria: Optional[ExpenseFilter] = None) -> int:
        return len(self.find(user_id, criteria))

    def update(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not updates:
            return None
        with self._lock:
            item = self._items.get((user_id, expense_id))
            if item is None:
                return None
            item.update(copy.deepcopy(updates))
            item["updated_at"] = format_timestamp(utcnow())
            return copy.deepcopy(item)

    def delete(self, user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self._items.pop((user_id, expense_id), None)

    def sum_by(self, user_id: str, key: str, criteria: Optional[ExpenseFilter] = None) -> Dict[str, float]:
        totals: Dict[str, float] = defaultdict(float)
        for item in self.find(user_id, criteria):
            totals[item.get(key)] += float(item.get("amount", 0))
        return dict(totals)
