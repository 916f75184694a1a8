"""
Owner-scoped access to the expense store.

ExpenseRepository is the only way routers reach the store: it is constructed
with the authenticated owner id and threads it into every call.
"""
import logging
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends

from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.security import get_current_user_id
from app.models.filters import ExpenseFilter
from app.utils.dates import to_datetime

logger = logging.getLogger(__name__)


class ExpenseRepository:
    def __init__(self, store, user_id: str):
        if not user_id:
            raise ValueError("An owner id is required to access expenses")
        self.store = store
        self.user_id = user_id

    def add(self, item: Dict[str, Any]) -> Dict[str, Any]:
        if item.get("user_id") != self.user_id:
            raise ValueError("Cannot store an expense for a different owner")
        return self.store.insert(item)

    def get(self, expense_id: str) -> Dict[str, Any]:
        item = self.store.get(self.user_id, expense_id)
        if item is None:
            raise NotFoundError()
        return item

    def find(self, criteria: Optional[ExpenseFilter] = None) -> List[Dict[str, Any]]:
        return self.store.find(self.user_id, criteria)

    def find_recent_first(self, criteria: Optional[ExpenseFilter] = None) -> List[Dict[str, Any]]:
        return sort_newest_first(self.find(criteria))

    def count(self, criteria: Optional[ExpenseFilter] = None) -> int:
        return self.store.count(self.user_id, criteria)

    def update(self, expense_id: str, changes: Dict[str, Any]) -> Dict[str, Any]:
        updated = self.store.update(self.user_id, expense_id, changes)
        if updated is None:
            raise NotFoundError()
        return updated

    def delete(self, expense_id: str) -> Dict[str, Any]:
        deleted = self.store.delete(self.user_id, expense_id)
        if deleted is None:
            raise NotFoundError()
        return deleted

    def sum_by(self, key: str, criteria: Optional[ExpenseFilter] = None) -> Dict[str, float]:
        return self.store.sum_by(self.user_id, key, criteria)


def sort_newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda item: to_datetime(item["date"]), reverse=True)


@lru_cache
def get_expense_store():
    if settings.STORE_BACKEND == "memory":
        from app.db.memory import InMemoryExpenseStore

        logger.info("Using in-memory expense store")
        return InMemoryExpenseStore()

    from app.db.dynamo import DynamoExpenseStore

    logger.info(f"Using DynamoDB expense store: {settings.DYNAMO_EXPENSES_TABLE}")
    return DynamoExpenseStore()


def get_expense_repository(
    user_id: str = Depends(get_current_user_id),
    store=Depends(get_expense_store),
) -> ExpenseRepository:
    return ExpenseRepository(store, user_id)
