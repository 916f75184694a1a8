import math
from datetime import datetime, tzinfo
from typing import Any, Dict, List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.core.errors import ValidationError
from app.utils.dates import format_timestamp, to_datetime

DEFAULT_SUBCATEGORY = "General"
DEFAULT_PAYMENT_METHOD = "Other"

REQUIRED_FIELDS = ("description", "amount", "category", "date")


class ExpenseCreate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    description: Optional[str] = None
    # Left untyped so a non-numeric amount becomes a 400 from validate_new_expense
    amount: Any = None
    category: Optional[str] = None
    date: Optional[str] = None
    subcategory: Optional[str] = None
    payment_method: Optional[str] = None
    tags: Optional[List[str]] = None
    notes: Optional[str] = None


class ExpenseUpdate(BaseModel):
    """Allow-listed mutable fields; anything else in the body is dropped."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    description: Optional[str] = None
    amount: Any = None
    category: Optional[str] = None
    date: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None


class ExpensePublic(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    user_id: str
    description: str
    amount: float
    category: str
    subcategory: str = DEFAULT_SUBCATEGORY
    payment_method: str = DEFAULT_PAYMENT_METHOD
    tags: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    date: str
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_item(cls, item: Dict[str, Any]) -> "ExpensePublic":
        return cls(id=item["expense_id"], **{k: v for k, v in item.items() if k != "expense_id"})


def to_public(item: Dict[str, Any]) -> Dict[str, Any]:
    return ExpensePublic.from_item(item).model_dump(by_alias=True)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def parse_amount(value: Any) -> float:
    if isinstance(value, bool):
        raise ValidationError("Invalid amount. Amount must be a positive number.", ["amount"])
    try:
        amount = float(value)
    except (TypeError, ValueError):
        raise ValidationError("Invalid amount. Amount must be a positive number.", ["amount"])
    if not math.isfinite(amount) or amount <= 0:
        raise ValidationError("Invalid amount. Amount must be a positive number.", ["amount"])
    return amount


def parse_expense_date(value: Any, tz: tzinfo) -> str:
    try:
        return format_timestamp(to_datetime(value, tz))
    except (TypeError, ValueError):
        raise ValidationError("Invalid date. Use an ISO 8601 date or timestamp.", ["date"])


def normalize_tags(tags: Optional[List[str]]) -> List[str]:
    """Trim, drop blanks and de-duplicate while keeping insertion order."""
    seen: Dict[str, None] = {}
    for tag in tags or []:
        label = str(tag).strip()
        if label:
            seen.setdefault(label, None)
    return list(seen)


def validate_new_expense(expense: ExpenseCreate, tz: tzinfo) -> Dict[str, Any]:
    """Validate a create payload and return the storable fields (snake_case)."""
    missing = [name for name in REQUIRED_FIELDS if _is_blank(getattr(expense, name))]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            missing,
        )

    fields: Dict[str, Any] = {
        "description": expense.description.strip(),
        "amount": parse_amount(expense.amount),
        "category": expense.category.strip(),
        "subcategory": (expense.subcategory or "").strip() or DEFAULT_SUBCATEGORY,
        "payment_method": (expense.payment_method or "").strip() or DEFAULT_PAYMENT_METHOD,
        "tags": normalize_tags(expense.tags),
        "date": parse_expense_date(expense.date, tz),
    }
    if expense.notes is not None:
        fields["notes"] = expense.notes
    return fields


def validate_expense_update(update: ExpenseUpdate, tz: tzinfo) -> Dict[str, Any]:
    """Return the allow-listed changes in store form, or raise if there are none."""
    changes = update.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationError("No fields to update")

    blank = [
        to_camel(name)
        for name in ("description", "amount", "category", "date", "payment_method")
        if name in changes and _is_blank(changes[name])
    ]
    if blank:
        raise ValidationError(f"Fields cannot be empty: {', '.join(blank)}", blank)

    if "amount" in changes:
        changes["amount"] = parse_amount(changes["amount"])
    if "date" in changes:
        changes["date"] = parse_expense_date(changes["date"], tz)
    if "tags" in changes:
        changes["tags"] = normalize_tags(changes["tags"])
    for name in ("description", "category", "payment_method"):
        if name in changes:
            changes[name] = changes[name].strip()
    return changes


def new_expense_item(user_id: str, fields: Dict[str, Any], now: datetime) -> Dict[str, Any]:
    stamp = format_timestamp(now)
    item = {
        "subcategory": DEFAULT_SUBCATEGORY,
        "payment_method": DEFAULT_PAYMENT_METHOD,
        "tags": [],
        "date": stamp,
        **fields,
    }
    item.update(
        user_id=user_id,
        expense_id=str(uuid4()),
        created_at=stamp,
        updated_at=stamp,
    )
    return item
