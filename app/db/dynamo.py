import logging
from collections import defaultdict
from decimal import Decimal
from functools import reduce
from typing import Any, Dict, List, Optional

import boto3
from boto3.dynamodb.conditions import Attr, ConditionBase, Key
from botocore.exceptions import BotoCoreError, ClientError

from app.core.config import settings
from app.core.errors import StoreError
from app.models.filters import ExpenseFilter
from app.utils.dates import format_timestamp, utcnow

logger = logging.getLogger(__name__)


def build_filter_expression(criteria: Optional[ExpenseFilter]) -> Optional[ConditionBase]:
    """Translate an ExpenseFilter into a DynamoDB FilterExpression (or None)."""
    if criteria is None:
        return None

    conditions: List[ConditionBase] = []
    if criteria.category is not None:
        conditions.append(Attr("category").eq(criteria.category))
    if criteria.subcategory is not None:
        conditions.append(Attr("subcategory").eq(criteria.subcategory))
    if criteria.payment_method is not None:
        conditions.append(Attr("payment_method").eq(criteria.payment_method))
    if criteria.min_amount is not None:
        conditions.append(Attr("amount").gte(_convert_for_dynamo(criteria.min_amount)))
    if criteria.max_amount is not None:
        conditions.append(Attr("amount").lte(_convert_for_dynamo(criteria.max_amount)))
    if criteria.start_date is not None:
        conditions.append(Attr("date").gte(format_timestamp(criteria.start_date)))
    if criteria.end_date is not None:
        conditions.append(Attr("date").lte(format_timestamp(criteria.end_date)))

    if not conditions:
        return None
    return reduce(lambda left, right: left & right, conditions)


class DynamoExpenseStore:
    """
    Expense records in a DynamoDB table keyed by (user_id, expense_id).
    Every read and write takes the owner id; there is no unscoped query.
    """

    def __init__(self, table=None):
        if table is None:
            dynamodb = boto3.resource(
                "dynamodb",
                region_name=settings.DYNAMO_REGION,
                endpoint_url=settings.DYNAMO_ENDPOINT_URL,
            )
            table = dynamodb.Table(settings.DYNAMO_EXPENSES_TABLE)
        self.table = table

    def insert(self, item: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self.table.put_item(Item=_convert_for_dynamo(item))
        except (ClientError, BotoCoreError) as e:
            raise _store_error("put_expense", e)
        return dict(item)

    def get(self, user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
        try:
            response = self.table.get_item(Key={"user_id": user_id, "expense_id": expense_id})
        except (ClientError, BotoCoreError) as e:
            raise _store_error("get_expense", e)
        item = response.get("Item")
        return _from_dynamo(item) if item else None

    def find(self, user_id: str, criteria: Optional[ExpenseFilter] = None) -> List[Dict[str, Any]]:
        items: List[Dict[str, Any]] = []
        for page in self._query_pages(user_id, criteria):
            items.extend(_from_dynamo(item) for item in page.get("Items", []))
        return items

    def count(self, user_id: str, criteria: Optional[ExpenseFilter] = None) -> int:
        return sum(page.get("Count", 0) for page in self._query_pages(user_id, criteria, select="COUNT"))

    def update(self, user_id: str, expense_id: str, updates: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Apply partial updates to an existing expense. Returns the updated item,
        or None when no such expense exists for this owner.
        """
        if not updates:
            return None

        changes = dict(updates)
        changes["updated_at"] = format_timestamp(utcnow())

        update_expression_parts = []
        expression_attribute_values = {}
        expression_attribute_names = {}

        for idx, (key, value) in enumerate(changes.items()):
            placeholder = f"#f{idx}"
            value_placeholder = f":v{idx}"
            update_expression_parts.append(f"{placeholder} = {value_placeholder}")
            expression_attribute_names[placeholder] = key
            expression_attribute_values[value_placeholder] = value

        update_expression = "SET " + ", ".join(update_expression_parts)

        try:
            response = self.table.update_item(
                Key={"user_id": user_id, "expense_id": expense_id},
                UpdateExpression=update_expression,
                ConditionExpression=Attr("expense_id").exists(),
                ExpressionAttributeNames=expression_attribute_names,
                ExpressionAttributeValues=_convert_for_dynamo(expression_attribute_values),
                ReturnValues="ALL_NEW",
            )
        except ClientError as e:
            if _is_condition_failure(e):
                return None
            raise _store_error("update_expense", e)
        except BotoCoreError as e:
            raise _store_error("update_expense", e)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None

    def delete(self, user_id: str, expense_id: str) -> Optional[Dict[str, Any]]:
        """Delete a specific expense item and return it, or None if absent."""
        try:
            response = self.table.delete_item(
                Key={"user_id": user_id, "expense_id": expense_id},
                ConditionExpression=Attr("expense_id").exists(),
                ReturnValues="ALL_OLD",
            )
        except ClientError as e:
            if _is_condition_failure(e):
                return None
            raise _store_error("delete_expense", e)
        except BotoCoreError as e:
            raise _store_error("delete_expense", e)
        attributes = response.get("Attributes")
        return _from_dynamo(attributes) if attributes else None

    def sum_by(self, user_id: str, key: str, criteria: Optional[ExpenseFilter] = None) -> Dict[str, float]:
        # DynamoDB has no server-side grouping; reduce the owner's partition here
        totals: Dict[str, float] = defaultdict(float)
        for item in self.find(user_id, criteria):
            totals[item.get(key)] += float(item.get("amount", 0))
        return dict(totals)

    def _query_pages(self, user_id: str, criteria: Optional[ExpenseFilter], select: Optional[str] = None):
        if not user_id:
            raise ValueError("user_id is required for every expense query")

        kwargs: Dict[str, Any] = {"KeyConditionExpression": Key("user_id").eq(user_id)}
        filter_expression = build_filter_expression(criteria)
        if filter_expression is not None:
            kwargs["FilterExpression"] = filter_expression
        if select:
            kwargs["Select"] = select

        while True:
            try:
                response = self.table.query(**kwargs)
            except (ClientError, BotoCoreError) as e:
                raise _store_error("query_expenses", e)
            yield response
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                break
            kwargs["ExclusiveStartKey"] = last_key


def _is_condition_failure(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _store_error(operation: str, error: Exception) -> StoreError:
    if isinstance(error, ClientError):
        message = error.response.get("Error", {}).get("Message", str(error))
    else:
        message = str(error)
    logger.error(f"{operation} failed: {message}")
    return StoreError("Failed to access expense store", cause=message)


def _convert_for_dynamo(obj: Any):
    """
    Recursively convert floats to Decimal for DynamoDB compatibility.
    """
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _convert_for_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_convert_for_dynamo(v) for v in obj]
    return obj


def _from_dynamo(obj: Any):
    """
    Recursively convert Decimal instances back to native Python numeric types.
    """
    if isinstance(obj, list):
        return [_from_dynamo(item) for item in obj]
    if isinstance(obj, dict):
        return {k: _from_dynamo(v) for k, v in obj.items()}
    if isinstance(obj, Decimal):
        if obj % 1 == 0:
            return int(obj)
        return float(obj)
    return obj
