"""DynamoDB-backed rate-limit counters shared across all instances.

Table layout: partition key `pk` (string), plus `request_count`,
`reset_at` (epoch seconds) and `expires_at` (integer epoch seconds,
configured as the table's TTL attribute so stale windows are evicted).

Consumption is a conditional UpdateItem, so concurrent requests never lose
increments and never push the count past the limit. When the condition
fails, a consistent read tells apart an exhausted window from a missing or
expired one; the latter is replaced by a conditional PutItem.
"""

import asyncio
import math
from decimal import Decimal

from nfc_router.counters.store import CounterOutcome, CounterStore
from nfc_router.errors import CounterStoreError

_CONDITION_FAILED = "ConditionalCheckFailedException"


class DynamoDBCounterStore(CounterStore):
    """Fixed-window counters in a DynamoDB table."""

    MAX_ATTEMPTS = 3

    def __init__(self, table_name: str, region: str = "us-east-1"):
        self._table_name = table_name
        self._region = region
        self._table = None

    def _get_table(self):
        """Lazy-init boto3 Table resource."""
        if self._table is None:
            import boto3

            dynamodb = boto3.resource("dynamodb", region_name=self._region)
            self._table = dynamodb.Table(self._table_name)
        return self._table

    async def increment_and_check(
        self, key: str, limit: int, window_seconds: float, now: float
    ) -> CounterOutcome:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            return await asyncio.to_thread(self._consume, key, limit, window_seconds, now)
        except (BotoCoreError, ClientError) as e:
            raise CounterStoreError(f"DynamoDB counter update failed: {e}") from e

    async def reset(self, key: str) -> None:
        from botocore.exceptions import BotoCoreError, ClientError

        try:
            await asyncio.to_thread(self._get_table().delete_item, Key={"pk": key})
        except (BotoCoreError, ClientError) as e:
            raise CounterStoreError(f"DynamoDB counter reset failed: {e}") from e

    def _consume(self, key: str, limit: int, window_seconds: float, now: float) -> CounterOutcome:
        from botocore.exceptions import ClientError

        table = self._get_table()
        now_d = Decimal(str(now))

        for _ in range(self.MAX_ATTEMPTS):
            # 1. Increment inside an open window with quota left
            try:
                resp = table.update_item(
                    Key={"pk": key},
                    UpdateExpression="ADD request_count :one",
                    ConditionExpression="reset_at > :now AND request_count < :limit",
                    ExpressionAttributeValues={":one": 1, ":now": now_d, ":limit": limit},
                    ReturnValues="ALL_NEW",
                )
                item = resp["Attributes"]
                return CounterOutcome(
                    allowed=True,
                    count=int(item["request_count"]),
                    reset_at=float(item["reset_at"]),
                )
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") != _CONDITION_FAILED:
                    raise

            # 2. Condition failed: exhausted, or no open window
            current = table.get_item(Key={"pk": key}, ConsistentRead=True).get("Item")
            if current is not None and float(current["reset_at"]) > now:
                count = int(current["request_count"])
                if count >= limit:
                    return CounterOutcome(
                        allowed=False, count=count, reset_at=float(current["reset_at"])
                    )
                # Another request opened this window in between; retry the increment
                continue

            # 3. Start a fresh window unless a concurrent request beat us to it
            reset_at = now + window_seconds
            try:
                table.put_item(
                    Item={
                        "pk": key,
                        "request_count": 1,
                        "reset_at": Decimal(str(reset_at)),
                        "expires_at": math.ceil(reset_at),
                    },
                    ConditionExpression="attribute_not_exists(pk) OR reset_at <= :now",
                    ExpressionAttributeValues={":now": now_d},
                )
                return CounterOutcome(allowed=True, count=1, reset_at=reset_at)
            except ClientError as e:
                if e.response.get("Error", {}).get("Code") != _CONDITION_FAILED:
                    raise

        raise CounterStoreError(f"Counter for {key!r} still contended after {self.MAX_ATTEMPTS} attempts")
