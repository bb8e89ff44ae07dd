"""
DynamoDB-backed dedupe store adapter.

Implements DedupeStorePort with a conditional ``put_item`` so the
insert-if-absent is atomic on the table side.
"""

from __future__ import annotations

import time
from typing import Optional

import boto3
from botocore.exceptions import ClientError

from shared_utils.constants import Defaults, LogScope
from shared_utils.error_handler import ExternalServiceError
from shared_utils.logging_utils import get_scoped_logger


logger = get_scoped_logger(LogScope.ADAPTER)

_CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class DynamoDedupeStoreAdapter:
    """Amazon DynamoDB implementation of DedupeStorePort.

    Table key: ``event_id`` (partition key, no sort key). ``expires_at`` is
    written as epoch seconds so the table's TTL setting can reap old rows.
    """

    def __init__(
        self,
        table_name: str,
        region: str = Defaults.AWS_REGION,
        endpoint_url: str = "",
        ttl_seconds: float = Defaults.DEDUPE_TTL_SECONDS,
        dynamodb_resource: Optional[object] = None,
    ) -> None:
        self._table_name = table_name
        self._ttl = ttl_seconds
        resource_kwargs: dict = {"region_name": region}
        if endpoint_url:
            resource_kwargs["endpoint_url"] = endpoint_url
        self._dynamo = dynamodb_resource or boto3.resource("dynamodb", **resource_kwargs)
        self._table = self._dynamo.Table(table_name)

    def try_insert(self, event_id: str) -> bool:
        now = int(time.time())
        try:
            self._table.put_item(
                Item={
                    "event_id": event_id,
                    "seen_at": now,
                    "expires_at": now + int(self._ttl),
                },
                ConditionExpression="attribute_not_exists(event_id)",
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == _CONDITIONAL_CHECK_FAILED:
                return False
            logger.error("dynamo_dedupe_insert_failed", event_id=event_id, error=str(exc))
            raise ExternalServiceError(
                "DynamoDB", f"Failed to record event id: {exc}"
            ) from exc

        logger.debug("dynamo_dedupe_inserted", event_id=event_id, table=self._table_name)
        return True
