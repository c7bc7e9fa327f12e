"""DynamoDB backend implementing IDelayStore."""

from __future__ import annotations

from typing import Any, Callable, Optional

import boto3
import structlog
from boto3.dynamodb.conditions import Attr
from botocore.exceptions import ClientError

from pollflow.core.exceptions import DelayStoreError
from pollflow.models.pipeline import DelayedEntry, epoch_millis
from pollflow.models.submission import Submission

ENTRY_SK = "DELAYED"


def _entry_pk(entry_id: str) -> str:
    return f"ENTRY#{entry_id}"


class DynamoDBDelayStore:
    """Durable IDelayStore with one item per delayed entry.

    Items: ``PK=ENTRY#{entry_id}``, ``SK=DELAYED``, ``release_at`` (epoch ms),
    ``submission_id``, ``payload`` (JSON). A release is claimed with a
    conditional delete, so two releasers can never both own an entry.
    Due entries are found with a filtered scan.
    """

    durable = True

    def __init__(self, table_name: str = "pollflow-delayed-entries", table_suffix: str = "",
                 region: str = "us-east-1", endpoint_url: str | None = None,
                 clock: Callable[[], int] = epoch_millis) -> None:
        self._table_name = f"{table_name}{table_suffix}"
        self._region = region
        self._endpoint_url = endpoint_url
        self._clock = clock
        self.logger = structlog.get_logger("pollflow.persistence.dynamodb")
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)

    @property
    def table_name(self) -> str:
        return self._table_name

    def _table(self):
        return self._ddb.Table(self._table_name)

    def _scan(self, **kwargs: Any) -> list[dict[str, Any]]:
        """Scan the whole table, following pagination."""
        tbl = self._table()
        items: list[dict[str, Any]] = []
        while True:
            resp = tbl.scan(**kwargs)
            items.extend(resp.get("Items", []))
            last = resp.get("LastEvaluatedKey")
            if not last:
                return items
            kwargs["ExclusiveStartKey"] = last

    # ---- IDelayStore methods ----

    def schedule(
        self, submission: Submission, attempt: int, delay: int, *, journey_id: str
    ) -> DelayedEntry:
        entry = DelayedEntry(
            journey_id=journey_id,
            submission=submission,
            attempt=attempt,
            release_at=self._clock() + max(delay, 0),
        )
        try:
            self._table().put_item(
                Item={
                    "PK": _entry_pk(entry.entry_id),
                    "SK": ENTRY_SK,
                    "entry_id": entry.entry_id,
                    "submission_id": submission.submission_id,
                    "release_at": entry.release_at,
                    "payload": entry.to_payload(),
                }
            )
        except ClientError as exc:
            raise DelayStoreError(
                f"DynamoDB schedule failed for submission={submission.submission_id!r}: {exc}"
            ) from exc
        return entry

    def release_due(self, now: Optional[int] = None, limit: int = 100) -> list[DelayedEntry]:
        now = self._clock() if now is None else now
        try:
            due = self._scan(FilterExpression=Attr("release_at").lte(now))
        except ClientError as exc:
            raise DelayStoreError(f"DynamoDB scan for due entries failed: {exc}") from exc

        due.sort(key=lambda item: int(item["release_at"]))
        released: list[DelayedEntry] = []
        for item in due[:limit]:
            try:
                resp = self._table().delete_item(
                    Key={"PK": item["PK"], "SK": ENTRY_SK},
                    ConditionExpression="attribute_exists(PK)",
                    ReturnValues="ALL_OLD",
                )
            except ClientError as exc:
                if exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                    continue  # claimed by another releaser
                if not released:
                    raise DelayStoreError(f"DynamoDB claim failed for {item['PK']!r}: {exc}") from exc
                # Hand back what was already claimed; the rest stays stored.
                self.logger.warning(
                    "claim failed, returning partial batch",
                    pk=item["PK"], claimed=len(released), error=str(exc),
                )
                break

            old = resp.get("Attributes") or item
            entry_id = str(old.get("entry_id") or str(item["PK"]).removeprefix("ENTRY#"))
            released.append(
                DelayedEntry.from_payload(
                    old.get("payload"), entry_id=entry_id, release_at=int(old["release_at"]),
                )
            )
        return released

    def next_release_at(self) -> Optional[int]:
        try:
            items = self._scan(ProjectionExpression="release_at")
        except ClientError as exc:
            raise DelayStoreError(f"DynamoDB scan failed: {exc}") from exc
        if not items:
            return None
        return min(int(item["release_at"]) for item in items)

    def pending(self) -> int:
        tbl = self._table()
        kwargs: dict[str, Any] = {"Select": "COUNT"}
        total = 0
        try:
            while True:
                resp = tbl.scan(**kwargs)
                total += resp.get("Count", 0)
                last = resp.get("LastEvaluatedKey")
                if not last:
                    return total
                kwargs["ExclusiveStartKey"] = last
        except ClientError as exc:
            raise DelayStoreError(f"DynamoDB count failed: {exc}") from exc
