"""
Batch upload of generated events to a PostHog-compatible ingestion endpoint.

Events are projected onto the sink's record shape and posted to
``{host}/batch/`` in fixed-size batches, one request at a time. The first
failed request aborts the upload; nothing is retried.
"""

from typing import Any, Iterable, Iterator, Optional, Sequence

import httpx
import structlog

from generators.models import USER_SCOPED_KINDS, Event

logger = structlog.get_logger("ingestion")

# Person properties copied into $set for user-scoped events
PERSON_PROPERTIES = (
    "email",
    "username",
    "region",
    "country",
    "acquisition_source",
    "isPaying",
    "subscriptionType",
)


class SinkError(Exception):
    """A batch could not be delivered; later batches were not sent."""

    def __init__(self, message: str, batch_index: int, sent: int):
        super().__init__(message)
        self.batch_index = batch_index
        self.sent = sent


def to_batch_record(event: Event) -> dict[str, Any]:
    properties = dict(event.properties)
    properties["$insert_id"] = event.event_id
    if event.email:
        properties.setdefault("email", event.email)
    if event.user_id:
        properties.setdefault("userId", event.user_id)

    if event.kind in USER_SCOPED_KINDS:
        properties["$set"] = {
            key: event.properties[key] for key in PERSON_PROPERTIES if key in event.properties
        }

    return {
        "event": event.kind.value,
        "distinct_id": event.user_id or event.email or event.event_id,
        "timestamp": event.timestamp.isoformat(),
        "properties": properties,
    }


def chunk(records: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    if size <= 0:
        raise ValueError("batch size must be positive")
    for start in range(0, len(records), size):
        yield records[start : start + size]


class BatchSink:
    def __init__(
        self,
        api_key: str,
        host: str,
        batch_size: int = 100,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        self.api_key = api_key
        self.url = f"{host.rstrip('/')}/batch/"
        self.batch_size = batch_size
        self.client = client or httpx.Client(timeout=timeout)

    def send(self, events: Iterable[Event]) -> int:
        """Upload every event; return how many were accepted."""
        records = [to_batch_record(event) for event in events]
        batches = list(chunk(records, self.batch_size))
        print(f"Uploading {len(records):,} events in {len(batches)} batches...")

        sent = 0
        for index, batch in enumerate(batches):
            payload = {
                "api_key": self.api_key,
                "historical_migration": True,
                "batch": list(batch),
            }
            try:
                response = self.client.post(self.url, json=payload)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                logger.error(
                    "batch_rejected",
                    batch_index=index,
                    status_code=e.response.status_code,
                    sent=sent,
                )
                raise SinkError(
                    f"Batch {index + 1}/{len(batches)} rejected with HTTP {e.response.status_code}",
                    batch_index=index,
                    sent=sent,
                ) from e
            except httpx.TransportError as e:
                logger.error("batch_transport_failed", batch_index=index, error=str(e), sent=sent)
                raise SinkError(
                    f"Batch {index + 1}/{len(batches)} failed: {e}",
                    batch_index=index,
                    sent=sent,
                ) from e

            sent += len(batch)
            logger.info("batch_sent", batch_index=index, size=len(batch), sent=sent)
            print(f"  Batch {index + 1}/{len(batches)}: {len(batch)} events")

        return sent

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "BatchSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
