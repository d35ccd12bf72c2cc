"""
Conversion between domain events and event store rows.
"""

from typing import Any, Dict

from evm_crawler.framework.events import BasicEvent, resolve_event_type
from evm_crawler.models.event import EventRecord


def to_record(event: BasicEvent) -> EventRecord:
    return EventRecord(
        aggregate_id=event.aggregate_id,
        version=event.version,
        event_type=event.event_type,
        request_id=event.request_id,
        block_height=event.block_height,
        payload=event.payload,
        created_at=event.timestamp,
    )


def to_event(record: EventRecord) -> BasicEvent:
    event_cls = resolve_event_type(record.event_type)
    return event_cls(
        aggregate_id=record.aggregate_id,
        request_id=record.request_id,
        block_height=record.block_height,
        payload=record.payload or {},
        version=record.version,
        timestamp=record.created_at,
    )


def to_dict(record: EventRecord) -> Dict[str, Any]:
    return {
        "aggregate_id": record.aggregate_id,
        "version": record.version,
        "type": record.event_type,
        "request_id": record.request_id,
        "block_height": record.block_height,
        "payload": record.payload,
        "timestamp": record.created_at.isoformat() if record.created_at else None,
    }
