"""
Schemas for scan ingestion and the event log.
"""
from datetime import datetime
from typing import Optional

from cake_stock.schemas.base import BaseSchema


class ScanRequest(BaseSchema):
    """
    Inbound scan payload. Every field is optional at this level so missing
    values are reported by the processor as a validation error.
    """
    serial_number: Optional[str] = None
    event_type: Optional[str] = None
    location: Optional[str] = None
    client_id: Optional[str] = None


class ScanRecordResult(BaseSchema):
    serial_number: str
    timestamp: datetime
    event_type: str
    location: str
    client_id: Optional[str] = None


class ScanEventRead(BaseSchema):
    id: int
    timestamp: datetime
    serial_number: str
    event_type: str
    location: str
    client_id: Optional[str] = None


class UnitStatusRead(BaseSchema):
    serial_number: str
    current_location: str
    status: str
    last_update: datetime


class ClearLogsResult(BaseSchema):
    cleared_events: int
    cleared_statuses: int
