# cake_stock/models/scan_event.py
from sqlalchemy import Column, Integer, String, DateTime, Index
from cake_stock.database import Base


class ScanEvent(Base):
    """
    One movement of one serialized unit.
    Append-only: rows are never edited, and only removed by a bulk log clear.
    """
    __tablename__ = "scan_events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=False), nullable=False, index=True)
    serial_number = Column(String, nullable=False, index=True)

    # Stored as text so the log keeps whatever was accepted at ingestion
    event_type = Column(String, nullable=False, index=True)
    location = Column(String, nullable=False)
    client_id = Column(String, nullable=True)

    __table_args__ = (
        Index("ix_scan_events_type_timestamp", "event_type", "timestamp"),
    )

    def __repr__(self):
        return (f"<ScanEvent(id={self.id}, serial='{self.serial_number}', "
                f"type='{self.event_type}', at={self.timestamp})>")
