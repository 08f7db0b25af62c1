# cake_stock/models/unit_status.py
from sqlalchemy import Column, String, DateTime
from cake_stock.database import Base


class UnitStatus(Base):
    """Current whereabouts of one serialized unit, upserted on every scan."""
    __tablename__ = "unit_status"

    serial_number = Column(String, primary_key=True)
    current_location = Column(String, nullable=False)
    status = Column(String, nullable=False, index=True)
    last_update = Column(DateTime(timezone=False), nullable=False, index=True)

    def __repr__(self):
        return f"<UnitStatus {self.serial_number} {self.status} @ {self.current_location}>"
