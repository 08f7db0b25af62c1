"""
Catalog model. A product id doubles as the serial-number prefix of every unit
produced for it.
"""

from sqlalchemy import Column, String, Float, Integer, Boolean, DateTime, text
from ..database import Base


class Product(Base):
    __tablename__ = "products"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False, default="")
    category = Column(String, nullable=True)
    unit_of_measure = Column(String, nullable=True)
    unit_cost = Column(Float, nullable=False, default=0.0)
    supplier_name = Column(String, nullable=True)
    reorder_level = Column(Integer, nullable=False, default=0)
    reorder_quantity = Column(Integer, nullable=False, default=0)
    storage_location = Column(String, nullable=True)
    shelf_life_days = Column(Integer, nullable=False, default=0)
    is_perishable = Column(Boolean, nullable=False, default=False)

    created_at = Column(
        DateTime(timezone=False),
        server_default=text("CURRENT_TIMESTAMP"),
        nullable=False
    )

    def __repr__(self):
        return f"<Product(id='{self.id}', name='{self.name}')>"
