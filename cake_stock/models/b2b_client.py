# cake_stock/models/b2b_client.py
from sqlalchemy import Column, Integer, String, Boolean
from cake_stock.database import Base


class B2BClient(Base):
    """Business customer receiving DELIVERY_B2B shipments."""
    __tablename__ = "b2b_clients"

    id = Column(Integer, primary_key=True)
    name = Column(String(200), nullable=False)
    contact_name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<B2BClient {self.id} {self.name}>"
