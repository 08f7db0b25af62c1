# cake_stock/models/user.py
from sqlalchemy import Column, Integer, String, Boolean
from cake_stock.database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), nullable=False, unique=True)
    full_name = Column(String(200), nullable=True)
    email = Column(String(200), nullable=True)
    role = Column(String(50), nullable=False, default="staff")
    is_active = Column(Boolean, nullable=False, default=True)

    def __repr__(self):
        return f"<User {self.username} ({self.role})>"
