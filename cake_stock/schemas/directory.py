"""
Read-only projections of the user and B2B client tables.
"""
from typing import Optional

from cake_stock.schemas.base import BaseSchema


class UserRead(BaseSchema):
    id: int
    username: str
    full_name: Optional[str] = None
    email: Optional[str] = None
    role: str
    is_active: bool = True


class B2BClientRead(BaseSchema):
    id: int
    name: str
    contact_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    is_active: bool = True
