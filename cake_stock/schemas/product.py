"""
Schemas for catalog endpoints.

Catalog rows arrive loosely typed (form posts, CSV imports), so creation goes
through the same coercions the catalog reader applies.
"""

from typing import Any, Dict, Optional
from pydantic import field_validator, ConfigDict
from pydantic.alias_generators import to_camel

from cake_stock.core.utils import coerce_bool, coerce_float, coerce_int
from cake_stock.schemas.base import BaseSchema


class ProductBase(BaseSchema):
    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )

    id: str
    name: str = ""
    category: Optional[str] = None
    unit_of_measure: Optional[str] = None
    unit_cost: float = 0.0
    supplier_name: Optional[str] = None
    reorder_level: int = 0
    reorder_quantity: int = 0
    storage_location: Optional[str] = None
    shelf_life_days: int = 0
    is_perishable: bool = False


class ProductCreate(ProductBase):

    @field_validator('id', mode='before')
    @classmethod
    def validate_id(cls, v):
        if v is None or not str(v).strip():
            raise ValueError('Product id is required')
        return str(v).strip()

    @field_validator('name', 'category', 'unit_of_measure', 'supplier_name', 'storage_location', mode='before')
    @classmethod
    def validate_text(cls, v):
        if v is None:
            return None
        # pandas hands over NaN for empty cells
        if isinstance(v, float) and v != v:
            return None
        return str(v).strip()

    @field_validator('unit_cost', mode='before')
    @classmethod
    def validate_cost(cls, v):
        return coerce_float(v)

    @field_validator('reorder_level', 'reorder_quantity', 'shelf_life_days', mode='before')
    @classmethod
    def validate_counts(cls, v):
        return coerce_int(v)

    @field_validator('unit_cost', 'reorder_level', 'reorder_quantity', 'shelf_life_days')
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError('must be non-negative')
        return v

    @field_validator('is_perishable', mode='before')
    @classmethod
    def validate_perishable(cls, v):
        return coerce_bool(v)

    @classmethod
    def from_catalog_row(cls, row: Dict[str, Any]) -> Optional["ProductCreate"]:
        """
        Parse one loosely typed catalog row.

        Returns None for rows without an id; other malformed values raise.
        """
        raw_id = row.get("id")
        if raw_id is None or (isinstance(raw_id, float) and raw_id != raw_id) or not str(raw_id).strip():
            return None
        return cls.model_validate(row)


class ProductRead(ProductBase):
    pass
