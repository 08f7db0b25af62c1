"""
Base schemas with common functionality.
"""
from pydantic import BaseModel, ConfigDict
from typing import Type, TypeVar, Any, List

T = TypeVar('T', bound='BaseSchema')

class BaseSchema(BaseModel):
    """Base schema with common functionality for all schemas"""

    model_config = ConfigDict(
        from_attributes=True,
        populate_by_name=True
    )

    @classmethod
    def from_orm_model(cls: Type[T], orm_model: Any) -> T:
        """Create a schema instance from an ORM model"""
        return cls.model_validate(orm_model)

    @classmethod
    def snapshot_many(cls, orm_models: List[Any]) -> List[dict]:
        """JSON-ready snapshots of ORM rows, as stored in the view cache."""
        return [cls.model_validate(row).model_dump(mode="json") for row in orm_models]
