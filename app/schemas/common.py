"""Shared schema base and small response models."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

MAX_ROW_ID = 2_147_483_647


class CamelModel(BaseModel):
    """Base model exchanging camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class SuccessResponse(CamelModel):
    success: bool = True
    message: str | None = None
