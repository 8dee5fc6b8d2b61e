from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, PlainSerializer
from pydantic.alias_generators import to_camel
from typing_extensions import Annotated


# Exact decimal amounts travel as strings ("25.99"), never floats.
Money = Annotated[Decimal, PlainSerializer(lambda v: f"{v:.2f}", return_type=str)]


class ApiModel(BaseModel):
    """Response base: camelCase on the wire, built straight from ORM rows."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class RequestModel(BaseModel):
    """Request base: camelCase or snake_case accepted, unknown fields rejected."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class MessageResponse(ApiModel):
    message: str
    success: Optional[bool] = None
