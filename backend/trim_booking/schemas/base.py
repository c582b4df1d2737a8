"""
Base schemas shared by every request and response body.

Wire names are camelCase; Python attributes stay snake_case and either
form is accepted on input.
"""
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import core_schema


class StandardizedModel(BaseModel):  # type: ignore[misc]
    """Response base: camelCase output, enums rendered as their values."""

    model_config = ConfigDict(
        use_enum_values=True,
        populate_by_name=True,
        alias_generator=to_camel,
        from_attributes=True,
    )


class StrictRequestModel(BaseModel):  # type: ignore[misc]
    """Request base: unknown fields are rejected."""

    model_config = ConfigDict(
        extra="forbid",
        populate_by_name=True,
        alias_generator=to_camel,
        validate_default=True,
        str_strip_whitespace=True,
    )


CENT = Decimal("0.01")


class Money(Decimal):
    """Euro amount held to the cent; serializes as a JSON number."""

    @classmethod
    def __get_pydantic_core_schema__(cls, source_type: Any, handler: Any) -> core_schema.CoreSchema:
        def to_cents(value: Any) -> Decimal:
            if isinstance(value, float):
                value = str(value)
            try:
                return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
            except InvalidOperation as exc:
                raise ValueError(f"Invalid money amount: {value!r}") from exc

        return core_schema.no_info_after_validator_function(
            to_cents,
            core_schema.union_schema(
                [
                    core_schema.is_instance_schema(Decimal),
                    core_schema.int_schema(),
                    core_schema.float_schema(),
                    core_schema.str_schema(),
                ]
            ),
            serialization=core_schema.plain_serializer_function_ser_schema(
                float, return_schema=core_schema.float_schema()
            ),
        )
