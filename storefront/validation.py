"""
Shared request-validation helpers.
"""
from typing import Type, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

ModelT = TypeVar("ModelT", bound=BaseModel)


class CamelModel(BaseModel):
    """Accepts camelCase or snake_case keys, ignores unknown fields."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


def validate_query(model: Type[ModelT], request: Request) -> ModelT:
    """
    Validate the query string against ``model``.

    Blank values are treated as absent. Failures are raised as
    RequestValidationError so they reach the shared 400 translator.
    """
    raw = {key: value for key, value in request.query_params.items() if value != ""}
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc
