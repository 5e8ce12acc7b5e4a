"""Helpers for multipart endpoints."""

from typing import Any, TypeVar

from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, ValidationError

SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_form(schema: type[SchemaT], **fields: Any) -> SchemaT:
    """Validate form fields against ``schema``; unset fields are left out."""
    try:
        return schema.model_validate({k: v for k, v in fields.items() if v is not None})
    except ValidationError as e:
        raise RequestValidationError(e.errors(include_url=False)) from e
