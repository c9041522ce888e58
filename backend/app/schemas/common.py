"""Schema Bases: shared configuration for request and response models."""

from typing import Annotated

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, HttpUrl, TypeAdapter, ValidationError,
)
from pydantic.alias_generators import to_camel

_http_url = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    # HttpUrl normalizes (trailing slash, host case); keep what was submitted
    try:
        _http_url.validate_python(value)
    except ValidationError as e:
        raise ValueError("must be an http(s) URL") from e
    return value


HttpUrlString = Annotated[str, AfterValidator(_check_http_url)]


class RequestModel(BaseModel):
    """Strict request body: camelCase aliases, unknown keys rejected."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class ResponseModel(BaseModel):
    """Response body built from ORM attributes."""
    model_config = ConfigDict(from_attributes=True)
