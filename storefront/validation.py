"""Order request validation."""
from typing import Any

import pydantic

from storefront.exceptions import ValidationError
from storefront.schemas import OrderCreateRequest


def _describe(error: pydantic.ValidationError) -> str:
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"]) or "body"
    return f"{location}: {first['msg']}"


def parse_order_request(payload: Any) -> OrderCreateRequest:
    """
    Validate a raw order payload.

    Args:
        payload: Decoded JSON body

    Returns:
        Validated order request

    Raises:
        ValidationError: If the user is missing, the item list is missing or
            empty, an item is malformed, or an unknown field is present
    """
    if not isinstance(payload, dict):
        raise ValidationError("Invalid request body: expected a JSON object")

    try:
        return OrderCreateRequest.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid request body: {_describe(e)}") from e
