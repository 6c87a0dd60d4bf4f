"""Boundary validation helpers. Out-of-range values are rejected, never clamped."""

import logging
from typing import Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from fragment_mirror.errors import ValidationError

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_range(name: str, value: float, minimum: float, maximum: float) -> float:
    """
    Check that a caller-supplied number lies within [minimum, maximum].

    Raises:
        ValidationError: if value is not a number or is out of range
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{name} must be a number, got {type(value).__name__}")
    if value < minimum or value > maximum:
        raise ValidationError(f"{name} must be between {minimum} and {maximum}, got {value}")
    return value


def validate_payload(payload: bytes) -> bytes:
    if not isinstance(payload, (bytes, bytearray)):
        raise ValidationError(f"payload must be bytes, got {type(payload).__name__}")
    return bytes(payload)


def build_model(model_cls: Type[ModelT], **data) -> ModelT:
    """
    Construct a model, translating pydantic failures into ValidationError.

    Used by the service boundary so callers only ever see the project's
    error taxonomy.
    """
    try:
        return model_cls(**data)
    except PydanticValidationError as e:
        messages = "; ".join(
            f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        logger.debug(f"Rejected {model_cls.__name__}: {messages}")
        raise ValidationError(f"Invalid {model_cls.__name__}: {messages}") from e


def copy_model(instance: ModelT, **updates) -> ModelT:
    """
    Copy-with-update that re-runs validation.

    ``model_copy(update=...)`` skips validation, so the merged data is
    validated again through :func:`build_model`.
    """
    data = dict(instance)
    data.update(updates)
    return build_model(type(instance), **data)
