"""Decoding of stored records into pydantic models."""

from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from infrastructure.persistence.errors import RecordCorrupted

ModelT = TypeVar("ModelT", bound=BaseModel)


def decode_record(key: str, raw: Optional[str], model: Type[ModelT]) -> Optional[ModelT]:
    """Decode a stored JSON value into ``model``.

    Args:
        key: Store key the value was read from (for error reporting)
        raw: Stored value, or None when the key is absent
        model: Pydantic model class

    Returns:
        The decoded model, or None when ``raw`` is None

    Raises:
        RecordCorrupted: If the value is not valid JSON for ``model``
    """
    if raw is None:
        return None
    try:
        return model.model_validate_json(raw)
    except ValidationError as e:
        raise RecordCorrupted(key, str(e)) from e
