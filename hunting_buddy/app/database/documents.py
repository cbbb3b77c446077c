import logging
from datetime import datetime
from typing import Any

from bson import ObjectId
from bson.errors import InvalidId

from hunting_buddy.app.core.errors import BadRequestError

log = logging.getLogger(__name__)


def parse_object_id(value: str) -> ObjectId:
    """Convert a path parameter into an ObjectId.

    Raises:
        BadRequestError: If `value` is not a valid 24-character hex id.

    """
    try:
        return ObjectId(value)
    except (InvalidId, TypeError) as e:
        _msg = f"Invalid object id: {value!r}"
        log.debug(_msg)
        raise BadRequestError("invalid MongoDB id") from e


def serialize_document(document: dict[str, Any]) -> dict[str, Any]:
    """Return a JSON-ready copy of a stored document.

    ObjectIds become strings and datetimes become ISO 8601 strings, at any depth.
    """
    return {key: _serialize_value(value) for key, value in document.items()}


def _serialize_value(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return serialize_document(value)
    if isinstance(value, list):
        return [_serialize_value(item) for item in value]
    return value
