from datetime import datetime
from bson import ObjectId
from bson.errors import InvalidId

from yardsale.core.exceptions import NotFound


def parse_object_id(value: str, not_found: NotFound) -> ObjectId:
    """Convert a path id to ObjectId; malformed ids resolve to nothing."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        raise not_found


def get_current_timestamp() -> datetime:
    """Get current UTC timestamp."""
    return datetime.utcnow()


def format_validation_errors(errors: list) -> str:
    """Flatten pydantic error dicts into one readable message."""
    messages = []
    for error in errors:
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        messages.append(f"{location}: {error['msg']}" if location else error["msg"])
    return "; ".join(messages)
