"""
Common helpers shared by the persistence models.
"""
from datetime import datetime, timezone
from typing import Optional
import re
import secrets

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


OBJECT_ID_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes read back from MongoDB."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_object_id() -> str:
    """Generate a 24-char hex id, same shape as a MongoDB ObjectId."""
    return secrets.token_hex(12)


def is_object_id(value: str) -> bool:
    """True if value looks like a 24-char hex id."""
    return bool(OBJECT_ID_PATTERN.fullmatch(value))


class CamelModel(BaseModel):
    """Base for public (wire) models: snake_case in Python, camelCase in JSON."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_response(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)
