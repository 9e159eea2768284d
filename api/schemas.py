# api/schemas.py
"""
Request and error payloads for the Item API
"""

from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic_core import PydanticCustomError

from core.database_models import DESCRIPTION_MAX_LENGTH, EMAIL_MAX_LENGTH, NAME_MAX_LENGTH, ItemStatus
from core.email_validator import DeliverableEmailValidator


class ItemRequest(BaseModel):
    """
    Body of POST and PUT /api/items

    The email deliverability check needs a validator passed in the validation
    context under ``email_validator``:

        ItemRequest.model_validate(payload, context={'email_validator': validator})
    """

    model_config = ConfigDict(extra='ignore')

    name: Optional[str] = Field(default=None, validate_default=True)
    description: Optional[str] = None
    status: Optional[str] = Field(default=None, validate_default=True)
    email: Optional[str] = Field(default=None, validate_default=True)

    @field_validator('name')
    @classmethod
    def check_name(cls, value: Optional[str]) -> str:
        if value is None or not value.strip():
            raise PydanticCustomError('name_required', 'Name is required')
        if len(value) > NAME_MAX_LENGTH:
            raise PydanticCustomError(
                'name_too_long',
                'Name cannot exceed {max} characters',
                {'max': NAME_MAX_LENGTH}
            )
        return value

    @field_validator('description')
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and len(value) > DESCRIPTION_MAX_LENGTH:
            raise PydanticCustomError(
                'description_too_long',
                'Description cannot exceed {max} characters',
                {'max': DESCRIPTION_MAX_LENGTH}
            )
        return value

    @field_validator('status')
    @classmethod
    def check_status(cls, value: Optional[str]) -> str:
        if value is None:
            raise PydanticCustomError('status_required', 'Status is required')
        if value not in ItemStatus.values():
            raise PydanticCustomError(
                'status_invalid',
                'Status must be one of {allowed}',
                {'allowed': ', '.join(ItemStatus.values())}
            )
        return value

    @field_validator('email')
    @classmethod
    def check_email(cls, value: Optional[str], info: ValidationInfo) -> str:
        if value is None or not value.strip():
            raise PydanticCustomError('email_required', 'Email is required')
        if len(value) > EMAIL_MAX_LENGTH:
            raise PydanticCustomError(
                'email_too_long',
                'Email cannot exceed {max} characters',
                {'max': EMAIL_MAX_LENGTH}
            )

        validator = (info.context or {}).get('email_validator') or DeliverableEmailValidator()
        if not validator.is_valid(value):
            raise PydanticCustomError('email_not_deliverable', 'Email address is not deliverable')
        return value


def validation_messages(errors: List[Dict[str, Any]]) -> List[str]:
    """Flatten pydantic errors into "field: message" strings"""
    messages = []
    for error in errors:
        location = '.'.join(str(part) for part in error.get('loc', ())) or 'body'
        messages.append(f"{location}: {error['msg']}")
    return messages


@dataclass
class ErrorResponse:
    """JSON envelope returned for every error"""
    timestamp: datetime
    status: int
    error: str
    messages: List[str] = field(default_factory=list)
    path: str = ''

    @classmethod
    def of(cls, status: int, error: str, messages: List[str], path: str) -> 'ErrorResponse':
        return cls(
            timestamp=datetime.now(timezone.utc).astimezone(),
            status=status,
            error=error,
            messages=list(messages),
            path=path
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['timestamp'] = self.timestamp.isoformat(timespec='seconds')
        return data
