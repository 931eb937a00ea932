from datetime import datetime
from enum import Enum
from typing import Annotated, Optional, List

from pydantic import BaseModel, Field, field_validator


class LinkPrecedence(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"


class Contact(BaseModel):
    """A stored contact row."""

    id: int
    email: Optional[str] = None
    phoneNumber: Optional[int] = None
    linkPrecedence: LinkPrecedence
    linkedId: Optional[int] = None
    createdAt: Optional[datetime] = None

    @property
    def is_primary(self) -> bool:
        return self.linkPrecedence == LinkPrecedence.PRIMARY

    @property
    def primaryContactId(self) -> int:
        # a secondary always points at a primary, never at another secondary
        return self.id if self.is_primary else self.linkedId


# phone numbers are stored in a signed 64-bit integer column
PhoneNumber = Annotated[int, Field(ge=0, le=2**63 - 1)]


class Identity(BaseModel):
    email: Optional[str] = None
    phoneNumber: Optional[PhoneNumber] = None

    @field_validator("email")
    @classmethod
    def blank_email_is_absent(cls, value):
        if value is not None and not value.strip():
            return None
        return value

    @field_validator("phoneNumber", mode="before")
    @classmethod
    def phone_is_not_a_bool(cls, value):
        if isinstance(value, bool):
            raise ValueError("phoneNumber must be an integer")
        return value

    @property
    def is_empty(self) -> bool:
        return self.email is None and self.phoneNumber is None


class CreateInstruction(BaseModel):
    linkPrecedence: LinkPrecedence
    email: Optional[str] = None
    phoneNumber: Optional[int] = None
    linkedId: Optional[int] = None


class ConsolidatedView(BaseModel):
    primaryContactId: int
    emails: List[str] = Field(default_factory=list)
    phoneNumbers: List[int] = Field(default_factory=list)
    secondaryContactIds: List[int] = Field(default_factory=list)


class IdentifyRequest(Identity):
    def to_identity(self) -> Identity:
        return Identity(email=self.email, phoneNumber=self.phoneNumber)


class ContactResponse(ConsolidatedView):
    pass


class FinalResponse(BaseModel):
    contact: ContactResponse

    @classmethod
    def from_view(cls, view: ConsolidatedView) -> "FinalResponse":
        return cls(contact=ContactResponse(**view.model_dump()))


class ErrorResponse(BaseModel):
    error: str
    detail: str
