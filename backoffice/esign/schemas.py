# backoffice/esign/schemas.py

from decimal import Decimal
from enum import Enum
from typing import Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field

FieldValue = Optional[Union[bool, int, float, Decimal, str]]


class TabCategory(str, Enum):
    """Field categories of the contract template"""

    FULL_NAME = "fullName"
    EMAIL = "email"
    TEXT = "text"
    NUMERICAL = "numerical"
    LIST = "list"


class EnvelopeStatus(str, Enum):
    """Envelope lifecycle states reported by DocuSign"""

    CREATED = "created"
    SENT = "sent"
    DELIVERED = "delivered"
    SIGNED = "signed"
    COMPLETED = "completed"
    DECLINED = "declined"
    VOIDED = "voided"


FINAL_ENVELOPE_STATUSES = frozenset({
    EnvelopeStatus.COMPLETED.value,
    EnvelopeStatus.DECLINED.value,
    EnvelopeStatus.VOIDED.value,
})


class ContractFields(BaseModel):
    """
    Contract values grouped by template field category, keyed by tab label.
    """

    model_config = ConfigDict(populate_by_name=True)

    full_name: Dict[str, FieldValue] = Field(default_factory=dict, alias="fullName")
    email: Dict[str, FieldValue] = Field(default_factory=dict)
    text: Dict[str, FieldValue] = Field(default_factory=dict)
    numerical: Dict[str, FieldValue] = Field(default_factory=dict)
    list_items: Dict[str, FieldValue] = Field(default_factory=dict, alias="list")
    # The template's VIN box is a number tab, so it is not mapped with text
    vin: Optional[str] = None

    def bucket(self, category: TabCategory) -> Dict[str, FieldValue]:
        return {
            TabCategory.FULL_NAME: self.full_name,
            TabCategory.EMAIL: self.email,
            TabCategory.TEXT: self.text,
            TabCategory.NUMERICAL: self.numerical,
            TabCategory.LIST: self.list_items,
        }[category]


class Customer(BaseModel):
    """The recipient who signs the contract."""

    name: str = Field(min_length=1)
    email: EmailStr


class ContractEnvelopeRequest(BaseModel):
    """Request to send the contract template to a customer."""

    customer: Customer
    fields: ContractFields = Field(default_factory=ContractFields)


class EnvelopeSummary(BaseModel):
    """Envelope id and status returned when an envelope is sent."""

    model_config = ConfigDict(populate_by_name=True)

    envelope_id: str = Field(alias="envelopeId")
    status: str


class EnvelopeStatusResult(BaseModel):
    """Current lifecycle state of an envelope."""

    model_config = ConfigDict(populate_by_name=True)

    envelope_id: str = Field(alias="envelopeId")
    status: str
    status_datetime: Optional[str] = Field(default=None, alias="statusDateTime")
    status_changed_datetime: Optional[str] = Field(default=None, alias="statusChangedDateTime")
    sent_datetime: Optional[str] = Field(default=None, alias="sentDateTime")
    completed_datetime: Optional[str] = Field(default=None, alias="completedDateTime")

    @computed_field(alias="isFinal")
    @property
    def is_final(self) -> bool:
        """Whether the envelope reached a state it cannot leave"""
        return self.status in FINAL_ENVELOPE_STATUSES


class SignedDocument(BaseModel):
    """The combined signed PDF of a completed envelope."""

    content: bytes
    file_name: str
