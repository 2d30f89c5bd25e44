from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator


class OrderPayload(BaseModel):
    """Order data needed to resolve and record the ordering customer."""
    order_id: int
    user_id: Optional[int] = None
    billing_email: Optional[str] = None
    billing_first_name: Optional[str] = None
    billing_last_name: Optional[str] = None
    billing_city: Optional[str] = None
    billing_postcode: Optional[str] = None
    billing_country: Optional[str] = None
    status: str = "processing"
    num_items_sold: int = 0
    gross_total: Decimal = Decimal('0')
    net_total: Decimal = Decimal('0')
    date_created: datetime

    @field_validator('billing_email')
    @classmethod
    def strip_email(cls, value):
        return value.strip() if value else value

    @field_validator('user_id')
    @classmethod
    def zero_user_is_guest(cls, value):
        # Guest checkouts report user 0
        return value or None


class CustomerProfile(BaseModel):
    """Profile of a registered user as kept by the account system."""
    user_id: int
    username: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    billing_city: Optional[str] = None
    billing_postcode: Optional[str] = None
    billing_country: Optional[str] = None
    date_created: datetime
    last_active: Optional[datetime] = None


class IdentityState(str, Enum):
    UNKNOWN = "unknown"
    REGISTERED_MATCH = "registered_match"
    GUEST_MATCH = "guest_match"
    NEW_GUEST = "new_guest"


class IdentityResolution(BaseModel):
    state: IdentityState
    customer_id: Optional[int] = None

    @property
    def found(self) -> bool:
        return self.customer_id is not None
