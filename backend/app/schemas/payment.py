"""
Payment schemas: PayMaya checkout creation and webhook acknowledgement.
"""
from typing import Optional

from pydantic import AnyHttpUrl, BaseModel, EmailStr, Field


class CheckoutCustomer(BaseModel):
    """Optional buyer details; override what the order carries."""

    name: Optional[str] = Field(None, max_length=255)
    first_name: Optional[str] = Field(None, max_length=255)
    last_name: Optional[str] = Field(None, max_length=255)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=20)


class CheckoutRequest(BaseModel):
    """Schema for opening a PayMaya checkout session."""

    amount: float = Field(..., ge=1)
    order_id: Optional[int] = None
    order_number: Optional[str] = None
    description: Optional[str] = Field(None, max_length=255)
    success_url: AnyHttpUrl
    cancel_url: AnyHttpUrl
    failure_url: Optional[AnyHttpUrl] = None
    customer: Optional[CheckoutCustomer] = None


class CheckoutSession(BaseModel):
    id: str
    redirect_url: str
    order_id: str
    order_db_id: Optional[int] = None
    amount: float
    currency: str


class CheckoutResponse(BaseModel):
    success: bool = True
    checkout: CheckoutSession


class WebhookAck(BaseModel):
    """Body returned to the gateway for every delivery."""

    success: bool
    message: str
