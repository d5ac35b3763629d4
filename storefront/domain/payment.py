"""
Payment Domain Models

Payment methods (e-wallets, bank accounts) shown at checkout, and the admin
payment groups that switch whole sets of methods on and off.
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional
from datetime import datetime


class PaymentMethod(BaseModel):
    """
    Payment method domain model

    Fields:
        uuid_id: Primary key
        id: Kebab-case identifier (unique per admin group), e.g. "gcash"
        name: Display name
        account_number: Account / wallet number
        account_name: Account holder name
        qr_code_url: QR image URL
        active: Whether the method itself is enabled
        sort_order: Display order
        admin_name: Owning admin payment group
    """

    uuid_id: str = Field(..., description="Primary key")
    id: str = Field(..., description="Kebab-case payment method ID")
    name: str = Field(..., description="Display name")
    account_number: str = Field(..., description="Account number")
    account_name: str = Field(..., description="Account name")
    qr_code_url: str = Field(..., description="QR code image URL")
    active: bool = Field(True, description="Enabled flag")
    sort_order: int = Field(0, description="Display order")
    admin_name: Optional[str] = Field(None, description="Owning admin group")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class PaymentMethodCreate(BaseModel):
    """Schema for creating a payment method"""
    id: str = ""
    name: str = ""
    account_number: str = ""
    account_name: str = ""
    qr_code_url: str = ""
    active: bool = True
    sort_order: int = 0
    admin_name: Optional[str] = None


class PaymentMethodUpdate(BaseModel):
    """Schema for updating a payment method (None = leave unchanged)"""
    name: Optional[str] = None
    account_number: Optional[str] = None
    account_name: Optional[str] = None
    qr_code_url: Optional[str] = None
    active: Optional[bool] = None
    sort_order: Optional[int] = None
    admin_name: Optional[str] = None


class AdminPaymentGroup(BaseModel):
    """A named set of payment methods toggled active/inactive as a unit"""

    id: str = Field(..., description="Group ID")
    admin_name: str = Field(..., description="Unique group name")
    is_active: bool = Field(False, description="Whether customers see this group's methods")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")
