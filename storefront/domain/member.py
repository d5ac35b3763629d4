"""
Member Domain Models

Registered shoppers. End users get member prices, resellers get reseller
prices and per-item discount overrides.
"""
from enum import Enum
from pydantic import BaseModel, Field, ConfigDict, EmailStr
from typing import Optional
from datetime import datetime
from decimal import Decimal


class MemberStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MemberUserType(str, Enum):
    END_USER = "end_user"
    RESELLER = "reseller"


class Member(BaseModel):
    """
    Member domain model (public view, never carries the password hash)
    """

    id: str = Field(..., description="Member ID")
    username: str = Field(..., description="Unique username")
    email: str = Field(..., description="Unique email")
    mobile_no: Optional[str] = Field(None, description="Mobile number")
    level: int = Field(1, description="Member level")
    status: MemberStatus = Field(MemberStatus.ACTIVE, description="Account status")
    user_type: MemberUserType = Field(MemberUserType.END_USER, description="Pricing class")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True, use_enum_values=True, validate_default=True)

    @property
    def is_active(self) -> bool:
        return self.status == MemberStatus.ACTIVE.value

    @property
    def is_reseller(self) -> bool:
        return self.user_type == MemberUserType.RESELLER.value

    def to_dict(self) -> dict:
        return self.model_dump(mode="json")


class MemberRecord(Member):
    """Member row including credentials; repository and auth use only"""

    password_hash: str = Field(..., description="Password hash")

    def to_member(self) -> Member:
        return Member(**self.model_dump(exclude={"password_hash"}))


class MemberRegister(BaseModel):
    """Schema for registering a new member"""
    username: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)
    mobile_no: Optional[str] = None


class MemberLogin(BaseModel):
    email: EmailStr
    password: str


class MemberUpdate(BaseModel):
    """Fields an admin may change on a member"""
    level: Optional[int] = Field(None, ge=1)
    status: Optional[MemberStatus] = None
    user_type: Optional[MemberUserType] = None


class MemberDiscount(BaseModel):
    """
    Per-member price override for one item, optionally one variation.

    The natural key is (member_id, menu_item_id, variation_id).
    """

    id: str = Field(..., description="Discount ID")
    member_id: str = Field(..., description="Member ID")
    menu_item_id: str = Field(..., description="Menu item ID")
    variation_id: Optional[str] = Field(None, description="Variation ID (None = whole item)")
    discount_percentage: Decimal = Field(Decimal("0"), description="Discount percentage")
    capital_price: Decimal = Field(Decimal("0"), description="Cost to the shop")
    selling_price: Decimal = Field(..., description="Price charged to the member")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    model_config = ConfigDict(from_attributes=True)

    def to_dict(self) -> dict:
        data = self.model_dump(mode="json")
        for field in ['discount_percentage', 'capital_price', 'selling_price']:
            data[field] = float(getattr(self, field))
        return data


class DiscountUpsert(BaseModel):
    """Schema for setting a member discount"""
    menu_item_id: str
    variation_id: Optional[str] = None
    discount_percentage: Decimal = Field(Decimal("0"), ge=0)
    capital_price: Decimal = Field(Decimal("0"), ge=0)
    selling_price: Decimal = Field(..., ge=0)


class TopMember(BaseModel):
    member: Member
    total_orders: int
    total_cost: Decimal

    def to_dict(self) -> dict:
        return {
            "member": self.member.to_dict(),
            "total_orders": self.total_orders,
            "total_cost": float(self.total_cost),
        }
