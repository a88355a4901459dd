import re
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, constr, field_validator

from .models import Program

PAN_PATTERN = r"^[A-Z]{5}[0-9]{4}[A-Z]$"
Phone = constr(strip_whitespace=True, pattern=r"^[0-9]{10}$")
Pincode = constr(strip_whitespace=True, pattern=r"^[0-9]{6}$")
NonBlank = constr(strip_whitespace=True, min_length=1)


class CamelModel(BaseModel):
    class Config:                  # accept snake_case names in code, speak camelCase on the wire
        populate_by_name = True
        from_attributes = True


class MessageResponse(BaseModel):
    success: bool = True
    message: str


#------------------------USER------------------------
class UserCreate(BaseModel):
    name: NonBlank
    email: EmailStr
    password: constr(min_length=6)
    phone: Phone


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: EmailStr
    phone: Optional[str] = None
    role: str

    class Config:
        from_attributes = True


class UserBrief(BaseModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None

    class Config:
        from_attributes = True


#------------------------TOKEN------------------------
class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    id: int


class AuthResponse(BaseModel):
    success: bool = True
    message: str
    token: str
    user: UserResponse


#------------------------PAYMENT------------------------
class PaymentDetails(CamelModel):
    order_id: Optional[str] = Field(None, alias="orderId")
    payment_id: Optional[str] = Field(None, alias="paymentId")
    amount: Optional[int] = None      # in paise
    currency: Optional[str] = None
    status: str
    method: Optional[str] = None
    paid_at: Optional[datetime] = Field(None, alias="paidAt")


class OrderInfo(CamelModel):
    order_id: str = Field(alias="orderId")
    amount: int
    currency: str
    key: Optional[str] = None


class PaymentVerification(CamelModel):
    order_id: NonBlank = Field(alias="orderId")
    payment_id: NonBlank = Field(alias="paymentId")
    signature: str


#------------------------DONATION------------------------
class Donor(CamelModel):
    name: NonBlank
    email: EmailStr
    phone: Phone
    pan_number: Optional[str] = Field(None, alias="panNumber")

    @field_validator("pan_number")
    @classmethod
    def check_pan(cls, value):
        if value is None or value.strip() == "":
            return None
        value = value.strip().upper()
        if not re.match(PAN_PATTERN, value):
            raise ValueError("Invalid PAN number format")
        return value


class DonationCreate(CamelModel):
    donor: Donor
    amount: int = Field(ge=1)
    program: Program = Program.GENERAL
    message: Optional[str] = None
    is_anonymous: bool = Field(False, alias="isAnonymous")


class DonationVerify(PaymentVerification):
    donation_id: int = Field(alias="donationId")


class DonationRef(BaseModel):
    id: int


class DonationCreateResponse(BaseModel):
    success: bool = True
    message: str
    donation: DonationRef
    order: OrderInfo


class DonationOut(CamelModel):
    id: int
    donor: Donor
    amount: int
    program: str
    message: Optional[str] = None
    is_anonymous: bool = Field(alias="isAnonymous")
    payment_details: PaymentDetails = Field(alias="paymentDetails")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class DonationVerifyResponse(CamelModel):
    success: bool = True
    message: str
    donation: DonationOut
    send_email: bool = Field(alias="sendEmail")
    already_processed: bool = Field(False, alias="alreadyProcessed")


class DonationListResponse(CamelModel):
    success: bool = True
    donations: List[DonationOut]
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")
    total: int
    total_amount: Optional[int] = Field(None, alias="totalAmount")


class ProgramStats(CamelModel):
    program: str
    total_amount: int = Field(alias="totalAmount")
    count: int


class DonationStats(CamelModel):
    total_donations: int = Field(alias="totalDonations")
    total_amount: int = Field(alias="totalAmount")
    by_program: List[ProgramStats] = Field(alias="byProgram")


class DonationStatsResponse(BaseModel):
    success: bool = True
    stats: DonationStats


class GatewayPaymentResponse(BaseModel):
    success: bool = True
    payment: Dict[str, Any]


#------------------------MEMBER------------------------
class Address(CamelModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[Pincode] = None


class MemberRegister(CamelModel):
    user_id: int = Field(alias="userId")
    address: Optional[Address] = None
    occupation: Optional[str] = None
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")


class MemberVerify(PaymentVerification):
    member_id: int = Field(alias="memberId")


class MemberRef(CamelModel):
    id: int
    membership_id: str = Field(alias="membershipId")


class MemberRegisterResponse(BaseModel):
    success: bool = True
    message: str
    member: MemberRef
    order: OrderInfo


class MemberSummary(CamelModel):
    id: int
    membership_id: str = Field(alias="membershipId")
    expiry_date: date = Field(alias="expiryDate")
    user: UserBrief


class MemberVerifyResponse(CamelModel):
    success: bool = True
    message: str
    member: MemberSummary
    already_processed: bool = Field(False, alias="alreadyProcessed")


class MemberOut(CamelModel):
    id: int
    membership_id: str = Field(alias="membershipId")
    user: UserBrief
    address: Address
    occupation: Optional[str] = None
    date_of_birth: Optional[date] = Field(None, alias="dateOfBirth")
    membership_start_date: Optional[date] = Field(None, alias="membershipStartDate")
    membership_expiry_date: date = Field(alias="membershipExpiryDate")
    is_active: bool = Field(alias="isActive")
    notes: Optional[str] = None
    payment_details: PaymentDetails = Field(alias="paymentDetails")
    created_at: Optional[datetime] = Field(None, alias="createdAt")


class MemberResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    member: MemberOut


class MemberListResponse(CamelModel):
    success: bool = True
    members: List[MemberOut]
    total_pages: int = Field(alias="totalPages")
    current_page: int = Field(alias="currentPage")
    total: int


class MemberStatusUpdate(CamelModel):
    is_active: bool = Field(alias="isActive")
    notes: Optional[str] = None
