import enum

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, Text, TIMESTAMP
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class Program(str, enum.Enum):
    HEALTHCARE = "healthcare"
    EDUCATION = "education"
    RURAL_DEVELOPMENT = "rural-development"
    SOCIAL_JUSTICE = "social-justice"
    GENERAL = "general"


class Role(str, enum.Enum):
    USER = "user"
    MEMBER = "member"
    ADMIN = "admin"


# --- PAYMENT INTENT (embedded in every payable record) ---
class PaymentDetailsMixin:
    payment_order_id = Column(String, unique=True, index=True)   # gateway order id
    payment_amount = Column(Integer)                              # in paise
    payment_currency = Column(String, default="INR")
    # Status: pending -> completed / failed, completed is terminal
    payment_status = Column(String, default=PaymentStatus.PENDING.value, index=True)
    payment_id = Column(String, nullable=True)      # nullable until payment is completed
    payment_method = Column(String, nullable=True)
    paid_at = Column(TIMESTAMP(timezone=True), nullable=True)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    name = Column(String)
    email = Column(String, unique=True, index=True)
    phone = Column(String)
    hashed_password = Column(String)
    role = Column(String, default=Role.USER.value)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class Donation(PaymentDetailsMixin, Base):
    __tablename__ = "donations"
    id = Column(Integer, primary_key=True, index=True)
    donor_name = Column(String, nullable=False)
    donor_email = Column(String, nullable=False)
    donor_phone = Column(String, nullable=False)
    donor_pan = Column(String, nullable=True)
    amount = Column(Integer, nullable=False)   # in rupees
    program = Column(String, default=Program.GENERAL.value, index=True)
    message = Column(Text, nullable=True)
    is_anonymous = Column(Boolean, default=False)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())


class Member(PaymentDetailsMixin, Base):
    __tablename__ = "members"
    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    membership_id = Column(String, unique=True, index=True)

    street = Column(String, nullable=True)
    city = Column(String, nullable=True)
    state = Column(String, nullable=True)
    pincode = Column(String, nullable=True)
    occupation = Column(String, nullable=True)
    date_of_birth = Column(Date, nullable=True)

    membership_start_date = Column(Date)
    membership_expiry_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=False)   # flipped on by a verified payment
    notes = Column(Text, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())

    user = relationship("User", foreign_keys=[user_id])
