import logging
import math
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import Settings, get_settings
from ..database import get_db
from ..exceptions import RecordNotFound
from ..gateway import OrderGatewayClient, get_gateway
from ..oauth2 import get_current_admin, require_roles
from ..store import PaymentRecordStore
from ..verification import verify_payment
from .donations import make_receipt_id, payment_details_out

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/members", tags=["Members"])


def one_year_after(start: date) -> date:
    try:
        return start.replace(year=start.year + 1)
    except ValueError:    # 29 Feb rolls over to 1 Mar
        return date(start.year + 1, 3, 1)


def next_membership_id(db: Session, org_code: str) -> str:
    year = date.today().year
    seq = db.query(func.count(models.Member.id)).scalar() + 1
    while True:
        membership_id = f"{org_code}{year}{seq:05d}"
        if not db.query(models.Member.id).filter(models.Member.membership_id == membership_id).first():
            return membership_id
        seq += 1


def set_role(user: models.User, role: models.Role):
    # admins keep their role whatever happens to their membership
    if user.role != models.Role.ADMIN.value:
        user.role = role.value


def user_brief(user: models.User) -> dict:
    return {"id": user.id, "name": user.name, "email": user.email, "phone": user.phone}


def member_out(member: models.Member) -> dict:
    return {
        "id": member.id,
        "membership_id": member.membership_id,
        "user": user_brief(member.user),
        "address": {
            "street": member.street,
            "city": member.city,
            "state": member.state,
            "pincode": member.pincode,
        },
        "occupation": member.occupation,
        "date_of_birth": member.date_of_birth,
        "membership_start_date": member.membership_start_date,
        "membership_expiry_date": member.membership_expiry_date,
        "is_active": member.is_active,
        "notes": member.notes,
        "payment_details": payment_details_out(member),
        "created_at": member.created_at,
    }


def get_member_or_404(db: Session, member_id: int) -> models.Member:
    member = PaymentRecordStore(db, models.Member).find_by_id(member_id)
    if not member:
        raise RecordNotFound("Member not found")
    return member


#------------------------------------------------------REGISTER-----------------------------------------------------#

@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=schemas.MemberRegisterResponse)
def register_member(
    request: schemas.MemberRegister,
    db: Session = Depends(get_db),
    gateway: OrderGatewayClient = Depends(get_gateway),
    settings: Settings = Depends(get_settings)
):
    user = db.query(models.User).filter(models.User.id == request.user_id).first()
    if not user:
        raise RecordNotFound("User not found")

    existing_member = db.query(models.Member).filter(
        models.Member.user_id == request.user_id,
        models.Member.is_active.is_(True)
    ).first()
    if existing_member:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already an active member")

    order = gateway.create_order(settings.membership_fee, make_receipt_id("MEM"))

    address = request.address or schemas.Address()
    today = date.today()

    # an unpaid registration is reissued with the new order, so only one pending membership exists per user
    member = db.query(models.Member).filter(
        models.Member.user_id == request.user_id,
        models.Member.payment_status == models.PaymentStatus.PENDING.value
    ).order_by(models.Member.id.desc()).first()

    if member:
        reissued = PaymentRecordStore(db, models.Member).update_status(member.id, {
            "street": address.street,
            "city": address.city,
            "state": address.state,
            "pincode": address.pincode,
            "occupation": request.occupation,
            "date_of_birth": request.date_of_birth,
            "membership_start_date": today,
            "membership_expiry_date": one_year_after(today),
            "payment_order_id": order.order_id,
            "payment_amount": order.amount,
            "payment_currency": order.currency,
        })
        if not reissued:    # paid while this request was in flight
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="User is already an active member")
        db.refresh(member)
        logger.info("Pending membership %s reissued with order %s", member.membership_id, order.order_id)
    else:
        member = models.Member(
            user_id=user.id,
            membership_id=next_membership_id(db, settings.org_code),
            street=address.street,
            city=address.city,
            state=address.state,
            pincode=address.pincode,
            occupation=request.occupation,
            date_of_birth=request.date_of_birth,
            membership_start_date=today,
            membership_expiry_date=one_year_after(today),
            is_active=False,
            payment_order_id=order.order_id,
            payment_amount=order.amount,
            payment_currency=order.currency,
            payment_status=models.PaymentStatus.PENDING.value
        )
        PaymentRecordStore(db, models.Member).create(member)
        logger.info("Membership %s initiated for user %s (order %s)", member.membership_id, user.id, order.order_id)

    return {
        "message": "Membership registration initiated",
        "member": {"id": member.id, "membership_id": member.membership_id},
        "order": {
            "order_id": order.order_id,
            "amount": order.amount,
            "currency": order.currency,
            "key": gateway.key_id
        }
    }


#------------------------------------------------------VERIFY PAYMENT-----------------------------------------------------#

@router.post("/verify-payment", status_code=status.HTTP_200_OK, response_model=schemas.MemberVerifyResponse)
def verify_member_payment(
    request: schemas.MemberVerify,
    db: Session = Depends(get_db),
    gateway: OrderGatewayClient = Depends(get_gateway)
):
    result = verify_payment(
        PaymentRecordStore(db, models.Member),
        request.member_id,
        request.order_id,
        request.payment_id,
        request.signature,
        gateway.config.key_secret,
        extra_fields={"is_active": True},
        commit=False
    )
    member = result.record

    # activation and role promotion land in one commit
    try:
        if result.transitioned:
            set_role(member.user, models.Role.MEMBER)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(member)

    return {
        "message": "Payment verified successfully" if result.transitioned else "Membership payment was already verified",
        "member": {
            "id": member.id,
            "membership_id": member.membership_id,
            "expiry_date": member.membership_expiry_date,
            "user": user_brief(member.user)
        },
        "already_processed": not result.transitioned
    }


#------------------------------------------------------PROFILE-----------------------------------------------------#

@router.get("/profile", status_code=status.HTTP_200_OK, response_model=schemas.MemberResponse)
def get_profile(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(require_roles(models.Role.MEMBER, models.Role.ADMIN))
):
    member = db.query(models.Member).filter(
        models.Member.user_id == current_user.id
    ).order_by(models.Member.is_active.desc(), models.Member.id.desc()).first()

    if not member:
        raise RecordNotFound("Member profile not found")

    return {"member": member_out(member)}


#------------------------------------------------------ADMIN-----------------------------------------------------#

@router.get("/", status_code=status.HTTP_200_OK, response_model=schemas.MemberListResponse)
def list_members(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    member_status: Optional[str] = Query(None, alias="status", pattern="^(active|inactive)$"),
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin)
):
    query = db.query(models.Member)
    if member_status:
        query = query.filter(models.Member.is_active.is_(member_status == "active"))

    total = query.count()
    members = query.order_by(models.Member.id.desc()).offset((page - 1) * limit).limit(limit).all()

    return {
        "members": [member_out(m) for m in members],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total
    }


@router.get("/{member_id}", status_code=status.HTTP_200_OK, response_model=schemas.MemberResponse)
def get_member(member_id: int, db: Session = Depends(get_db), current_admin: models.User = Depends(get_current_admin)):
    return {"member": member_out(get_member_or_404(db, member_id))}


@router.put("/{member_id}/status", status_code=status.HTTP_200_OK, response_model=schemas.MemberResponse)
def update_member_status(
    member_id: int,
    request: schemas.MemberStatusUpdate,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin)
):
    member = get_member_or_404(db, member_id)

    member.is_active = request.is_active
    if "notes" in request.model_fields_set:
        member.notes = request.notes
    member.updated_by = current_admin.id
    set_role(member.user, models.Role.MEMBER if request.is_active else models.Role.USER)

    db.commit()
    db.refresh(member)
    logger.info("Member %s %s by admin %s", member.id, "activated" if request.is_active else "deactivated", current_admin.id)

    return {
        "message": f"Member {'activated' if request.is_active else 'deactivated'} successfully",
        "member": member_out(member)
    }


@router.delete("/admin/{member_id}", status_code=status.HTTP_200_OK, response_model=schemas.MessageResponse)
def delete_member(member_id: int, db: Session = Depends(get_db), current_admin: models.User = Depends(get_current_admin)):
    member = get_member_or_404(db, member_id)

    set_role(member.user, models.Role.USER)
    db.delete(member)
    db.commit()

    return {"message": "Member deleted successfully"}
