import logging
import math
import time
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..config import Settings, get_settings
from ..database import get_db
from ..exceptions import RecordNotFound
from ..gateway import OrderGatewayClient, get_gateway
from ..notifications import send_donation_receipt
from ..oauth2 import get_current_admin
from ..store import PaymentRecordStore
from ..verification import verify_payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/donations", tags=["Donations"])


def make_receipt_id(prefix: str) -> str:
    return f"{prefix}{int(time.time() * 1000)}"


def payment_details_out(record) -> dict:
    return {
        "order_id": record.payment_order_id,
        "payment_id": record.payment_id,
        "amount": record.payment_amount,
        "currency": record.payment_currency,
        "status": record.payment_status,
        "method": record.payment_method,
        "paid_at": record.paid_at,
    }


def donation_out(donation: models.Donation) -> dict:
    return {
        "id": donation.id,
        "donor": {
            "name": donation.donor_name,
            "email": donation.donor_email,
            "phone": donation.donor_phone,
            "pan_number": donation.donor_pan,
        },
        "amount": donation.amount,
        "program": donation.program,
        "message": donation.message,
        "is_anonymous": donation.is_anonymous,
        "payment_details": payment_details_out(donation),
        "created_at": donation.created_at,
    }


#------------------------------------------------------CREATE ORDER-----------------------------------------------------#

@router.post("/create", status_code=status.HTTP_201_CREATED, response_model=schemas.DonationCreateResponse)
def create_donation(
    request: schemas.DonationCreate,
    db: Session = Depends(get_db),
    gateway: OrderGatewayClient = Depends(get_gateway)
):
    logger.info("Donation request: amount=%s program=%s", request.amount, request.program.value)

    #1. order first, the record only exists once the gateway knows about it
    order = gateway.create_order(request.amount, make_receipt_id("DON"))

    #2. pending record
    donation = models.Donation(
        donor_name=request.donor.name,
        donor_email=request.donor.email,
        donor_phone=request.donor.phone,
        donor_pan=request.donor.pan_number,
        amount=request.amount,
        program=request.program.value,
        message=request.message,
        is_anonymous=request.is_anonymous,
        payment_order_id=order.order_id,
        payment_amount=order.amount,
        payment_currency=order.currency,
        payment_status=models.PaymentStatus.PENDING.value
    )
    PaymentRecordStore(db, models.Donation).create(donation)
    logger.info("Donation %s created for order %s", donation.id, order.order_id)

    return {
        "message": "Donation order created",
        "donation": {"id": donation.id},
        "order": {
            "order_id": order.order_id,
            "amount": order.amount,
            "currency": order.currency,
            "key": gateway.key_id
        }
    }


#------------------------------------------------------VERIFY PAYMENT-----------------------------------------------------#

@router.post("/verify", status_code=status.HTTP_200_OK, response_model=schemas.DonationVerifyResponse)
def verify_donation(
    request: schemas.DonationVerify,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    gateway: OrderGatewayClient = Depends(get_gateway),
    settings: Settings = Depends(get_settings)
):
    logger.info("Verifying payment for donation %s (order %s)", request.donation_id, request.order_id)

    result = verify_payment(
        PaymentRecordStore(db, models.Donation),
        request.donation_id,
        request.order_id,
        request.payment_id,
        request.signature,
        gateway.config.key_secret
    )
    donation = result.record
    send_email = not donation.is_anonymous

    # receipt goes out after the response, and only for the call that did the transition
    if result.transitioned and send_email:
        background_tasks.add_task(send_donation_receipt, {
            "donation_id": donation.id,
            "donor_name": donation.donor_name,
            "donor_email": donation.donor_email,
            "amount": donation.amount,
            "payment_id": donation.payment_id,
            "program": donation.program,
            "paid_at": donation.paid_at,
        }, settings.email())

    return {
        "message": "Donation successful! Thank you for your contribution." if result.transitioned
        else "Donation payment was already verified",
        "donation": donation_out(donation),
        "send_email": send_email,
        "already_processed": not result.transitioned
    }


#------------------------------------------------------STATS (PUBLIC)-----------------------------------------------------#

@router.get("/stats", status_code=status.HTTP_200_OK, response_model=schemas.DonationStatsResponse)
def donation_stats(db: Session = Depends(get_db)):
    completed = models.Donation.payment_status == models.PaymentStatus.COMPLETED.value

    rows = db.query(
        models.Donation.program,
        func.sum(models.Donation.amount),
        func.count(models.Donation.id)
    ).filter(completed).group_by(models.Donation.program).all()

    by_program = [
        {"program": program, "total_amount": int(total or 0), "count": count}
        for program, total, count in rows
    ]

    return {
        "stats": {
            "total_donations": sum(item["count"] for item in by_program),
            "total_amount": sum(item["total_amount"] for item in by_program),
            "by_program": by_program
        }
    }


#------------------------------------------------------ADMIN LISTING-----------------------------------------------------#

@router.get("/", status_code=status.HTTP_200_OK, response_model=schemas.DonationListResponse)
def list_donations(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    payment_status: Optional[models.PaymentStatus] = Query(None, alias="status"),
    program: Optional[models.Program] = None,
    date_from: Optional[datetime] = Query(None, alias="dateFrom"),
    date_to: Optional[datetime] = Query(None, alias="dateTo"),
    min_amount: Optional[int] = Query(None, alias="minAmount"),
    max_amount: Optional[int] = Query(None, alias="maxAmount"),
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin)
):
    query = db.query(models.Donation)

    if payment_status:
        query = query.filter(models.Donation.payment_status == payment_status.value)
    if program:
        query = query.filter(models.Donation.program == program.value)
    if date_from:
        query = query.filter(models.Donation.created_at >= date_from)
    if date_to:
        query = query.filter(models.Donation.created_at <= date_to)
    if min_amount is not None:
        query = query.filter(models.Donation.amount >= min_amount)
    if max_amount is not None:
        query = query.filter(models.Donation.amount <= max_amount)

    total = query.count()
    donations = query.order_by(models.Donation.id.desc()).offset((page - 1) * limit).limit(limit).all()

    total_amount = db.query(func.coalesce(func.sum(models.Donation.amount), 0)).filter(
        models.Donation.payment_status == models.PaymentStatus.COMPLETED.value
    ).scalar()

    return {
        "donations": [donation_out(d) for d in donations],
        "total_pages": math.ceil(total / limit),
        "current_page": page,
        "total": total,
        "total_amount": int(total_amount)
    }


@router.get("/{donation_id}/payment", status_code=status.HTTP_200_OK, response_model=schemas.GatewayPaymentResponse)
def get_donation_payment(
    donation_id: int,
    db: Session = Depends(get_db),
    gateway: OrderGatewayClient = Depends(get_gateway),
    current_admin: models.User = Depends(get_current_admin)
):
    donation = PaymentRecordStore(db, models.Donation).find_by_id(donation_id)
    if not donation:
        raise RecordNotFound("Donation not found")
    if not donation.payment_id:
        raise RecordNotFound("No payment has been recorded for this donation")

    payment = gateway.fetch_payment(donation.payment_id)

    # remember how it was paid, the checkout callback does not tell us
    if payment.get("method") and not donation.payment_method:
        donation.payment_method = payment["method"]
        db.commit()

    return {"payment": payment}
