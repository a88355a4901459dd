import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from .exceptions import InvalidSignature, PaymentStateConflict, RecordNotFound
from .gateway import verify_signature
from .models import PaymentStatus
from .store import PaymentRecordStore

logger = logging.getLogger(__name__)


@dataclass
class VerificationResult:
    record: Any
    transitioned: bool     # False when the payment had already been verified


def verify_payment(
    store: PaymentRecordStore,
    record_id,
    order_id: str,
    payment_id: str,
    signature: str,
    secret: Optional[str],
    extra_fields: Optional[dict] = None,
    commit: bool = True,
) -> VerificationResult:
    """Move a record's payment from pending to completed after a checkout.

    Order of checks: signature, record lookup, order match, conditional
    transition. Nothing is written unless every check passes. Verifying an
    already completed payment again is a no-op and reports
    ``transitioned=False`` so callers can skip their side effects. Pass
    ``commit=False`` to write the transition in the same transaction as the
    caller's own follow-up changes.
    """
    if not verify_signature(order_id, payment_id, signature, secret):
        logger.warning("Invalid payment signature for order %s", order_id)
        raise InvalidSignature()

    record = store.find_by_id(record_id)
    if not record:
        raise RecordNotFound(f"{store.model.__name__} not found")

    # a genuine signature for some other order must not complete this record
    if record.payment_order_id != order_id:
        logger.warning("Order %s does not belong to %s %s", order_id, store.model.__name__, record_id)
        raise InvalidSignature()

    patch = {
        "payment_id": payment_id,
        "payment_status": PaymentStatus.COMPLETED.value,
        "paid_at": datetime.now(timezone.utc),
    }
    if extra_fields:
        patch.update(extra_fields)

    transitioned = store.update_status(record_id, patch, commit=commit)
    store.db.refresh(record)

    if transitioned:
        logger.info("%s %s payment %s completed", store.model.__name__, record_id, payment_id)
        return VerificationResult(record=record, transitioned=True)

    if record.payment_status == PaymentStatus.COMPLETED.value:
        logger.info("%s %s already verified, ignoring duplicate", store.model.__name__, record_id)
        return VerificationResult(record=record, transitioned=False)

    raise PaymentStateConflict(f"Payment is {record.payment_status} and can no longer be completed")
