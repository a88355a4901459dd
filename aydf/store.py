from sqlalchemy.orm import Session

from .models import PaymentStatus


class PaymentRecordStore:
    """Persistence for a record that embeds payment details (Donation or Member)."""

    def __init__(self, db: Session, model):
        self.db = db
        self.model = model

    def create(self, record):
        try:
            self.db.add(record)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(record)
        return record

    def find_by_id(self, record_id):
        return self.db.query(self.model).filter(self.model.id == record_id).first()

    def update_status(self, record_id, patch: dict, expected_status=PaymentStatus.PENDING.value, commit=True) -> bool:
        """Apply ``patch`` only while the record is still in ``expected_status``.

        A single conditional UPDATE, so two racing callers cannot both win.
        Returns True when this call performed the transition. With
        ``commit=False`` the caller owns the transaction and commits it
        together with its own changes.
        """
        try:
            updated = self.db.query(self.model).filter(
                self.model.id == record_id,
                self.model.payment_status == expected_status
            ).update(patch, synchronize_session=False)
            if commit:
                self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return updated == 1
