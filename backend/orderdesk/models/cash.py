from __future__ import annotations

from ..extensions import db
from ..domain import EntryKind, LedgerEntry, from_cents


class LedgerEntryRow(db.Model):
    """
    Cash ledger entry.

    `order_id` is a back-reference only; an order does not own its entries.
    Rows are removed only when the referenced order is cancelled.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_ledger_entries_amount_positive"),
        db.Index("ix_ledger_entries_date", "date"),
    )

    id = db.Column(db.String(32), primary_key=True)

    # Inflow / Outflow
    kind = db.Column(db.String(8), nullable=False)
    category = db.Column(db.String(120), nullable=False)
    amount_cents = db.Column(db.BigInteger, nullable=False)

    # Business time; system time is created_at
    date = db.Column(db.DateTime, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False)

    order_id = db.Column(db.String(32), db.ForeignKey("orders.id"), nullable=True, index=True)
    receipt_image = db.Column(db.Text, nullable=True)

    def __repr__(self) -> str:
        return f"<LedgerEntryRow id={self.id} kind={self.kind} amount_cents={self.amount_cents}>"

    def to_domain(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.id,
            kind=EntryKind(self.kind),
            category=self.category,
            amount=from_cents(self.amount_cents),
            date=self.date,
            order_id=self.order_id,
            receipt_image=self.receipt_image,
            created_at=self.created_at,
        )
