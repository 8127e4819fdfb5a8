from __future__ import annotations

from ..extensions import db


class Customer(db.Model):
    """
    Customer master data for tracking purchases and loyalty.

    Denormalized aggregates (points, total_spent_cents, total_purchases) are
    written only inside the sale commit/delete/update transactions or by the
    manual recalculation, never by client patches.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("email", name="uq_customers_email"),
        db.Index("ix_customers_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    address = db.Column(db.String(512), nullable=True)
    tax_id = db.Column(db.String(32), nullable=True)
    custom_category = db.Column(db.String(128), nullable=True)

    points = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    total_purchases = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "email": self.email,
            "address": self.address,
            "tax_id": self.tax_id,
            "custom_category": self.custom_category,
            "points": self.points,
            "total_spent_cents": self.total_spent_cents,
            "total_purchases": self.total_purchases,
        }
