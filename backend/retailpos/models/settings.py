from __future__ import annotations

from ..extensions import db


class SiteSettings(db.Model):
    """Company details printed on receipts and reports. Single row (id=1)."""
    __tablename__ = "site_settings"

    id = db.Column(db.Integer, primary_key=True)
    company_name = db.Column(db.String(255), nullable=False)
    company_phone = db.Column(db.String(64), nullable=True)
    company_email = db.Column(db.String(255), nullable=False)
    company_address = db.Column(db.String(512), nullable=True)

    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    def to_dict(self) -> dict:
        return {
            "company_name": self.company_name,
            "company_phone": self.company_phone,
            "company_email": self.company_email,
            "company_address": self.company_address,
        }
