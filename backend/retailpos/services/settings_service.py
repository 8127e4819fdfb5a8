from __future__ import annotations

from ..extensions import db
from ..models import SiteSettings
from ..validation import ModelValidationPolicy, enforce_email, validate_patch


SETTINGS_ID = 1

DEFAULT_SETTINGS = {
    "company_name": "My Store",
    "company_phone": None,
    "company_email": "contact@example.com",
    "company_address": None,
}

SETTINGS_POLICY = ModelValidationPolicy(
    writable_fields={"company_name", "company_phone", "company_email", "company_address"},
)


def ensure_settings() -> SiteSettings:
    """Return the single settings row, creating it with defaults on first use."""
    settings = db.session.get(SiteSettings, SETTINGS_ID)
    if settings is None:
        settings = SiteSettings(id=SETTINGS_ID, **DEFAULT_SETTINGS)
        db.session.add(settings)
        db.session.commit()
    return settings


def get_settings() -> dict:
    return ensure_settings().to_dict()


def update_settings(patch: dict) -> dict:
    # company_name and company_email are NOT NULL, so blank values are rejected here
    cleaned = validate_patch(model=SiteSettings, patch=patch, policy=SETTINGS_POLICY, partial=True)
    enforce_email(cleaned, "company_email")

    settings = ensure_settings()
    for key, value in cleaned.items():
        setattr(settings, key, value)
    db.session.commit()
    return settings.to_dict()
