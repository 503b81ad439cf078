"""Shared helpers for background reminder jobs."""

from __future__ import annotations


def mask_email(email: str | None) -> str:
    if not email:
        return ""
    local, _, domain = email.partition("@")
    prefix = local[:3] if local else ""
    return f"{prefix}...@{domain}" if domain else f"{prefix}..."


def mask_phone(phone: str | None) -> str:
    if not phone:
        return ""
    digits = phone.removeprefix("whatsapp:")
    return f"...{digits[-4:]}" if len(digits) > 4 else "..."


def mask_recipient(recipient: str | None) -> str:
    """Mask an email address or phone number for logs."""
    if recipient and "@" in recipient:
        return mask_email(recipient)
    return mask_phone(recipient)
