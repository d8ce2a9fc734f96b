"""Masking helpers for personal data in public verification responses."""

import re

MASK = "***"


def mask_email(email: str | None) -> str:
    """Mask an email address, keeping a short prefix of each part.

    Example:
        mask_email("john.doe@example.com") -> "jo***@ex***.com"

    Args:
        email: Email address to mask.

    Returns:
        Masked email, or an empty string for missing input.
    """
    if not email:
        return ""

    parts = email.split("@")
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return f"{MASK}@{MASK}.{MASK}"

    local, domain = parts
    masked_local = _keep_prefix(local, 2)

    domain_parts = domain.split(".")
    if len(domain_parts) > 1:
        masked_domain = f"{_keep_prefix(domain_parts[0], 2)}.{domain_parts[-1]}"
    else:
        masked_domain = domain[:2] + MASK

    return f"{masked_local}@{masked_domain}"


def mask_phone(phone: str | None, visible: int = 4) -> str:
    """Mask a phone number, keeping only the trailing digits.

    Example:
        mask_phone("+1 (555) 123-4567") -> "*******4567"
    """
    if not phone:
        return ""

    digits = re.sub(r"\D", "", phone)
    if len(digits) < visible:
        return MASK

    return "*" * (len(digits) - visible) + digits[-visible:]


def mask_string(value: str | None, visible: int = 2) -> str:
    """Mask a generic string, keeping the first ``visible`` characters."""
    if not value:
        return ""
    return _keep_prefix(value, visible)


def _keep_prefix(value: str, visible: int) -> str:
    if len(value) <= visible:
        return value[0] + MASK
    return value[:visible] + MASK
