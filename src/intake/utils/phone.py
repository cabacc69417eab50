"""Phone number helpers."""

from __future__ import annotations

import re
from typing import Optional


COUNTRY_PREFIX = "62"


def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """Convert a phone number to the local 08xxxxxxxxx dialing format."""
    if not phone:
        return phone

    cleaned = re.sub(r"\D", "", phone)
    if cleaned.startswith(COUNTRY_PREFIX):
        return "0" + cleaned[len(COUNTRY_PREFIX):]
    if cleaned.startswith("8"):
        return "0" + cleaned
    return cleaned
