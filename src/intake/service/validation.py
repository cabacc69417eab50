"""Complaint input validation."""

from __future__ import annotations

import re
from typing import Any, Mapping, Union

import pydantic

from intake.config.registry import ConfigRegistry
from intake.errors import ValidationError
from intake.models import REQUIRED_FIELDS, ComplaintDraft, ComplaintStatus


DraftInput = Union[ComplaintDraft, Mapping[str, Any]]


def coerce_draft(fields: DraftInput) -> ComplaintDraft:
    """Build a ComplaintDraft from form fields; None values count as blank."""
    if isinstance(fields, ComplaintDraft):
        return fields
    if not isinstance(fields, Mapping):
        raise ValidationError("Data aduan tidak valid")

    cleaned = {key: ("" if value is None else value) for key, value in fields.items()}
    try:
        return ComplaintDraft.model_validate(cleaned)
    except pydantic.ValidationError as exc:
        field = ".".join(str(part) for part in exc.errors()[0]["loc"])
        raise ValidationError(f"Field {field} tidak valid") from exc


class ComplaintValidator:
    """Check normalized drafts and status values against the configured rules."""

    def __init__(self, registry: ConfigRegistry) -> None:
        rules = registry.config.validation
        self.rules = rules
        self.phone_pattern = re.compile(rules.phone.pattern)
        self.categories = set(registry.category_values())

    def validate_draft(self, draft: ComplaintDraft) -> None:
        """Raise ValidationError for the first problem found in a normalized draft."""
        for field in REQUIRED_FIELDS:
            if not getattr(draft, field).strip():
                raise ValidationError(f"Field {field} wajib diisi")

        if not self.phone_pattern.match(draft.phone):
            raise ValidationError(self.rules.phone.message)

        if draft.category not in self.categories:
            raise ValidationError(f"Kategori tidak valid: {draft.category}")

        name_rule = self.rules.name
        if not name_rule.min_length <= len(draft.name) <= name_rule.max_length:
            raise ValidationError(name_rule.message)

        body_rule = self.rules.complaint
        if not body_rule.min_length <= len(draft.body) <= body_rule.max_length:
            raise ValidationError(body_rule.message)

    @staticmethod
    def validate_status(status: Any) -> ComplaintStatus:
        try:
            return ComplaintStatus(status)
        except ValueError as exc:
            raise ValidationError("Status tidak valid") from exc
