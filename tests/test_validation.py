import pytest

from conftest import make_registry

from intake.errors import ValidationError
from intake.models import ComplaintDraft, ComplaintStatus
from intake.service.validation import ComplaintValidator, coerce_draft


def _draft(**overrides) -> ComplaintDraft:
    values = {
        "name": "Siti Aminah",
        "phone": "081234567890",
        "district": "Sumbersari",
        "village": "Kebonsari",
        "address": "Jl. Mastrip No. 12",
        "category": "Lingkungan",
        "body": "Sampah menumpuk di pinggir sungai sejak dua minggu.",
    }
    values.update(overrides)
    return ComplaintDraft(**values)


@pytest.fixture
def validator() -> ComplaintValidator:
    return ComplaintValidator(make_registry())


def test_valid_draft_passes(validator):
    validator.validate_draft(_draft())


@pytest.mark.parametrize("phone", ["0812345678", "08123456789012"])
def test_phone_length_bounds_accepted(validator, phone):
    validator.validate_draft(_draft(phone=phone))


@pytest.mark.parametrize("phone", ["081234567", "081234567890123", "07123456789", "628123456789"])
def test_phone_pattern_rejects(validator, phone):
    with pytest.raises(ValidationError, match="Format nomor HP"):
        validator.validate_draft(_draft(phone=phone))


def test_name_and_body_lengths(validator):
    with pytest.raises(ValidationError, match="Nama"):
        validator.validate_draft(_draft(name="Al"))
    with pytest.raises(ValidationError, match="Isi aduan"):
        validator.validate_draft(_draft(body="Terlalu pendek"))
    with pytest.raises(ValidationError, match="Isi aduan"):
        validator.validate_draft(_draft(body="x" * 2001))


def test_status_values():
    assert ComplaintValidator.validate_status("in_progress") is ComplaintStatus.IN_PROGRESS
    with pytest.raises(ValidationError):
        ComplaintValidator.validate_status("done")
    with pytest.raises(ValidationError):
        ComplaintValidator.validate_status(None)


def test_coerce_draft_accepts_numbers_and_ignores_extra_keys():
    draft = coerce_draft({"phone": 81234567890, "status": "completed", "name": None})
    assert draft.phone == "81234567890"
    assert draft.name == ""


def test_coerce_draft_rejects_non_mappings():
    with pytest.raises(ValidationError):
        coerce_draft(["not", "a", "mapping"])
