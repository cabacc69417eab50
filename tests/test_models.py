from intake.errors import ErrorKind
from intake.models import (
    ChangeEvent,
    Complaint,
    ComplaintDraft,
    ComplaintStatus,
    OperationResult,
    StatusUpdate,
)


ROW = {
    "id": 3,
    "nama": "Budi",
    "nomor_hp": "081234567890",
    "kecamatan": "Patrang",
    "desa": "Baratan",
    "alamat": "Jl. Nusantara 5",
    "kategori": "Kesehatan",
    "isi_aduan": "Puskesmas tutup lebih awal dari jadwal yang diumumkan.",
    "status": "in_progress",
}


def test_complaint_reads_column_aliases():
    complaint = Complaint.model_validate(ROW)
    assert complaint.name == "Budi"
    assert complaint.district == "Patrang"
    assert complaint.status is ComplaintStatus.IN_PROGRESS


def test_draft_normalized_trims_and_formats_phone():
    draft = ComplaintDraft(name="  Budi ", phone="62 812 3456 7890", body=" text ")
    normalized = draft.normalized()
    assert normalized.name == "Budi"
    assert normalized.phone == "081234567890"
    assert normalized.body == "text"
    assert draft.name == "  Budi "


def test_insert_row_uses_columns_and_pending_status():
    draft = ComplaintDraft(
        name="Budi",
        phone="081234567890",
        district="Patrang",
        village="Baratan",
        address="Jl. Nusantara 5",
        category="Kesehatan",
        body="Puskesmas tutup lebih awal.",
    )
    row = Complaint.from_draft(draft, created_at="2026-01-01T00:00:00+00:00").to_insert_row()
    assert row == {
        "nama": "Budi",
        "nomor_hp": "081234567890",
        "kecamatan": "Patrang",
        "desa": "Baratan",
        "alamat": "Jl. Nusantara 5",
        "kategori": "Kesehatan",
        "isi_aduan": "Puskesmas tutup lebih awal.",
        "status": "pending",
        "created_at": "2026-01-01T00:00:00+00:00",
    }


def test_status_update_omits_unset_columns():
    update = StatusUpdate(status=ComplaintStatus.REJECTED, updated_at="now")
    assert update.to_row() == {"status": "rejected", "updated_at": "now"}


def test_change_event_from_wrapped_payload():
    event = ChangeEvent.from_payload(
        {
            "data": {
                "type": "UPDATE",
                "table": "complaints",
                "schema": "public",
                "record": {"id": 1, "status": "completed"},
                "old_record": {"id": 1},
                "commit_timestamp": "2026-01-01T00:00:00Z",
            },
            "ids": [1],
        }
    )
    assert event.event_type == "UPDATE"
    assert event.schema_name == "public"
    assert event.record["status"] == "completed"
    assert event.old_record == {"id": 1}


def test_change_event_from_flat_payload():
    event = ChangeEvent.from_payload({"eventType": "delete", "old": {"id": 2}, "new": {}})
    assert event.event_type == "DELETE"
    assert event.old_record == {"id": 2}
    assert event.record == {}


def test_operation_result_envelope():
    ok = OperationResult.ok(Complaint.model_validate(ROW))
    assert ok.to_dict()["data"]["nama"] == "Budi"
    assert "error" not in ok.to_dict()

    failed = OperationResult.fail("Status tidak valid", ErrorKind.VALIDATION)
    assert failed.to_dict() == {"success": False, "error": "Status tidak valid"}
