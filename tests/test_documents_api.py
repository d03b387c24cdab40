"""
test_documents_api.py — API tests for SPK reports, documentation uploads and BAST.

Object storage is replaced by in-memory fakes so nothing reaches R2.
"""

import pytest

from hvac_service.domain.documents import service as document_service
from hvac_service.models import ServiceOrder
from hvac_service.storage import StorageError

SIGNATURE = "data:image/png;base64,iVBORw0KGgo="


@pytest.fixture
def fake_storage(monkeypatch):
    """Records uploads, deletions and signatures instead of calling R2."""
    stored = {"uploads": {}, "deleted": [], "signatures": []}

    def upload_bytes(key, body, content_type):
        stored["uploads"][key] = (body, content_type)
        return key

    def delete_object(key):
        stored["deleted"].append(key)

    def store_signature(data_url, *key_parts):
        if not data_url.startswith("data:image/"):
            raise ValueError("Signature must be a base64 image data URL")
        key = "/".join(key_parts) + ".png"
        stored["signatures"].append(key)
        return key

    monkeypatch.setattr(document_service, "upload_bytes", upload_bytes)
    monkeypatch.setattr(document_service, "delete_object", delete_object)
    monkeypatch.setattr(document_service, "store_signature", store_signature)
    monkeypatch.setattr(document_service, "generate_presigned_url", lambda key: f"https://r2.test/{key}")
    return stored


class TestSpk:

    def test_create_and_read(self, client, make_order):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/spk",
            json={
                "workDescription": "Cuci AC 3 unit",
                "materialsUsed": [{"name": "Freon R32", "qty": 1.5, "unit": "kg"}],
            },
        )
        assert response.status_code == 201
        assert response.json()["materialsUsed"] == [{"name": "Freon R32", "qty": 1.5, "unit": "kg"}]
        assert client.get(f"/orders/{order.id}/spk").json()["workDescription"] == "Cuci AC 3 unit"

    def test_one_spk_per_order(self, client, make_order):
        order = make_order()
        client.post(f"/orders/{order.id}/spk", json={})
        assert client.post(f"/orders/{order.id}/spk", json={}).status_code == 409

    def test_missing_spk_is_404(self, client, make_order):
        order = make_order()
        assert client.get(f"/orders/{order.id}/spk").status_code == 404

    def test_inverted_period_in_request_is_422(self, client, make_order):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/spk",
            json={"startTime": "2026-03-10T10:00:00", "endTime": "2026-03-10T09:00:00"},
        )
        assert response.status_code == 422

    def test_partial_update_checks_stored_period(self, client, make_order):
        order = make_order()
        client.post(f"/orders/{order.id}/spk", json={"startTime": "2026-03-10T10:00:00", "findings": "Kotor"})
        bad = client.put(f"/orders/{order.id}/spk", json={"endTime": "2026-03-10T08:00:00"})
        assert bad.status_code == 400

        good = client.put(f"/orders/{order.id}/spk", json={"endTime": "2026-03-10T12:00:00"}).json()
        assert good["endTime"] == "2026-03-10T12:00:00"
        assert good["findings"] == "Kotor"

    def test_complete_stamps_user_and_end_time(self, client, seed, make_order):
        order = make_order()
        client.post(f"/orders/{order.id}/spk", json={})
        body = client.post(f"/orders/{order.id}/spk/complete").json()
        assert body["completedBy"] == seed.owner.id
        assert body["endTime"] == body["completedAt"]

    def test_helper_cannot_write(self, client, seed, make_order, auth):
        order = make_order()
        auth.login(seed.helper_user)
        assert client.post(f"/orders/{order.id}/spk", json={}).status_code == 403


class TestDocumentation:

    def test_upload_list_delete(self, client, make_order, fake_storage):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/documentation",
            files={"file": ("indoor.jpg", b"\xff\xd8\xff jpeg", "image/jpeg")},
            data={"category": "before", "description": "Sebelum dicuci"},
        )
        assert response.status_code == 201
        doc = response.json()
        assert doc["fileType"] == "photo"
        assert doc["fileKey"].endswith(".jpg")
        assert doc["fileKey"] in fake_storage["uploads"]

        listed = client.get(f"/orders/{order.id}/documentation").json()
        assert listed[0]["fileUrl"] == f"https://r2.test/{doc['fileKey']}"

        assert client.delete(f"/documentation/{doc['id']}").status_code == 200
        assert fake_storage["deleted"] == [doc["fileKey"]]
        assert client.get(f"/orders/{order.id}/documentation").json() == []

    def test_unsupported_type(self, client, make_order, fake_storage):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/documentation",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400
        assert fake_storage["uploads"] == {}

    def test_unknown_category(self, client, make_order, fake_storage):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/documentation",
            files={"file": ("a.png", b"png", "image/png")},
            data={"category": "selfie"},
        )
        assert response.status_code == 400

    def test_dangerous_filename(self, client, make_order, fake_storage):
        order = make_order()
        response = client.post(
            f"/orders/{order.id}/documentation",
            files={"file": ("..evil.png", b"png", "image/png")},
        )
        assert response.status_code == 400

    def test_storage_failure_keeps_row(self, client, make_order, fake_storage, monkeypatch):
        order = make_order()
        doc = client.post(
            f"/orders/{order.id}/documentation",
            files={"file": ("a.png", b"png", "image/png")},
        ).json()

        def failing_delete(key):
            raise StorageError("R2 unavailable")

        monkeypatch.setattr(document_service, "delete_object", failing_delete)
        assert client.delete(f"/documentation/{doc['id']}").status_code == 500
        assert len(client.get(f"/orders/{order.id}/documentation").json()) == 1


class TestBast:

    def test_requires_completed_work(self, client, make_order):
        order = make_order(status="in_progress")
        assert client.post(f"/orders/{order.id}/bast", json={}).status_code == 409

    def test_defaults_names_from_order(self, client, make_order):
        order = make_order(status="completed")
        response = client.post(f"/orders/{order.id}/bast", json={})
        assert response.status_code == 201
        bast = response.json()
        assert bast["status"] == "pending"
        assert bast["clientName"] == "Ibu Sari"
        assert bast["technicianName"] == "Budi Teknisi"
        assert bast["bastNumber"].startswith("BAST-")

    def test_one_open_bast_per_order(self, client, make_order):
        order = make_order(status="completed")
        client.post(f"/orders/{order.id}/bast", json={})
        assert client.post(f"/orders/{order.id}/bast", json={}).status_code == 409

    def test_approve_moves_order_to_approved(self, client, db, make_order, fake_storage):
        order = make_order(status="completed")
        bast = client.post(f"/orders/{order.id}/bast", json={}).json()

        response = client.post(
            f"/bast/{bast['id']}/approve",
            json={"clientSignature": SIGNATURE, "technicianSignature": SIGNATURE},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "approved"
        assert body["clientApprovedAt"] is not None
        assert body["clientSignatureKey"].endswith("client.png")
        assert len(fake_storage["signatures"]) == 2

        db.expire_all()
        assert db.get(ServiceOrder, order.id).status == "approved"
        again = client.post(
            f"/bast/{bast['id']}/approve",
            json={"clientSignature": SIGNATURE, "technicianSignature": SIGNATURE},
        )
        assert again.status_code == 409

    def test_approve_needs_both_signatures(self, client, make_order, fake_storage):
        order = make_order(status="completed")
        bast = client.post(f"/orders/{order.id}/bast", json={}).json()
        response = client.post(f"/bast/{bast['id']}/approve", json={"clientSignature": SIGNATURE})
        assert response.status_code == 400

    def test_bad_signature_data(self, client, make_order, fake_storage):
        order = make_order(status="completed")
        bast = client.post(f"/orders/{order.id}/bast", json={}).json()
        response = client.post(
            f"/bast/{bast['id']}/approve",
            json={"clientSignature": "not-an-image", "technicianSignature": SIGNATURE},
        )
        assert response.status_code == 400

    def test_reject_marks_complaint_and_allows_new_bast(self, client, db, make_order):
        order = make_order(status="completed")
        bast = client.post(f"/orders/{order.id}/bast", json={}).json()

        assert client.post(f"/bast/{bast['id']}/reject", json={}).status_code == 400
        body = client.post(f"/bast/{bast['id']}/reject", json={"reason": "Masih bocor"}).json()
        assert body["status"] == "rejected"
        assert body["rejectionReason"] == "Masih bocor"

        db.expire_all()
        assert db.get(ServiceOrder, order.id).status == "complaint"
        second = client.post(f"/orders/{order.id}/bast", json={})
        assert second.status_code == 201
        assert client.get(f"/orders/{order.id}/bast").json()["id"] == second.json()["id"]

    def test_pending_bast_pdf(self, client, make_order):
        order = make_order(status="completed")
        client.post(f"/orders/{order.id}/spk", json={"workDescription": "Cuci AC"})
        bast = client.post(f"/orders/{order.id}/bast", json={}).json()

        response = client.get(f"/bast/{bast['id']}/pdf")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")
        assert bast["bastNumber"] in response.headers["content-disposition"]

    def test_unknown_bast(self, client, seed):
        assert client.get("/bast/999/pdf").status_code == 404
