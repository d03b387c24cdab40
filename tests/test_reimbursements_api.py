"""
test_reimbursements_api.py — API tests for expense reimbursements.

Covers:
  - category management and visibility of retired categories
  - claim submission with a mandatory receipt
  - finance review: approve / reject / pay transitions
  - who may see which claim

Receipt storage is replaced by an in-memory fake so nothing reaches R2.
"""

import pytest

from hvac_service.domain.reimbursements import service as reimbursement_service
from hvac_service.storage import StorageError

RECEIPT = ("struk.jpg", b"\xff\xd8\xff receipt", "image/jpeg")


@pytest.fixture
def fake_storage(monkeypatch):
    """Records receipt uploads instead of calling R2."""
    uploads = {}

    def upload_bytes(key, body, content_type):
        uploads[key] = (body, content_type)
        return key

    monkeypatch.setattr(reimbursement_service, "upload_bytes", upload_bytes)
    monkeypatch.setattr(
        reimbursement_service,
        "generate_presigned_url",
        lambda key, expiration: f"https://r2.test/{key}?ttl={expiration}",
    )
    return uploads


@pytest.fixture
def category(client, seed):
    response = client.post("/reimbursements/categories", json={"name": "Bensin"})
    assert response.status_code == 201
    return response.json()


def _submit(client, category_id, amount="75000", receipt=RECEIPT, description="Isi bensin ke Cimahi"):
    return client.post(
        "/reimbursements",
        data={"categoryId": str(category_id), "amount": amount, "description": description},
        files={"receipt": receipt},
    )


@pytest.fixture
def claim(client, seed, auth, category, fake_storage):
    """A submitted claim by the technician; the owner is logged back in."""
    auth.login(seed.tech_user)
    response = _submit(client, category["id"])
    assert response.status_code == 201
    auth.login(seed.owner)
    return response.json()


class TestCategories:

    def test_duplicate_name_is_conflict(self, client, category):
        assert client.post("/reimbursements/categories", json={"name": "  bensin "}).status_code == 409

    def test_blank_name_is_422(self, client, seed):
        assert client.post("/reimbursements/categories", json={"name": "  "}).status_code == 422

    def test_retired_category_is_hidden(self, client, seed, auth, category):
        client.post("/reimbursements/categories", json={"name": "Parkir"})
        body = client.patch(f"/reimbursements/categories/{category['id']}", json={"isActive": False}).json()
        assert body["isActive"] is False

        assert [c["name"] for c in client.get("/reimbursements/categories").json()] == ["Parkir"]
        everything = client.get("/reimbursements/categories", params={"includeInactive": "true"}).json()
        assert [c["name"] for c in everything] == ["Bensin", "Parkir"]

        auth.login(seed.tech_user)
        visible = client.get("/reimbursements/categories", params={"includeInactive": "true"}).json()
        assert [c["name"] for c in visible] == ["Parkir"]

    def test_technician_cannot_manage(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post("/reimbursements/categories", json={"name": "Tol"}).status_code == 403


class TestSubmit:

    def test_claim_is_submitted_with_receipt(self, client, seed, claim, fake_storage):
        assert claim["status"] == "submitted"
        assert claim["amount"] == 75000
        assert claim["categoryName"] == "Bensin"
        assert claim["submittedBy"] == seed.tech_user.id
        assert claim["submitterName"] == "Budi Teknisi"

        key = claim["receiptKey"]
        assert key.startswith(f"{seed.tenant.id}/reimburse/{seed.tech_user.id}/")
        assert key.endswith(".jpg")
        assert fake_storage[key][1] == "image/jpeg"

    @pytest.mark.parametrize("amount", ["0", "-5000"])
    def test_amount_must_be_positive(self, client, category, fake_storage, amount):
        assert _submit(client, category["id"], amount=amount).status_code == 400

    def test_receipt_must_be_image_or_pdf(self, client, category, fake_storage):
        response = _submit(client, category["id"], receipt=("nota.txt", b"nota", "text/plain"))
        assert response.status_code == 400
        assert fake_storage == {}

    def test_retired_category_is_refused(self, client, category, fake_storage):
        client.patch(f"/reimbursements/categories/{category['id']}", json={"isActive": False})
        assert _submit(client, category["id"]).status_code == 400

    def test_receipt_is_required(self, client, category, fake_storage):
        response = client.post("/reimbursements", data={"categoryId": str(category["id"]), "amount": "1000"})
        assert response.status_code == 422

    def test_storage_failure_is_500(self, client, category, monkeypatch):
        def broken(key, body, content_type):
            raise StorageError("bucket down")

        monkeypatch.setattr(reimbursement_service, "upload_bytes", broken)
        assert _submit(client, category["id"]).status_code == 500
        assert client.get("/reimbursements").json() == []


class TestReview:

    def test_approve_then_pay(self, client, seed, claim):
        approved = client.post(f"/reimbursements/{claim['id']}/approve", json={"note": " OK "}).json()
        assert approved["status"] == "approved"
        assert approved["decidedBy"] == seed.owner.id
        assert approved["decidedAt"] is not None
        assert approved["decisionNote"] == "OK"

        assert client.post(f"/reimbursements/{claim['id']}/reject", json={}).status_code == 409

        paid = client.post(f"/reimbursements/{claim['id']}/pay").json()
        assert paid["status"] == "paid"
        assert paid["paidAt"] is not None
        assert client.post(f"/reimbursements/{claim['id']}/pay").status_code == 409

    def test_only_approved_claims_are_paid(self, client, claim):
        assert client.post(f"/reimbursements/{claim['id']}/pay").status_code == 409

    def test_reject(self, client, claim):
        rejected = client.post(f"/reimbursements/{claim['id']}/reject", json={"note": "Struk buram"}).json()
        assert rejected["status"] == "rejected"
        assert rejected["decisionNote"] == "Struk buram"
        assert client.post(f"/reimbursements/{claim['id']}/approve", json={}).status_code == 409

    def test_technician_cannot_decide(self, client, seed, auth, claim):
        auth.login(seed.tech_user)
        assert client.post(f"/reimbursements/{claim['id']}/approve", json={}).status_code == 403
        assert client.get("/reimbursements").status_code == 403

    def test_status_filter(self, client, claim):
        assert len(client.get("/reimbursements", params={"status": "submitted"}).json()) == 1
        assert client.get("/reimbursements", params={"status": "paid"}).json() == []
        assert client.get("/reimbursements", params={"status": "lunas"}).status_code == 400


class TestVisibility:

    def test_own_claims_with_counts(self, client, seed, auth, claim, category):
        client.post(f"/reimbursements/{claim['id']}/approve", json={})

        auth.login(seed.tech_user)
        _submit(client, category["id"], amount="20000")
        mine = client.get("/reimbursements/mine").json()
        assert len(mine["requests"]) == 2
        assert mine["counts"]["total"] == 2
        assert mine["counts"]["submitted"] == 1
        assert mine["counts"]["approved"] == 1
        assert mine["counts"]["paid"] == 0

    def test_other_members_cannot_see_claim(self, client, seed, auth, claim):
        auth.login(seed.helper_user)
        assert client.get(f"/reimbursements/{claim['id']}").status_code == 404
        assert client.get(f"/reimbursements/{claim['id']}/receipt").status_code == 404

    def test_submitter_gets_short_receipt_link(self, client, seed, auth, claim):
        auth.login(seed.tech_user)
        body = client.get(f"/reimbursements/{claim['id']}/receipt").json()
        assert body["url"] == f"https://r2.test/{claim['receiptKey']}?ttl=60"
        assert body["expiresInSeconds"] == 60
