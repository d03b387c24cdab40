"""
test_worklogs_api.py — API tests for technician field work.

Covers:
  - check-in / check-out status transitions and guards
  - read-only field roles (helper, magang)
  - technical report validation, travel distance and spareparts
  - report PDF download and the public report link
"""

import pytest

from hvac_service.models import WorkOrderAssignment
from hvac_service.security_utils import generate_timed_token

REPORT = {
    "problem": "Freon habis",
    "tindakan": "Isi freon R32 dan cek kebocoran",
    "rincian_pekerjaan": "Cuci indoor dan outdoor",
    "biaya": 350000,
}


@pytest.fixture
def as_technician(seed, auth):
    auth.login(seed.tech_user)
    return seed.tech


class TestCheckIn:

    def test_check_in_moves_order_in_progress(self, client, make_order, as_technician, db):
        order = make_order(status="scheduled", location_lat=-6.8850, location_lng=107.6130)
        response = client.post(f"/orders/{order.id}/check-in", json={"lat": -6.8851, "lng": 107.6131})
        assert response.status_code == 200
        body = response.json()
        assert body["orderStatus"] == "in_progress"
        assert body["workLog"]["technicianId"] == as_technician.id
        assert body["distanceFromSiteM"] < 50

        assignment = db.query(WorkOrderAssignment).filter_by(service_order_id=order.id).one()
        assert assignment.assignment_status == "in_progress"

    def test_distance_is_none_without_site_coordinates(self, client, make_order, as_technician):
        order = make_order()
        body = client.post(f"/orders/{order.id}/check-in", json={"lat": -6.9, "lng": 107.6}).json()
        assert body["distanceFromSiteM"] is None

    def test_double_check_in_is_conflict(self, client, make_order, as_technician):
        order = make_order()
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 200
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 409

    def test_cancelled_order_refuses_check_in(self, client, make_order, as_technician):
        order = make_order(status="cancelled")
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 409

    def test_unassigned_technician_is_forbidden(self, client, seed, make_order, as_technician):
        order = make_order(technicians=[seed.helper])
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 403

    def test_helper_role_is_read_only(self, client, seed, make_order, auth):
        order = make_order(technicians=[seed.tech, seed.helper])
        auth.login(seed.helper_user)
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 403

    def test_owner_without_technician_profile_is_forbidden(self, client, make_order):
        order = make_order()
        assert client.post(f"/orders/{order.id}/check-in", json={}).status_code == 403


class TestCheckOut:

    def test_check_out_completes_order(self, client, make_order, as_technician):
        order = make_order()
        client.post(f"/orders/{order.id}/check-in", json={})
        response = client.post(f"/orders/{order.id}/check-out", json={"notes": "Selesai"})
        body = response.json()
        assert response.status_code == 200
        assert body["orderStatus"] == "completed"
        assert body["workLog"]["checkOutTime"] is not None
        assert body["workLog"]["lama_kerja"] >= 0

    def test_explicit_duration_is_kept(self, client, make_order, as_technician):
        order = make_order()
        client.post(f"/orders/{order.id}/check-in", json={})
        body = client.post(f"/orders/{order.id}/check-out", json={"lamaKerja": 2.5}).json()
        assert body["workLog"]["lama_kerja"] == 2.5

    def test_check_out_without_check_in(self, client, make_order, as_technician):
        order = make_order()
        assert client.post(f"/orders/{order.id}/check-out", json={}).status_code == 409

    def test_double_check_out(self, client, make_order, as_technician):
        order = make_order()
        client.post(f"/orders/{order.id}/check-in", json={})
        client.post(f"/orders/{order.id}/check-out", json={})
        assert client.post(f"/orders/{order.id}/check-out", json={}).status_code == 409


class TestTechnicalReport:

    def test_problem_and_action_are_required(self, client, make_order, as_technician):
        order = make_order()
        response = client.put(f"/orders/{order.id}/report", json={"problem": "Bocor"})
        assert response.status_code == 400

    def test_signatures_need_both_names(self, client, make_order, as_technician):
        order = make_order()
        payload = dict(REPORT, signature_client="data:image/png;base64,AAAA", signature_client_name="Ibu Sari")
        assert client.put(f"/orders/{order.id}/report", json=payload).status_code == 400

    def test_submit_report(self, client, make_order, as_technician):
        order = make_order()
        payload = dict(
            REPORT,
            travel_points=[{"lat": -6.1754, "lng": 106.8272}, {"lat": -6.9025, "lng": 107.6188}],
            spareparts=[{"name": "Freon R32", "quantity": 1.5, "unit": "kg"}],
            signature_client="data:image/png;base64,AAAA",
            signature_client_name="Ibu Sari",
            signature_technician_name="Budi Teknisi",
        )
        response = client.put(f"/orders/{order.id}/report", json=payload)
        assert response.status_code == 200
        body = response.json()
        assert body["problem"] == "Freon habis"
        assert body["jarak_tempuh"] == pytest.approx(119.1, abs=1.0)
        assert body["signature_date"] is not None
        assert body["spareparts"] == [{"name": "Freon R32", "quantity": 1.5, "unit": "kg", "notes": None}]

    def test_resubmit_replaces_spareparts(self, client, make_order, as_technician):
        order = make_order()
        client.put(
            f"/orders/{order.id}/report",
            json=dict(REPORT, spareparts=[{"name": "Kapasitor"}, {"name": "Pipa", "quantity": 2}]),
        )
        body = client.put(f"/orders/{order.id}/report", json=dict(REPORT, spareparts=[{"name": "Pipa"}])).json()
        assert [p["name"] for p in body["spareparts"]] == ["Pipa"]

    def test_read_back_own_report(self, client, make_order, as_technician):
        order = make_order()
        client.put(f"/orders/{order.id}/report", json=REPORT)
        body = client.get(f"/orders/{order.id}/report").json()
        assert body["tindakan"] == REPORT["tindakan"]

    def test_manager_reads_technician_report(self, client, seed, make_order, auth):
        order = make_order()
        auth.login(seed.tech_user)
        client.put(f"/orders/{order.id}/report", json=REPORT)
        auth.login(seed.owner)
        response = client.get(f"/orders/{order.id}/report", params={"technicianId": seed.tech.id})
        assert response.status_code == 200
        assert len(client.get(f"/orders/{order.id}/work-logs").json()) == 1


class TestReportPdf:

    def test_missing_report_is_404(self, client, make_order):
        order = make_order()
        assert client.get(f"/orders/{order.id}/report-pdf").status_code == 404

    def test_download_report_pdf(self, client, seed, make_order, auth):
        order = make_order()
        auth.login(seed.tech_user)
        client.put(f"/orders/{order.id}/report", json=REPORT)
        auth.login(seed.owner)

        response = client.get(f"/orders/{order.id}/report-pdf")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")
        assert order.order_number in response.headers["content-disposition"]

    def test_public_link_requires_finished_work(self, client, seed, make_order, auth):
        order = make_order(status="in_progress")
        auth.login(seed.tech_user)
        client.put(f"/orders/{order.id}/report", json=REPORT)
        auth.login(seed.owner)

        link = client.post(f"/orders/{order.id}/report-link").json()
        assert link["url"].endswith(link["token"])
        assert client.get(f"/public/reports/{link['token']}.pdf").status_code == 403

        client.patch(f"/orders/{order.id}/status", json={"status": "completed"})
        response = client.get(f"/public/reports/{link['token']}.pdf")
        assert response.status_code == 200
        assert response.content.startswith(b"%PDF")

    def test_public_link_rejects_tampered_token(self, client, seed):
        token = generate_timed_token({"order_id": 1, "tenant_id": seed.tenant.id}, "another-salt")
        assert client.get(f"/public/reports/{token}.pdf").status_code == 404

    def test_report_link_is_manager_only(self, client, seed, make_order, auth):
        order = make_order()
        auth.login(seed.tech_user)
        assert client.post(f"/orders/{order.id}/report-link").status_code == 403


def test_travel_distance_endpoint(client, seed):
    response = client.post(
        "/worklogs/travel-distance",
        json={"points": [{"lat": -6.1754, "lng": 106.8272}, {"lat": -6.9025, "lng": 107.6188}]},
    )
    assert response.status_code == 200
    assert response.json()["distanceKm"] == pytest.approx(119.1, abs=1.0)