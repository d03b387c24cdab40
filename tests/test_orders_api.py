"""
test_orders_api.py — API tests for service orders, dispatch, kanban and calendar.
"""

import re

import pytest

from hvac_service.models import ServiceOrder

ORDER_NUMBER = re.compile(r"^ORD-\d{6}-\d{4}$")


def order_payload(seed, **overrides):
    payload = {
        "clientId": seed.customer.id,
        "orderType": "repair",
        "serviceTitle": "AC bocor",
        "locationAddress": "Jl. Dago 10",
    }
    payload.update(overrides)
    return payload


class TestCreateOrder:

    def test_order_without_technicians_is_listing(self, client, seed):
        response = client.post("/orders", json=order_payload(seed))
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "listing"
        assert ORDER_NUMBER.match(body["orderNumber"])
        assert body["technicians"] == []

    def test_numbers_increase_within_month(self, client, seed):
        first = client.post("/orders", json=order_payload(seed)).json()["orderNumber"]
        second = client.post("/orders", json=order_payload(seed)).json()["orderNumber"]
        assert first[:-4] == second[:-4]
        assert int(second[-4:]) == int(first[-4:]) + 1

    def test_dated_order_with_technicians_is_scheduled(self, client, seed):
        response = client.post(
            "/orders",
            json=order_payload(
                seed,
                scheduledDate="2026-03-12",
                scheduledTime="09:30:00",
                technicianIds=[seed.tech.id, seed.helper.id],
            ),
        )
        body = response.json()
        assert body["status"] == "scheduled"
        assert body["scheduledTime"] == "09:30"
        roles = {t["technicianId"]: t["roleInOrder"] for t in body["technicians"]}
        assert roles == {seed.tech.id: "lead", seed.helper.id: "helper"}

    def test_explicit_lead_must_be_assigned(self, client, seed):
        response = client.post(
            "/orders",
            json=order_payload(seed, technicianIds=[seed.tech.id], leadTechnicianId=seed.helper.id),
        )
        assert response.status_code == 400

    def test_unknown_client(self, client, seed):
        response = client.post("/orders", json=order_payload(seed, clientId=9999))
        assert response.status_code == 404

    def test_invalid_order_type_is_422(self, client, seed):
        response = client.post("/orders", json=order_payload(seed, orderType="painting"))
        assert response.status_code == 422

    def test_technician_cannot_create(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post("/orders", json=order_payload(seed)).status_code == 403


class TestUpdateOrder:

    def test_update_trims_and_applies_fields(self, client, make_order):
        order = make_order()
        body = client.put(
            f"/orders/{order.id}", json={"serviceTitle": "  Cuci AC  ", "estimatedDuration": 90}
        ).json()
        assert body["serviceTitle"] == "Cuci AC"
        assert body["estimatedDuration"] == 90

    @pytest.mark.parametrize(
        "payload",
        [{"serviceTitle": "   "}, {"locationAddress": ""}, {"estimatedDuration": 0}, {"estimatedDuration": -30}],
    )
    def test_invalid_update_is_422(self, client, make_order, payload):
        order = make_order()
        assert client.put(f"/orders/{order.id}", json=payload).status_code == 422


class TestDispatch:

    def test_assigning_dated_listing_order_schedules_it(self, client, seed, make_order):
        order = make_order(status="listing", technicians=[])
        response = client.put(
            f"/orders/{order.id}/technicians",
            json={"technicianIds": [seed.helper.id, seed.tech.id], "leadTechnicianId": seed.tech.id},
        )
        body = response.json()
        assert body["status"] == "scheduled"
        roles = {t["technicianId"]: t["roleInOrder"] for t in body["technicians"]}
        assert roles[seed.tech.id] == "lead"

    def test_reassignment_replaces_technicians(self, client, seed, make_order):
        order = make_order(technicians=[seed.tech, seed.helper])
        body = client.put(f"/orders/{order.id}/technicians", json={"technicianIds": [seed.helper.id]}).json()
        assert [t["technicianId"] for t in body["technicians"]] == [seed.helper.id]
        assert body["technicians"][0]["roleInOrder"] == "lead"

    def test_empty_technician_list_is_422(self, client, make_order):
        order = make_order()
        assert client.put(f"/orders/{order.id}/technicians", json={"technicianIds": []}).status_code == 422


class TestStatus:

    def test_any_known_status_can_be_set(self, client, make_order):
        order = make_order(status="scheduled")
        response = client.patch(f"/orders/{order.id}/status", json={"status": "invoiced"})
        assert response.json()["status"] == "invoiced"

    def test_cancelled_order_only_reopens_to_listing(self, client, make_order):
        order = make_order(status="cancelled")
        assert client.patch(f"/orders/{order.id}/status", json={"status": "scheduled"}).status_code == 409
        assert client.patch(f"/orders/{order.id}/status", json={"status": "listing"}).json()["status"] == "listing"

    def test_unknown_status_is_422(self, client, make_order):
        order = make_order()
        assert client.patch(f"/orders/{order.id}/status", json={"status": "done"}).status_code == 422

    def test_delete_only_listing_or_cancelled(self, client, db, make_order):
        busy = make_order(status="in_progress")
        idle = make_order(status="listing", technicians=[])
        assert client.delete(f"/orders/{busy.id}").status_code == 409
        idle_id = idle.id
        assert client.delete(f"/orders/{idle_id}").status_code == 200
        db.expire_all()
        assert db.get(ServiceOrder, idle_id) is None


class TestKanbanAndCalendar:

    def test_board_columns_in_order(self, client, make_order):
        make_order(status="listing", technicians=[])
        make_order(status="approved")
        make_order(status="cancelled")
        board = client.get("/orders/kanban").json()
        assert [c["id"] for c in board] == [
            "listing", "scheduled", "in_progress", "completed", "approved", "invoiced",
        ]
        counts = {c["id"]: c["count"] for c in board}
        assert counts["listing"] == 1
        assert counts["approved"] == 1
        assert sum(counts.values()) == 2
        assert next(c for c in board if c["id"] == "approved")["title"] == "BAST Approved"

    def test_move_card(self, client, make_order):
        order = make_order(status="completed")
        moved = client.post(f"/orders/{order.id}/move", json={"column": "approved"}).json()
        assert moved["changed"] is True
        assert moved["order"]["status"] == "approved"
        same = client.post(f"/orders/{order.id}/move", json={"column": "approved"}).json()
        assert same["changed"] is False

    def test_move_to_unknown_column(self, client, make_order):
        order = make_order()
        assert client.post(f"/orders/{order.id}/move", json={"column": "paid"}).status_code == 422

    def test_schedule_groups_by_day_without_cancelled(self, client, make_order):
        from datetime import date

        make_order(scheduled_date=date(2026, 3, 10))
        make_order(scheduled_date=date(2026, 3, 10))
        make_order(scheduled_date=date(2026, 3, 11), status="cancelled")
        make_order(scheduled_date=date(2026, 4, 1))
        body = client.get("/orders/schedule", params={"dateFrom": "2026-03-01", "dateTo": "2026-03-31"}).json()
        assert list(body["days"]) == ["2026-03-10"]
        assert len(body["days"]["2026-03-10"]) == 2

    def test_schedule_rejects_inverted_range(self, client, seed):
        response = client.get("/orders/schedule", params={"dateFrom": "2026-03-31", "dateTo": "2026-03-01"})
        assert response.status_code == 400


def test_orders_are_tenant_scoped(client, db, seed, make_order, auth):
    from hvac_service.models import Tenant, User, UserTenantRole

    other = Tenant(slug="lain", name="Lain", contact_email="x@lain.test", contact_phone="+628222")
    db.add(other)
    db.flush()
    outsider = User(firebase_uid="uid-out", email="out@lain.test", active_tenant_id=other.id)
    db.add(outsider)
    db.flush()
    db.add(UserTenantRole(user_id=outsider.id, tenant_id=other.id, role="owner"))
    db.commit()

    order = make_order()
    auth.login(outsider)
    assert client.get(f"/orders/{order.id}").status_code == 404
    assert client.get("/orders").json() == []
