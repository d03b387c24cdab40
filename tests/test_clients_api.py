"""
test_clients_api.py — API tests for clients, their properties, AC units,
the audit log and client portal access.
"""

from hvac_service.models import Client


class TestClients:

    def test_create_normalises_contact(self, client, seed):
        response = client.post(
            "/clients",
            json={"name": "  PT Dingin Jaya ", "email": "Admin@Dingin.CO.ID", "phone": "0811 2233 4455",
                  "clientType": "corporate"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "PT Dingin Jaya"
        assert body["email"] == "admin@dingin.co.id"
        assert body["phone"] == "+6281122334455"

    def test_invalid_type_is_422(self, client, seed):
        assert client.post("/clients", json={"name": "X", "clientType": "vip"}).status_code == 422

    def test_search(self, client, seed):
        client.post("/clients", json={"name": "Hotel Braga"})
        names = [c["name"] for c in client.get("/clients", params={"search": "braga"}).json()]
        assert names == ["Hotel Braga"]

    def test_partial_update(self, client, seed):
        body = client.put(f"/clients/{seed.customer.id}", json={"city": "Cimahi"}).json()
        assert body["city"] == "Cimahi"
        assert body["name"] == "Ibu Sari"

    def test_delete_refused_with_orders(self, client, db, seed, make_order):
        make_order()
        assert client.delete(f"/clients/{seed.customer.id}").status_code == 409

    def test_delete(self, client, db, seed):
        new_id = client.post("/clients", json={"name": "Sementara"}).json()["id"]
        assert client.delete(f"/clients/{new_id}").status_code == 200
        db.expire_all()
        assert db.get(Client, new_id) is None

    def test_history_and_export(self, client, seed, make_order):
        make_order(service_title="Cuci AC")
        history = client.get(f"/clients/{seed.customer.id}/history").json()
        assert [h["serviceTitle"] for h in history] == ["Cuci AC"]

        export = client.get("/clients/export")
        assert export.headers["content-type"].startswith("text/csv")
        assert "Ibu Sari" in export.text

    def test_technician_cannot_create(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post("/clients", json={"name": "X"}).status_code == 403


class TestPropertiesAndUnits:

    def test_unit_linked_to_property(self, client, seed):
        prop = client.post(
            f"/clients/{seed.customer.id}/properties", json={"name": "Rumah Dago", "propertyType": "house"}
        ).json()
        unit = client.post(
            f"/clients/{seed.customer.id}/ac-units",
            json={"propertyId": prop["id"], "brand": "Daikin", "capacity": "1 PK", "roomName": "Kamar"},
        ).json()
        assert unit["propertyId"] == prop["id"]

        client.delete(f"/clients/{seed.customer.id}/properties/{prop['id']}")
        units = client.get(f"/clients/{seed.customer.id}/ac-units").json()
        assert units[0]["propertyId"] is None

    def test_foreign_property_is_rejected(self, client, db, seed):
        other = Client(tenant_id=seed.tenant.id, name="Lain")
        db.add(other)
        db.commit()
        prop = client.post(f"/clients/{other.id}/properties", json={"name": "Toko"}).json()
        response = client.post(f"/clients/{seed.customer.id}/ac-units", json={"propertyId": prop["id"]})
        assert response.status_code == 400

    def test_inactive_units_hidden_by_default(self, client, seed):
        unit = client.post(f"/clients/{seed.customer.id}/ac-units", json={"unitCategory": "cassette"}).json()
        client.put(f"/clients/{seed.customer.id}/ac-units/{unit['id']}", json={"isActive": False})
        assert client.get(f"/clients/{seed.customer.id}/ac-units").json() == []
        listed = client.get(f"/clients/{seed.customer.id}/ac-units", params={"includeInactive": True}).json()
        assert len(listed) == 1

    def test_unknown_category(self, client, seed):
        response = client.post(f"/clients/{seed.customer.id}/ac-units", json={"unitCategory": "portable"})
        assert response.status_code == 422


def _portal_user(db, email="sari@mail.test"):
    from hvac_service.models import User

    user = User(firebase_uid=f"uid-{email}", email=email, full_name="Ibu Sari")
    db.add(user)
    db.commit()
    return user


class TestAuditLog:

    def test_update_records_changed_fields_only(self, client, seed):
        client.put(f"/clients/{seed.customer.id}", json={"city": "Cimahi", "name": "Ibu Sari"})
        log = client.get(f"/clients/{seed.customer.id}/audit-log").json()
        assert len(log) == 1
        assert log[0]["action"] == "updated"
        assert log[0]["changedFields"] == ["city"]
        assert log[0]["oldData"] == {"city": "Bandung"}
        assert log[0]["newData"] == {"city": "Cimahi"}
        assert log[0]["changedByName"] == "Owner Satu"

    def test_create_is_logged(self, client, seed):
        new_id = client.post("/clients", json={"name": "Hotel Braga", "city": "Bandung"}).json()["id"]
        log = client.get(f"/clients/{new_id}/audit-log").json()
        assert [e["action"] for e in log] == ["created"]
        assert log[0]["newData"]["name"] == "Hotel Braga"

    def test_technician_cannot_read_log(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.get(f"/clients/{seed.customer.id}/audit-log").status_code == 403


class TestPortal:

    def test_invite_and_activate(self, client, db, seed, auth, make_order):
        make_order()
        invite = client.post(f"/clients/{seed.customer.id}/portal/invitation").json()
        assert invite["invitationUrl"].endswith(invite["token"])
        assert client.get(f"/clients/{seed.customer.id}").json()["portalInvitationPending"] is True

        auth.login(_portal_user(db))
        activated = client.post("/portal/activate", json={"token": invite["token"]})
        assert activated.status_code == 200
        assert activated.json()["portalEnabled"] is True
        assert activated.json()["portalEmail"] == "sari@mail.test"

        assert client.get("/portal/me").json()["id"] == seed.customer.id
        assert len(client.get("/portal/orders").json()) == 1
        assert client.get("/portal/ac-units").json() == []

        auth.login(seed.owner)
        actions = [e["action"] for e in client.get(f"/clients/{seed.customer.id}/audit-log").json()]
        assert set(actions) == {"portal_invited", "portal_activated"}

    def test_token_is_single_use(self, client, db, seed, auth):
        token = client.post(f"/clients/{seed.customer.id}/portal/invitation").json()["token"]
        auth.login(_portal_user(db))
        assert client.post("/portal/activate", json={"token": token}).status_code == 200
        assert client.post("/portal/activate", json={"token": token}).status_code == 409

        auth.login(seed.owner)
        assert client.post(f"/clients/{seed.customer.id}/portal/invitation").status_code == 409

    def test_newer_invitation_replaces_older(self, client, db, seed, auth):
        first = client.post(f"/clients/{seed.customer.id}/portal/invitation").json()["token"]
        second = client.post(f"/clients/{seed.customer.id}/portal/invitation").json()["token"]
        auth.login(_portal_user(db))
        assert client.post("/portal/activate", json={"token": first}).status_code == 400
        assert client.post("/portal/activate", json={"token": second}).status_code == 200

    def test_disable_revokes_access(self, client, db, seed, auth):
        token = client.post(f"/clients/{seed.customer.id}/portal/invitation").json()["token"]
        portal_user = _portal_user(db)
        auth.login(portal_user)
        client.post("/portal/activate", json={"token": token})

        auth.login(seed.owner)
        body = client.post(f"/clients/{seed.customer.id}/portal/disable").json()
        assert body["portalEnabled"] is False
        assert client.post(f"/clients/{seed.customer.id}/portal/disable").status_code == 409

        auth.login(portal_user)
        assert client.get("/portal/me").status_code == 403

    def test_user_without_portal_is_forbidden(self, client, db, seed, auth):
        auth.login(_portal_user(db))
        assert client.get("/portal/orders").status_code == 403

    def test_garbage_token(self, client, db, seed, auth):
        auth.login(_portal_user(db))
        assert client.post("/portal/activate", json={"token": "nope"}).status_code == 400

    def test_technician_cannot_invite(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post(f"/clients/{seed.customer.id}/portal/invitation").status_code == 403
