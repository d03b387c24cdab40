"""
test_tenants_api.py — API tests for tenant registration, membership and invitations.
"""

from hvac_service.models import User

COMPANY = {"name": "Djawara Cool", "contactEmail": "halo@djawara.test", "contactPhone": "0812-3456-7890"}


def _outsider(db, email="baru@mail.test"):
    user = User(firebase_uid=f"uid-{email}", email=email, full_name="Orang Baru")
    db.add(user)
    db.commit()
    return user


class TestRegistration:

    def test_creator_becomes_owner_of_new_tenant(self, client, db, auth):
        user = _outsider(db)
        auth.login(user)
        response = client.post("/tenants", json=COMPANY)
        assert response.status_code == 200
        body = response.json()
        assert body["slug"] == "djawara-cool"
        assert body["role"] == "owner"
        assert body["contactPhone"] == "+6281234567890"

        current = client.get("/tenants/current").json()
        assert current["id"] == body["id"]

    def test_slug_collisions_get_suffixes(self, client, seed):
        assert client.post("/tenants", json=COMPANY).json()["slug"] == "djawara-cool-2"
        assert client.post("/tenants", json=COMPANY).json()["slug"] == "djawara-cool-3"

    def test_invalid_phone_is_422(self, client, seed):
        response = client.post("/tenants", json=dict(COMPANY, contactPhone="12345"))
        assert response.status_code == 422

    def test_list_and_switch(self, client, seed):
        second = client.post("/tenants", json=dict(COMPANY, name="Cabang Bekasi")).json()
        mine = client.get("/tenants/mine").json()
        assert mine["activeTenantId"] == second["id"]
        assert {t["slug"] for t in mine["tenants"]} == {"djawara-cool", "cabang-bekasi"}

        switched = client.post("/tenants/switch", json={"tenantId": seed.tenant.id}).json()
        assert switched["slug"] == "djawara-cool"

    def test_cannot_switch_to_foreign_tenant(self, client, db, seed, auth):
        auth.login(_outsider(db))
        assert client.post("/tenants/switch", json={"tenantId": seed.tenant.id}).status_code == 403

    def test_no_active_tenant_is_conflict(self, client, db, auth):
        auth.login(_outsider(db))
        assert client.get("/tenants/current").status_code == 409


class TestMembers:

    def test_add_member_creates_placeholder_user(self, client, db, seed):
        response = client.post(
            "/tenants/current/members",
            json={"email": "magang@djawara.test", "role": "magang", "fullName": "Siswa Magang"},
        )
        assert response.status_code == 200
        assert response.json()["role"] == "magang"
        assert db.query(User).filter_by(email="magang@djawara.test").one().firebase_uid is None

        again = client.post("/tenants/current/members", json={"email": "magang@djawara.test", "role": "helper"})
        assert again.status_code == 409

    def test_unknown_role_is_422(self, client, seed):
        response = client.post("/tenants/current/members", json={"email": "x@djawara.test", "role": "boss"})
        assert response.status_code == 422

    def test_last_owner_is_protected(self, client, seed):
        owner_id = seed.owner.id
        assert client.patch(f"/tenants/current/members/{owner_id}", json={"role": "admin_finance"}).status_code == 409
        assert client.delete(f"/tenants/current/members/{owner_id}").status_code == 409

    def test_change_role_and_remove(self, client, seed):
        helper_id = seed.helper_user.id
        body = client.patch(f"/tenants/current/members/{helper_id}", json={"role": "technician"}).json()
        assert body["role"] == "technician"

        assert client.delete(f"/tenants/current/members/{helper_id}").status_code == 200
        members = client.get("/tenants/current/members").json()
        assert helper_id not in {m["userId"] for m in members if m["isActive"]}
        assert client.delete(f"/tenants/current/members/{helper_id}").status_code == 404

    def test_removed_member_loses_access(self, client, seed, auth):
        client.delete(f"/tenants/current/members/{seed.tech_user.id}")
        auth.login(seed.tech_user)
        assert client.get("/orders").status_code == 409

    def test_technician_cannot_manage_members(self, client, seed, auth):
        auth.login(seed.tech_user)
        assert client.post("/tenants/current/members", json={"email": "a@b.test", "role": "helper"}).status_code == 403
        assert client.get("/tenants/current/members").status_code == 403

    def test_admin_updates_company(self, client, seed):
        body = client.patch("/tenants/current", json={"city": "Bandung", "name": None}).json()
        assert body["city"] == "Bandung"
        assert body["name"] == "Djawara Cool"


class TestInvitations:

    def test_accept_invitation(self, client, db, seed, auth):
        invite = client.post(
            "/tenants/current/invitations", json={"email": "baru@mail.test", "role": "technician"}
        ).json()
        assert invite["inviteUrl"].endswith(invite["token"])

        auth.login(_outsider(db))
        joined = client.post("/tenants/invitations/accept", json={"token": invite["token"]})
        assert joined.status_code == 200
        assert joined.json()["role"] == "technician"
        assert client.get("/tenants/current").json()["slug"] == "djawara-cool"

    def test_invitation_for_other_email(self, client, db, seed, auth):
        invite = client.post(
            "/tenants/current/invitations", json={"email": "someone@mail.test", "role": "helper"}
        ).json()
        auth.login(_outsider(db))
        assert client.post("/tenants/invitations/accept", json={"token": invite["token"]}).status_code == 403

    def test_garbage_token(self, client, db, auth):
        auth.login(_outsider(db))
        assert client.post("/tenants/invitations/accept", json={"token": "not-a-token"}).status_code == 400

    def test_existing_member_cannot_accept_again(self, client, db, seed):
        invite = client.post(
            "/tenants/current/invitations", json={"email": "owner@djawara.test", "role": "technician"}
        ).json()

        resp = client.post("/tenants/invitations/accept", json={"token": invite["token"]})
        assert resp.status_code == 409

        db.expire_all()
        members = client.get("/tenants/current/members").json()
        owners = [m for m in members if m["role"] == "owner"]
        assert len(owners) == 1

    def test_removed_member_can_rejoin(self, client, db, seed, auth):
        invite = client.post(
            "/tenants/current/invitations", json={"email": "andi@djawara.test", "role": "technician"}
        ).json()
        assert client.delete(f"/tenants/current/members/{seed.helper_user.id}").status_code == 200

        auth.login(seed.helper_user)
        joined = client.post("/tenants/invitations/accept", json={"token": invite["token"]})
        assert joined.status_code == 200
        assert joined.json()["role"] == "technician"
