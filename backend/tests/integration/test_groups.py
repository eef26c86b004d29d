"""
tests/integration/test_groups.py — Integration tests for groups and members.

Endpoints covered:
  POST   /groups                         → 201 / 400
  GET    /groups                         → 200
  GET    /groups/:id                     → 200 / 403 / 404
  DELETE /groups/:id                     → 200 / 403
  POST   /groups/:id/members             → 201 / 400 / 403 / 404 / 409
  DELETE /groups/:id/members/:member_id  → 200 / 403 / 404 / 422
"""

from __future__ import annotations

from .conftest import (
    add_guest,
    add_member,
    auth_headers,
    make_expense,
    make_group,
    member_id_of,
    register,
)


class TestCreateGroup:

    def test_creator_is_owner_and_first_member(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], name="Trip")

        assert group["name"] == "Trip"
        assert group["owner_user_id"] == alice["user"]["id"]
        assert group["member_count"] == 1
        [member] = group["members"]
        assert member["user_id"] == alice["user"]["id"]
        assert member["display_name"] == "alice"
        assert member["kind"] == "registered"

    def test_name_is_trimmed(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"], name="  Flat  ")
        assert group["name"] == "Flat"

    def test_blank_name_returns_400(self, client):
        alice = register(client, "alice")
        resp = client.post(
            "/api/v1/groups/",
            json={"name": "   "},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"]["field"] == "name"

    def test_requires_auth(self, client):
        resp = client.post("/api/v1/groups/", json={"name": "Trip"})
        assert resp.status_code == 401


class TestListAndGetGroups:

    def test_list_returns_only_callers_groups(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        make_group(client, alice["access_token"], name="Alice only")
        shared = make_group(client, bob["access_token"], name="Shared")
        add_member(client, bob["access_token"], shared["id"], alice["user"]["id"])

        resp = client.get("/api/v1/groups/", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 200
        names = [g["name"] for g in resp.get_json()["data"]]
        assert names == ["Alice only", "Shared"]

        resp = client.get("/api/v1/groups/", headers=auth_headers(bob["access_token"]))
        assert [g["name"] for g in resp.get_json()["data"]] == ["Shared"]

    def test_non_member_gets_403(self, client):
        alice = register(client, "alice")
        eve = register(client, "eve")
        group = make_group(client, alice["access_token"])

        resp = client.get(f"/api/v1/groups/{group['id']}", headers=auth_headers(eve["access_token"]))
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_unknown_group_returns_404(self, client):
        alice = register(client, "alice")
        resp = client.get("/api/v1/groups/99999", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "GROUP_NOT_FOUND"


class TestAddMember:

    def test_add_registered_member(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])

        resp = add_member(client, alice["access_token"], group["id"], bob["user"]["id"])
        assert resp.status_code == 201
        member = resp.get_json()["data"]
        assert member["user_id"] == bob["user"]["id"]
        assert member["display_name"] == "bob"
        assert member["kind"] == "registered"

    def test_add_guest_member(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = add_guest(client, alice["access_token"], group["id"], "  Carol ")
        assert resp.status_code == 201
        member = resp.get_json()["data"]
        assert member["user_id"] is None
        assert member["display_name"] == "Carol"
        assert member["kind"] == "guest"

    def test_any_member_may_add(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], group["id"], bob["user"]["id"])

        resp = add_guest(client, bob["access_token"], group["id"], "Carol")
        assert resp.status_code == 201

    def test_non_member_cannot_add(self, client):
        alice = register(client, "alice")
        eve = register(client, "eve")
        group = make_group(client, alice["access_token"])

        resp = add_guest(client, eve["access_token"], group["id"], "Carol")
        assert resp.status_code == 403

    def test_same_user_twice_returns_409(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], group["id"], bob["user"]["id"])

        resp = add_member(client, alice["access_token"], group["id"], bob["user"]["id"])
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_MEMBER"

    def test_guest_name_is_unique_ignoring_case(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        add_guest(client, alice["access_token"], group["id"], "Carol")

        resp = add_guest(client, alice["access_token"], group["id"], "CAROL")
        assert resp.status_code == 409
        assert resp.get_json()["error"]["code"] == "ALREADY_MEMBER"

    def test_unknown_user_returns_404(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = add_member(client, alice["access_token"], group["id"], 99999)
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "USER_NOT_FOUND"

    def test_both_identities_returns_400(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/members",
            json={"user_id": bob["user"]["id"], "display_name": "Bob"},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 400

    def test_neither_identity_returns_400(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = client.post(
            f"/api/v1/groups/{group['id']}/members",
            json={},
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 400


class TestRemoveMember:

    def test_owner_removes_guest(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        carol = add_guest(client, alice["access_token"], group["id"], "Carol").get_json()["data"]

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{carol['id']}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["removed"] is True

        group_resp = client.get(f"/api/v1/groups/{group['id']}", headers=auth_headers(alice["access_token"]))
        assert [m["display_name"] for m in group_resp.get_json()["data"]["members"]] == ["alice"]

    def test_member_removes_self(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], group["id"], bob["user"]["id"])
        bob_member = member_id_of(client, alice["access_token"], group["id"], bob["user"]["id"])

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{bob_member}",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 200

        resp = client.get(f"/api/v1/groups/{group['id']}", headers=auth_headers(bob["access_token"]))
        assert resp.status_code == 403

    def test_member_cannot_remove_someone_else(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], group["id"], bob["user"]["id"])
        carol = add_guest(client, alice["access_token"], group["id"], "Carol").get_json()["data"]

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{carol['id']}",
            headers=auth_headers(bob["access_token"]),
        )
        assert resp.status_code == 403

    def test_owner_cannot_be_removed(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        alice_member = group["members"][0]["id"]

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/{alice_member}",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "CANNOT_REMOVE_OWNER"

    def test_unknown_member_returns_404(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])

        resp = client.delete(
            f"/api/v1/groups/{group['id']}/members/99999",
            headers=auth_headers(alice["access_token"]),
        )
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "MEMBER_NOT_FOUND"


class TestDeleteGroup:

    def test_owner_deletes_group_with_expenses(self, client):
        alice = register(client, "alice")
        group = make_group(client, alice["access_token"])
        add_guest(client, alice["access_token"], group["id"], "Carol")
        make_expense(client, alice["access_token"], group["id"], "30.00")

        resp = client.delete(f"/api/v1/groups/{group['id']}", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 200
        assert resp.get_json()["data"]["deleted"] is True

        resp = client.get(f"/api/v1/groups/{group['id']}", headers=auth_headers(alice["access_token"]))
        assert resp.status_code == 404

    def test_non_owner_cannot_delete(self, client):
        alice = register(client, "alice")
        bob = register(client, "bob")
        group = make_group(client, alice["access_token"])
        add_member(client, alice["access_token"], group["id"], bob["user"]["id"])

        resp = client.delete(f"/api/v1/groups/{group['id']}", headers=auth_headers(bob["access_token"]))
        assert resp.status_code == 403
