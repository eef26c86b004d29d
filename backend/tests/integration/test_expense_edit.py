"""
tests/integration/test_expense_edit.py — Integration tests for PATCH /expenses/:id.

Rules verified:
  - Only the payer may edit (403 for everyone else, including the owner)
  - Changing amount, split_policy or splits recomputes the stored splits
  - Without new splits the expense keeps its participants and their stored
    percentages or amounts, even after a participant has left the group
  - Plain field edits leave the splits untouched
"""

from __future__ import annotations

from decimal import Decimal

from .conftest import (
    add_guest,
    add_member,
    auth_headers,
    make_expense,
    make_group,
    member_id_of,
    register,
)


def _setup(client):
    alice = register(client, "alice")
    bob   = register(client, "bob")
    group = make_group(client, alice["access_token"])
    add_member(client, alice["access_token"], group["id"], bob["user"]["id"])
    carol = add_guest(client, alice["access_token"], group["id"], "Carol").get_json()["data"]
    ids = {
        "alice": member_id_of(client, alice["access_token"], group["id"], alice["user"]["id"]),
        "bob":   member_id_of(client, alice["access_token"], group["id"], bob["user"]["id"]),
        "carol": carol["id"],
    }
    return alice, bob, group, ids


def _patch(client, token: str, expense_id: int, payload: dict):
    return client.patch(
        f"/api/v1/expenses/{expense_id}",
        json=payload,
        headers=auth_headers(token),
    )


def _owed(data: dict) -> list[str]:
    return [s["owed_amount"] for s in data["splits"]]


class TestPatchFields:

    def test_description_only_keeps_splits(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "100.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"description": "Dinner"})
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["description"] == "Dinner"
        assert _owed(data) == ["33.34", "33.33", "33.33"]

    def test_category_and_date(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {
            "category": "transport",
            "expense_date": "2026-05-04",
        })
        data = resp.get_json()["data"]
        assert data["category"] == "transport"
        assert data["expense_date"] == "2026-05-04"

    def test_patch_sets_updated_at(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]
        assert expense["updated_at"] is None

        data = _patch(client, alice["access_token"], expense["id"], {"description": "x"}).get_json()["data"]
        assert data["updated_at"] is not None

    def test_change_payer_to_another_member(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"paid_by_user_id": bob["user"]["id"]})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["paid_by_user_id"] == bob["user"]["id"]

    def test_change_payer_to_non_member_returns_422(self, client):
        alice, bob, group, ids = _setup(client)
        eve = register(client, "eve")
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"paid_by_user_id": eve["user"]["id"]})
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "PAYER_NOT_MEMBER"


class TestPatchRecomputesSplits:

    def test_amount_change_on_equal_split(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "100.00").get_json()["data"]

        data = _patch(client, alice["access_token"], expense["id"], {"amount": "90.00"}).get_json()["data"]
        assert data["amount"] == "90.00"
        assert _owed(data) == ["30.00", "30.00", "30.00"]

    def test_amount_change_keeps_stored_percentages(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(
            client, alice["access_token"], group["id"], "10.00",
            split_policy="percentage",
            splits=[
                {"member_id": ids["alice"], "percentage": "75"},
                {"member_id": ids["bob"],   "percentage": "25"},
            ],
        ).get_json()["data"]

        data = _patch(client, alice["access_token"], expense["id"], {"amount": "40.00"}).get_json()["data"]
        assert _owed(data) == ["30.00", "10.00"]

    def test_amount_change_against_custom_amounts_returns_422(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(
            client, alice["access_token"], group["id"], "100.00",
            split_policy="custom",
            splits=[
                {"member_id": ids["alice"], "amount": "60.00"},
                {"member_id": ids["bob"],   "amount": "40.00"},
            ],
        ).get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"amount": "120.00"})
        assert resp.status_code == 422
        assert resp.get_json()["error"]["code"] == "SPLIT_SUM_MISMATCH"

        # Nothing was written.
        resp = client.get(f"/api/v1/expenses/{expense['id']}", headers=auth_headers(alice["access_token"]))
        assert resp.get_json()["data"]["amount"] == "100.00"

    def test_amount_and_custom_splits_together(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(
            client, alice["access_token"], group["id"], "100.00",
            split_policy="custom",
            splits=[
                {"member_id": ids["alice"], "amount": "60.00"},
                {"member_id": ids["bob"],   "amount": "40.00"},
            ],
        ).get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {
            "amount": "120.00",
            "splits": [
                {"member_id": ids["bob"],   "amount": "70.00"},
                {"member_id": ids["carol"], "amount": "50.00"},
            ],
        })
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [s["member_id"] for s in data["splits"]] == [ids["bob"], ids["carol"]]
        assert _owed(data) == ["70.00", "50.00"]

    def test_switch_to_equal_uses_existing_participants(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(
            client, alice["access_token"], group["id"], "100.00",
            split_policy="custom",
            splits=[
                {"member_id": ids["alice"], "amount": "60.00"},
                {"member_id": ids["bob"],   "amount": "40.00"},
            ],
        ).get_json()["data"]

        data = _patch(client, alice["access_token"], expense["id"], {"split_policy": "equal"}).get_json()["data"]
        assert data["split_policy"] == "equal"
        assert _owed(data) == ["50.00", "50.00"]

    def test_switch_to_percentage_without_splits_returns_400(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"split_policy": "percentage"})
        assert resp.status_code == 400

    def test_removed_participant_stays_on_recompute(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "90.00").get_json()["data"]
        client.delete(
            f"/api/v1/groups/{group['id']}/members/{ids['carol']}",
            headers=auth_headers(alice["access_token"]),
        )

        data = _patch(client, alice["access_token"], expense["id"], {"amount": "60.00"}).get_json()["data"]
        assert [s["display_name"] for s in data["splits"]] == ["alice", "bob", "Carol"]
        total = sum((Decimal(s["owed_amount"]) for s in data["splits"]), Decimal("0"))
        assert total == Decimal("60.00")

    def test_removed_participant_can_be_reweighted(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "90.00").get_json()["data"]
        client.delete(
            f"/api/v1/groups/{group['id']}/members/{ids['carol']}",
            headers=auth_headers(alice["access_token"]),
        )

        resp = _patch(client, alice["access_token"], expense["id"], {
            "split_policy": "custom",
            "splits": [
                {"member_id": ids["alice"], "amount": "30.00"},
                {"member_id": ids["bob"],   "amount": "20.00"},
                {"member_id": ids["carol"], "amount": "40.00"},
            ],
        })
        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert [s["display_name"] for s in data["splits"]] == ["alice", "bob", "Carol"]
        assert _owed(data) == ["30.00", "20.00", "40.00"]

    def test_new_splits_must_name_known_members(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "90.00").get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {
            "splits": [{"member_id": ids["alice"]}, {"member_id": 999999}],
        })
        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "MEMBER_NOT_FOUND"


class TestPatchAuthorization:

    def test_non_payer_cannot_edit(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(client, alice["access_token"], group["id"], "10.00").get_json()["data"]

        resp = _patch(client, bob["access_token"], expense["id"], {"description": "mine now"})
        assert resp.status_code == 403
        assert resp.get_json()["error"]["code"] == "FORBIDDEN"

    def test_owner_who_did_not_pay_cannot_edit(self, client):
        alice, bob, group, ids = _setup(client)
        expense = make_expense(
            client, bob["access_token"], group["id"], "10.00",
        ).get_json()["data"]

        resp = _patch(client, alice["access_token"], expense["id"], {"description": "x"})
        assert resp.status_code == 403

    def test_unknown_expense_returns_404(self, client):
        alice = register(client, "alice")
        resp = _patch(client, alice["access_token"], 99999, {"description": "x"})
        assert resp.status_code == 404

    def test_unauthenticated_returns_401(self, client):
        resp = client.patch("/api/v1/expenses/1", json={"description": "x"})
        assert resp.status_code == 401
