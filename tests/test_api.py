"""End-to-end HTTP tests over the demo data set (see marketplace.seed)."""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from marketplace import queries
from marketplace.routers import contracts as contracts_router


def _as(profile_id) -> dict:
    return {"profile_id": str(profile_id)}


def _money(value) -> Decimal:
    return Decimal(str(value))


class TestAuthentication:
    def test_missing_header(self, api):
        resp = api.get("/contracts")
        assert resp.status_code == 401
        assert resp.json()["code"] == "UNAUTHENTICATED"

    @pytest.mark.parametrize("value", ["abc", "0", "999"])
    def test_bad_or_unknown_profile(self, api, value):
        assert api.get("/contracts", headers={"profile_id": value}).status_code == 401

    @pytest.mark.parametrize("path", ["/healthz", "/docsfoo", "/openapi.jsonx"])
    def test_lookalike_public_paths_need_auth(self, api, path):
        resp = api.get(path)
        assert resp.status_code == 401
        assert resp.json()["code"] == "UNAUTHENTICATED"

    def test_docs_are_public(self, api):
        assert api.get("/openapi.json").status_code == 200

    def test_health_is_public(self, api):
        resp = api.get("/health")
        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "ok"
        assert body["database"] == "sqlite"
        assert "payments_succeeded" in body["metrics"]


class TestContracts:
    def test_party_can_read_contract(self, api):
        resp = api.get("/contracts/1", headers=_as(1))
        assert resp.status_code == 200
        body = resp.json()
        assert body["client_id"] == 1
        assert body["contractor_id"] == 5

    def test_contractor_can_read_contract(self, api):
        assert api.get("/contracts/1", headers=_as(5)).status_code == 200

    def test_non_party_gets_not_found(self, api):
        resp = api.get("/contracts/1", headers=_as(2))
        assert resp.status_code == 404

    def test_missing_contract(self, api):
        assert api.get("/contracts/4242", headers=_as(1)).status_code == 404

    def test_read_is_gated_by_party_check(self, api, monkeypatch):
        monkeypatch.setattr(contracts_router, "is_party", lambda profile, contract: False)
        resp = api.get("/contracts/1", headers=_as(1))
        assert resp.status_code == 404
        assert resp.json()["code"] == "NOT_FOUND"

    def test_list_excludes_terminated(self, api):
        resp = api.get("/contracts", headers=_as(1))
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json()] == [2]

    def test_list_for_contractor(self, api):
        ids = [c["id"] for c in api.get("/contracts", headers=_as(6)).json()]
        assert ids == [2, 3, 8]

    def test_list_store_error_is_not_found(self, api, monkeypatch):
        def _down(db, profile_id):
            raise OperationalError("SELECT", {}, Exception("store unavailable"))

        monkeypatch.setattr(contracts_router, "find_active_contracts", _down)
        assert api.get("/contracts", headers=_as(1)).status_code == 404


class TestUnpaidJobs:
    def test_client_sees_in_progress_unpaid_only(self, api):
        resp = api.get("/jobs/unpaid", headers=_as(1))
        assert resp.status_code == 200
        assert [j["id"] for j in resp.json()] == [2]

    def test_contractor_view(self, api):
        jobs = api.get("/jobs/unpaid", headers=_as(6)).json()
        assert [j["id"] for j in jobs] == [2, 3]
        assert all(j["paid"] is False for j in jobs)


class TestPay:
    def test_pay_moves_money(self, api):
        resp = api.post("/jobs/2/pay", headers=_as(1))
        assert resp.status_code == 200
        body = resp.json()
        assert _money(body["amount"]) == Decimal("201.00")
        assert _money(body["client_balance"]) == Decimal("949.00")
        assert _money(body["contractor_balance"]) == Decimal("1415.00")

        unpaid = api.get("/jobs/unpaid", headers=_as(1)).json()
        assert unpaid == []

    def test_pay_twice_forbidden(self, api):
        assert api.post("/jobs/2/pay", headers=_as(1)).status_code == 200
        resp = api.post("/jobs/2/pay", headers=_as(1))
        assert resp.status_code == 403
        assert resp.json()["code"] == "ALREADY_PAID"

    def test_already_paid_seed_job(self, api):
        assert api.post("/jobs/7/pay", headers=_as(1)).status_code == 403

    def test_contractor_cannot_pay(self, api):
        resp = api.post("/jobs/2/pay", headers=_as(6))
        assert resp.status_code == 403
        assert resp.json()["code"] == "NOT_JOB_CLIENT"

    def test_stranger_cannot_pay(self, api):
        assert api.post("/jobs/2/pay", headers=_as(3)).status_code == 403

    def test_insufficient_funds(self, api):
        resp = api.post("/jobs/5/pay", headers=_as(4))
        assert resp.status_code == 403
        assert resp.json()["code"] == "INSUFFICIENT_FUNDS"

    def test_unknown_job(self, api):
        assert api.post("/jobs/999/pay", headers=_as(1)).status_code == 404

    def test_store_failure_is_opaque_500(self, api, monkeypatch):
        def _down(db, job_id):
            raise OperationalError("SELECT", {}, Exception("disk I/O error at /var/db"))

        from marketplace.services import payments
        monkeypatch.setattr(payments, "get_job_with_contract", _down)
        resp = api.post("/jobs/2/pay", headers=_as(1))
        assert resp.status_code == 500
        assert "disk" not in resp.text


class TestDeposit:
    def test_within_cap(self, api):
        # Bruno owes 202 + 200 = 402, cap 100.50
        resp = api.post("/balances/deposit/2", params={"deposit": "100.50"}, headers=_as(2))
        assert resp.status_code == 200
        body = resp.json()
        assert _money(body["balance"]) == Decimal("331.61")
        assert _money(body["cap"]) == Decimal("100.50")

    def test_over_cap(self, api):
        resp = api.post("/balances/deposit/2", params={"deposit": "100.51"}, headers=_as(2))
        assert resp.status_code == 403
        assert resp.json()["code"] == "DEPOSIT_CAP_EXCEEDED"

    def test_no_debt(self, api):
        resp = api.post("/balances/deposit/3", params={"deposit": "1"}, headers=_as(3))
        assert resp.status_code == 403
        assert resp.json()["code"] == "NO_DEBT_CAPACITY"

    def test_cannot_deposit_into_someone_else(self, api):
        resp = api.post("/balances/deposit/2", params={"deposit": "1"}, headers=_as(1))
        assert resp.status_code == 403
        assert resp.json()["code"] == "NOT_ACCOUNT_OWNER"

    @pytest.mark.parametrize("amount", ["abc", "-3", "0", "", "1e30", "9" * 29])
    def test_invalid_amount(self, api, amount):
        resp = api.post("/balances/deposit/2", params={"deposit": amount}, headers=_as(2))
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_INPUT"

    def test_missing_amount(self, api):
        assert api.post("/balances/deposit/2", headers=_as(2)).status_code == 400


class TestAdmin:
    def test_best_profession(self, api):
        resp = api.get(
            "/admin/best-profession",
            params={"start": "2020-08-01", "end": "2020-08-31"},
            headers=_as(1),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["profession"] == "Programmer"
        assert _money(body["total_earned"]) == Decimal("2683.00")

    def test_best_profession_single_day(self, api):
        body = api.get(
            "/admin/best-profession",
            params={"start": "2020-08-10", "end": "2020-08-10"},
            headers=_as(1),
        ).json()
        assert body["profession"] == "Musician"

    def test_best_profession_none(self, api):
        resp = api.get(
            "/admin/best-profession",
            params={"start": "2021-01-01", "end": "2021-12-31"},
            headers=_as(1),
        )
        assert resp.status_code == 404

    def test_best_clients_default_limit(self, api):
        resp = api.get(
            "/admin/best-clients",
            params={"start": "2020-08-01", "end": "2020-08-31"},
            headers=_as(1),
        )
        assert resp.status_code == 200
        body = resp.json()
        assert [c["id"] for c in body] == [4, 1]
        assert body[0]["full_name"] == "Dmitri Holm"
        assert _money(body[0]["paid"]) == Decimal("2020.00")
        assert _money(body[1]["paid"]) == Decimal("442.00")

    def test_best_clients_limit(self, api):
        body = api.get(
            "/admin/best-clients",
            params={"start": "2020-08-01", "end": "2020-08-31", "limit": "3"},
            headers=_as(1),
        ).json()
        assert [c["id"] for c in body] == [4, 1, 2]

    @pytest.mark.parametrize("params", [
        {"start": "2020-08-31", "end": "2020-08-01"},
        {"start": "nope", "end": "2020-08-01"},
        {"end": "2020-08-01"},
        {"start": "2020-08-01", "end": "2020-08-31", "limit": "0"},
    ])
    def test_best_clients_bad_input(self, api, params):
        assert api.get("/admin/best-clients", params=params, headers=_as(1)).status_code == 400

    def test_reports_see_new_payments(self, api):
        api.post("/jobs/2/pay", headers=_as(1))
        from marketplace import database
        with database.SessionLocal() as s:
            job = queries.get_job_with_contract(s, 2)
        day = job.payment_date.date().isoformat()
        body = api.get(
            "/admin/best-clients",
            params={"start": day, "end": day},
            headers=_as(1),
        ).json()
        assert body == [{"id": 1, "full_name": "Ada Okafor", "paid": body[0]["paid"]}]
        assert _money(body[0]["paid"]) == Decimal("201.00")


class TestMalformedRequests:
    @pytest.mark.parametrize("method, path", [
        ("post", "/jobs/abc/pay"),
        ("get", "/contracts/abc"),
        ("post", "/balances/deposit/abc?deposit=1"),
    ])
    def test_non_integer_id_is_bad_input(self, api, method, path):
        resp = getattr(api, method)(path, headers=_as(1))
        assert resp.status_code == 400
        body = resp.json()
        assert body["code"] == "INVALID_INPUT"
        assert "detail" in body
