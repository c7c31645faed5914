"""
Tests for the monthly report scheduler.

These tests verify:
  - One result per scope: "All Branches" first, then each branch by name
  - Branches without transfers are skipped, not failed
  - A failure in one scope is reported and does not stop the others,
    and is recorded as a failed registry row; its partial writes are rolled back
  - The period defaults to last month and can be given explicitly
  - The endpoint requires the cron secret
"""

from branch_ledger.services import report_archive, report_service


async def _add_third_branch(admin_client) -> tuple[dict, dict]:
    branch = (await admin_client.post("/branches", json={"name": "Mazar-i-Sharif"})).json()
    staff = (await admin_client.post(
        "/staff", json={"full_name": "Zahra Noori", "branch_id": branch["id"]}
    )).json()
    return branch, staff


class TestScheduledRun:

    async def test_one_result_per_scope_with_skip(
        self, admin_client, ledger, make_transaction, cron_headers
    ):
        # Only Kabul Main -> Mazar-i-Sharif transfers; Herat has none
        mazar, mazar_staff = await _add_third_branch(admin_client)
        await make_transaction(to_branch_id=mazar["id"], to_staff_id=mazar_staff["id"], amount="100")
        await make_transaction(to_branch_id=mazar["id"], to_staff_id=mazar_staff["id"], amount="250")

        response = await admin_client.post("/monthly-report-scheduler", headers=cron_headers)
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["success"] is True
        assert data["message"] == "Monthly reports generation completed"

        results = data["results"]
        assert [r["branch"] for r in results] == [
            "All Branches", "Herat", "Kabul Main", "Mazar-i-Sharif",
        ]

        all_branches, herat, kabul, mazar_result = results
        assert all_branches["success"] is True
        assert all_branches["report"]["transaction_count"] == 2

        assert herat["success"] is True
        assert herat["skipped"] is True
        assert herat["report"] is None

        assert kabul["report"]["transaction_count"] == 2
        assert mazar_result["report"]["transaction_count"] == 2
        assert mazar_result["report"]["report_period"] == "2025-03"

        listing = await admin_client.get("/reports", params={"report_period": "2025-03"})
        assert len(listing.json()) == 3

    async def test_one_scope_failing_does_not_stop_others(
        self, admin_client, ledger, make_transaction, cron_headers, monkeypatch
    ):
        await make_transaction(amount="100")
        original = report_service.generate_report

        async def flaky_generate(db, period, branch_id=None, **kwargs):
            if branch_id is not None and str(branch_id) == ledger["a"]["id"]:
                raise RuntimeError("renderer crashed")
            return await original(db, period, branch_id=branch_id, **kwargs)

        monkeypatch.setattr(report_service, "generate_report", flaky_generate)

        response = await admin_client.post("/monthly-report-scheduler", headers=cron_headers)
        assert response.status_code == 200
        results = {r["branch"]: r for r in response.json()["results"]}

        assert results["Kabul Main"]["success"] is False
        assert results["Kabul Main"]["error"] == "renderer crashed"
        assert results["All Branches"]["report"]["transaction_count"] == 1
        assert results["Herat"]["report"]["transaction_count"] == 1

        listing = (await admin_client.get(
            "/reports", params={"branch_id": ledger["a"]["id"]}
        )).json()
        assert len(listing) == 1
        assert listing[0]["status"] == "failed"

    async def test_failed_scope_rolls_back_its_registry_write(
        self, admin_client, ledger, make_transaction, cron_headers, monkeypatch
    ):
        await make_transaction(amount="100")
        original = report_archive.store

        async def store_then_fail(db, blob_store, content, **kwargs):
            report = await original(db, blob_store, content, **kwargs)
            if content.branch_id is not None and str(content.branch_id) == ledger["a"]["id"]:
                raise RuntimeError("post-store hook failed")
            return report

        monkeypatch.setattr(report_archive, "store", store_then_fail)

        response = await admin_client.post("/monthly-report-scheduler", headers=cron_headers)
        assert response.status_code == 200
        results = {r["branch"]: r for r in response.json()["results"]}
        assert results["Kabul Main"]["success"] is False
        assert results["Herat"]["success"] is True

        # The completed row written inside the failed scope is gone; only the
        # failure marker remains
        listing = (await admin_client.get(
            "/reports", params={"branch_id": ledger["a"]["id"]}
        )).json()
        assert len(listing) == 1
        assert listing[0]["status"] == "failed"
        assert listing[0]["error_message"] == "post-store hook failed"

        others = (await admin_client.get("/reports", params={"report_period": "2025-03"})).json()
        assert sorted(r["status"] for r in others) == ["completed", "completed", "failed"]

    async def test_explicit_period(self, admin_client, ledger, make_transaction, cron_headers):
        await make_transaction(transaction_date="2025-01-20")

        response = await admin_client.post(
            "/monthly-report-scheduler",
            json={"year": 2025, "month": 1},
            headers=cron_headers,
        )
        results = response.json()["results"]
        assert results[0]["report"]["report_period"] == "2025-01"

    async def test_rerun_updates_existing_rows(
        self, admin_client, ledger, make_transaction, cron_headers
    ):
        await make_transaction()
        await admin_client.post("/monthly-report-scheduler", headers=cron_headers)
        await admin_client.post("/monthly-report-scheduler", headers=cron_headers)

        listing = await admin_client.get("/reports")
        assert len(listing.json()) == 3


class TestSchedulerAuthorization:

    async def test_requires_cron_secret(self, admin_client, ledger):
        # An admin bearer token is not enough
        response = await admin_client.post("/monthly-report-scheduler")
        assert response.status_code == 401
        assert response.json()["detail"] == "Unauthorized: Invalid cron secret"

    async def test_wrong_secret(self, client):
        response = await client.post(
            "/monthly-report-scheduler", headers={"X-Cron-Secret": "wrong"}
        )
        assert response.status_code == 401
