"""
Tests for report generation, storage and the report registry.

These tests verify:
  - Selection covers the whole period: the last day of the month is in,
    the first day of the next month is out
  - Branch scope matches transfers sent from or received by the branch
  - Empty periods are an error interactively and a skip when automated
  - Regenerating the same branch and period keeps one registry row and
    overwrites the stored PDF
  - A currency-filtered report gets its own row and object next to the
    unfiltered one
  - report_type records the resolved mode; the default period is last month
  - Mixed currencies are labelled MIXED with per-currency totals
  - Only admins (or the cron secret) may generate
  - Upload failures leave no registry row; registry failures remove the upload
  - Download and delete
  - The preview lists per-scope counts without storing anything
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from branch_ledger.exceptions import StorageError
from branch_ledger.services import report_archive
from branch_ledger.services.report_period import resolve_period
from branch_ledger.services.report_service import ReportContent, ReportSummary


async def _generate(client, **body):
    return await client.post("/generate-monthly-reports", json=body)


class TestSelection:
    """Which transfers end up in a report."""

    async def test_month_boundaries(self, admin_client, make_transaction):
        await make_transaction(transaction_date="2025-02-28", amount="1")
        await make_transaction(transaction_date="2025-03-01", amount="10")
        await make_transaction(transaction_date="2025-03-31", amount="100")
        await make_transaction(transaction_date="2025-04-01", amount="1000")

        response = await _generate(admin_client, reportType="single", year=2025, month=3)
        assert response.status_code == 200, response.text
        report = response.json()["report"]
        assert report["transaction_count"] == 2
        assert Decimal(report["total_amount"]) == Decimal("110")
        assert report["currency"] == "AFN"
        assert report["report_period"] == "2025-03"
        assert report["branch_id"] is None
        assert report["status"] == "completed"

    async def test_all_statuses_are_listed(self, admin_client, make_transaction):
        await make_transaction(status="pending")
        await make_transaction(status="confirmed")

        response = await _generate(admin_client, reportType="single", year=2025, month=3)
        assert response.json()["report"]["transaction_count"] == 2

    async def test_branch_scope_matches_either_side(self, admin_client, ledger, make_transaction):
        third = (await admin_client.post("/branches", json={"name": "Kandahar"})).json()
        third_staff = (await admin_client.post(
            "/staff", json={"full_name": "Rahim Popal", "branch_id": third["id"]}
        )).json()

        # A -> B, B -> A, and A -> Kandahar
        await make_transaction(amount="100")
        await make_transaction(
            amount="200",
            from_branch_id=ledger["b"]["id"],
            to_branch_id=ledger["a"]["id"],
            from_staff_id=ledger["b_staff"]["id"],
            to_staff_id=ledger["a_staff"]["id"],
        )
        await make_transaction(
            amount="400",
            to_branch_id=third["id"],
            to_staff_id=third_staff["id"],
        )

        response = await _generate(
            admin_client, branchId=ledger["b"]["id"], reportType="single", year=2025, month=3
        )
        report = response.json()["report"]
        assert report["branch_id"] == ledger["b"]["id"]
        assert report["transaction_count"] == 2
        assert Decimal(report["total_amount"]) == Decimal("300")
        assert report["file_name"] == "Herat_2025-03.pdf"
        assert report["file_path"] == "2025-03/Herat_2025-03.pdf"

    async def test_unknown_branch_returns_404(self, admin_client, ledger):
        response = await _generate(
            admin_client, branchId=str(uuid.uuid4()), reportType="single", year=2025, month=3
        )
        assert response.status_code == 404

    async def test_mixed_currencies(self, admin_client, make_transaction):
        await make_transaction(amount="1000", currency="AFN")
        await make_transaction(amount="50.25", currency="USD")

        response = await _generate(admin_client, reportType="single", year=2025, month=3)
        report = response.json()["report"]
        assert report["currency"] == "MIXED"
        assert {k: Decimal(v) for k, v in report["currency_totals"].items()} == {
            "AFN": Decimal("1000"),
            "USD": Decimal("50.25"),
        }

    async def test_currency_filter(self, admin_client, make_transaction):
        await make_transaction(amount="1000", currency="AFN")
        await make_transaction(amount="50.25", currency="USD")

        response = await _generate(
            admin_client, reportType="single", year=2025, month=3, currency="USD"
        )
        report = response.json()["report"]
        assert report["currency"] == "USD"
        assert report["transaction_count"] == 1


class TestPeriods:
    """Report modes and the default period."""

    async def test_default_period_is_previous_month(self, admin_client, make_transaction):
        # The test clock is 2025-04-15
        await make_transaction(transaction_date="2025-03-10")

        response = await _generate(admin_client)
        report = response.json()["report"]
        assert report["report_period"] == "2025-03"
        assert report["report_type"] == "single"

    async def test_yearly_report(self, admin_client, make_transaction):
        await make_transaction(transaction_date="2025-01-10")
        await make_transaction(transaction_date="2025-11-10")

        response = await _generate(admin_client, reportType="yearly", year=2025)
        report = response.json()["report"]
        assert report["report_type"] == "yearly"
        assert report["report_period"] == "2025"
        assert report["transaction_count"] == 2

    async def test_range_report(self, admin_client, make_transaction):
        await make_transaction(transaction_date="2025-01-10")
        await make_transaction(transaction_date="2025-06-30")
        await make_transaction(transaction_date="2025-07-01")

        response = await _generate(
            admin_client,
            reportType="range", startYear=2025, startMonth=1, endYear=2025, endMonth=6,
        )
        report = response.json()["report"]
        assert report["report_type"] == "range"
        assert report["report_period"] == "2025-01_to_2025-06"
        assert report["transaction_count"] == 2

    async def test_reversed_range_rejected(self, admin_client, ledger):
        response = await _generate(
            admin_client,
            reportType="range", startYear=2025, startMonth=6, endYear=2025, endMonth=1,
        )
        assert response.status_code == 400
        assert response.json()["error_type"] == "invalid_period"


class TestNoData:
    """Empty periods."""

    async def test_interactive_empty_period_is_an_error(self, admin_client, ledger):
        response = await _generate(admin_client, reportType="single", year=2025, month=3)
        assert response.status_code == 400
        assert response.json()["error"] == "No transactions found for this period"

    async def test_cron_empty_period_is_skipped(self, admin_client, ledger, cron_headers):
        response = await admin_client.post(
            "/generate-monthly-reports",
            json={"reportType": "single", "year": 2025, "month": 3},
            headers=cron_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["skipped"] is True
        assert data["message"] == "No transactions found for this period"

    async def test_automated_flag_skips(self, admin_client, ledger):
        response = await _generate(
            admin_client, reportType="single", year=2025, month=3, isAutomated=True
        )
        assert response.status_code == 200
        assert response.json()["skipped"] is True


class TestRegistry:
    """Upsert, listing, download and delete."""

    async def test_regenerating_keeps_one_row(self, admin_client, make_transaction, blob_store):
        await make_transaction(amount="100")
        first = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()

        await make_transaction(amount="200")
        second = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()

        assert first["report"]["id"] == second["report"]["id"]
        assert second["report"]["transaction_count"] == 2

        listing = await admin_client.get("/reports", params={"report_period": "2025-03"})
        assert len(listing.json()) == 1

        stored = await blob_store.download("2025-03/All_Branches_2025-03.pdf")
        assert len(stored) == second["report"]["file_size"]

    async def test_currency_filtered_report_stored_alongside(
        self, admin_client, make_transaction, blob_store
    ):
        await make_transaction(amount="1000", currency="AFN")
        await make_transaction(amount="50.25", currency="USD")

        full = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()
        usd = (await _generate(
            admin_client, reportType="single", year=2025, month=3, currency="usd"
        )).json()

        assert usd["report"]["id"] != full["report"]["id"]
        assert usd["report"]["currency_filter"] == "USD"
        assert usd["report"]["file_name"] == "All_Branches_2025-03_USD.pdf"
        assert usd["report"]["file_path"] == "2025-03/All_Branches_2025-03_USD.pdf"
        assert full["report"]["currency_filter"] is None

        listing = (await admin_client.get("/reports", params={"report_period": "2025-03"})).json()
        by_id = {row["id"]: row for row in listing}
        assert len(by_id) == 2
        unfiltered = by_id[full["report"]["id"]]
        assert unfiltered["currency"] == "MIXED"
        assert unfiltered["transaction_count"] == 2
        assert unfiltered["file_path"] == "2025-03/All_Branches_2025-03.pdf"

        assert await blob_store.exists("2025-03/All_Branches_2025-03.pdf")
        assert await blob_store.exists("2025-03/All_Branches_2025-03_USD.pdf")

        # Regenerating the filtered report updates its own row only
        again = (await _generate(
            admin_client, reportType="single", year=2025, month=3, currency="USD"
        )).json()
        assert again["report"]["id"] == usd["report"]["id"]
        listing = (await admin_client.get("/reports", params={"report_period": "2025-03"})).json()
        assert len(listing) == 2

    async def test_download(self, admin_client, make_transaction, staff_headers):
        await make_transaction()
        report = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()["report"]

        response = await admin_client.get(
            f"/reports/{report['id']}/download", headers=staff_headers
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "All_Branches_2025-03.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    async def test_delete(self, admin_client, make_transaction, blob_store):
        await make_transaction()
        report = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()["report"]

        response = await admin_client.delete(f"/reports/{report['id']}")
        assert response.status_code == 204

        assert (await admin_client.get(f"/reports/{report['id']}")).status_code == 404
        assert not await blob_store.exists(report["file_path"])

    async def test_get_missing_report(self, admin_client, ledger):
        response = await admin_client.get(f"/reports/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error_type"] == "report_not_found"


class TestGenerateAuthorization:
    """Who may generate reports."""

    async def test_missing_auth_returns_401(self, client):
        response = await _generate(client)
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing authorization header"

    async def test_wrong_cron_secret_returns_401(self, client):
        response = await client.post(
            "/generate-monthly-reports", json={}, headers={"X-Cron-Secret": "nope"}
        )
        assert response.status_code == 401

    async def test_staff_cannot_generate(self, admin_client, make_transaction, staff_headers):
        await make_transaction()
        response = await admin_client.post(
            "/generate-monthly-reports",
            json={"reportType": "single", "year": 2025, "month": 3},
            headers=staff_headers,
        )
        assert response.status_code == 403

    async def test_cron_secret_can_generate(self, admin_client, make_transaction, cron_headers):
        await make_transaction()
        response = await admin_client.post(
            "/generate-monthly-reports",
            json={"year": 2025, "month": 3},
            headers=cron_headers,
        )
        assert response.status_code == 200
        report = response.json()["report"]
        assert report["generated_by"] is None

    async def test_staff_cannot_delete_report(self, admin_client, make_transaction, staff_headers):
        await make_transaction()
        report = (await _generate(admin_client, reportType="single", year=2025, month=3)).json()["report"]
        response = await admin_client.delete(f"/reports/{report['id']}", headers=staff_headers)
        assert response.status_code == 403


class TestStorageFailures:
    """Upload and registry failures."""

    async def test_upload_failure_records_nothing(
        self, admin_client, make_transaction, blob_store, monkeypatch
    ):
        await make_transaction()

        async def failing_upload(*args, **kwargs):
            raise StorageError("bucket unavailable")

        monkeypatch.setattr(blob_store, "upload", failing_upload)

        response = await _generate(admin_client, reportType="single", year=2025, month=3)
        assert response.status_code == 500
        assert response.json()["error_type"] == "storage_error"

        listing = await admin_client.get("/reports")
        assert listing.json() == []

    async def test_automated_upload_failure_is_recorded(
        self, admin_client, make_transaction, blob_store, cron_headers, monkeypatch
    ):
        await make_transaction()

        async def failing_upload(*args, **kwargs):
            raise StorageError("bucket unavailable")

        monkeypatch.setattr(blob_store, "upload", failing_upload)

        response = await admin_client.post(
            "/generate-monthly-reports",
            json={"year": 2025, "month": 3},
            headers=cron_headers,
        )
        assert response.status_code == 500

        listing = (await admin_client.get("/reports")).json()
        assert len(listing) == 1
        assert listing[0]["status"] == "failed"
        assert listing[0]["error_message"] == "bucket unavailable"

        download = await admin_client.get(f"/reports/{listing[0]['id']}/download")
        assert download.status_code == 404

    async def test_registry_failure_removes_fresh_upload(self, session_factory, blob_store):
        period = resolve_period("single", year=2025, month=3)
        content = ReportContent(
            pdf_bytes=b"%PDF-1.4 test",
            # currency is NOT NULL in the registry, so the insert fails
            summary=ReportSummary(transaction_count=1, total_amount=Decimal("1"), currency=None),
            branch_id=None,
            branch_name="All Branches",
            period=period,
            generated_at=datetime(2025, 4, 1, tzinfo=timezone.utc),
        )

        async with session_factory() as session:
            with pytest.raises(StorageError):
                await report_archive.store(session, blob_store, content)
            await session.rollback()

        assert not await blob_store.exists("2025-03/All_Branches_2025-03.pdf")


class TestPreview:
    """GET /reports/preview."""

    async def _seed(self, admin_client, ledger, make_transaction):
        await admin_client.post("/branches", json={"name": "Kandahar"})
        await make_transaction(amount="300", currency="AFN")
        await make_transaction(
            amount="50",
            currency="USD",
            from_branch_id=ledger["b"]["id"],
            to_branch_id=ledger["a"]["id"],
            from_staff_id=ledger["b_staff"]["id"],
            to_staff_id=ledger["a_staff"]["id"],
        )
        await make_transaction(transaction_date="2025-04-02")

    async def test_counts_per_scope(self, admin_client, ledger, make_transaction):
        await self._seed(admin_client, ledger, make_transaction)

        response = await admin_client.get(
            "/reports/preview", params={"reportType": "single", "year": 2025, "month": 3}
        )
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["period"] == "2025-03"

        scopes = {s["branch"]: s for s in data["scopes"]}
        assert [s["branch"] for s in data["scopes"]] == [
            "All Branches", "Herat", "Kabul Main", "Kandahar",
        ]
        assert scopes["All Branches"]["branch_id"] is None
        assert scopes["All Branches"]["transaction_count"] == 2
        assert scopes["All Branches"]["currency"] == "MIXED"
        assert scopes["Herat"]["transaction_count"] == 2
        assert scopes["Kabul Main"]["branch_id"] == ledger["a"]["id"]
        assert scopes["Kandahar"]["transaction_count"] == 0
        assert scopes["Kandahar"]["currency"] is None
        assert Decimal(scopes["Kandahar"]["total_amount"]) == Decimal("0")

    async def test_default_period_and_currency_filter(
        self, admin_client, ledger, make_transaction
    ):
        await self._seed(admin_client, ledger, make_transaction)

        # The test clock is 2025-04-15, so the default is March
        response = await admin_client.get("/reports/preview", params={"currency": "USD"})
        data = response.json()
        assert data["period"] == "2025-03"
        scopes = {s["branch"]: s for s in data["scopes"]}
        assert scopes["All Branches"]["transaction_count"] == 1
        assert scopes["All Branches"]["currency"] == "USD"
        assert Decimal(scopes["All Branches"]["total_amount"]) == Decimal("50")

    async def test_staff_can_preview_and_nothing_is_stored(
        self, admin_client, make_transaction, staff_headers, blob_store
    ):
        await make_transaction()

        response = await admin_client.get(
            "/reports/preview", params={"reportType": "yearly", "year": 2025},
            headers=staff_headers,
        )
        assert response.status_code == 200
        assert response.json()["period"] == "2025"
        assert (await admin_client.get("/reports")).json() == []
        assert not await blob_store.exists("2025/All_Branches_2025.pdf")

    async def test_invalid_period(self, admin_client, ledger):
        response = await admin_client.get(
            "/reports/preview", params={"reportType": "range", "startYear": 2025}
        )
        assert response.status_code == 400
