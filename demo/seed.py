#!/usr/bin/env python3
"""
Demo seed script — populates the database with sample branches, staff,
budgets and transfers for demos.

!! NOT FOR PRODUCTION !!
It creates an admin with a known password. Intended ONLY for local demos
and dashboard development.

Usage:
    # With the API server running on localhost:8000:
    python -m demo.seed

    # Also generate last month's reports through the scheduler endpoint:
    python -m demo.seed --run-scheduler

    # Reset the database and re-seed:
    python -m demo.seed --reset

Login after seeding:
    admin@school.example / AdminDemo123!   (ADMIN)
"""

import argparse
import asyncio
import os
import random
import sys
from datetime import date, timedelta

import httpx

from demo.promote_admin import promote

BASE_URL = "http://localhost:8000"

ADMIN = {
    "email": "admin@school.example",
    "password": "AdminDemo123!",
    "full_name": "Finance Admin",
}

BRANCHES = [
    {"name": "Kabul Main", "province": "Kabul", "staff": ["Ahmad Karimi", "Farida Sultani"]},
    {"name": "Herat", "province": "Herat", "staff": ["Nasir Ahmadzai"]},
    {"name": "Mazar-i-Sharif", "province": "Balkh", "staff": ["Zahra Noori"]},
    {"name": "Kandahar", "province": "Kandahar", "staff": ["Rahim Popal"]},
]

PURPOSES = [
    "Staff salaries", "Rent", "Books and stationery", "Generator fuel",
    "Exam printing", "Building repairs", "Student transport",
]

METHODS = ["MoneyGram", "Western Union", "Hawala", "Bank transfer"]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def post(client: httpx.AsyncClient, token: str, path: str, body: dict) -> dict:
    resp = await client.post(f"{BASE_URL}{path}", json=body, headers=auth_header(token))
    resp.raise_for_status()
    return resp.json()


def previous_month(today: date) -> tuple[int, int]:
    first = today.replace(day=1) - timedelta(days=1)
    return first.year, first.month


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str, run_scheduler: bool) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED — NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=60.0) as client:
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn branch_ledger.main:app --reload\n")
            sys.exit(1)

        print("Creating admin user...")
        resp = await client.post(f"{BASE_URL}/auth/signup", json=ADMIN)
        resp.raise_for_status()
        await promote(ADMIN["email"])
        resp = await client.post(
            f"{BASE_URL}/auth/login",
            json={"email": ADMIN["email"], "password": ADMIN["password"]},
        )
        resp.raise_for_status()
        token = resp.json()["token"]
        log(f"Admin: {ADMIN['email']} / {ADMIN['password']}")

        print("\nCreating branches and staff...")
        branches: list[dict] = []
        for info in BRANCHES:
            branch = await post(client, token, "/branches", {
                "name": info["name"], "province": info["province"],
            })
            staff_ids = []
            for full_name in info["staff"]:
                staff = await post(client, token, "/staff", {
                    "full_name": full_name, "branch_id": branch["id"],
                })
                staff_ids.append(staff["id"])
            branches.append({"id": branch["id"], "name": branch["name"], "staff": staff_ids})
            log(f"{branch['name']}: {len(staff_ids)} staff")

        year, month = previous_month(date.today())

        print("\nCreating budgets...")
        for branch in branches[1:]:
            await post(client, token, "/budgets", {
                "branch_id": branch["id"], "budget_period": "monthly",
                "year": year, "month": month, "allocated_amount": "250000",
            })
            await post(client, token, "/budgets", {
                "branch_id": branch["id"], "budget_period": "yearly",
                "year": year, "allocated_amount": "2500000",
            })
            log(f"{branch['name']}: monthly and yearly AFN budgets")

        print("\nRecording transfers...")
        head_office = branches[0]
        count = 0
        for day in range(1, 29, 3):
            for branch in branches[1:]:
                await post(client, token, "/transactions", {
                    "from_branch_id": head_office["id"],
                    "to_branch_id": branch["id"],
                    "from_staff_id": random.choice(head_office["staff"]),
                    "to_staff_id": random.choice(branch["staff"]),
                    "amount": str(random.randint(5_000, 60_000)),
                    "transfer_method": random.choice(METHODS),
                    "transaction_date": date(year, month, day).isoformat(),
                    "status": "confirmed" if random.random() < 0.7 else "pending",
                    "confirmation_code": f"{random.randint(10**9, 10**10 - 1)}",
                    "purpose": random.choice(PURPOSES),
                })
                count += 1
        log(f"{count} transfers dated {year}-{month:02d}")

        if run_scheduler:
            print("\nRunning the monthly report job...")
            resp = await client.post(
                f"{BASE_URL}/monthly-report-scheduler",
                json={"year": year, "month": month},
                headers={"X-Cron-Secret": os.environ.get("CRON_SECRET", "")},
            )
            resp.raise_for_status()
            for result in resp.json()["results"]:
                state = "skipped" if result["skipped"] else ("ok" if result["success"] else "failed")
                log(f"{result['branch']}: {state}")

    print("\n  SEED COMPLETE\n")


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "ledger.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script — NOT FOR PRODUCTION",
        epilog="Creates sample branches, staff, budgets and transfers for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--run-scheduler", action="store_true",
        help="Generate last month's reports after seeding (needs CRON_SECRET in the environment)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url, args.run_scheduler)


if __name__ == "__main__":
    asyncio.run(main())
