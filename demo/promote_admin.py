#!/usr/bin/env python3
"""Promote an existing user to ADMIN. Run on the server.

    python -m demo.promote_admin admin@school.example
"""
import argparse
import asyncio

from sqlalchemy import update
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

from branch_ledger.config import settings
from branch_ledger.models.user import User, UserType


async def promote(email: str) -> int:
    engine = create_async_engine(settings.DATABASE_URL)
    sf = async_sessionmaker(engine, class_=AsyncSession)
    async with sf() as s:
        r = await s.execute(
            update(User)
            .where(User.email == email)
            .values(user_type=UserType.ADMIN)
        )
        await s.commit()
    await engine.dispose()
    return r.rowcount


def main() -> None:
    parser = argparse.ArgumentParser(description="Promote a user to ADMIN")
    parser.add_argument("email")
    args = parser.parse_args()
    rows = asyncio.run(promote(args.email))
    print(f"Rows updated: {rows}")


if __name__ == "__main__":
    main()
