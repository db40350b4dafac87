"""Script to import customers from a CSV file into a branch."""

import asyncio
import sys
from pathlib import Path

from chitfund.branch.repository import BranchRepository
from chitfund.core.init_db import db_manager
from chitfund.customer.repository import CustomerRepository
from chitfund.user.repository import UserRepository


async def import_data(csv_path: Path, branch_code: str, actor_email: str) -> bool:
    """Import customers from ``csv_path`` into the branch with ``branch_code``."""
    async with db_manager.get_db() as db:
        branch = await BranchRepository(db).get_by_code(branch_code)
        if branch is None:
            print(f"Branch {branch_code} not found")
            return False

        actor = await UserRepository(db).get_by_email(actor_email)
        if actor is None:
            print(f"User {actor_email} not found")
            return False

        with open(csv_path, "rb") as f:
            success, message, created, errors = await CustomerRepository(db).upload_from_csv(
                f, branch.id, actor
            )

        print(message)
        for error in errors:
            print(f"  row {error['row']}: {error['message']}")
        if success:
            print(f"Imported {created} customers into {branch.code}")
        return success


if __name__ == "__main__":
    if len(sys.argv) != 4:
        print("Usage: python scripts/import_csv_data.py <customers.csv> <branch code> <staff email>")
        sys.exit(2)
    ok = asyncio.run(import_data(Path(sys.argv[1]), sys.argv[2], sys.argv[3]))
    sys.exit(0 if ok else 1)
