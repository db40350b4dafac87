"""Script to seed demo data into the database."""

import asyncio
from datetime import date

from chitfund.branch.models import Branch
from chitfund.chit.models import ChitGroup, ChitGroupMember
from chitfund.core.init_db import db_manager
from chitfund.core.security import get_password_hash
from chitfund.customer.models import Customer
from chitfund.user.models import Role, User
from chitfund.user.utils import generate_referral_code


def staff(name, email, role, branch_id=None):
    return User(
        name=name,
        email=email,
        mobile="9000000000",
        password=get_password_hash("password123"),
        role=role.value,
        branch_id=branch_id,
        referral_code=generate_referral_code(name),
        registration_date=date.today(),
    )


async def seed_data():
    """Seed demo data: one branch, its staff, customers and a chit group."""
    await db_manager.drop_tables()
    await db_manager.create_tables()

    async with db_manager.get_db() as db:
        admin = staff("Super Admin", "admin@chitfund.in", Role.SUPER_ADMIN)
        db.add(admin)

        branch = Branch(name="Vijayawada Main", code="VJA01", address="MG Road, Vijayawada", phone="08662400000")
        db.add(branch)
        await db.commit()

        manager = staff("Ravi Kumar", "ravi@chitfund.in", Role.BRANCH_MANAGER, branch.id)
        agent = staff("Lakshmi Devi", "lakshmi@chitfund.in", Role.AGENT, branch.id)
        db.add_all([manager, agent])
        await db.commit()
        branch.manager_id = manager.id

        customers = [
            Customer(
                code=f"CUS-DEMO0{i}",
                name=name,
                mobile=f"98480000{i:02d}",
                status="active",
                kyc_status="verified",
                id_proof_type="AADHAR",
                age=30 + i,
                monthly_income=25000 + i * 1000,
                branch_id=branch.id,
                created_by=agent.id,
            )
            for i, name in enumerate(["Suresh", "Padma", "Venkat", "Anitha", "Kiran"], start=1)
        ]
        db.add_all(customers)
        await db.commit()

        group = ChitGroup(
            group_name="Monthly 1 Lakh",
            chit_value=100000,
            commission_percentage=5,
            duration=20,
            max_members=20,
            status="active",
            branch_id=branch.id,
            start_date=date.today(),
            created_by=manager.id,
        )
        db.add(group)
        await db.commit()

        for customer in customers:
            db.add(ChitGroupMember(chit_group_id=group.id, customer_id=customer.id))
        await db.commit()

        print(f"Seeded branch {branch.code} with {len(customers)} customers and group '{group.group_name}'")


if __name__ == "__main__":
    asyncio.run(seed_data())
