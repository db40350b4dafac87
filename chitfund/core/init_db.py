"""Database initialization and dependency injection."""

from typing import AsyncGenerator

import fastapi
from sqlalchemy.ext.asyncio import AsyncSession

from chitfund.core.database import DatabaseManager
# Import all models to ensure they're registered
import chitfund.user.models
import chitfund.branch.models
import chitfund.customer.models
import chitfund.loan.models
import chitfund.chit.models
import chitfund.qrcode.models
import chitfund.audit.models
import chitfund.notification.models
import chitfund.risk.models
import chitfund.passbook.models

# Create a single instance of DatabaseManager
db_manager = DatabaseManager()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency for getting database sessions."""
    async with db_manager.get_db() as session:
        yield session


def init_db(app: fastapi.FastAPI) -> None:
    """Initialize database connection."""
    # Add database session dependency to the app
    app.dependency_overrides[AsyncSession] = get_db
