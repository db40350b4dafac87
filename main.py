"""Main entry point for the FastAPI application."""

import uvicorn
# Import all models to ensure they're loaded before app creation
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

from restapi.router import create_app

app = create_app()

if __name__ == "__main__":
    uvicorn.run("main:app", reload=True)
