"""
Hours Bank Engine - FastAPI Application.

This is the entry point for the application.
All routers are registered here.
"""

from fastapi import FastAPI

from hours_bank.config import get_settings
from hours_bank.log_config import configure_logging
from hours_bank.api.health import router as health_router
from hours_bank.api.ledger import router as ledger_router
from hours_bank.api.adjustments import router as adjustments_router
from hours_bank.api.allocations import router as allocations_router
from hours_bank.api.contracts import router as contracts_router
from hours_bank.api.observations import router as observations_router

settings = get_settings()
configure_logging()

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Monthly hours and tickets bank: balances, rollover and overage",
)

# Register routers
app.include_router(health_router)
app.include_router(ledger_router)
app.include_router(adjustments_router)
app.include_router(allocations_router)
app.include_router(contracts_router)
app.include_router(observations_router)
