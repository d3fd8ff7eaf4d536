import logging

from fastapi import FastAPI

from smart_circular.api.routes import router
from smart_circular.core.config import settings
from smart_circular.core.exceptions import LedgerError, global_exception_handler, ledger_error_handler
from smart_circular.ledger import create_ledger

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Smart Circular API")

# Storage backend is picked once, here, from configuration
app.state.ledger = create_ledger(settings)

app.add_exception_handler(LedgerError, ledger_error_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(router)
