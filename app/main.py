import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from app.config import settings
from app.api import accounts, audit, categories, checks, debts, due_dates, entries, loans, payees, summaries, transfers
from app.services.errors import LedgerError

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Household Ledger")


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.get("/health")
def health():
    return {"ok": True}


app.include_router(accounts.router, prefix="/accounts", tags=["Bank accounts"])
app.include_router(checks.router, prefix="/checks", tags=["Checks"])
app.include_router(loans.router, prefix="/loans", tags=["Loans"])
app.include_router(debts.router, prefix="/debts", tags=["Debts"])
app.include_router(entries.router, prefix="/entries", tags=["Entries"])
app.include_router(transfers.router, prefix="/transfers", tags=["Transfers"])
app.include_router(payees.router, prefix="/payees", tags=["Payees"])
app.include_router(categories.router, prefix="/categories", tags=["Categories"])
app.include_router(due_dates.router, prefix="/due-dates", tags=["Due dates"])
app.include_router(summaries.router, prefix="/summaries", tags=["Summaries"])
app.include_router(audit.router, prefix="/audit", tags=["Audit"])
