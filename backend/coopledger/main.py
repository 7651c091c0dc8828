from fastapi import FastAPI, Request
import asyncio
import logging
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from coopledger.core.config import settings
from coopledger.domain.exceptions import InvalidStateError, ValidationError
from coopledger.api.routes.members import router as members_router
from coopledger.api.routes.transactions import router as tx_router
from coopledger.api.routes.ledger import router as ledger_router
from coopledger.api.routes.loans import router as loans_router
from coopledger.api.routes.defaulters import router as defaulters_router
from coopledger.api.routes.maturity import router as maturity_router
from coopledger.api.routes.summary import router as summary_router
from coopledger.api.routes.reports import router as reports_router
from coopledger.api.routes.audit import router as audit_router
from coopledger.services.maturity_batch import maturity_batch_loop

logging.basicConfig(
    level=getattr(logging, (settings.log_level or "INFO").upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="coopledger")

origins = [o.strip() for o in (settings.cors_origins or "").split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ValidationError)
async def _validation_error(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(InvalidStateError)
async def _invalid_state(request: Request, exc: InvalidStateError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@app.get("/health")
@app.get("/api/health")
def health():
    return {"status": "ok"}

app.include_router(members_router)
app.include_router(tx_router)
app.include_router(ledger_router)
app.include_router(loans_router)
app.include_router(defaulters_router)
app.include_router(maturity_router)
app.include_router(summary_router)
app.include_router(reports_router)
app.include_router(audit_router)

@app.on_event("startup")
async def _start_maturity_batch():
    if settings.maturity_batch_enabled:
        asyncio.create_task(maturity_batch_loop())
