"""
Metal Ledger – FastAPI application entry point.

Run with:
    uvicorn metal_ledger.main:app --reload --host 0.0.0.0 --port 8000
"""
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from metal_ledger.api.ledger_routes import ledger_router
from metal_ledger.api.master_routes import master_router
from metal_ledger.api.routes import router
from metal_ledger.api.voucher_routes import voucher_router
from metal_ledger.core.config import settings
from metal_ledger.core.database import create_db_and_tables
from metal_ledger.core.errors import LedgerError
from metal_ledger.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown hooks."""
    setup_logging()
    logger.info("Starting Metal Ledger backend …")
    create_db_and_tables()
    logger.info("Database tables ready")
    yield
    logger.info("Metal Ledger backend shut down")


app = FastAPI(
    title="Metal Ledger API",
    description="Fine-metal and cash accounting for jewellery trade vouchers, ledgers and inventory",
    version="1.0.0",
    lifespan=lifespan,
)

# CORS – allow frontend dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.warning(f"{request.method} {request.url.path} rejected ({exc.kind}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ())[1:]) or None
    logger.warning(f"{request.method} {request.url.path} malformed: {first.get('msg')}")
    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "kind": "validation",
                "message": first.get("msg", "Invalid request"),
                "field": field,
                "ref_id": None,
            }
        },
    )


app.include_router(router)
app.include_router(master_router)
app.include_router(voucher_router)
app.include_router(ledger_router)


@app.get("/")
def root():
    return {"message": "Metal Ledger API", "docs": "/docs"}
