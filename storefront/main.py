"""Main application entry point."""
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor

from storefront.config import API_VERSION, PORT, SERVICE_NAME
from storefront.database import init_db, engine
from storefront.monitoring import init_profiling
from storefront.logging_config import setup_logging
from storefront.routers import orders, products, users

# Setup structured logging
setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info("Starting application...")

    init_db()
    init_profiling()

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down application...")
    engine.dispose()
    logger.info("Application shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Storefront Orders Service",
    version=API_VERSION,
    lifespan=lifespan
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Report malformed requests (body, path or query) as 400 instead of 422."""
    return JSONResponse(status_code=400, content={"detail": "Invalid request"})


# Instrument FastAPI and SQLAlchemy
FastAPIInstrumentor.instrument_app(app)
SQLAlchemyInstrumentor().instrument(engine=engine)


# Health check endpoint
@app.get("/health")
async def health():
    """Health check endpoint."""
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "service": SERVICE_NAME
    }

# Include routers
app.include_router(users.router)
app.include_router(products.router)
app.include_router(orders.router)


def run() -> None:
    """Serve the application with uvicorn."""
    uvicorn.run(app, host="0.0.0.0", port=PORT)


if __name__ == "__main__":
    run()
