# -*- coding: utf-8 -*-
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from radsim import __version__
from radsim.api.routes.api_routes import api_router
from radsim.api.services.auth_service import AuthService
from radsim.api.services.service_feedback.grader import CaseGrader
from radsim.api.services.service_feedback.llm_client import OpenRouterClient
from radsim.api.services.service_training.case_engine import SessionRegistry
from radsim.core import config
from radsim.core.case_store import CaseStore
from radsim.core.logging_config import setup_logging
from radsim.core.rate_limit import limiter
from radsim.database.connection import Database

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()

    db = Database()
    try:
        db.init_pool()
        if db.ping():
            logger.info("Server started, PostgreSQL connection ok")
        else:
            logger.warning("DB ping failed")
    except Exception as e:
        logger.error("DB pool init / connection failed: %r", e)

    client = OpenRouterClient()
    if not client.configured:
        logger.warning("OPENROUTER_API_KEY is not set; AI grading is disabled")

    app.state.db = db
    app.state.case_store = CaseStore(db)
    app.state.auth_service = AuthService(db)
    app.state.llm_client = client
    app.state.grader = CaseGrader(client)
    app.state.session_registry = SessionRegistry()
    try:
        yield
    finally:
        client.close()
        db.close_pool()
        logger.info("Server stopped")


app = FastAPI(title="RadSim API", version=__version__, lifespan=lifespan)

app.include_router(api_router, prefix="/api")
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.get("/")
def root():
    return {"message": "RadSim API running", "version": __version__}


@app.middleware("http")
async def secure_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "no-referrer"
    response.headers[
        "Content-Security-Policy"
    ] = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"
    return response


@app.exception_handler(UnicodeDecodeError)
async def unicode_error_handler(request: Request, exc: UnicodeDecodeError):
    logger.warning("Undecodable request on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": "Request could not be decoded"})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def run() -> None:
    import uvicorn

    setup_logging()
    uvicorn.run(
        "radsim.main:app",
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
