import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kue import __version__
from kue.config import get_settings
from kue.dependencies import lifespan
from kue.errors import IntentValidationError, UpstreamUnavailable
from kue.logging_config import setup_logging
from kue.api.contacts import router as contacts_router
from kue.api.dedup import router as dedup_router
from kue.api.enrichment import router as enrichment_router
from kue.api.maintenance import router as maintenance_router
from kue.api.network import router as network_router
from kue.api.scoring import router as scoring_router
from kue.api.search import router as search_router

setup_logging()
logger = logging.getLogger("kue.app")

app = FastAPI(
    title="Kue API",
    description="Relationship scoring and network traversal",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(IntentValidationError)
async def intent_validation_handler(request: Request, exc: IntentValidationError):
    return JSONResponse(
        status_code=422,
        content={"detail": str(exc), "query_type": exc.query_type},
    )


@app.exception_handler(UpstreamUnavailable)
async def upstream_unavailable_handler(request: Request, exc: UpstreamUnavailable):
    logger.error(f"[API] {request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=503,
        content={"detail": str(exc), "upstream": exc.upstream, "retryable": exc.retryable},
    )


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    settings = get_settings()
    return {
        "status": "ok",
        "environment": settings.environment,
        "version": __version__
    }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "service": "Kue API",
        "docs": "/docs"
    }


app.include_router(search_router)
app.include_router(network_router)
app.include_router(scoring_router)
app.include_router(contacts_router)
app.include_router(dedup_router)
app.include_router(enrichment_router)
app.include_router(maintenance_router)
