import logging

from fastapi import FastAPI
from fastapi.openapi.utils import get_openapi
from resume_ingest.api.routes.parse import router as parse_router
from resume_ingest.core.config import get_settings

logging.basicConfig(level=get_settings().log_level.upper())

app = FastAPI(
    title="Resume Ingest (Resume Parsing Service)",
    description="Resume parsing service that turns PDF/DOCX/text/image resumes into structured data, escalating to OCR for scanned documents",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json"
)

app.include_router(parse_router)

@app.get("/", tags=["health"])
def root():
    return {"service": "resume-ingest", "status": "running"}

@app.get("/health", tags=["health"])
def health():
    return {"status": "ok"}

def custom_openapi():
    """Generate OpenAPI schema with custom settings."""
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title="Resume Ingest API",
        version="0.1.0",
        description="Resume parsing API with multi-strategy extraction and confidence-scored sections",
        routes=app.routes,
    )
    app.openapi_schema = openapi_schema
    return app.openapi_schema

app.openapi = custom_openapi
