"""
FastAPI Application Entry Point
Main application setup and route registration
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from cvstudio import __version__
from cvstudio.config import settings
from cvstudio.database import connect_db, disconnect_db
from cvstudio.errors import CVStudioError
from cvstudio.logging_config import setup_logging

logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    description="Recruitment CV layout editor and generator",
    version=__version__,
    debug=settings.DEBUG
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure this in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Batch-Produced", "X-Batch-Failed"],
)


@app.exception_handler(CVStudioError)
async def cvstudio_error_handler(request: Request, exc: CVStudioError):
    """Domain errors become JSON with a user-facing message"""
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


# Startup event
@app.on_event("startup")
async def startup():
    """Run on application startup"""
    setup_logging()
    if settings.STORE_BACKEND == "database":
        await connect_db()
    logger.info("%s started in %s mode (%s store)", settings.APP_NAME, settings.APP_ENV, settings.STORE_BACKEND)


# Shutdown event
@app.on_event("shutdown")
async def shutdown():
    """Run on application shutdown"""
    if settings.STORE_BACKEND == "database":
        await disconnect_db()
    logger.info("Shutdown complete")


# Health check endpoint
@app.get("/api/health")
async def health_check():
    """Health check endpoint"""
    return {
        "status": "healthy",
        "app": settings.APP_NAME,
        "version": __version__
    }


# Import and include routers
from cvstudio.routes import documents, editor, records, templates

app.include_router(templates.router, prefix="/templates", tags=["Templates"])
app.include_router(editor.router, prefix="/editor", tags=["Layout Editor"])
app.include_router(records.router, prefix="/records", tags=["Records"])
app.include_router(documents.router, prefix="/documents", tags=["Documents"])


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "cvstudio.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True  # Auto-reload on code changes
    )
