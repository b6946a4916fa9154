# mindmirror backend api
# fastapi app with async mongodb and gemini-powered reflection analysis

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from mindmirror.config import settings
from mindmirror.services.db import db
from mindmirror.services.gateway import build_gateway
from mindmirror.routers import analysis, reflections, usage

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: build the analysis gateway, connect to mongodb. shutdown: close connection."""
    logger.info("Starting MindMirror backend...")
    # a missing api key stops the process here
    app.state.gateway = build_gateway(settings)
    await db.connect()
    logger.info("MindMirror backend ready")
    yield
    logger.info("Shutting down MindMirror backend...")
    await db.close()


app = FastAPI(
    title="MindMirror API",
    description="Backend API for MindMirror: daily emotional reflections analysed by Gemini, weekly pattern summaries",
    version="0.1.0",
    lifespan=lifespan,
)

# cors: the configured frontend plus any localhost dev server
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_origin_regex=r"^http://localhost:\d+$",
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    logger.info(f"{request.method} {request.url.path}")
    return await call_next(request)


# error bodies always look like {"success": false, "error": "..."}

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    content = {"success": False, "error": exc.detail}
    if getattr(exc, "is_rate_limited", False):
        content["isRateLimited"] = True
    return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    fields = []
    for err in exc.errors():
        # drop the leading "body" / "query" / "path" segment
        loc = [str(p) for p in err.get("loc", ())[1:]]
        fields.append({"field": ".".join(loc) or "body", "message": err.get("msg", "invalid")})
    message = "; ".join(f"{f['field']}: {f['message']}" for f in fields) or "Invalid request"
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "error": message, "fields": fields},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    content = {"success": False, "error": "Internal server error"}
    if settings.is_development:
        content["details"] = str(exc)
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


# register routers
app.include_router(analysis.router)
app.include_router(reflections.router)
app.include_router(usage.router)


@app.get("/api/health")
async def health_check():
    """basic health check endpoint"""
    return {
        "status": "healthy",
        "service": "MindMirror API",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def run():
    """console entry point: serve the api with uvicorn"""
    uvicorn.run("mindmirror.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
