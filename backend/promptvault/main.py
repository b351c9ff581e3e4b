"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from promptvault.config import settings
from promptvault.database import engine, get_db
from promptvault.exceptions import PromptVaultError
from promptvault.logging_config import setup_logging
from promptvault.models import Base
from promptvault.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Configure logging and create tables on startup."""
    setup_logging()
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("PromptVault API started")

    yield

    await engine.dispose()


app = FastAPI(
    title="PromptVault API",
    version="1.0.0",
    description="Store, organize, version and share reusable prompts.",
    lifespan=lifespan,
)

# CORS
origins = [o.strip() for o in settings.CORS_ORIGINS.split(",")]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(PromptVaultError)
async def promptvault_exception_handler(request: Request, exc: PromptVaultError):
    """Render business failures as {"code", "message"} with their status code."""
    logger.warning(
        "Request failed [%s %s]: %s %s",
        request.method,
        request.url.path,
        exc.code,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(code=exc.code, message=exc.message).model_dump(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error [%s %s]", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(code="INTERNAL_SERVER_ERROR", message="Internal server error").model_dump(),
    )


@app.get("/api/health")
async def health_check():
    """Verify API and database connectivity."""
    try:
        async for db in get_db():
            await db.execute(text("SELECT 1"))
            return {"status": "ok", "database": "connected"}
    except Exception as e:
        return {"status": "error", "database": str(e)}


# Register routers
from promptvault.routes.auth import router as auth_router
from promptvault.routes.prompts import router as prompts_router
from promptvault.routes.folders import router as folders_router
from promptvault.routes.teams import router as teams_router
from promptvault.routes.activity import router as activity_router
app.include_router(auth_router)
app.include_router(prompts_router)
app.include_router(folders_router)
app.include_router(teams_router)
app.include_router(activity_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("promptvault.main:app", host="0.0.0.0", port=settings.API_PORT)
