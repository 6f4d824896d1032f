"""Dench API main application."""
from contextlib import asynccontextmanager

import loguru
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dench_api.api import create_api_router
from dench_api.services.errors import InvalidInputError
from shared.config import resolve_workspace_root, settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    The workspace root is re-resolved per request, so a missing root at
    startup is only a warning.
    """
    root = resolve_workspace_root()
    if root is None:
        loguru.logger.warning("Workspace root not found; workspace routes will answer 404 until it exists")
    else:
        loguru.logger.info(f"Workspace root: {root}")

    yield

    loguru.logger.info("Shutting down...")


app = FastAPI(
    title="Dench API",
    description="Dench workspace API - file operations and live change stream",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def invalid_input_handler(request: Request, exc: RequestValidationError):
    """Malformed or missing body fields are reported as InvalidInput."""
    errors = exc.errors()
    if any(err.get("type") == "json_invalid" for err in errors):
        message = "Invalid JSON body"
    else:
        fields = sorted({".".join(str(p) for p in err["loc"][1:]) for err in errors if len(err["loc"]) > 1})
        message = f"Missing or invalid fields: {', '.join(fields)}" if fields else "Invalid request"
    return JSONResponse(
        status_code=InvalidInputError.status_code,
        content={"detail": InvalidInputError(message).to_detail()},
    )


# Include all API routes
app.include_router(create_api_router())


if __name__ == '__main__':
    import uvicorn
    uvicorn.run(
        'dench_api.main:app',
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
