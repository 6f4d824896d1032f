"""CLI entry point for Dench API."""
import uvicorn

from shared.config import settings


def run_api():
    """Run Dench API server."""
    uvicorn.run(
        "dench_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )


if __name__ == "__main__":
    run_api()
