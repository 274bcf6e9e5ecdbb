"""Entry point for running the proctoring session server."""

import uvicorn

from mps import config
from mps.app import app


def main():
    """Run the FastAPI application."""
    uvicorn.run(
        app,
        host=config.HOST,
        port=config.PORT,
        log_level=config.LOG_LEVEL.lower()
    )


if __name__ == "__main__":
    main()
