"""
Console entry point: ``ingest-gateway``.

Serves the application with uvicorn on ``SERVER_ADDR``. Signal handling
and graceful shutdown are left to uvicorn.
"""

import uvicorn

from .config import get_settings


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "ingest_gateway.main:app",
        host=settings.listen_host,
        port=settings.listen_port,
        log_config=None,  # keep the structlog setup from create_app
        proxy_headers=True,
    )


if __name__ == "__main__":
    run()
