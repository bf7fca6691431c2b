"""
Main entry point for FileVault Backend

Imports the FastAPI app from app.py for uvicorn to run.

@.architecture
Incoming: none --- {entry point for uvicorn server}
Processing: create_app() import, uvicorn.run() --- {2 jobs: config_loading, server_startup}
Outgoing: uvicorn server, Network (HTTP) --- {FastAPI application instance, HTTP server}
"""

import os
from app import create_app
from config.settings import get_settings

# Create app instance
app = create_app()


def run() -> None:
    """Run the server with uvicorn."""
    import uvicorn

    settings = get_settings()

    # Environment variables win over settings
    host = os.getenv("FILEVAULT_HOST", settings.security.bind_host)
    port = int(os.getenv("FILEVAULT_PORT", str(settings.security.bind_port)))
    reload = os.getenv("FILEVAULT_RELOAD", "false").lower() == "true"
    log_level = os.getenv("FILEVAULT_LOG_LEVEL", settings.monitoring.log_level.lower())

    uvicorn.run(
        "main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level
    )


if __name__ == "__main__":
    run()
