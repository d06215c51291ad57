import logging

from rich.logging import RichHandler

from skinvault.core.config import get_settings

def setup_logging():
    """
    Configures logging for the entire application.

    Both the API process and client scripts call this once at startup; every
    module then logs through ``logging.getLogger(__name__)``.
    """
    settings = get_settings()
    log_level = settings.LOG_LEVEL.upper()

    logging.basicConfig(
        level=log_level,
        force=True,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )

    # Make uvicorn use the root logger config
    logging.getLogger("uvicorn.access").handlers = logging.getLogger().handlers
    logging.getLogger("uvicorn.error").handlers = logging.getLogger().handlers

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.debug("Logging configured at level %s", log_level)
