import logging
import sys
import structlog
from pythonjsonlogger import jsonlogger

from ..config import Settings, get_settings


def setup_logging(settings: Settings = None):
    """Structured logging setup for the console"""
    settings = settings or get_settings()

    # JSON formatter for production, plain lines otherwise
    if settings.json_logs:
        formatter = jsonlogger.JsonFormatter(
            fmt="%(asctime)s %(name)s %(levelname)s %(message)s"
        )
        renderer = structlog.processors.JSONRenderer()
    else:
        formatter = logging.Formatter("%(levelname)-8s %(name)s: %(message)s")
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # Setup root logger; replace our own handler on repeated calls
    logger = logging.getLogger()
    for handler in list(logger.handlers):
        if getattr(handler, "_hms_console", False):
            logger.removeHandler(handler)
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler._hms_console = True
    logger.addHandler(handler)
    logger.setLevel(settings.log_level)

    # httpx logs every request at INFO; the gateway client already does
    logging.getLogger("httpx").setLevel(logging.WARNING)

    return structlog.get_logger()
