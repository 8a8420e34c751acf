# backoffice/utils/logger.py

import uuid
import sys
import logging
from typing import Optional, Dict, Any, List
from datetime import datetime, timezone
from contextvars import ContextVar

import structlog
from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware


# Context variable for request ID tracking
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class LogConfig:
    """Application context stamped on every log event."""

    APP_NAME = "Vehicle Protection Back Office"
    ENVIRONMENT = "development"


def add_request_id(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add request ID to log context."""
    request_id = request_id_var.get()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_app_context(logger: logging.Logger, method_name: str, event_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Add application context to logs."""
    event_dict["app"] = LogConfig.APP_NAME
    event_dict["environment"] = LogConfig.ENVIRONMENT
    return event_dict


def _shared_processors() -> List[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        add_request_id,
        add_app_context,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def setup_logging(
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: str = "vehicle-protection-backoffice",
    environment: str = "development"
) -> None:
    """
    Configure structlog for the application

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_json: Use JSON format (True) or plain console output (False)
        log_file: Optional path to log file
        app_name: Application name for log context
        environment: Environment name (development, staging, production)
    """
    LogConfig.APP_NAME = app_name
    LogConfig.ENVIRONMENT = environment

    level = getattr(logging, log_level.upper(), logging.INFO)
    shared_processors = _shared_processors()

    # Clear any existing handlers to avoid conflicts
    logging.root.handlers = []

    if use_json:
        console_renderer = structlog.processors.JSONRenderer()
    else:
        console_renderer = structlog.dev.ConsoleRenderer(
            colors=False,
            exception_formatter=structlog.dev.plain_traceback
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, console_renderer],
            foreign_pre_chain=shared_processors,
        )
    )
    logging.root.setLevel(level)
    logging.root.addHandler(console_handler)

    if log_file:
        # Files always get JSON
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=[
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
                foreign_pre_chain=shared_processors,
            )
        )
        logging.root.addHandler(file_handler)

    structlog.configure(
        processors=shared_processors + [
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """
    Get a configured logger instance.

    Args:
        name (Optional[str]): Name of the logger.

    Returns:
        structlog.BoundLogger: Configured logger instance.
    """
    return structlog.get_logger(name)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging and request ID injection
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_var.set(request_id)

        logger = get_logger("api.access")
        start_time = datetime.now(timezone.utc)

        try:
            logger.info(
                "request_started",
                method=request.method,
                path=request.url.path,
                client_host=request.client.host if request.client else None,
            )

            response = await call_next(request)

            duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            logger.info(
                "request_completed",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code,
                duration_ms=round(duration_ms, 2)
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except Exception as e:
            duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000
            logger.error(
                "request_failed",
                method=request.method,
                path=request.url.path,
                duration_ms=round(duration_ms, 2),
                error=str(e),
                exc_info=True
            )
            return JSONResponse(
                status_code=500,
                content={
                    "error": "Internal server error",
                    "request_id": request_id
                },
                headers={"X-Request-ID": request_id}
            )
        finally:
            request_id_var.reset(token)


def setup_app_logging(
    app: FastAPI,
    log_level: str = "INFO",
    use_json: bool = True,
    log_file: Optional[str] = None,
    app_name: str = "",
    environment: str = "development",
) -> None:
    """
    Setup logging for a FastAPI application.

    Args:
        app (FastAPI): FastAPI application instance.
        log_level (str): Logging level.
        use_json (bool): Whether to use JSON formatting.
        log_file (Optional[str]): File path for logging output.
        app_name (str): Name of the application, defaults to the app title.
        environment (str): Application environment (e.g., development, production).
    """
    if not app_name:
        app_name = app.title or LogConfig.APP_NAME

    setup_logging(
        log_level=log_level,
        use_json=use_json,
        log_file=log_file,
        app_name=app_name,
        environment=environment,
    )

    app.add_middleware(LoggingMiddleware)
