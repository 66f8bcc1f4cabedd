"""
Centralized Error Handling and Logging System
Defines the service error taxonomy and renders every failure as a JSON body
with a trace id for correlation with the structured logs.
"""

import json
import logging
import traceback
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union
from contextvars import ContextVar

from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.middleware.base import BaseHTTPMiddleware

# Context variables for request tracing
request_id_var: ContextVar[str] = ContextVar('request_id', default='')
endpoint_context_var: ContextVar[str] = ContextVar('endpoint_context', default='')

logger = logging.getLogger(__name__)


# Error taxonomy

class ServiceError(Exception):
    """Base class for failures that map onto an HTTP status"""

    status_code = 500
    error_type = "SERVICE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Missing or malformed required field"""
    status_code = 400
    error_type = "VALIDATION_ERROR"


class AuthError(ServiceError):
    """Missing, invalid or expired token"""
    status_code = 401
    error_type = "UNAUTHORIZED"


class ForbiddenError(AuthError):
    """Valid token without the required role, scope or containment"""
    status_code = 403
    error_type = "FORBIDDEN"


class NotFoundError(ServiceError):
    status_code = 404
    error_type = "NOT_FOUND"


class PayloadTooLargeError(ServiceError):
    status_code = 413
    error_type = "PAYLOAD_TOO_LARGE"


class UpstreamError(ServiceError):
    """Google Drive or database failure, message passed through when available"""
    status_code = 500
    error_type = "UPSTREAM_ERROR"


class CaseTreeBuildError(UpstreamError):
    """Folder tree creation failed part way; created_ids lists what was left behind"""

    error_type = "CASE_TREE_INCOMPLETE"

    def __init__(self, message: str, created_ids: List[str]):
        super().__init__(message, details={"createdIds": list(created_ids)})
        self.created_ids = list(created_ids)


class ErrorHandlingConfig:
    """Centralized configuration for error handling behavior"""

    # Security settings
    SANITIZE_SENSITIVE_FIELDS = True
    SENSITIVE_FIELD_PATTERNS = [
        'password', 'token', 'key', 'secret', 'authorization',
        'auth', 'bearer', 'credential', 'api_key'
    ]

    # Logging settings
    LOG_REQUEST_BODIES = True
    LOG_HEADERS = True
    MAX_BODY_LOG_SIZE = 5000  # Truncate large bodies

    # Error response settings
    INCLUDE_TRACE_ID = True
    INCLUDE_TIMESTAMP = True

    @classmethod
    def is_sensitive_field(cls, field_name: str) -> bool:
        """Check if a field contains sensitive data"""
        field_lower = field_name.lower()
        return any(pattern in field_lower for pattern in cls.SENSITIVE_FIELD_PATTERNS)

    @classmethod
    def sanitize_data(cls, data: Union[Dict, str, Any]) -> Any:
        """Recursively sanitize sensitive data from logs"""
        if not cls.SANITIZE_SENSITIVE_FIELDS:
            return data

        if isinstance(data, dict):
            return {
                key: "***REDACTED***" if cls.is_sensitive_field(key) else cls.sanitize_data(value)
                for key, value in data.items()
            }
        elif isinstance(data, list):
            return [cls.sanitize_data(item) for item in data]
        elif isinstance(data, str) and len(data) > cls.MAX_BODY_LOG_SIZE:
            return data[:cls.MAX_BODY_LOG_SIZE] + "...[TRUNCATED]"
        else:
            return data


class StructuredLogger:
    """Structured logging with consistent format and context"""

    @staticmethod
    def log_error(
        error_type: str,
        message: str,
        request: Optional[Request] = None,
        exception: Optional[Exception] = None,
        extra_context: Optional[Dict] = None,
        include_traceback: bool = True
    ) -> str:
        """Log structured error with full context, returning its trace id"""

        trace_id = request_id_var.get('') or str(uuid.uuid4())[:8]

        log_entry = {
            "timestamp": datetime.utcnow().isoformat(),
            "trace_id": trace_id,
            "error_type": error_type,
            "message": message,
            "level": "ERROR"
        }

        if request:
            headers = dict(request.headers)
            log_entry["request"] = {
                "method": request.method,
                "path": request.url.path,
                "query_params": ErrorHandlingConfig.sanitize_data(dict(request.query_params)),
                "headers": ErrorHandlingConfig.sanitize_data(headers) if ErrorHandlingConfig.LOG_HEADERS else {},
                "client_ip": request.client.host if request.client else None,
                "user_agent": headers.get("user-agent", "unknown")
            }

        if exception:
            log_entry["exception"] = {
                "type": type(exception).__name__,
                "details": str(exception),
                "module": getattr(exception, '__module__', 'unknown')
            }
            if include_traceback:
                log_entry["exception"]["traceback"] = traceback.format_exc()

        if extra_context:
            log_entry["context"] = ErrorHandlingConfig.sanitize_data(extra_context)

        endpoint_context = endpoint_context_var.get('')
        if endpoint_context:
            log_entry["endpoint_context"] = endpoint_context

        logger.error(json.dumps(log_entry, indent=2, default=str))

        return trace_id


def _captured_body(request: Request) -> Optional[str]:
    body = getattr(request.state, 'captured_body', None)
    if not body:
        return None
    try:
        return body.decode('utf-8')
    except UnicodeDecodeError:
        return "DECODE_ERROR"


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Middleware to capture request context and add request IDs"""

    async def dispatch(self, request: Request, call_next):
        trace_id = str(uuid.uuid4())[:8]
        request_id_var.set(trace_id)

        # Only JSON bodies are kept for error logs; multipart uploads are not buffered twice
        body = None
        content_type = request.headers.get("content-type", "")
        if ErrorHandlingConfig.LOG_REQUEST_BODIES and content_type.startswith("application/json"):
            body = await request.body()

        request.state.captured_body = body
        request.state.trace_id = trace_id

        response = await call_next(request)
        response.headers["X-Trace-ID"] = trace_id
        return response


def _response_content(message: str, error_type: str, trace_id: Optional[str], extra: Optional[Dict] = None) -> Dict:
    content = {
        "error": message,
        "type": error_type,
    }
    if extra:
        content.update(extra)
    if ErrorHandlingConfig.INCLUDE_TRACE_ID and trace_id:
        content["trace_id"] = trace_id
    if ErrorHandlingConfig.INCLUDE_TIMESTAMP:
        content["timestamp"] = datetime.utcnow().isoformat()
    return content


# Global Exception Handlers

async def service_exception_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render taxonomy errors; 5xx are logged with traceback, 4xx without"""
    trace_id = None
    if exc.status_code >= 500:
        trace_id = StructuredLogger.log_error(
            exc.error_type.lower(),
            exc.message,
            request=request,
            exception=exc,
            extra_context={"details": exc.details, "request_body": _captured_body(request)},
        )
    else:
        logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_type}: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content=_response_content(exc.message, exc.error_type, trace_id, exc.details),
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle framework HTTP exceptions (404 for unknown routes, 405, ...)"""
    trace_id = None
    if exc.status_code >= 500:
        trace_id = StructuredLogger.log_error(
            f"http_{exc.status_code}",
            f"HTTP {exc.status_code}: {exc.detail}",
            request=request,
            exception=exc,
        )
    return JSONResponse(
        status_code=exc.status_code,
        content=_response_content(str(exc.detail), f"HTTP_{exc.status_code}", trace_id),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Turn request validation failures into 400 responses naming the fields"""
    validation_details = []
    for error in exc.errors():
        location = [str(loc) for loc in error.get("loc", []) if loc not in ("body", "query", "form", "path", "header")]
        validation_details.append({
            "field": ".".join(location) or "body",
            "message": error.get("msg", "Unknown validation error"),
            "type": error.get("type", "unknown"),
        })

    message = "; ".join(f"{d['field']}: {d['message']}" for d in validation_details) or "Request validation failed"
    logger.warning(f"{request.method} {request.url.path} -> 400 validation: {message}")

    return JSONResponse(
        status_code=400,
        content=_response_content(
            message,
            ValidationError.error_type,
            request_id_var.get(''),
            {"detail": validation_details},
        ),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle all other exceptions"""
    trace_id = StructuredLogger.log_error(
        "internal_server_error",
        f"Unhandled exception: {str(exc)}",
        request=request,
        exception=exc,
        extra_context={"request_body": _captured_body(request)},
    )
    return JSONResponse(
        status_code=500,
        content=_response_content("An unexpected error occurred", "INTERNAL_ERROR", trace_id),
    )


def setup_error_handling(app):
    """Setup comprehensive error handling for FastAPI app"""

    app.add_middleware(RequestContextMiddleware)

    # Most specific first
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(ServiceError, service_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    logger.info("Centralized error handling system initialized")


def set_endpoint_context(context: str):
    """Set context for current endpoint (call at start of endpoint functions)"""
    endpoint_context_var.set(context)
