"""
Structured logging middleware with PII masking.
Logs every request/response without exposing credentials, verification
codes, email addresses or phone numbers.
"""

import logging
import time
import json
import re
import uuid
from typing import Callable, Any
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp
import traceback

logger = logging.getLogger(__name__)


# Field names whose values are always masked
SENSITIVE_FIELD_PATTERNS = [
    re.compile(r'password', re.IGNORECASE),
    re.compile(r'token', re.IGNORECASE),
    re.compile(r'api[_-]?key', re.IGNORECASE),
    re.compile(r'secret', re.IGNORECASE),
    re.compile(r'authorization', re.IGNORECASE),
    re.compile(r'cookie', re.IGNORECASE),
    re.compile(r'^code$', re.IGNORECASE),
    re.compile(r'otp', re.IGNORECASE),
    re.compile(r'phone', re.IGNORECASE),
    re.compile(r'email', re.IGNORECASE),
]

# PII patterns to detect and mask inside free text
PII_PATTERNS = [
    # Email addresses
    (re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'), '[EMAIL]'),
    # Country-coded or trunk-prefixed phone numbers: +62 812..., 0812-345-6789, 628123456789
    (re.compile(r'\+?\b(?:62|0)8\d{1,3}[-.\s]?\d{3,4}[-.\s]?\d{3,5}\b'), '[PHONE]'),
    (re.compile(r'\+\d{1,3}[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9}'), '[PHONE]'),
]


def is_sensitive_field(field_name: str) -> bool:
    """
    Check if a field name indicates sensitive data.

    Args:
        field_name: Name of the field to check

    Returns:
        True if field is sensitive, False otherwise
    """
    return any(pattern.search(field_name) for pattern in SENSITIVE_FIELD_PATTERNS)


def mask_pii(text: str) -> str:
    for pattern, replacement in PII_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def mask_sensitive_data(data: Any, depth: int = 0, max_depth: int = 10) -> Any:
    """
    Recursively mask sensitive data in dictionaries and lists.

    Args:
        data: Data structure to mask
        depth: Current recursion depth
        max_depth: Maximum recursion depth to prevent infinite loops

    Returns:
        Data structure with sensitive values masked
    """
    if depth > max_depth:
        return "[MAX_DEPTH_EXCEEDED]"

    if isinstance(data, dict):
        return {
            key: "[REDACTED]" if is_sensitive_field(str(key))
            else mask_sensitive_data(value, depth + 1, max_depth)
            for key, value in data.items()
        }

    if isinstance(data, list):
        return [mask_sensitive_data(item, depth + 1, max_depth) for item in data]

    if isinstance(data, str):
        return mask_pii(data)

    return data


def mask_headers(headers: dict) -> dict:
    """
    Mask sensitive headers while preserving useful debugging information.

    Args:
        headers: Dictionary of HTTP headers

    Returns:
        Headers with sensitive values masked
    """
    masked = {}
    for key, value in headers.items():
        key_lower = key.lower()
        if key_lower == 'authorization' and isinstance(value, str):
            # Keep the scheme, hide the credential
            parts = value.split(' ', 1)
            masked[key] = f"{parts[0]} [REDACTED]" if len(parts) == 2 else "[REDACTED]"
        elif is_sensitive_field(key_lower):
            masked[key] = "[REDACTED]"
        else:
            masked[key] = value

    return masked


def should_log_request(path: str) -> bool:
    """Skip health checks to reduce noise."""
    skip_paths = ['/health', '/healthz', '/ready']
    return not any(path.startswith(skip) for skip in skip_paths)


def get_client_ip(request: Request) -> str:
    """
    Extract client IP address from request, handling proxies.

    Returns:
        Client IP with the last IPv4 octet masked
    """
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        ip = forwarded_for.split(',')[0].strip()
    else:
        ip = request.client.host if request.client else 'unknown'

    parts = ip.split('.')
    if len(parts) == 4:
        return f"{parts[0]}.{parts[1]}.{parts[2]}.xxx"
    return 'unknown'


def get_log_level_for_status(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """
    Request/response logging with request ids, timing and masked payloads.
    """

    def __init__(
        self,
        app: ASGIApp,
        log_request_body: bool = False,
        max_body_size: int = 1024,
    ):
        """
        Initialize logging middleware.

        Args:
            app: The ASGI application
            log_request_body: Whether to log JSON request bodies (masked)
            max_body_size: Maximum body size to log (bytes)
        """
        super().__init__(app)
        self.log_request_body = log_request_body
        self.max_body_size = max_body_size

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get('x-request-id', str(uuid.uuid4()))
        request.state.request_id = request_id

        if not should_log_request(request.url.path):
            response = await call_next(request)
            response.headers['x-request-id'] = request_id
            return response

        start_time = time.perf_counter()

        request_log = {
            'event': 'request_started',
            'request_id': request_id,
            'method': request.method,
            'path': request.url.path,
            'query_params': mask_sensitive_data(dict(request.query_params)),
            'client_ip': get_client_ip(request),
            'headers': mask_headers(dict(request.headers)),
        }

        if self.log_request_body and request.method in ['POST', 'PUT', 'PATCH']:
            body = await self._get_request_body(request)
            if body is not None:
                request_log['body'] = mask_sensitive_data(body)

        logger.info(json.dumps(request_log))

        response = None
        try:
            response = await call_next(request)
        except Exception as exc:
            logger.error(
                f"Request processing error: {request.method} {request.url.path}",
                exc_info=True,
                extra={'request_id': request_id},
            )
            raise
        finally:
            duration = time.perf_counter() - start_time
            status_code = response.status_code if response else 500
            response_log = {
                'event': 'request_completed',
                'request_id': request_id,
                'method': request.method,
                'path': request.url.path,
                'duration_ms': round(duration * 1000, 2),
                'status_code': status_code,
            }
            logger.log(get_log_level_for_status(status_code), json.dumps(response_log))

            if response:
                response.headers['x-request-id'] = request_id

        return response

    async def _get_request_body(self, request: Request) -> Any:
        """
        Read a JSON body for logging. Multipart uploads (résumés) are never read here.
        """
        content_type = request.headers.get('content-type', '')
        if 'application/json' not in content_type:
            return {'_content_type': content_type.split(';')[0]}

        body_bytes = await request.body()
        if len(body_bytes) > self.max_body_size:
            return {'_truncated': True, '_size': len(body_bytes)}

        try:
            return json.loads(body_bytes.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError):
            return {'_unparseable': True, '_size': len(body_bytes)}


class StructuredFormatter(logging.Formatter):
    """Formats log records as single-line JSON."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            'timestamp': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'message': mask_pii(record.getMessage()),
        }

        if hasattr(record, 'request_id'):
            log_data['request_id'] = record.request_id

        if record.exc_info:
            log_data['exception'] = {
                'type': record.exc_info[0].__name__,
                'message': mask_pii(str(record.exc_info[1])),
                'traceback': traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data)


def setup_logging(log_level: str = "INFO", json_logs: bool = True):
    """
    Configure application-wide structured logging.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        json_logs: Whether to format logs as JSON
    """
    level = getattr(logging, log_level.upper())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)

    if json_logs:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # Reduce noise from third-party libraries
    logging.getLogger('uvicorn.access').setLevel(logging.WARNING)
    logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
    logging.getLogger('botocore').setLevel(logging.WARNING)
    logging.getLogger('httpx').setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (usually __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
