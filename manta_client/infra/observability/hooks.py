import logging
import re
from typing import Any, Mapping
from urllib.parse import urlsplit

import requests

from manta_client.infra.observability.metrics import LATENCY, REQUESTS, TRANSPORT_ERRORS

REQUEST_ID_HEADER = "x-request-id"
MAX_TRACE_BODY = 2048

logger = logging.getLogger("manta_client.http")


class RequestTraceHook:
    """``requests`` response hook that logs every exchange and records metrics.

    With ``trace_http`` enabled, masked request and response headers (and the
    body of error responses) are attached to the log record.
    """

    SENSITIVE_KEYS = {
        "authorization",
        "proxy-authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "token",
        "secret",
    }

    def __init__(self, *, trace_http: bool = False, enable_metrics: bool = True):
        self.trace_http = trace_http
        self.enable_metrics = enable_metrics

    def _mask_headers(self, headers: Mapping[str, Any]) -> dict[str, Any]:
        masked: dict[str, Any] = {}
        for key, value in headers.items():
            if key.lower() in self.SENSITIVE_KEYS:
                masked[key] = "***"
            else:
                masked[key] = value
        return masked

    def _mask_text(self, text: str) -> str:
        masked = re.sub(
            r'(?i)(signature|token|secret|password)(\s*[:=]\s*)"?[^\s",]+"?',
            lambda m: m.group(1) + m.group(2) + "***",
            text,
        )
        if len(masked) > MAX_TRACE_BODY:
            masked = masked[:MAX_TRACE_BODY] + "...<truncated>"
        return masked

    def __call__(self, response: requests.Response, *args: Any, **kwargs: Any) -> requests.Response:
        request = response.request
        method = request.method or "-"
        path = urlsplit(request.url or "").path or "/"
        status = response.status_code
        elapsed = response.elapsed.total_seconds()
        request_id = request.headers.get(REQUEST_ID_HEADER) or "-"

        if self.enable_metrics:
            REQUESTS.labels(method, str(status)).inc()
            LATENCY.labels(method).observe(elapsed)

        level = logging.INFO
        if status >= 500:
            level = logging.ERROR
        elif status >= 400:
            level = logging.WARNING

        duration_ms = round(elapsed * 1000, 3)
        extra_payload: dict[str, Any] = {
            "method": method,
            "path": path,
            "status": status,
            "duration_ms": duration_ms,
            "request_id": request_id,
        }
        if self.trace_http:
            extra_payload["request_headers"] = self._mask_headers(request.headers)
            extra_payload["response_headers"] = self._mask_headers(response.headers)
            if status >= 400:
                extra_payload["response_body"] = self._mask_text(response.text)

        logger.log(
            level,
            "request method=%s path=%s status=%s duration_ms=%.3f request_id=%s",
            method,
            path,
            status,
            duration_ms,
            request_id,
            extra={"extra": extra_payload},
        )
        return response

    def record_transport_error(
        self, method: str, path: str, request_id: str, exc: BaseException
    ) -> None:
        if self.enable_metrics:
            TRANSPORT_ERRORS.labels(method).inc()
        logger.error(
            "request_error method=%s path=%s request_id=%s error=%r",
            method,
            path,
            request_id,
            exc,
            exc_info=exc,
            extra={
                "extra": {
                    "method": method,
                    "path": path,
                    "request_id": request_id,
                    "exception": repr(exc),
                }
            },
        )
