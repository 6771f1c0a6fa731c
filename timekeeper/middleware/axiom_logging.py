"""Axiom API 로깅 미들웨어.

Axiom API logging middleware.
Sends one structured event per API request to Axiom: method, path, params,
masked body, status code, duration, and the error detail of failed requests.
Attendance requests also carry ``user_id`` / ``organization_id`` as top-level
fields so a user's state-machine history can be queried directly.
"""

import json
import logging
import re
import time
from typing import Any

from axiom_py import Client as AxiomClient
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from timekeeper.config import settings

logger = logging.getLogger(__name__)

# 마스킹 대상 필드 패턴: Fields to mask in request bodies
_SENSITIVE_KEYS = re.compile(
    r"(password|passwd|secret|token|authorization|api_key|apikey|credential|email)",
    re.IGNORECASE,
)

# 로깅 제외 경로: Paths excluded from logging
_SKIP_PATHS = {"/health", "/docs", "/redoc", "/openapi.json"}

# 최상위로 올리는 식별자: Identifiers promoted to top-level event fields
_ID_FIELDS = ("user_id", "organization_id")


def _mask(data: Any, depth: int = 0) -> Any:
    """민감 필드 마스킹 — Recursively mask sensitive fields."""
    if depth > 5:
        return "..."
    if isinstance(data, dict):
        return {k: "***" if _SENSITIVE_KEYS.search(k) else _mask(v, depth + 1) for k, v in data.items()}
    if isinstance(data, list):
        return [_mask(item, depth + 1) for item in data[:20]]
    if isinstance(data, str) and len(data) > 2000:
        return data[:2000] + "...(truncated)"
    return data


async def _read_error_detail(response: Response) -> tuple[Response, str]:
    """에러 응답 본문에서 사유 추출 — Returns a re-wrapped response and the detail."""
    body = b""
    async for chunk in response.body_iterator:
        body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

    try:
        data = json.loads(body)
        detail = data.get("detail", data) if isinstance(data, dict) else data
        detail = detail if isinstance(detail, str) else json.dumps(detail)
    except (json.JSONDecodeError, UnicodeDecodeError):
        detail = body.decode("utf-8", errors="replace")

    rewrapped = Response(
        content=body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )
    return rewrapped, detail[:500]


class AxiomLoggingMiddleware(BaseHTTPMiddleware):
    """API 요청을 Axiom에 로깅하는 미들웨어.

    Pass-through when Axiom is not configured.
    """

    def __init__(self, app: Any, client: AxiomClient | None = None) -> None:
        super().__init__(app)
        self._dataset: str = settings.AXIOM_DATASET
        self._client: AxiomClient | None = client
        if self._client is None and settings.AXIOM_API_TOKEN and settings.AXIOM_DATASET:
            self._client = AxiomClient(token=settings.AXIOM_API_TOKEN)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in _SKIP_PATHS or self._client is None:
            return await call_next(request)

        started = time.perf_counter()
        event: dict[str, Any] = {
            "service": settings.APP_NAME,
            "method": request.method,
            "path": request.url.path,
        }
        if request.query_params:
            event["query_params"] = _mask(dict(request.query_params))

        if request.method in ("POST", "PUT", "PATCH"):
            try:
                raw = await request.body()
                body = json.loads(raw) if raw else None
            except (json.JSONDecodeError, UnicodeDecodeError):
                body = "(non-json body)"
            if isinstance(body, dict):
                for field in _ID_FIELDS:
                    if field in body:
                        event[field] = body[field]
            if body is not None:
                event["request_body"] = _mask(body)

        event["status_code"] = 500
        try:
            response = await call_next(request)
            event["status_code"] = response.status_code
            if response.status_code >= 400:
                response, event["error"] = await _read_error_detail(response)
        except Exception as exc:
            event["error"] = f"{type(exc).__name__}: {str(exc)[:300]}"
            raise
        finally:
            event["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            if request.path_params:
                event["path_params"] = dict(request.path_params)
            self._ingest(event)

        return response

    def _ingest(self, event: dict[str, Any]) -> None:
        try:
            self._client.ingest_events(self._dataset, [event])
        except Exception as exc:
            # 로깅 실패가 요청 처리에 영향주지 않음: Never break a request on log failure
            logger.warning("Axiom ingest failed: %s", exc)
