"""FastAPI application (feedback calibration & account trust policy).

Operational goals:
- Request-id propagation and structured JSON access logs
- Safe failure modes: DB unavailability -> 503, lost optimistic races -> 409
- Corrupt persisted state is surfaced, never masked
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError

from calibration.core.errors import ConcurrentUpdateError, CorruptStateError, InvalidPolicyModeError
from feedtrust.api.router import router as api_router
import feedtrust.models as _models  # noqa: F401  (register all ORM models deterministically)


logger = logging.getLogger("feedtrust")
logger.setLevel(logging.INFO)

REQUEST_ID_HEADER = "x-request-id"


def _log_event(event: str, **fields) -> None:
    logger.info(json.dumps({"event": event, **fields}))


def _error(status_code: int, detail: str, request_id: str | None = None) -> JSONResponse:
    headers = {REQUEST_ID_HEADER: request_id} if request_id else None
    return JSONResponse(status_code=status_code, content={"detail": detail}, headers=headers)


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(InvalidPolicyModeError)
    async def invalid_mode_handler(request: Request, exc: InvalidPolicyModeError):
        return _error(422, str(exc))

    @app.exception_handler(ConcurrentUpdateError)
    async def conflict_handler(request: Request, exc: ConcurrentUpdateError):
        _log_event("write_conflict", path=request.url.path, error=str(exc))
        return _error(409, "Concurrent update; retry the request.")

    @app.exception_handler(CorruptStateError)
    async def corrupt_state_handler(request: Request, exc: CorruptStateError):
        logger.error(json.dumps({"event": "corrupt_state", "path": request.url.path, "error": str(exc)}))
        return _error(500, "Stored calibration state is corrupt.")


def create_app() -> FastAPI:
    app = FastAPI(
        title="feedtrust",
        version="1.0.0",
        openapi_url="/openapi.json",
        description="Feedback-driven source calibration and account trust policies.",
    )
    app.include_router(api_router)
    _register_exception_handlers(app)

    @app.middleware("http")
    async def request_id_and_access_log(request: Request, call_next: Callable):
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except OperationalError:
            return _error(503, "Service temporarily unavailable. Storage unreachable.", request_id)
        except Exception:  # noqa: BLE001
            logger.exception("Unhandled error", extra={"request_id": request_id})
            return _error(500, "Internal error.", request_id)

        response.headers[REQUEST_ID_HEADER] = request_id
        _log_event(
            "access",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            status_code=getattr(response, "status_code", None),
            duration_ms=int((time.perf_counter() - started) * 1000),
        )
        return response

    return app


app = create_app()
