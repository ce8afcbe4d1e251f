"""Tagged result envelopes shared by every route."""

from datetime import datetime
from typing import Any

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from auth.exceptions import ErrorCode


def to_unix_ms(value: datetime) -> int:
    """Timestamps go over the wire as epoch milliseconds."""
    return int(value.timestamp() * 1000)


def ok_response(data: Any, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    """Successful result: {"ok": true, "data": ...}."""
    return JSONResponse(
        status_code=status_code,
        content={"ok": True, "data": jsonable_encoder(data)},
    )


def error_response(code: ErrorCode, message: str, status_code: int) -> JSONResponse:
    """Failed result: {"ok": false, "error": {"code", "message"}}."""
    return JSONResponse(
        status_code=status_code,
        content={
            "ok": False,
            "error": {"code": code.value, "message": message},
        },
    )
