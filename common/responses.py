"""
Garden Shop - JSON Response Envelope
=====================================
Every API answer is {success, message, data?} and paginated
listings add a `pagination` block.
"""

from datetime import datetime, date
from decimal import Decimal

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _encode(value):
    return jsonable_encoder(value, custom_encoder={
        Decimal: float,
        datetime: lambda d: d.isoformat(),
        date: lambda d: d.isoformat(),
    })


def success_response(message: str, data=None, status_code: int = 200, pagination: dict = None) -> JSONResponse:
    body = {"success": True, "message": message}
    if data is not None:
        body["data"] = _encode(data)
    if pagination is not None:
        body["pagination"] = pagination
    return JSONResponse(body, status_code=status_code)


def error_response(message: str, status_code: int = 400) -> JSONResponse:
    return JSONResponse({"success": False, "message": message}, status_code=status_code)
