"""
Uniform response envelope: {statusCode, data, message, success}
"""
from typing import Any, List, Optional
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ApiResponse(BaseModel):
    """Envelope returned by every endpoint"""
    statusCode: int
    data: Any = None
    message: str = "Success"
    success: bool = True


class ApiErrorResponse(ApiResponse):
    """Envelope for failures; errors carries per-field details"""
    success: bool = False
    errors: List[Any] = []


def api_response(data: Any = None, message: str = "Success", status_code: int = 200) -> JSONResponse:
    body = ApiResponse(
        statusCode=status_code,
        data=data,
        message=message,
        success=status_code < 400,
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


def api_error(
    status_code: int,
    message: str,
    errors: Optional[List[Any]] = None,
    headers: Optional[dict] = None,
) -> JSONResponse:
    body = ApiErrorResponse(
        statusCode=status_code,
        message=message,
        errors=errors or [],
    )
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body), headers=headers)
