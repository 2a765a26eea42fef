"""
API response envelope: {success, message?, data?, errors?}
"""

from typing import Any, Dict, List, Optional

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def _envelope(success: bool, message: Optional[str], data: Any, errors: Optional[List[Dict[str, Any]]],
              extra: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    body: Dict[str, Any] = {"success": success}
    if message is not None:
        body["message"] = message
    if data is not None:
        body["data"] = data
    if errors:
        body["errors"] = errors
    if extra:
        body.update(extra)
    return body


def success_response(data: Any = None, message: Optional[str] = None, status_code: int = 200) -> JSONResponse:
    # Decimal and datetime values are rendered by jsonable_encoder (numbers and ISO strings)
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(_envelope(True, message, data, None)),
    )


def error_response(message: str, status_code: int = 400, data: Any = None,
                   errors: Optional[List[Dict[str, Any]]] = None,
                   error: Optional[str] = None) -> JSONResponse:
    extra = {"error": error} if error else None
    return JSONResponse(
        status_code=status_code,
        content=jsonable_encoder(_envelope(False, message, data, errors, extra)),
    )
