from typing import Any

from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


def ok(data: Any = None, status_code: int = 200) -> JSONResponse:
    body = {"success": True}
    if data is not None:
        body["data"] = jsonable_encoder(data, by_alias=True, exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def fail(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})
