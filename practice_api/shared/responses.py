"""Response envelopes shared by every router"""

from typing import Any, Optional


def success(data: Any = None, message: Optional[str] = None) -> dict:
    body: dict = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def failure(message: str, **extra: Any) -> dict:
    error: dict = {"message": message}
    error.update({key: value for key, value in extra.items() if value is not None})
    return {"success": False, "error": error}
