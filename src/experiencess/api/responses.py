"""JSON envelope shared by the booking routes.

Success: ``{"success": true, "data": ...}``. Failure: ``{"error": "..."}``
plus optional extra keys. Payload keys are camelCase.
"""

from __future__ import annotations

import dataclasses
from enum import Enum
from typing import Any

from fastapi.responses import JSONResponse

from experiencess.domain.models import to_dict


def _camel(key: str) -> str:
    head, *rest = key.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camelize(value: Any) -> Any:
    """Recursively convert dict keys (and dataclasses) to camelCase JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        value = to_dict(value)
    if isinstance(value, dict):
        return {_camel(str(k)): camelize(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def ok(data: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": True, "data": camelize(data)})


def error(message: str, status_code: int, **extra: Any) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message, **camelize(extra)})
