# pydantic v2 friendly, safe for HTTP JSON bodies
from __future__ import annotations
import base64
import json
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel


def ensure_jsonable(obj: Any) -> Any:
    # primitives
    if isinstance(obj, (str, int, float, bool)) or obj is None:
        return obj
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, BaseModel):
        return obj.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(obj, (bytes, bytearray)):
        return base64.b64encode(bytes(obj)).decode("ascii")
    # containers
    if isinstance(obj, dict):
        return {str(k): ensure_jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple, set)):
        return [ensure_jsonable(v) for v in obj]

    # common adapters
    for m in ("to_dict", "model_dump"):
        if hasattr(obj, m):
            try:
                return ensure_jsonable(getattr(obj, m)())
            except (TypeError, ValueError):
                pass

    # last resort
    return str(obj)


def to_json(obj: Any) -> str:
    return json.dumps(ensure_jsonable(obj), ensure_ascii=False)
