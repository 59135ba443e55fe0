import math
from datetime import datetime
from typing import Any, Optional
from pydantic import BaseModel, field_validator

from render_relay.core.policy import DEFAULT_WAIT_FOR_MS, RenderResult


def coerce_wait_for(value: Any, default: int = DEFAULT_WAIT_FOR_MS) -> int:
    """
    Turns a caller-supplied settle time into a non-negative number of milliseconds.

    Non-negative integers are kept and non-negative finite floats are truncated,
    whether given as numbers or as numeric strings. Anything else, including
    booleans and negative numbers, becomes `default`.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value >= 0 else default
    if isinstance(value, str):
        text = value.strip()
        try:
            return coerce_wait_for(int(text), default)
        except ValueError:
            pass
        try:
            return coerce_wait_for(float(text), default)
        except ValueError:
            return default
    return default


# --- Request Models ---

class RenderRequestBody(BaseModel):
    """
    Body accepted by `POST /render`, from JSON or form fields.

    `url` is optional at the schema level so that a missing URL is reported
    as a 400 by the route rather than as a schema validation failure.
    """
    url: Optional[str] = None
    waitFor: int = DEFAULT_WAIT_FOR_MS
    useScraperAPI: bool = False

    @field_validator("waitFor", mode="before")
    @classmethod
    def _coerce_wait_for(cls, value: Any) -> int:
        return coerce_wait_for(value)

    @field_validator("useScraperAPI", mode="before")
    @classmethod
    def _null_means_false(cls, value: Any) -> Any:
        return False if value is None else value


# --- Response Models ---

class RenderResponse(BaseModel):
    """
    Successful render of a single URL.
    """
    success: bool
    url: str
    html: str
    method: str # "Playwright", "ScraperAPI" or "ScraperAPI (fallback)"
    warning: Optional[str] = None
    timestamp: datetime

    @classmethod
    def from_result(cls, result: RenderResult) -> "RenderResponse":
        return cls(
            success=result.success,
            url=result.url,
            html=result.html,
            method=result.method_label,
            warning=result.warning,
            timestamp=result.timestamp,
        )

class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
