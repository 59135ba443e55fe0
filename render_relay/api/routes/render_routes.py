"""
API routes for rendering pages in the Render Relay service.

Both entry points build a `RenderRequest` and hand it to `RenderPolicy`;
`POST /render` reads a JSON or form-encoded body while `GET /scrape` reads
the query string. Errors raised by the policy are translated into responses
by the exception handlers registered in `api/main.py`.
"""
import json
from functools import lru_cache

from fastapi import APIRouter, Depends, Query, Request, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from typing import Any, Dict, List, Optional

from render_relay.api.models import RenderRequestBody, RenderResponse, coerce_wait_for
from render_relay.core.config import config_manager
from render_relay.core.exceptions import RenderRequestError
from render_relay.core.logger import get_logger
from render_relay.core.policy import RenderPolicy, RenderRequest

logger = get_logger(__name__)

router = APIRouter()

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@lru_cache(maxsize=None)
def get_render_policy() -> RenderPolicy:
    """
    Dependency provider for the render policy.

    The policy keeps no per-request state, so one instance built from the
    global configuration serves the whole process.
    """
    return RenderPolicy(config=config_manager)


def _is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return not media_type or media_type == "application/json" or media_type.endswith("+json")


async def read_render_body(request: Request) -> RenderRequestBody:
    """
    Reads the `POST /render` body as JSON or as form fields.

    Bodies of any other content type are ignored, which leaves the URL
    missing. Invalid JSON and values rejected by `RenderRequestBody` are
    raised as `RequestValidationError`.
    """
    content_type = request.headers.get("content-type", "")
    data: Any = {}

    if content_type.lower().startswith(FORM_CONTENT_TYPES):
        form = await request.form()
        data = {key: value for key, value in form.items() if isinstance(value, str)}
    elif _is_json_content_type(content_type):
        raw_body = await request.body()
        if raw_body.strip():
            try:
                data = json.loads(raw_body)
            except ValueError as e:
                raise RequestValidationError([{
                    "type": "json_invalid",
                    "loc": ("body",),
                    "msg": "JSON decode error",
                    "input": {},
                    "ctx": {"error": str(e)},
                }])
    else:
        logger.debug(f"Ignoring POST /render body with content type '{content_type}'")

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise RequestValidationError([{
            "type": "model_attributes_type",
            "loc": ("body",),
            "msg": "Input should be an object",
            "input": data,
        }])

    try:
        return RenderRequestBody.model_validate(data)
    except ValidationError as e:
        errors: List[Dict[str, Any]] = [{**error, "loc": ("body", *error["loc"])} for error in e.errors()]
        raise RequestValidationError(errors)


@router.post(
    "/render",
    response_model=RenderResponse,
    response_model_exclude_none=True,
    status_code=status.HTTP_200_OK,
    summary="Render a URL and return its HTML",
    description="Takes a JSON or form-encoded body. Renders the page in a headless browser after waiting "
                "`waitFor` milliseconds. If the browser fails, ScraperAPI is tried once. "
                "Set `useScraperAPI` to skip the browser.",
)
async def render_endpoint(
    payload: RenderRequestBody = Depends(read_render_body),
    policy: RenderPolicy = Depends(get_render_policy),
):
    if not payload.url or not payload.url.strip():
        raise RenderRequestError("URL is required")

    logger.info(f"POST /render for {payload.url} (waitFor={payload.waitFor}, useScraperAPI={payload.useScraperAPI})")
    result = await policy.render(RenderRequest(
        url=payload.url,
        wait_for=payload.waitFor,
        force_fallback=payload.useScraperAPI,
    ))
    return RenderResponse.from_result(result)


@router.get(
    "/scrape",
    response_model=RenderResponse,
    response_model_exclude_none=True,
    summary="Render a URL given as a query parameter",
    description="Same behaviour as `POST /render`. `useScraperAPI=true` forces the remote service.",
)
async def scrape_endpoint(
    url: Optional[str] = Query(default=None),
    waitFor: Optional[str] = Query(default=None),
    useScraperAPI: Optional[str] = Query(default=None),
    policy: RenderPolicy = Depends(get_render_policy),
):
    if not url or not url.strip():
        raise RenderRequestError("URL parameter is required")

    wait_for = coerce_wait_for(waitFor)
    force_fallback = useScraperAPI == "true"
    logger.info(f"GET /scrape for {url} (waitFor={wait_for}, useScraperAPI={force_fallback})")
    result = await policy.render(RenderRequest(url=url, wait_for=wait_for, force_fallback=force_fallback))
    return RenderResponse.from_result(result)
