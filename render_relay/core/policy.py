"""
Render policy: chooses a rendering strategy per request and governs the
fallback from the headless browser to the remote scraping service.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, TYPE_CHECKING

from render_relay.components.renderer.playwright_manager import PlaywrightManager
from render_relay.components.remote.scraper_api_client import ScraperApiClient
from render_relay.core.exceptions import RenderRelayError, RenderFailure, RenderRequestError
from render_relay.core.logger import get_logger

if TYPE_CHECKING:
    from render_relay.core.config import ConfigurationManager

logger = get_logger(__name__)

DEFAULT_WAIT_FOR_MS = 2000
FALLBACK_WARNING = "Playwright failed, used fallback"


class RenderMethod(str, Enum):
    """The strategy that produced a page's HTML."""
    PRIMARY = "Playwright"
    FALLBACK = "ScraperAPI"


@dataclass
class RenderRequest:
    url: str
    wait_for: int = DEFAULT_WAIT_FOR_MS
    force_fallback: bool = False


@dataclass
class RenderResult:
    url: str
    html: str
    method: RenderMethod
    warning: Optional[str] = None
    success: bool = True
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def method_label(self) -> str:
        """Wire tag for the method; automatic fallbacks are marked as such."""
        if self.method is RenderMethod.FALLBACK and self.warning:
            return f"{self.method.value} (fallback)"
        return self.method.value


def _describe(exc: Exception) -> str:
    # Strategy errors carry their own message without the component prefix.
    return getattr(exc, "reason", None) or str(exc)


class RenderPolicy:
    """
    Renders a URL with the headless browser, falling back to ScraperAPI.

    The policy is stateless between calls. A fresh `PlaywrightManager` (and so a
    fresh browser process) is used for every primary attempt; the ScraperAPI
    client is created once per policy.
    """
    def __init__(self, config: 'ConfigurationManager', remote_client: Optional[ScraperApiClient] = None):
        """
        Args:
            config (ConfigurationManager): Configuration handed to both strategies.
            remote_client (Optional[ScraperApiClient]): Pre-built fallback client. If None,
                one is created from `config`.
        """
        self.config = config
        self.remote_client = remote_client or ScraperApiClient(config=config)

    async def render(self, request: RenderRequest) -> RenderResult:
        """
        Renders `request.url` and returns its HTML.

        Args:
            request (RenderRequest): The URL, settle time and strategy override.

        Returns:
            RenderResult: Tagged with the strategy that succeeded.

        Raises:
            RenderRequestError: If the URL is missing or blank. No strategy is attempted.
            RenderFailure: If the forced fallback fails, or if both strategies fail.
        """
        url = (request.url or "").strip()
        if not url:
            raise RenderRequestError("URL is required")

        if request.force_fallback:
            logger.info(f"Fallback forced by caller for {url}.")
            try:
                html = await self._render_with_remote_service(url)
            except Exception as e:
                logger.error(f"Forced ScraperAPI render failed for {url}: {_describe(e)}")
                raise RenderFailure("Scraping failed", fallback_error=_describe(e))
            return RenderResult(url=url, html=html, method=RenderMethod.FALLBACK)

        try:
            html = await self._render_with_browser(url, request.wait_for)
            return RenderResult(url=url, html=html, method=RenderMethod.PRIMARY)
        except Exception as primary_exc:
            primary_error = _describe(primary_exc)
            if not isinstance(primary_exc, RenderRelayError):
                logger.error(f"Unexpected error from browser renderer for {url}: {primary_error}", exc_info=True)
            logger.warning(f"Playwright failed for {url}, falling back to ScraperAPI: {primary_error}")

        try:
            html = await self._render_with_remote_service(url)
        except Exception as fallback_exc:
            fallback_error = _describe(fallback_exc)
            logger.error(f"Both strategies failed for {url}. Playwright: {primary_error}; ScraperAPI: {fallback_error}")
            raise RenderFailure(
                "Both Playwright and ScraperAPI failed",
                primary_error=primary_error,
                fallback_error=fallback_error,
            )
        return RenderResult(url=url, html=html, method=RenderMethod.FALLBACK, warning=FALLBACK_WARNING)

    async def _render_with_browser(self, url: str, wait_for: int) -> str:
        playwright_manager = PlaywrightManager(config=self.config)
        async with playwright_manager:
            return await playwright_manager.get_page_content(url, wait_for=wait_for)

    async def _render_with_remote_service(self, url: str) -> str:
        return await self.remote_client.fetch_html(url)
