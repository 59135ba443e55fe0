"""
Client for the ScraperAPI remote scraping service.

`ScraperApiClient` is the fallback rendering strategy: it asks ScraperAPI to
fetch a page on the relay's behalf and returns the body verbatim. The API key
is read from configuration (normally the SCRAPERAPI_KEY environment variable);
without one every call fails with `RemoteServiceError`.
"""
import httpx
from typing import Optional, TYPE_CHECKING

from render_relay.core.exceptions import RemoteServiceError
from render_relay.core.logger import get_logger

if TYPE_CHECKING:
    from render_relay.core.config import ConfigurationManager

logger = get_logger(__name__)


class ScraperApiClient:
    """
    Fetches page HTML through ScraperAPI.

    Attributes:
        endpoint (str): Base URL of the ScraperAPI service.
        timeout (float): Request timeout in seconds.
        render_js (bool): Whether to ask ScraperAPI to execute JavaScript.
    """
    DEFAULT_ENDPOINT = "http://api.scraperapi.com"
    DEFAULT_TIMEOUT = 30.0 # Seconds
    DEFAULT_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

    def __init__(self, config: Optional['ConfigurationManager'] = None, client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            config (Optional[ConfigurationManager]): Source of the `components.scraper_api` settings.
            client (Optional[httpx.AsyncClient]): Shared client to use. If None, a
                short-lived client is opened for every request.
        """
        def setting(key, default):
            if config is None:
                return default
            value = config.get(f'components.scraper_api.{key}', default)
            return default if value is None else value

        self.endpoint = setting('endpoint', self.DEFAULT_ENDPOINT)
        self.api_key: Optional[str] = setting('api_key', None)
        self.timeout = float(setting('timeout', self.DEFAULT_TIMEOUT))
        self.render_js = bool(setting('render_js', False))
        self.user_agent = setting('user_agent', self.DEFAULT_USER_AGENT)
        self._client = client

        if not self.api_key:
            logger.warning("ScraperAPI key is not configured (set SCRAPERAPI_KEY). Fallback rendering will fail.")

    def _build_params(self, url: str) -> dict:
        params = {'api_key': self.api_key, 'url': url}
        if self.render_js:
            params['render'] = 'true'
        return params

    async def fetch_html(self, url: str) -> str:
        """
        Fetches the HTML of `url` through ScraperAPI.

        Args:
            url (str): The page to fetch.

        Returns:
            str: The response body, unmodified.

        Raises:
            RemoteServiceError: If no API key is configured, the request times out,
                                the transport fails, or ScraperAPI answers with a non-2xx status.
        """
        if not self.api_key:
            raise RemoteServiceError("ScraperAPI key is not configured. Set the SCRAPERAPI_KEY environment variable.")

        logger.debug(f"Requesting {url} through ScraperAPI (timeout {self.timeout}s, render_js={self.render_js}).")
        try:
            if self._client is not None:
                response = await self._request(self._client, url)
            else:
                async with httpx.AsyncClient() as client:
                    response = await self._request(client, url)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            logger.error(f"ScraperAPI timed out after {self.timeout}s for '{url}': {e}")
            raise RemoteServiceError(f"ScraperAPI request timed out after {self.timeout}s")
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(f"ScraperAPI returned status {status_code} for '{url}'.")
            raise RemoteServiceError(f"ScraperAPI request failed with status code {status_code}", status_code=status_code)
        except httpx.HTTPError as e:
            logger.error(f"ScraperAPI request error for '{url}': {e}", exc_info=True)
            raise RemoteServiceError(f"ScraperAPI request error: {e}")

        logger.info(f"ScraperAPI returned {len(response.text)} characters for {url}.")
        return response.text

    async def _request(self, client: httpx.AsyncClient, url: str) -> httpx.Response:
        return await client.get(
            self.endpoint,
            params=self._build_params(url),
            headers={'User-Agent': self.user_agent},
            timeout=self.timeout,
        )
