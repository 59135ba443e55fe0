"""
Manages Playwright browser instances for web page rendering.

This module provides the `PlaywrightManager` class, an asynchronous context manager
that launches a headless browser, renders a page and returns the post-render DOM
markup. It is the primary rendering strategy of the relay and reads its launch and
navigation settings from the application's configuration.
"""
from playwright.async_api import async_playwright, Playwright, Browser, Page
from typing import Optional, TYPE_CHECKING, Dict, List

from render_relay.core.exceptions import RendererError
from render_relay.core.logger import get_logger

if TYPE_CHECKING:
    from render_relay.core.config import ConfigurationManager

logger = get_logger(__name__)

# Hardened flag set for running Chromium inside containers.
DEFAULT_CHROMIUM_ARGS: List[str] = [
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-dev-shm-usage',
    '--disable-accelerated-2d-canvas',
    '--no-first-run',
    '--no-zygote',
    '--disable-gpu',
    '--disable-web-security',
    '--disable-features=TranslateUI',
    '--disable-ipc-flooding-protection',
    '--memory-pressure-off',
]

DEFAULT_USER_AGENT = (
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 '
    '(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36'
)


class PlaywrightManager:
    """
    Asynchronous context manager for Playwright browser instances.

    This class handles the lifecycle of Playwright, including starting the
    Playwright engine, launching a browser instance (Chromium, Firefox, or WebKit),
    and ensuring resources are properly closed upon exit.

    Attributes:
        browser_type (str): The type of browser to launch (e.g., 'chromium').
        playwright (Optional[Playwright]): The Playwright engine instance.
        browser (Optional[Browser]): The launched Playwright browser instance.
    """
    DEFAULT_BROWSER_TYPE = 'chromium'
    SUPPORTED_BROWSER_TYPES = ('chromium', 'firefox', 'webkit')
    DEFAULT_LAUNCH_TIMEOUT = 60000 # Milliseconds
    DEFAULT_PAGE_LOAD_TIMEOUT = 45000 # Milliseconds
    DEFAULT_WAIT_FOR = 2000 # Milliseconds
    DEFAULT_VIEWPORT = {'width': 1920, 'height': 1080}

    def __init__(self, config: Optional['ConfigurationManager'] = None):
        """
        Initializes the PlaywrightManager.

        Args:
            config (Optional[ConfigurationManager]): An instance of `ConfigurationManager`
                to fetch settings under `components.playwright_manager`.
                If None, defaults will be used.

        Raises:
            RendererError: If an unsupported browser type is specified in the configuration
                           or as a default.
        """
        def setting(key, default):
            if config is None:
                return default
            value = config.get(f'components.playwright_manager.{key}', default)
            return default if value is None else value

        self.browser_type = setting('browser_type', self.DEFAULT_BROWSER_TYPE)
        logger.debug(f"PlaywrightManager configured to use browser: {self.browser_type}")

        if self.browser_type not in self.SUPPORTED_BROWSER_TYPES:
            logger.error(f"Unsupported browser type configured: {self.browser_type}")
            raise RendererError(f"Unsupported browser type: {self.browser_type}. Must be 'chromium', 'firefox', or 'webkit'.")

        self.headless = bool(setting('headless', True))
        # Chromium flags are meaningless (or fatal) for the other engines.
        default_args = DEFAULT_CHROMIUM_ARGS if self.browser_type == 'chromium' else []
        self.launch_args: List[str] = list(setting('launch_args', default_args))
        self.launch_timeout = int(setting('launch_timeout', self.DEFAULT_LAUNCH_TIMEOUT))
        self.page_load_timeout = int(setting('navigation_timeout', self.DEFAULT_PAGE_LOAD_TIMEOUT))
        viewport = setting('viewport', self.DEFAULT_VIEWPORT)
        self.viewport: Dict[str, int] = {
            'width': int(viewport.get('width', self.DEFAULT_VIEWPORT['width'])),
            'height': int(viewport.get('height', self.DEFAULT_VIEWPORT['height'])),
        }
        self.user_agent = setting('user_agent', DEFAULT_USER_AGENT)

        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def __aenter__(self) -> 'PlaywrightManager':
        """
        Initializes the Playwright engine and launches the configured browser.

        Returns:
            PlaywrightManager: The instance of itself.

        Raises:
            RendererError: If Playwright fails to start or the browser fails to launch.
                           This can happen if browser binaries are not installed.
        """
        logger.debug(f"Entering PlaywrightManager context: Starting Playwright and launching {self.browser_type} browser.")
        try:
            self.playwright = await async_playwright().start()
            browser_launcher = getattr(self.playwright, self.browser_type)
            self.browser = await browser_launcher.launch(
                headless=self.headless,
                args=self.launch_args,
                timeout=self.launch_timeout,
            )
            logger.info(f"{self.browser_type} browser launched successfully.")
        except Exception as e:
            logger.error(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}", exc_info=True)
            # Playwright may have started even though the launch failed.
            if self.playwright:
                try:
                    await self.playwright.stop()
                except Exception as stop_e:
                    logger.error(f"Error stopping Playwright during __aenter__ cleanup: {stop_e}", exc_info=True)
                self.playwright = None
            self.browser = None
            raise RendererError(f"Failed to initialize Playwright or launch browser {self.browser_type}: {e}")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """
        Closes the browser and stops the Playwright engine.

        Pages are closed by `get_page_content` before control returns here,
        so the release order is page, browser, engine.
        """
        logger.debug("Exiting PlaywrightManager context: Closing browser and stopping Playwright.")
        if self.browser:
            try:
                await self.browser.close()
                logger.debug("Browser closed successfully.")
            except Exception as e:
                logger.error(f"Error closing browser: {e}", exc_info=True)
        if self.playwright:
            try:
                await self.playwright.stop()
                logger.debug("Playwright stopped successfully.")
            except Exception as e:
                logger.error(f"Error stopping Playwright: {e}", exc_info=True)

        self.browser = None
        self.playwright = None

    async def get_page_content(self, url: str, wait_for: int = DEFAULT_WAIT_FOR, timeout: Optional[int] = None) -> str:
        """
        Navigates to a given URL in a new browser page and returns its rendered HTML.

        Args:
            url (str): The URL of the webpage to render.
            wait_for (int): Milliseconds to wait after DOMContentLoaded so that
                            scripts can populate dynamic content. Zero skips the wait.
            timeout (Optional[int]): Navigation timeout in milliseconds. If None,
                                     the configured navigation timeout is used.

        Returns:
            str: The full HTML content of the page.

        Raises:
            RendererError: If the browser is not initialized (e.g., not used within 'async with'),
                           or if page navigation or content retrieval fails.
        """
        if not self.browser:
            logger.error("get_page_content called but browser is not initialized.")
            raise RendererError("Browser is not initialized. Ensure PlaywrightManager is used within an 'async with' statement.")

        page: Optional[Page] = None
        effective_timeout = timeout if timeout is not None else self.page_load_timeout
        logger.debug(f"Fetching content for URL: {url} with timeout {effective_timeout}ms and settle time {wait_for}ms.")

        try:
            page = await self.browser.new_page(viewport=self.viewport, user_agent=self.user_agent)
            await page.goto(url, wait_until='domcontentloaded', timeout=effective_timeout)
            if wait_for > 0:
                await page.wait_for_timeout(wait_for)
            content = await page.content()
            logger.info(f"Successfully retrieved content from {url} ({len(content)} characters).")
            return content
        except Exception as e:
            logger.error(f"Failed to get content from URL '{url}': {e}", exc_info=True)
            raise RendererError(f"Failed to get content from URL '{url}': {e}")
        finally:
            if page:
                try:
                    await page.close()
                    logger.debug(f"Page for URL {url} closed.")
                except Exception as e:
                    logger.error(f"Error closing page for URL '{url}': {e}", exc_info=True)
