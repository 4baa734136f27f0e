from __future__ import annotations

import logging
from typing import Any, Optional

from playwright.sync_api import Browser, BrowserContext, Page, sync_playwright
from playwright.sync_api import Error as PWError
from playwright.sync_api import TimeoutError as PWTimeout

from .config import ScraperConfig
from .logging_utils import _scraper_event
from .utils import log_line


class BrowserSession:
    """One headless Chromium page shared by the whole run."""

    def __init__(
        self,
        playwright: Any,
        browser: Browser,
        context: BrowserContext,
        page: Page,
    ) -> None:
        self._playwright = playwright
        self._browser: Optional[Browser] = browser
        self._context: Optional[BrowserContext] = context
        self._page: Optional[Page] = page

    @classmethod
    def create(cls, cfg: ScraperConfig, *, headless: bool = True) -> "BrowserSession":
        pw = sync_playwright().start()
        try:
            browser = pw.chromium.launch(
                headless=headless,
                args=[
                    "--disable-blink-features=AutomationControlled",
                    "--no-sandbox",
                    "--disable-dev-shm-usage",
                ],
            )
            context = browser.new_context(
                user_agent=cfg.headers.get("User-Agent"),
                locale="en-US",
                viewport={"width": 1368, "height": 900},
            )
            context.add_init_script(
                "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"
            )
            context.set_default_timeout(cfg.element_timeout_ms)
            context.set_default_navigation_timeout(cfg.page_timeout_ms)
            page = context.new_page()
            if page is None:
                raise RuntimeError("Failed to create Playwright page")
        except Exception:
            pw.stop()
            raise
        _scraper_event("browser", step="launched", headless=headless)
        return cls(pw, browser, context, page)

    def get_page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Browser session is closed")
        return self._page

    def is_connected(self) -> bool:
        return self._page is not None and self._browser is not None and self._browser.is_connected()

    def close(self) -> None:
        for closable in (self._page, self._context, self._browser):
            try:
                if closable is None:
                    continue
                closable.close()
            except Exception as exc:  # noqa: BLE001
                name = type(closable).__name__ if closable is not None else "Unknown"
                log_line(f"Error closing Playwright object {name}: {exc}")
        self._page = None
        self._context = None
        self._browser = None
        if self._playwright is not None:
            try:
                self._playwright.stop()
            except Exception as exc:  # noqa: BLE001
                log_line(f"Error stopping Playwright: {exc}")
            self._playwright = None


def goto(page: Page, url: str, cfg: ScraperConfig) -> Optional[int]:
    """Navigate ``page`` to ``url`` and return the HTTP status, if any.

    Navigation errors and timeouts propagate to the caller after being logged.
    """

    _scraper_event("nav", step="goto", url=url)
    try:
        response = page.goto(url, wait_until="domcontentloaded", timeout=cfg.page_timeout_ms)
    except PWTimeout as exc:
        log_line(f"[SCRAPER][ERROR][NAV] goto({url!r}) timed out: {exc}", logging.ERROR)
        _scraper_event("error", phase="nav", step="goto_timeout", url=url, error=str(exc))
        raise
    except PWError as exc:
        log_line(f"[SCRAPER][ERROR][NAV] goto({url!r}) failed: {exc}", logging.ERROR)
        _scraper_event("error", phase="nav", step="goto_error", url=url, error=str(exc))
        raise

    status = response.status if response is not None else None
    if status is not None and status >= 400:
        log_line(f"[NAV] {url} returned HTTP {status}", logging.WARNING)
        _scraper_event("nav", step="http_status", url=url, status=status)
    return status


__all__ = ["BrowserSession", "goto"]
