"""Browser utilities: launch engines and create deterministic capture contexts."""

from __future__ import annotations

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Playwright


async def launch_browser(playwright: Playwright, browser_name: str, headless: bool = True) -> Browser:
    """Launch one of chromium / firefox / webkit."""
    engine = getattr(playwright, browser_name)
    if browser_name == "chromium":
        # Keeps glyph rasterisation identical between hosts
        return await engine.launch(headless=headless, args=["--font-render-hinting=none"])
    return await engine.launch(headless=headless)


async def create_capture_context(
    browser: Browser,
    viewport: dict,
    user_agent: Optional[str] = None,
) -> BrowserContext:
    """Create an isolated context with settings that keep screenshots stable.

    Locale, timezone, scale factor and reduced motion are pinned so local and
    production renders only differ by content. Each engine keeps its own user
    agent unless ``user_agent`` is given.
    """
    context_kwargs = {
        "viewport": viewport,
        "device_scale_factor": 1,
        "locale": "en-US",
        "timezone_id": "America/New_York",
        "reduced_motion": "reduce",
        "extra_http_headers": {
            "Accept-Language": "en-US,en;q=0.9",
        },
    }
    if user_agent:
        context_kwargs["user_agent"] = user_agent

    return await browser.new_context(**context_kwargs)
