"""Client for the APIFlash screenshot service"""

import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel

from design_chat.core.config import settings
from design_chat.core.validation import validate_and_normalize_url
from design_chat.models.errors import ScreenshotError

logger = logging.getLogger(__name__)


class ScreenshotResult(BaseModel):
    """Captured page image, plus its visible text when extraction was requested"""
    image: bytes
    text: Optional[str] = None


class ScreenshotClient:
    """Captures full-page screenshots of public webpages"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = settings.screenshot_api_key if api_key is None else api_key
        self.base_url = base_url or settings.screenshot_api_url
        self.timeout = timeout or settings.screenshot_timeout_seconds
        self._transport = transport

    def _build_params(self, url: str, extract_text: bool) -> Dict[str, Any]:
        params = {
            "access_key": self.api_key,
            "url": url,
            "format": "png",
            "width": str(settings.screenshot_width),
            "height": str(settings.screenshot_height),
            "full_page": "true",
            "fresh": "true",
            "delay": "5",
            "scroll_page": "true",
            "no_cookie_banners": "true",
            "no_ads": "true",
            "no_tracking": "true",
            "scale_factor": "1",
            "wait_until": "page_loaded",
        }
        if extract_text:
            params["extract_text"] = "true"
            params["response_type"] = "json"
        return params

    async def capture(self, url: str, extract_text: bool = False) -> ScreenshotResult:
        """
        Capture a screenshot of url.

        The URL is normalized and checked against the private-network denylist
        before any request is made. Text extraction failures are tolerated;
        image failures raise ScreenshotError.
        """
        safe_url = validate_and_normalize_url(url)
        if safe_url is None:
            raise ScreenshotError("Invalid or unsafe URL. Only public http(s) URLs are allowed.")

        if not self.api_key:
            raise ScreenshotError("Screenshot API key not configured. Please set SCREENSHOT_API_KEY in .env file.")

        params = self._build_params(safe_url, extract_text)
        logger.info(f"[SCREENSHOT] Capturing {safe_url} | extract_text={extract_text}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.base_url, params=params)
                if response.status_code != 200:
                    raise ScreenshotError(
                        f"Screenshot API error: {response.status_code}",
                        retryable=response.status_code == 429 or response.status_code >= 500
                    )

                if not extract_text:
                    logger.info(f"[SCREENSHOT] Captured {len(response.content)} bytes")
                    return ScreenshotResult(image=response.content)

                payload = response.json()
                image_url = payload.get("url")
                text_url = payload.get("extracted_text")
                if not image_url or not text_url:
                    raise ScreenshotError("Invalid JSON response from screenshot API: missing url or extracted_text")

                image_response = await client.get(image_url)
                if image_response.status_code != 200:
                    raise ScreenshotError(f"Failed to fetch cached screenshot: {image_response.status_code}")

                text = await self._fetch_text(client, text_url)
                logger.info(
                    f"[SCREENSHOT] Captured {len(image_response.content)} bytes | "
                    f"text_chars={len(text) if text else 0}"
                )
                return ScreenshotResult(image=image_response.content, text=text)

        except ScreenshotError:
            raise
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[SCREENSHOT] Capture failed for {safe_url}: {e}")
            raise ScreenshotError(f"Failed to capture webpage screenshot: {e}", retryable=True) from e

    async def _fetch_text(self, client: httpx.AsyncClient, text_url: str) -> Optional[str]:
        # Continue without text if the fetch fails
        try:
            text_response = await client.get(text_url)
        except httpx.HTTPError as e:
            logger.warning(f"[SCREENSHOT] Error fetching extracted text: {e}")
            return None
        if text_response.status_code != 200:
            return None
        text = text_response.text
        return text if text and text.strip() else None


# Global client instance
screenshot_client = ScreenshotClient()
