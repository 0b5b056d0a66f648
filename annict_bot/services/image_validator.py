"""
Image URL validation

Best-effort liveness check for cover images: a URL is accepted only when a
HEAD request answers 2xx with an image/* content type. Redirects are not
followed and count as invalid. Rejecting a reachable image is acceptable;
accepting a dead one is not.
"""
import asyncio
import logging
from typing import Protocol

import httpx


logger = logging.getLogger(__name__)

DEFAULT_IMAGE_CHECK_TIMEOUT = 5.0


class ImageValidator(Protocol):
    async def validate_url(self, url: str) -> tuple[bool, str]:
        ...


def create_image_check_client(timeout: float = DEFAULT_IMAGE_CHECK_TIMEOUT) -> httpx.AsyncClient:
    """HTTP client for image checks; redirects are returned, never followed."""
    return httpx.AsyncClient(timeout=timeout, follow_redirects=False)


class HTTPImageValidator:
    """ImageValidator issuing HEAD requests through an injected httpx client."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        timeout: float = DEFAULT_IMAGE_CHECK_TIMEOUT
    ) -> None:
        self._http_client = http_client
        self._timeout = timeout

    async def validate_url(self, url: str) -> tuple[bool, str]:
        """
        Check that the URL points to a live, non-redirecting image.

        Args:
            url: Image URL to check

        Returns:
            (True, url) when valid, otherwise (False, "")
        """
        if not url:
            return False, ""

        try:
            response = await asyncio.wait_for(
                self._http_client.head(url, follow_redirects=False, timeout=self._timeout),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.debug("HEAD request timed out after %ss for image %s", self._timeout, url)
            return False, ""
        except httpx.TimeoutException:
            logger.debug("HEAD request timed out for image %s", url)
            return False, ""
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
            # ValueError covers IDNA failures on malformed hostnames
            logger.warning("HEAD request failed for image %s: %s", url, exc)
            return False, ""

        if not 200 <= response.status_code < 300:
            logger.debug("Invalid status code %s for image URL %s", response.status_code, url)
            return False, ""

        content_type = response.headers.get("content-type", "")
        if not content_type.lower().startswith("image/"):
            logger.debug("URL %s has non-image Content-Type: %s", url, content_type)
            return False, ""

        logger.debug(
            "Valid image URL %s (Status: %s, Type: %s)",
            url,
            response.status_code,
            content_type,
        )
        return True, url
