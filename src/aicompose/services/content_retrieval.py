"""Retrieval of approximate text for content paths.

The content repository renders an approximate markdown version of any
component or page through a servlet addressed by the content path, e.g.

    http://localhost:4502/bin/cpm/ai/approximated.markdown.md/content/site/en/_jcr_content
"""

from typing import Optional

import httpx

from aicompose.models.config import ContentConfig
from aicompose.utils.logging import get_logger

logger = get_logger(__name__)

_PAGE_CONTENT_MARKERS = ("/jcr:content", "_jcr_content")


def page_path(path: str) -> str:
    """
    Path of the page content node containing ``path``.

    Everything after the last ``/jcr:content`` (or its URL-mangled form
    ``_jcr_content``) is cut off; paths without a marker are returned unchanged.

    Example:
        >>> page_path("/content/site/en/jcr:content/root/text")
        '/content/site/en/jcr:content'
    """
    for marker in _PAGE_CONTENT_MARKERS:
        position = path.rfind(marker)
        if position > 0:
            return path[:position + len(marker)]
    return path


class ContentRetriever:
    """Read-only client for the approximate markdown servlet."""

    def __init__(self, config: ContentConfig):
        self.config = config

    def url_for(self, path: str) -> str:
        base_url = str(self.config.base_url).rstrip("/")
        if not path.startswith("/"):
            path = "/" + path
        return f"{base_url}{self.config.servlet_path}{path}"

    async def retrieve(self, path: str) -> Optional[str]:
        """
        Fetch approximate plain text for a content path.

        Failures are logged and reported as None so the caller can leave its
        field unchanged.

        Args:
            path: Content path of a component or page

        Returns:
            Text content, or None if it could not be retrieved
        """
        url = self.url_for(path)
        logger.info("content_retrieval_started", path=path, url=url)

        try:
            async with httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout)) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "content_retrieval_failed",
                path=path,
                status_code=e.response.status_code,
                error=str(e),
            )
            return None
        except httpx.HTTPError as e:
            logger.warning("content_retrieval_failed", path=path, error=str(e))
            return None

        logger.info("content_retrieval_completed", path=path, length=len(response.text))
        return response.text
