"""
Fetch every page of a paginated collection.

Transports hand back one ``Page`` per request; ``fetch_all`` follows the
next-page token until the server stops sending one.
"""

import logging
from collections import namedtuple
from urllib.parse import parse_qs, urlparse

from .errors import FetchError

logger = logging.getLogger(__name__)

DEFAULT_PER_PAGE = 5000

Page = namedtuple("Page", ["resources", "next_token"])


def with_page_size(path: str, per_page: int = DEFAULT_PER_PAGE) -> str:
    """Append ``per_page`` to an endpoint unless it already sets one."""
    if "per_page" in parse_qs(urlparse(path).query):
        return path
    separator = "&" if "?" in path else "?"
    return f"{path}{separator}per_page={per_page}"


def fetch_all(request_page, endpoint) -> list:
    """
    Return the concatenated resources of every page starting at ``endpoint``.

    ``request_page(token)`` must return a ``Page``. Any exception it raises
    aborts the whole fetch with a ``FetchError``; callers never see a
    truncated collection.
    """
    resources = []
    followed = set()
    current = endpoint
    while current is not None:
        if current in followed:
            raise FetchError(endpoint, f"next page {current} was already fetched")
        followed.add(current)

        logger.debug("fetching page %s", current)
        try:
            page = request_page(current)
        except FetchError as exc:
            raise FetchError(endpoint, exc.cause) from exc
        except Exception as exc:
            raise FetchError(endpoint, exc) from exc

        resources.extend(page.resources)
        current = page.next_token

    logger.info("fetched %d resources from %s in %d page(s)", len(resources), endpoint, len(followed))
    return resources
