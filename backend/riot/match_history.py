"""
Paginated match-id listing for one player within a season window.
Pages are requested strictly in sequence; any terminal failure aborts the walk.
"""
from __future__ import annotations

import asyncio
from typing import Optional
from urllib.parse import quote, urlencode

from shared.models.domain import MATCH_ID_PAGE
from shared.models.enums import Queue, RegionalRouting
from shared.utils.http_client import AbsentReason, FetchError, FetchErrorKind, ResilientFetchClient
from shared.utils.logging import get_logger

from riot.routing import regional_base_url
from riot.season import SeasonWindow

logger = get_logger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 80


class MatchHistoryFetcher:
    """Walks match-v5 `by-puuid/{puuid}/ids` until a short page, an empty page or the page cap."""

    def __init__(
        self,
        client: ResilientFetchClient,
        *,
        routing: RegionalRouting | str = RegionalRouting.AMERICAS,
        queue: Queue = Queue.RANKED_SOLO,
        page_size: int = PAGE_SIZE,
        max_pages: int = MAX_PAGES,
    ) -> None:
        if page_size <= 0 or max_pages <= 0:
            raise ValueError("page_size and max_pages must be positive")
        self._client = client
        self._base_url = regional_base_url(routing)
        self._queue = queue
        self._page_size = page_size
        self._max_pages = max_pages

    @property
    def queue(self) -> Queue:
        return self._queue

    def page_url(self, puuid: str, window: SeasonWindow, page_index: int) -> str:
        params = urlencode({
            "queue": self._queue.queue_id,
            "start": page_index * self._page_size,
            "count": self._page_size,
            "startTime": window.start_unix,
        })
        return f"{self._base_url}/lol/match/v5/matches/by-puuid/{quote(puuid, safe='')}/ids?{params}"

    async def fetch_all_match_ids(
        self,
        puuid: str,
        window: SeasonWindow,
        cancel: Optional[asyncio.Event] = None,
    ) -> list[str]:
        """
        Fetch every match id in the window, preserving remote order.

        Raises:
            FetchError: On any terminal page failure, or when the key is rejected.
            asyncio.CancelledError: If `cancel` is set between pages.
        """
        ids: list[str] = []
        for page_index in range(self._max_pages):
            if cancel is not None and cancel.is_set():
                logger.info("match_history_cancelled", puuid=puuid, pages=page_index)
                raise asyncio.CancelledError()

            url = self.page_url(puuid, window, page_index)
            result = await self._client.fetch(url, schema=MATCH_ID_PAGE)

            if result.absent == AbsentReason.AUTH_REJECTED:
                raise FetchError(
                    FetchErrorKind.AUTH_REJECTED, url, result.status_code,
                    "match listing rejected the API key", result.attempts,
                )
            if result.is_absent and page_index > 0:
                # Only the first page may be absent; a later gap would truncate the listing.
                raise FetchError(
                    FetchErrorKind.BAD_REQUEST, url, result.status_code,
                    f"match listing page {page_index} not found", result.attempts,
                )
            page: list[str] = [] if result.is_absent else result.body
            if not page:
                break
            ids.extend(page)
            if len(page) < self._page_size:
                break
        else:
            logger.warning("match_history_page_cap_reached", puuid=puuid, max_pages=self._max_pages)

        logger.debug("match_history_fetched", puuid=puuid, count=len(ids))
        return ids
