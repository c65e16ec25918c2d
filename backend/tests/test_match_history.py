"""
Unit tests for paginated match-id listing.

Run: pytest backend/tests/test_match_history.py -v
"""
from __future__ import annotations

import asyncio
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from riot.match_history import MatchHistoryFetcher
from riot.season import SeasonWindow
from shared.models.enums import Queue
from shared.utils.http_client import FetchError, FetchErrorKind

WINDOW = SeasonWindow.from_iso("2026-01-08T20:00:00.000Z")


def paged(total: int, page_size: int):
    """Handler serving ids 0..total-1 honoring start/count."""
    ids = [f"NA1_{i}" for i in range(total)]

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        start, count = int(params["start"]), int(params["count"])
        assert count == page_size
        return httpx.Response(200, json=ids[start:start + count])

    return handler


@pytest.mark.asyncio
async def test_short_last_page_stops_walk(make_client) -> None:
    client, recorder = await make_client(paged(total=250, page_size=100))
    fetcher = MatchHistoryFetcher(client, page_size=100)

    ids = await fetcher.fetch_all_match_ids("p1", WINDOW)

    assert len(ids) == 250
    assert ids[0] == "NA1_0" and ids[-1] == "NA1_249"
    assert recorder.count == 3


@pytest.mark.asyncio
async def test_exact_multiple_needs_one_extra_empty_page(make_client) -> None:
    client, recorder = await make_client(paged(total=200, page_size=100))
    fetcher = MatchHistoryFetcher(client, page_size=100)

    ids = await fetcher.fetch_all_match_ids("p1", WINDOW)

    assert len(ids) == 200
    assert recorder.count == 3


@pytest.mark.asyncio
async def test_no_matches_is_single_call(make_client) -> None:
    client, recorder = await make_client(paged(total=0, page_size=100))
    ids = await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW)

    assert ids == []
    assert recorder.count == 1


@pytest.mark.asyncio
async def test_request_carries_queue_window_and_paging(make_client) -> None:
    client, recorder = await make_client(paged(total=3, page_size=10))
    fetcher = MatchHistoryFetcher(client, routing="europe", queue=Queue.RANKED_FLEX, page_size=10)

    await fetcher.fetch_all_match_ids("puuid/with slash", WINDOW)

    url = urlparse(str(recorder.requests[0].url))
    query = parse_qs(url.query)
    assert url.netloc == "europe.api.riotgames.com"
    assert "puuid%2Fwith%20slash" in str(recorder.requests[0].url)
    assert query["queue"] == ["440"]
    assert query["start"] == ["0"]
    assert query["count"] == ["10"]
    assert query["startTime"] == [str(WINDOW.start_unix)]


@pytest.mark.asyncio
async def test_page_cap_bounds_the_walk(make_client) -> None:
    client, recorder = await make_client(paged(total=1000, page_size=10))
    fetcher = MatchHistoryFetcher(client, page_size=10, max_pages=3)

    ids = await fetcher.fetch_all_match_ids("p1", WINDOW)

    assert len(ids) == 30
    assert recorder.count == 3


@pytest.mark.asyncio
async def test_rate_limited_page_aborts_without_partial_result(make_client, sleeps) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["start"] == "0":
            return httpx.Response(200, json=[f"NA1_{i}" for i in range(100)])
        return httpx.Response(429)

    client, recorder = await make_client(handler, max_retries=2)

    with pytest.raises(FetchError) as exc_info:
        await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW)

    assert exc_info.value.kind == FetchErrorKind.RATE_LIMITED
    # one good page plus three attempts at the second
    assert recorder.count == 4
    assert len(sleeps.calls) == 2


@pytest.mark.asyncio
async def test_rejected_key_raises_auth_rejected(make_client) -> None:
    client, recorder = await make_client(lambda request: httpx.Response(403))

    with pytest.raises(FetchError) as exc_info:
        await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW)

    assert exc_info.value.kind == FetchErrorKind.AUTH_REJECTED
    assert recorder.count == 1


@pytest.mark.asyncio
async def test_not_found_listing_is_empty(make_client) -> None:
    client, _ = await make_client(lambda request: httpx.Response(404))
    assert await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW) == []


@pytest.mark.asyncio
async def test_not_found_after_first_page_aborts(make_client) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.params["start"] == "0":
            return httpx.Response(200, json=[f"NA1_{i}" for i in range(100)])
        return httpx.Response(404)

    client, recorder = await make_client(handler)

    with pytest.raises(FetchError) as exc_info:
        await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW)

    assert exc_info.value.kind == FetchErrorKind.BAD_REQUEST
    assert exc_info.value.status_code == 404
    assert recorder.count == 2


@pytest.mark.asyncio
async def test_cancel_before_next_page(make_client) -> None:
    cancel = asyncio.Event()

    def handler(request: httpx.Request) -> httpx.Response:
        cancel.set()
        return httpx.Response(200, json=[f"NA1_{i}" for i in range(100)])

    client, recorder = await make_client(handler)

    with pytest.raises(asyncio.CancelledError):
        await MatchHistoryFetcher(client).fetch_all_match_ids("p1", WINDOW, cancel=cancel)

    assert recorder.count == 1


def test_invalid_paging_rejected() -> None:
    with pytest.raises(ValueError):
        MatchHistoryFetcher(object(), page_size=0)  # type: ignore[arg-type]
