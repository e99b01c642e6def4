from __future__ import annotations

import asyncio

import pytest

from conftest import FakeRenderer, rendered

from site_audit.crawler.crawler import AsyncCrawler
from site_audit.crawler.frontier import CrawlFrontier
from site_audit.crawler.models import FrontierEntry, PageRecord
from site_audit.utils import normalize_url


@pytest.mark.asyncio()
async def test_start_page_links_two_internal_one_external():
    frontier = CrawlFrontier("https://a.com/", max_pages=10)
    root = frontier.seed()

    queued = await frontier.admit(root, ["https://a.com/one", "https://a.com/two", "https://b.com/three"])

    assert root.depth == 0
    assert [e.url for e in queued] == ["https://a.com/one", "https://a.com/two"]
    assert all(e.depth == 1 for e in queued)
    assert not frontier.is_visited("https://b.com/three")
    assert frontier.pending == 3


@pytest.mark.asyncio()
async def test_same_url_from_concurrent_parents_is_queued_once():
    frontier = CrawlFrontier("https://a.com/", max_pages=10)
    root = frontier.seed()
    parents = [FrontierEntry(f"https://a.com/p{i}", 1) for i in range(5)]

    results = await asyncio.gather(*(frontier.admit(p, ["https://a.com/shared", "https://a.com/"]) for p in parents))

    queued = [e for batch in results for e in batch]
    assert [e.url for e in queued] == ["https://a.com/shared"]
    assert root.url in frontier.result().visited


@pytest.mark.asyncio()
async def test_fragments_schemes_and_hosts_are_filtered():
    frontier = CrawlFrontier("https://A.com", max_pages=10)
    root = frontier.seed()
    assert root.url == "https://a.com/"

    queued = await frontier.admit(
        root,
        [
            "https://a.com/#top",
            "https://a.com/x#part",
            "https://a.com/x#other",
            "ftp://a.com/file",
            "mailto:me@a.com",
            "https://sub.a.com/",
            "http://a.com:8080/",
        ],
    )

    assert [e.url for e in queued] == ["https://a.com/x"]


@pytest.mark.asyncio()
async def test_depth_is_parent_plus_one_and_max_depth_stops_admission():
    frontier = CrawlFrontier("https://a.com/", max_pages=10, max_depth=2)
    frontier.seed()

    deep = await frontier.admit(FrontierEntry("https://a.com/x", 1), ["https://a.com/y"])
    assert [e.depth for e in deep] == [2]

    assert await frontier.admit(deep[0], ["https://a.com/z"]) == []
    assert not frontier.is_visited("https://a.com/z")


@pytest.mark.asyncio()
async def test_budget_blocks_dispatch_until_slot_released():
    frontier = CrawlFrontier("https://a.com/", max_pages=2)
    assert await frontier.acquire_slot()
    assert await frontier.acquire_slot()

    waiting = asyncio.create_task(frontier.acquire_slot())
    await asyncio.sleep(0.01)
    assert not waiting.done()

    # a failed visit frees its slot
    await frontier.fail("https://a.com/broken", "HTTP 500")
    assert await asyncio.wait_for(waiting, 1)

    assert await frontier.record(PageRecord("https://a.com/"))
    assert await frontier.record(PageRecord("https://a.com/b"))
    assert frontier.budget_exhausted
    assert not await frontier.acquire_slot()

    result = frontier.result()
    assert [p.url for p in result.pages] == ["https://a.com/", "https://a.com/b"]
    assert [f.url for f in result.failures] == ["https://a.com/broken"]


def test_seed_is_idempotent():
    frontier = CrawlFrontier("https://a.com/", max_pages=1)
    frontier.seed()
    frontier.seed()
    assert frontier.pending == 1


@pytest.mark.parametrize(
    "kwargs",
    [
        {"start_url": "/relative", "max_pages": 1},
        {"start_url": "ftp://a.com/", "max_pages": 1},
        {"start_url": "https://a.com/", "max_pages": 0},
        {"start_url": "https://a.com/", "max_pages": 1, "max_depth": -1},
    ],
)
def test_invalid_arguments(kwargs):
    with pytest.raises(ValueError):
        CrawlFrontier(**kwargs)


def test_negative_entry_depth_rejected():
    with pytest.raises(ValueError):
        FrontierEntry("https://a.com/", -1)


@pytest.mark.parametrize(
    "left,right",
    [
        ("https://a.com/a%2Fb", "https://a.com/a/b"),
        ("https://a.com/search?print", "https://a.com/search?print="),
        ("https://a.com/q?a=1%262", "https://a.com/q?a=1&2"),
        ("https://a.com/x;v=1", "https://a.com/x"),
    ],
)
def test_distinct_resources_keep_distinct_keys(left, right):
    assert normalize_url(left) != normalize_url(right)


@pytest.mark.parametrize(
    "left,right",
    [
        ("https://a.com/%7euser", "https://a.com/~user"),
        ("https://a.com/a%2fb", "https://a.com/a%2Fb"),
        ("https://a.com/q?b=2&a=1", "https://a.com/q?a=1&b=2"),
        ("HTTPS://A.com/x/../y#frag", "https://a.com/y"),
    ],
)
def test_equivalent_spellings_share_a_key(left, right):
    assert normalize_url(left) == normalize_url(right)


@pytest.mark.asyncio()
async def test_links_are_fetched_as_found_and_keyed_by_normalized_form():
    frontier = CrawlFrontier("https://a.com/", max_pages=10)
    root = frontier.seed()

    queued = await frontier.admit(
        root,
        ["https://a.com/files/a%2Fb#top", "https://a.com/files/a/b", "https://a.com/search?print", "https://A.com/search?print"],
    )

    assert [e.target for e in queued] == [
        "https://a.com/files/a%2Fb",
        "https://a.com/files/a/b",
        "https://a.com/search?print",
    ]


@pytest.mark.asyncio()
async def test_crawl_requests_links_unmodified():
    encoded = "https://a.com/files/a%2Fb"
    flag = "https://a.com/search?print"
    site = {
        "https://a.com/": rendered("https://a.com/", encoded, flag),
        encoded: rendered(encoded),
        flag: rendered(flag),
    }
    renderer = FakeRenderer(site)

    result = await asyncio.wait_for(AsyncCrawler(renderer, "https://a.com", concurrency=2).crawl(), 15)

    assert sorted(renderer.calls) == sorted(site)
    assert result.failures == []
    assert sorted(result.urls) == sorted(site)
