"""LinkChecker against a local aiohttp server."""
from __future__ import annotations

import asyncio

import pytest
from aiohttp import ClientError, web

from site_audit.errors import TransportError
from site_audit.link_checker import LinkChecker
from site_audit.models import StatusCategory


def _site(methods: list[str] | None = None, calls: dict[str, int] | None = None) -> web.Application:
    app = web.Application()
    calls = calls if calls is not None else {"new": 0}

    async def ok(request: web.Request):
        if methods is not None:
            methods.append(request.method)
        return web.Response(text="<h1>ok</h1>", content_type="text/html")

    async def moved(_):
        return web.Response(status=301, headers={"Location": "/new"})

    async def new(_):
        calls["new"] += 1
        return web.Response(text="new")

    async def slow(_):
        await asyncio.sleep(2)
        return web.Response(text="late")

    async def gone(_):
        return web.Response(status=410)

    app.router.add_get("/", ok)
    app.router.add_get("/old", moved)
    app.router.add_get("/new", new)
    app.router.add_get("/slow", slow)
    app.router.add_get("/gone", gone)
    return app


@pytest.mark.asyncio()
async def test_ok_and_broken_with_blank_lines(serve, session):
    methods: list[str] = []
    base = await serve(_site(methods))

    report = await LinkChecker(session).check([f"{base}/", "", f"{base}/missing"])

    summary = report.summary
    assert summary["total"] == 2
    assert summary["ok"] == 1
    assert summary["broken"] == 1
    assert [r.url for r in report.broken] == [f"{base}/missing"]
    assert report.broken[0].status == 404
    assert methods == ["HEAD"]


@pytest.mark.asyncio()
async def test_redirect_is_recorded_not_followed(serve, session):
    calls = {"new": 0}
    base = await serve(_site(calls=calls))

    report = await LinkChecker(session).check([f"{base}/old"])

    assert report.summary["redirects"] == 1
    result = report.redirects[0]
    assert result.status == 301
    assert result.category is StatusCategory.REDIRECT
    assert result.redirect_target == f"{base}/new"
    assert calls["new"] == 0
    assert report.to_dict()["redirects"][0]["redirectTo"] == f"{base}/new"


@pytest.mark.asyncio()
async def test_timeout_becomes_error(serve, session):
    base = await serve(_site())

    report = await LinkChecker(session, timeout=0.3).check([f"{base}/slow", f"{base}/"])

    assert report.summary["errors"] == 1
    assert report.summary["broken"] == 1
    assert report.summary["ok"] == 1
    error = report.errors[0]
    assert error.url == f"{base}/slow"
    assert error.status == 0
    assert error.error == "timeout"


@pytest.mark.asyncio()
async def test_unreachable_host_becomes_error(session, unused_tcp_port_factory):
    url = f"http://127.0.0.1:{unused_tcp_port_factory()}/"

    report = await LinkChecker(session, timeout=2).check([url])

    assert report.summary == {"total": 1, "ok": 0, "redirects": 0, "broken": 1, "errors": 1, "unknown": 0}
    assert report.broken[0].category is StatusCategory.ERROR
    assert report.broken[0].error


@pytest.mark.asyncio()
async def test_head_raises_transport_error_when_nothing_answers(session, unused_tcp_port_factory):
    url = f"http://127.0.0.1:{unused_tcp_port_factory()}/"

    with pytest.raises(TransportError) as exc_info:
        await LinkChecker(session, timeout=2).head(url)

    assert exc_info.value.url == url
    assert isinstance(exc_info.value.__cause__, ClientError)


@pytest.mark.asyncio()
async def test_results_keep_input_order_and_respect_concurrency(serve, session):
    app = web.Application()
    state = {"active": 0, "peak": 0}

    async def page(request: web.Request):
        state["active"] += 1
        state["peak"] = max(state["peak"], state["active"])
        # lower numbers answer later
        await asyncio.sleep(0.02 * (8 - int(request.match_info["n"])))
        state["active"] -= 1
        status = 404 if int(request.match_info["n"]) % 3 == 0 else 200
        return web.Response(status=status)

    app.router.add_get("/p/{n}", page)
    base = await serve(app)
    urls = [f"{base}/p/{n}" for n in range(8)]

    report = await LinkChecker(session, concurrency=2).check(urls)

    assert [r.url for r in report.results] == urls
    assert [r.status for r in report.results] == [404 if n % 3 == 0 else 200 for n in range(8)]
    assert state["peak"] <= 2


@pytest.mark.asyncio()
async def test_progress_events(serve, session, recorded_events):
    bus, seen = recorded_events
    base = await serve(_site())

    await LinkChecker(session, events=bus).check([f"{base}/", f"{base}/gone", f"{base}/old"])

    items = [e for e in seen if e.kind == "item"]
    assert len(items) == 3
    assert sorted(e.done for e in items) == [1, 2, 3]
    assert all(e.total == 3 for e in items)
    assert {e.category for e in items} == {"ok", "broken", "redirect"}
    assert seen[0].kind == "start" and seen[-1].kind == "finish"


@pytest.mark.asyncio()
async def test_empty_input(session):
    report = await LinkChecker(session).check(["", "  "])
    assert report.summary["total"] == 0
    assert report.to_dict() == {"summary": report.summary, "broken": [], "redirects": []}
