"""Tests for the ordered fallback chain."""

import httpx
import pytest
import respx

from src.adapters.fallback import (
    DIRECT,
    Transport,
    build_chain,
    proxy_transports,
    run_chain,
)

PROXY = Transport("mirror.example", "https://mirror.example/raw?url={url}")


class TestBuildChain:
    def test_targets_outer_transports_inner(self):
        chain = build_chain(["https://a.example/1", "https://a.example/2"], [DIRECT, PROXY], 8)

        assert [(a.target, a.transport.name) for a in chain] == [
            ("https://a.example/1", "direct"),
            ("https://a.example/1", "mirror.example"),
            ("https://a.example/2", "direct"),
            ("https://a.example/2", "mirror.example"),
        ]
        assert all(a.timeout == 8 for a in chain)

    def test_proxy_wraps_url_encoded_target(self):
        assert PROXY.wrap("https://rumble.com/c/x?y=1") == (
            "https://mirror.example/raw?url=https%3A%2F%2Frumble.com%2Fc%2Fx%3Fy%3D1"
        )

    def test_direct_passes_through(self):
        assert DIRECT.wrap("https://rumble.com/c/x") == "https://rumble.com/c/x"

    def test_proxy_transports_named_by_host(self):
        transports = proxy_transports(["https://corsproxy.io/?{url}"])
        assert transports[0].name == "corsproxy.io"
        assert not transports[0].is_direct


class TestRunChain:
    @pytest.mark.asyncio
    @respx.mock
    async def test_timeout_falls_through_to_next(self):
        respx.get("https://a.example/1").mock(side_effect=httpx.ConnectTimeout("slow"))
        respx.get("https://a.example/2").mock(return_value=httpx.Response(200, text="second"))

        chain = build_chain(["https://a.example/1", "https://a.example/2"], [DIRECT], 8)
        async with httpx.AsyncClient() as client:
            hit = await run_chain(client, chain)

        assert hit.body == "second"
        assert hit.attempt.target == "https://a.example/2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_error_status_falls_through(self):
        respx.get("https://a.example/1").mock(return_value=httpx.Response(503))
        respx.get(host="mirror.example").mock(return_value=httpx.Response(200, text="mirrored"))

        chain = build_chain(["https://a.example/1"], [DIRECT, PROXY], 8)
        async with httpx.AsyncClient() as client:
            hit = await run_chain(client, chain)

        assert hit.body == "mirrored"
        assert hit.attempt.transport is PROXY

    @pytest.mark.asyncio
    @respx.mock
    async def test_unaccepted_body_falls_through(self):
        respx.get("https://a.example/1").mock(return_value=httpx.Response(200, text="captcha"))
        respx.get("https://a.example/2").mock(return_value=httpx.Response(200, text="marker here"))

        chain = build_chain(["https://a.example/1", "https://a.example/2"], [DIRECT], 8)
        async with httpx.AsyncClient() as client:
            hit = await run_chain(client, chain, accept=lambda body: "marker" in body)

        assert hit.attempt.target == "https://a.example/2"

    @pytest.mark.asyncio
    @respx.mock
    async def test_empty_body_rejected_by_default(self):
        respx.get("https://a.example/1").mock(return_value=httpx.Response(200, text="  \n"))

        chain = build_chain(["https://a.example/1"], [DIRECT], 8)
        async with httpx.AsyncClient() as client:
            assert await run_chain(client, chain) is None

    @pytest.mark.asyncio
    @respx.mock
    async def test_exhausted_returns_none(self):
        respx.get("https://a.example/1").mock(side_effect=httpx.ConnectError("refused"))
        respx.get(host="mirror.example").mock(side_effect=httpx.ReadTimeout("slow"))

        chain = build_chain(["https://a.example/1"], [DIRECT, PROXY], 8)
        async with httpx.AsyncClient() as client:
            assert await run_chain(client, chain) is None

    @pytest.mark.asyncio
    async def test_stops_at_first_hit(self):
        chain = build_chain(["https://a.example/1", "https://a.example/2"], [DIRECT], 8)
        with respx.mock(assert_all_called=False) as router:
            first = router.get("https://a.example/1").mock(return_value=httpx.Response(200, text="one"))
            second = router.get("https://a.example/2").mock(return_value=httpx.Response(200, text="two"))
            async with httpx.AsyncClient() as client:
                hit = await run_chain(client, chain)

        assert hit.body == "one"
        assert first.called
        assert not second.called

    @pytest.mark.asyncio
    @respx.mock
    async def test_parse_miss_falls_through(self):
        respx.get("https://a.example/1").mock(return_value=httpx.Response(200, text="<html>oops"))
        respx.get("https://a.example/2").mock(return_value=httpx.Response(200, text="<rss>ok"))

        async def parse(body):
            return {"ok": True} if body.startswith("<rss") else None

        chain = build_chain(["https://a.example/1", "https://a.example/2"], [DIRECT], 8)
        async with httpx.AsyncClient() as client:
            hit = await run_chain(client, chain, parse=parse)

        assert hit.attempt.target == "https://a.example/2"
        assert hit.parsed == {"ok": True}
