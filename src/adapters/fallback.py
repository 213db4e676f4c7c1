"""
Ordered fallback chains — declarative lists of fetch attempts.

An Attempt is one (target URL, transport) pair with its own timeout.  Adapters
build the list up front (candidate URLs × transports) and hand it to
run_chain(), which walks it in order and returns the first response whose body
passes the adapter's accept() check (and, optionally, its async parse step).
Timeouts, HTTP errors, non-2xx statuses, bodies that fail accept() and bodies
that don't parse all fall through to the next attempt.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable
from urllib.parse import quote, urlparse

import httpx
from loguru import logger


@dataclass(frozen=True)
class Transport:
    """How a target URL is actually requested: directly or through a mirror."""
    name:     str
    template: str = "{url}"

    @property
    def is_direct(self) -> bool:
        return self.template == "{url}"

    def wrap(self, url: str) -> str:
        if self.is_direct:
            return url
        return self.template.format(url=quote(url, safe=""))


DIRECT = Transport("direct")


def proxy_transports(templates: Iterable[str]) -> list[Transport]:
    """Turn "{url}" templates from settings into named transports."""
    return [Transport(urlparse(t).netloc or t, t) for t in templates]


@dataclass(frozen=True)
class Attempt:
    target:    str      # upstream URL the content lives at
    transport: Transport
    timeout:   float

    @property
    def url(self) -> str:
        return self.transport.wrap(self.target)

    @property
    def label(self) -> str:
        return f"{self.transport.name} → {self.target}"


@dataclass(frozen=True)
class ChainHit:
    attempt: Attempt
    body:    str
    parsed:  Any = None     # result of run_chain(parse=...), if given


def build_chain(
    targets: Iterable[str], transports: Iterable[Transport], timeout: float
) -> list[Attempt]:
    """Every transport for the first target, then every transport for the next…"""
    transports = list(transports)
    return [Attempt(t, tr, timeout) for t in targets for tr in transports]


def non_empty(body: str) -> bool:
    return bool(body.strip())


async def run_chain(
    client: httpx.AsyncClient,
    attempts: list[Attempt],
    accept: Callable[[str], bool] = non_empty,
    headers: dict | None = None,
    parse: Callable[[str], Awaitable[Any]] | None = None,
    tag: str = "Fallback",
) -> ChainHit | None:
    """
    Return the first accepted response, or None when the chain is exhausted.

    parse, when given, runs on every accepted body; a None result counts as a
    parse-miss and the walk moves on like it would after a timeout.
    """
    for attempt in attempts:
        try:
            resp = await asyncio.wait_for(
                client.get(attempt.url, headers=headers, timeout=attempt.timeout),
                timeout=attempt.timeout,
            )
            resp.raise_for_status()
        except asyncio.TimeoutError:
            logger.debug(f"[{tag}] timed out after {attempt.timeout}s: {attempt.label}")
            continue
        except httpx.HTTPError as exc:
            logger.debug(f"[{tag}] {attempt.label} failed: {exc}")
            continue

        body = resp.text
        if not accept(body):
            logger.debug(f"[{tag}] {attempt.label} returned no recognizable content")
            continue

        parsed = None
        if parse is not None:
            parsed = await parse(body)
            if parsed is None:
                logger.debug(f"[{tag}] {attempt.label} could not be parsed")
                continue
        return ChainHit(attempt, body, parsed)

    logger.warning(f"[{tag}] all {len(attempts)} attempts exhausted")
    return None
