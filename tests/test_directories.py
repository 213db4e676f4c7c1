"""Tests for the optional podcast directory lookups."""

import httpx
import pytest
import respx

from src.adapters.directories import (
    DirectoryKeys,
    listennotes_links,
    search_links,
    spotify_show_url,
    title_similarity,
)

SPOTIFY_KEYS = DirectoryKeys(spotify_client_id="id", spotify_client_secret="secret")
LISTENNOTES_KEYS = DirectoryKeys(listennotes_key="ln-key")


def _spotify(router, *shows):
    router.post("https://accounts.spotify.com/api/token").mock(
        return_value=httpx.Response(200, json={"access_token": "tok"})
    )
    return router.get(host="api.spotify.com", path="/v1/search").mock(
        return_value=httpx.Response(200, json={"shows": {"items": list(shows)}})
    )


class TestTitleSimilarity:
    def test_identical(self):
        assert title_similarity("The Daily Grind Show", "the daily grind show") == 1.0

    def test_short_words_ignored(self):
        assert title_similarity("A to Z", "an of it") == 0.0

    def test_partial_overlap(self):
        # {daily, grind, show} vs {daily, grind, podcast}: 2 shared of 4
        assert title_similarity("Daily Grind Show", "Daily Grind Podcast") == 0.5


class TestSearchLinks:
    def test_links_are_url_encoded(self):
        links = search_links("Tea & Talk")
        assert links["youtube"] == (
            "https://www.youtube.com/results?search_query=Tea%20%26%20Talk%20podcast"
        )
        assert links["amazon"] == "https://music.amazon.com/search/Tea%20%26%20Talk?filter=IsInPodcasts"
        assert links["iheart"] == "https://www.iheart.com/search/podcasts/?q=Tea%20%26%20Talk"

    def test_no_title_no_links(self):
        assert search_links("") == {}


class TestSpotifyShowUrl:
    @pytest.mark.asyncio
    async def test_contained_name_wins_over_top_hit(self):
        with respx.mock() as router:
            search = _spotify(
                router,
                {"id": "x1", "name": "Completely Different"},
                {"id": "x2", "name": "The Example Show (Official)"},
            )
            async with httpx.AsyncClient() as client:
                url = await spotify_show_url(client, SPOTIFY_KEYS, "The Example Show", 10)

        assert url == "https://open.spotify.com/show/x2"
        request = search.calls[0].request
        assert request.headers["Authorization"] == "Bearer tok"
        assert request.url.params["type"] == "show"

    @pytest.mark.asyncio
    async def test_similar_top_hit_accepted(self):
        with respx.mock() as router:
            _spotify(router, {
                "id": "x3",
                "name": "Morning Coffee Chats Weekly Podcast",
                "external_urls": {"spotify": "https://open.spotify.com/show/x3"},
            })
            async with httpx.AsyncClient() as client:
                url = await spotify_show_url(client, SPOTIFY_KEYS, "Weekly Morning Coffee Chats", 10)

        assert url == "https://open.spotify.com/show/x3"

    @pytest.mark.asyncio
    async def test_dissimilar_results_rejected(self):
        with respx.mock() as router:
            _spotify(router, {"id": "x4", "name": "Cooking With Friends"})
            async with httpx.AsyncClient() as client:
                url = await spotify_show_url(client, SPOTIFY_KEYS, "Late Night Football Talk", 10)

        assert url is None

    @pytest.mark.asyncio
    async def test_token_failure_is_ignored(self):
        with respx.mock() as router:
            router.post("https://accounts.spotify.com/api/token").mock(
                return_value=httpx.Response(401, json={"error": "invalid_client"})
            )
            async with httpx.AsyncClient() as client:
                url = await spotify_show_url(client, SPOTIFY_KEYS, "The Example Show", 10)

        assert url is None

    @pytest.mark.asyncio
    async def test_skipped_without_credentials(self):
        with respx.mock() as router:
            async with httpx.AsyncClient() as client:
                url = await spotify_show_url(client, DirectoryKeys(), "The Example Show", 10)
            assert not router.calls

        assert url is None


class TestListenNotesLinks:
    @pytest.mark.asyncio
    async def test_direct_links_from_top_result(self):
        with respx.mock() as router:
            route = router.get(host="listen-api.listennotes.com").mock(
                return_value=httpx.Response(200, json={"results": [
                    {
                        "listennotes_url": "https://www.listennotes.com/c/abc/",
                        "spotify_url": "https://open.spotify.com/show/ln",
                        "youtube_url": "",
                    },
                    {"spotify_url": "https://open.spotify.com/show/second"},
                ]})
            )
            async with httpx.AsyncClient() as client:
                links = await listennotes_links(client, LISTENNOTES_KEYS, "The Example Show", 10)

        assert links == {
            "listennotes": "https://www.listennotes.com/c/abc/",
            "spotify": "https://open.spotify.com/show/ln",
        }
        request = route.calls[0].request
        assert request.headers["X-ListenAPI-Key"] == "ln-key"
        assert request.url.params["only_in"] == "title"

    @pytest.mark.asyncio
    async def test_server_error_is_ignored(self):
        with respx.mock() as router:
            router.get(host="listen-api.listennotes.com").mock(return_value=httpx.Response(500))
            async with httpx.AsyncClient() as client:
                links = await listennotes_links(client, LISTENNOTES_KEYS, "The Example Show", 10)

        assert links == {}

    @pytest.mark.asyncio
    async def test_no_results(self):
        with respx.mock() as router:
            router.get(host="listen-api.listennotes.com").mock(
                return_value=httpx.Response(200, json={"results": []})
            )
            async with httpx.AsyncClient() as client:
                links = await listennotes_links(client, LISTENNOTES_KEYS, "Nobody Knows This", 10)

        assert links == {}
