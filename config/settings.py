"""
Global settings — loads from .env and exposes typed config values to the rest of the app.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

load_dotenv()

# ── Paths ──────────────────────────────────────────────────────────────────────
ROOT_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = ROOT_DIR / "data"
LOGS_DIR = ROOT_DIR / "logs"
DB_PATH = Path(os.getenv("DB_PATH", str(DATA_DIR / "livecards.db")))
CREATORS_FILE = Path(os.getenv("CREATORS_FILE", str(ROOT_DIR / "config" / "creators.yaml")))

# ── General ────────────────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
USER_AGENT = os.getenv(
    "USER_AGENT",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

# ── Scheduled sweep ────────────────────────────────────────────────────────────
SWEEP_INTERVAL_MINUTES = int(os.getenv("SWEEP_INTERVAL_MINUTES", "15"))
SWEEP_PAUSE_S = float(os.getenv("SWEEP_PAUSE_S", "1.0"))   # gap between creators

# ── YouTube ────────────────────────────────────────────────────────────────────
YOUTUBE_API_KEY = os.getenv("YOUTUBE_API_KEY")

# ── PodcastIndex (optional directory enrichment) ───────────────────────────────
PODCASTINDEX_API_KEY = os.getenv("PODCASTINDEX_API_KEY")
PODCASTINDEX_API_SECRET = os.getenv("PODCASTINDEX_API_SECRET")

# ── Mirror / proxy transports ──────────────────────────────────────────────────
# Comma-separated URL templates; "{url}" is replaced by the URL-encoded target.
_DEFAULT_PROXIES = ",".join([
    "https://api.allorigins.win/raw?url={url}",
    "https://corsproxy.io/?{url}",
    "https://api.codetabs.com/v1/proxy?quest={url}",
])


def _split(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


SCRAPE_PROXIES = _split(os.getenv("SCRAPE_PROXIES", _DEFAULT_PROXIES))
FEED_PROXIES = _split(os.getenv("FEED_PROXIES", _DEFAULT_PROXIES))

# ── Podcast platform lookups (all optional) ────────────────────────────────────
SPOTIFY_CLIENT_ID = os.getenv("SPOTIFY_CLIENT_ID")
SPOTIFY_CLIENT_SECRET = os.getenv("SPOTIFY_CLIENT_SECRET")
LISTENNOTES_API_KEY = os.getenv("LISTENNOTES_API_KEY")
