"""
Initialise the database and seed the creator registry from YAML.
Safe to run multiple times — existing creator rows are updated in place.

Usage:
    python scripts/setup_db.py [path/to/creators.yaml]
"""
import sys
from pathlib import Path

import yaml

# Allow imports from the project root
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from config.settings import CREATORS_FILE, DATA_DIR, DB_PATH
from src.adapters.base import SourceType
from src.database.db import get_db, init_db, upsert_creator_source

# YAML platform key → source type
PLATFORM_KEYS = {
    "rumble":  SourceType.LIVE_STREAM,
    "youtube": SourceType.API_VIDEO,
    "podcast": SourceType.PODCAST_FEED,
}


def seed_creators(yaml_path: Path, db_path: Path | None = None) -> int:
    """Parse one YAML file and upsert every declared platform. Returns rows written."""
    data = yaml.safe_load(yaml_path.read_text(encoding="utf-8")) or {}
    count = 0
    with get_db(db_path) as conn:
        for creator in data.get("creators", []):
            creator_id = str(creator["id"])
            for key, source_type in PLATFORM_KEYS.items():
                entry = creator.get(key)
                if not entry:
                    continue
                if isinstance(entry, str):
                    entry = {"handle": entry}
                hints = {k: v for k, v in entry.items() if k not in ("handle", "enabled")}
                upsert_creator_source(
                    conn,
                    creator_id,
                    source_type,
                    entry["handle"],
                    hints   = hints,
                    enabled = entry.get("enabled", True),
                )
                count += 1
    return count


def main() -> None:
    DATA_DIR.mkdir(parents=True, exist_ok=True)
    yaml_path = Path(sys.argv[1]) if len(sys.argv) > 1 else CREATORS_FILE

    print(f"Database path: {DB_PATH}")

    print("Initialising schema…")
    init_db()
    print("  Schema ready.")

    if not yaml_path.exists():
        print(f"  [WARN] {yaml_path} not found — registry left empty")
        return
    n = seed_creators(yaml_path)
    print(f"  {n} creator sources seeded from {yaml_path.name}.")

    print("Done.")


if __name__ == "__main__":
    main()
