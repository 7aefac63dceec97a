"""
Seed the place store with places from a JSON file.

Usage:
    python -m triptailor.scripts.seed_places --file data/places.json

The file holds either a list of places or {"places": [...]}. Each place
needs a name; category_slug, rating, meta, google_place_id, lat and lon are
optional. Places with a google_place_id are upserted by that id.
"""

import argparse
import json
import sys
import time
from pathlib import Path
from typing import Any, Dict, List

from triptailor.storage import build_store
from triptailor.tools.categories import CategoryNormalizer
from triptailor.utils.config import settings
from triptailor.utils.exceptions import TripTailorError, ValidationError
from triptailor.utils.logger import configure_logging, get_logger

logger = get_logger(__name__)


def read_places_file(file_path: str) -> List[Dict[str, Any]]:
    """
    Load the place list from `file_path`.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the JSON has an unexpected shape
    """
    path = Path(file_path)
    if not path.exists():
        raise FileNotFoundError(f"Places file not found: {file_path}")

    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)

    places = data.get("places") if isinstance(data, dict) else data
    if not isinstance(places, list):
        raise ValidationError("Expected a list of places", context={"file": file_path})
    return places


def normalize_place(raw: Dict[str, Any], categories: CategoryNormalizer) -> Dict[str, Any]:
    """Coerce one JSON record into the shape `upsert_place` expects."""
    if not isinstance(raw, dict) or not raw.get("name"):
        raise ValidationError("Place needs a name", validation_errors=[{"record": raw}])

    category = raw.get("category_slug") or raw.get("category")
    if category:
        # Google types are mapped, internal slugs pass through
        category = categories.category_map.get(str(category).lower(), str(category).lower())

    lat, lon = raw.get("lat"), raw.get("lon")
    return {
        "name": str(raw["name"]),
        "category_slug": category,
        "rating": float(raw["rating"]) if raw.get("rating") is not None else None,
        "meta": raw.get("meta") or {},
        "google_place_id": raw.get("google_place_id"),
        "lat": float(lat) if lat is not None else None,
        "lon": float(lon) if lon is not None else None,
    }


def seed_places(file_path: str, store=None) -> Dict[str, Any]:
    """
    Seed the configured store from a JSON file.

    Returns:
        Summary dictionary with success/failure counts
    """
    start_time = time.time()
    store = store if store is not None else build_store(settings)
    categories = CategoryNormalizer()

    try:
        records = read_places_file(file_path)
    except (FileNotFoundError, ValueError, TripTailorError) as e:
        logger.error("seed_file_unreadable", file=file_path, error=str(e))
        return {
            "success": 0,
            "failed": 0,
            "errors": [f"File read failed: {e}"],
            "duration_seconds": time.time() - start_time,
        }

    success, errors = 0, []
    for i, raw in enumerate(records, start=1):
        try:
            store.upsert_place(normalize_place(raw, categories))
            success += 1
        except (TripTailorError, TypeError, ValueError) as e:
            message = getattr(e, "message", str(e))
            errors.append(f"Place {i} failed: {message}")
            logger.warning("seed_place_failed", num=i, error=message)

    summary = {
        "success": success,
        "failed": len(errors),
        "errors": errors,
        "duration_seconds": time.time() - start_time,
    }
    logger.info("seed_completed", success=success, failed=len(errors), duration=round(summary["duration_seconds"], 2))
    return summary


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed the TripTailor place store")
    parser.add_argument("--file", required=True, help="JSON file with places")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    configure_logging(args.log_level)

    summary = seed_places(args.file)
    print(f"Seeded {summary['success']} places, {summary['failed']} failed")
    for error in summary["errors"][:10]:
        print(f"  - {error}")
    return 0 if summary["failed"] == 0 and summary["success"] > 0 else 1


if __name__ == "__main__":
    sys.exit(main())
