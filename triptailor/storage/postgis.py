"""
PostgreSQL + PostGIS implementation of `PlaceStore`.

Usage:
    store = PostgisPlaceStore.from_settings(settings)
    store.nearby_places(origin, 5000, ["museum"], exclude_ids=[], limit=20)

Connections are borrowed from a psycopg2 ThreadedConnectionPool; every
query commits on clean exit and rolls back on error. Driver errors are
re-raised as `StoreError` so the API layer can tell them apart.
"""

import json
from contextlib import contextmanager
from typing import Any, Dict, Generator, Iterable, List, Optional, Set

import psycopg2
import psycopg2.extras
import psycopg2.pool

from ..schemas.records import NearbyPlace, PlaceRecord, TripRecord
from ..schemas.suggestions import Coordinates
from ..tools.geo import parse_wkt_point
from ..utils.exceptions import StoreError
from ..utils.logger import get_logger
from .base import ACCEPTED

logger = get_logger(__name__)

_PLACE_COLUMNS = """
    p.id, p.name, p.category_slug, p.rating, p.meta, p.google_place_id,
    ST_Y(p.location::geometry) AS lat, ST_X(p.location::geometry) AS lon
"""


class PostgisPlaceStore:
    """Read side of the trip planner database."""

    def __init__(self, pool: psycopg2.pool.AbstractConnectionPool):
        self._pool = pool

    @classmethod
    def from_settings(cls, settings) -> "PostgisPlaceStore":
        try:
            pool = psycopg2.pool.ThreadedConnectionPool(
                minconn=settings.db_min_conn,
                maxconn=settings.db_max_conn,
                dsn=settings.database_url,
            )
        except psycopg2.Error as e:
            raise StoreError("Could not connect to the place database", context={"error": str(e)}) from e
        return cls(pool)

    def close(self) -> None:
        if not self._pool.closed:
            self._pool.closeall()

    @contextmanager
    def get_conn(self) -> Generator:
        """Borrow a connection; commit on success, roll back on error."""
        conn = self._pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self._pool.putconn(conn)

    def _fetch(self, sql: str, params: Any = None) -> List[Dict[str, Any]]:
        try:
            with self.get_conn() as conn:
                with conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor) as cur:
                    cur.execute(sql, params)
                    return [dict(row) for row in cur.fetchall()]
        except psycopg2.Error as e:
            logger.error("store_query_failed", error=str(e), error_type=type(e).__name__)
            raise StoreError("Place store query failed", context={"error": str(e)}) from e

    def _fetch_one(self, sql: str, params: Any = None) -> Optional[Dict[str, Any]]:
        rows = self._fetch(sql, params)
        return rows[0] if rows else None

    # ------------------------------------------------------------------
    # PlaceStore
    # ------------------------------------------------------------------

    def get_trip(self, trip_id: int) -> Optional[TripRecord]:
        row = self._fetch_one(
            """
            SELECT id, name, owner_id, destination,
                   start_latitude, start_longitude,
                   destination_latitude, destination_longitude
            FROM trips WHERE id = %s
            """,
            (trip_id,),
        )
        return TripRecord(**row) if row else None

    def get_place(self, place_id: int) -> Optional[PlaceRecord]:
        row = self._fetch_one(f"SELECT {_PLACE_COLUMNS} FROM places p WHERE p.id = %s", (place_id,))
        return PlaceRecord(**row) if row else None

    def last_added_place_coordinates(self, trip_id: int) -> Optional[Coordinates]:
        row = self._fetch_one(
            """
            SELECT ST_AsText(p.location) AS wkt
            FROM trip_place tp
            JOIN places p ON p.id = tp.place_id
            WHERE tp.trip_id = %s AND p.location IS NOT NULL
            ORDER BY tp.id DESC
            LIMIT 1
            """,
            (trip_id,),
        )
        coords = parse_wkt_point(row["wkt"]) if row else None
        if coords and abs(coords.lat) > 0.0001 and abs(coords.lon) > 0.0001:
            return coords
        return None

    def trip_place_ids(self, trip_id: int) -> List[int]:
        rows = self._fetch("SELECT place_id FROM trip_place WHERE trip_id = %s", (trip_id,))
        return [int(r["place_id"]) for r in rows]

    def nearby_places(
        self,
        origin: Coordinates,
        radius_m: int,
        categories: Iterable[str],
        exclude_ids: Iterable[int],
        limit: int,
    ) -> List[NearbyPlace]:
        categories = list(categories)
        if not categories or limit <= 0:
            return []

        rows = self._fetch(
            f"""
            SELECT {_PLACE_COLUMNS},
                   ST_Distance(
                       p.location,
                       ST_SetSRID(ST_MakePoint(%(lon)s, %(lat)s), 4326)::geography
                   ) AS distance_m
            FROM places p
            WHERE p.location IS NOT NULL
              AND p.category_slug = ANY(%(categories)s)
              AND NOT (p.id = ANY(%(exclude)s))
              AND ST_DWithin(
                  p.location,
                  ST_SetSRID(ST_MakePoint(%(lon)s, %(lat)s), 4326)::geography,
                  %(radius)s
              )
            ORDER BY distance_m ASC
            LIMIT %(limit)s
            """,
            {
                "lat": origin.lat,
                "lon": origin.lon,
                "categories": categories,
                "exclude": [int(i) for i in exclude_ids],
                "radius": int(radius_m),
                "limit": int(limit),
            },
        )
        return [NearbyPlace(**row) for row in rows]

    def known_google_place_ids(self) -> Set[str]:
        rows = self._fetch("SELECT google_place_id FROM places WHERE google_place_id IS NOT NULL")
        return {r["google_place_id"] for r in rows}

    def group_member_ids(self, trip_id: int) -> List[int]:
        rows = self._fetch(
            """
            SELECT user_id FROM trip_user WHERE trip_id = %(trip_id)s AND status = %(status)s
            UNION
            SELECT owner_id FROM trips WHERE id = %(trip_id)s
            """,
            {"trip_id": trip_id, "status": ACCEPTED},
        )
        return [int(r["user_id"]) for r in rows]

    def average_preferences(self, user_ids: Iterable[int]) -> Dict[str, float]:
        ids = sorted({int(u) for u in user_ids})
        if not ids:
            return {}
        rows = self._fetch(
            """
            SELECT c.slug, AVG(up.score) AS avg_score
            FROM user_preferences up
            JOIN categories c ON c.id = up.category_id
            WHERE up.user_id = ANY(%s)
            GROUP BY c.slug
            """,
            (ids,),
        )
        return {r["slug"]: float(r["avg_score"]) for r in rows}

    # ------------------------------------------------------------------
    # Writes used by the seeding script
    # ------------------------------------------------------------------

    def upsert_place(self, place: Dict[str, Any]) -> int:
        """
        Insert a place or update it by `google_place_id`.

        Args:
            place: dict with name, category_slug, rating, meta, google_place_id,
                   lat, lon (lat/lon may be None)

        Returns:
            id of the inserted/updated row
        """
        row = {
            "name": place["name"],
            "category_slug": place.get("category_slug"),
            "rating": place.get("rating"),
            "meta": json.dumps(place.get("meta") or {}),
            "google_place_id": place.get("google_place_id"),
            "lat": place.get("lat"),
            "lon": place.get("lon"),
        }
        sql = """
            INSERT INTO places (name, category_slug, rating, meta, google_place_id, location)
            VALUES (
                %(name)s, %(category_slug)s, %(rating)s, %(meta)s::jsonb, %(google_place_id)s,
                CASE WHEN %(lat)s IS NULL OR %(lon)s IS NULL THEN NULL
                     ELSE ST_SetSRID(ST_MakePoint(%(lon)s, %(lat)s), 4326)::geography END
            )
            ON CONFLICT (google_place_id) DO UPDATE SET
                name          = EXCLUDED.name,
                category_slug = EXCLUDED.category_slug,
                rating        = EXCLUDED.rating,
                meta          = EXCLUDED.meta,
                location      = EXCLUDED.location
            RETURNING id
        """
        try:
            with self.get_conn() as conn:
                with conn.cursor() as cur:
                    cur.execute(sql, row)
                    return int(cur.fetchone()[0])
        except psycopg2.Error as e:
            logger.error("store_upsert_failed", name=row["name"], error=str(e))
            raise StoreError("Could not upsert place", context={"name": row["name"], "error": str(e)}) from e
