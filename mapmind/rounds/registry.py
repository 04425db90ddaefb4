from __future__ import annotations

import csv
import math
import os
import random
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from mapmind.core.geo import Coordinate

Difficulty = Literal["easy", "medium", "hard"]

DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")

ROUNDS_FILE = "sample_rounds.csv"


def _slug_id(s: str) -> str:
    s = s.strip().casefold()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


class RoundLoadError(RuntimeError):
    pass


@dataclass(frozen=True, slots=True)
class RoundRecord:
    id: str
    name: str
    image: str
    lat: float
    lng: float
    difficulty: Difficulty

    @property
    def location(self) -> Coordinate:
        return Coordinate(lat=self.lat, lng=self.lng)

    def as_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "name": self.name,
            "image": self.image,
            "lat": self.lat,
            "lng": self.lng,
            "difficulty": self.difficulty,
        }


@dataclass(frozen=True, slots=True)
class RoundDeck:
    """The pool of photo/location records a game draws its rounds from.

    IDs are canonical; order here is load order and carries no meaning.
    """

    records: tuple[RoundRecord, ...]

    @staticmethod
    def from_rows(rows: list[RoundRecord]) -> "RoundDeck":
        if not rows:
            raise RoundLoadError("Round deck is empty")
        seen: set[str] = set()
        for r in rows:
            if r.id in seen:
                raise RoundLoadError(f"Duplicate round id: {r.id}")
            seen.add(r.id)
        return RoundDeck(records=tuple(rows))

    def __len__(self) -> int:
        return len(self.records)

    def draw(self, *, n: int, seed: int | str | None = None) -> tuple[RoundRecord, ...]:
        """Shuffle the deck and keep the first `min(n, len(deck))` records."""

        if n < 1:
            raise ValueError("n must be >= 1")
        rng = random.Random(seed)
        return tuple(rng.sample(self.records, k=min(n, len(self.records))))


def _parse_row(row: dict[str, str], *, line: int, path: Path) -> RoundRecord:
    name = (row.get("name") or "").strip()
    image = (row.get("image") or "").strip()
    difficulty = (row.get("difficulty") or "").strip().casefold()
    if not name or not image:
        raise RoundLoadError(f"{path}:{line}: name and image are required")
    if difficulty not in DIFFICULTIES:
        raise RoundLoadError(f"{path}:{line}: unknown difficulty {difficulty!r}")

    try:
        lat = float(row.get("lat") or "")
        lng = float(row.get("lng") or "")
    except ValueError as e:
        raise RoundLoadError(f"{path}:{line}: lat/lng must be numbers") from e
    if not (math.isfinite(lat) and math.isfinite(lng)) or not -90.0 <= lat <= 90.0 or not -180.0 <= lng <= 180.0:
        raise RoundLoadError(f"{path}:{line}: coordinate out of range ({lat}, {lng})")

    rid = (row.get("id") or "").strip() or _slug_id(name)
    return RoundRecord(id=rid, name=name, image=image, lat=lat, lng=lng, difficulty=difficulty)  # type: ignore[arg-type]


def load_round_csv(path: Path) -> RoundDeck:
    out: list[RoundRecord] = []
    try:
        with path.open(encoding="utf-8-sig", newline="") as f:
            reader = csv.DictReader(f)
            header = [c.strip().casefold() for c in (reader.fieldnames or [])]
            if header[:6] != ["id", "name", "image", "lat", "lng", "difficulty"]:
                raise RoundLoadError(f"Unexpected header in {path}: {reader.fieldnames}")

            for row in reader:
                cleaned = {(k or "").strip().casefold(): (v or "") for k, v in row.items()}
                if not any(v.strip() for v in cleaned.values()):
                    continue
                out.append(_parse_row(cleaned, line=reader.line_num, path=path))
    except FileNotFoundError as e:
        raise RoundLoadError(f"Round file not found: {path}") from e
    except UnicodeDecodeError as e:
        raise RoundLoadError(f"Round file is not UTF-8: {path}") from e

    return RoundDeck.from_rows(out)


def _fallback_round_deck() -> RoundDeck:
    """Small built-in deck used when `assets/sample_rounds.csv` is missing.

    Enough records for a default-length game, spread across all difficulties.
    """

    rows = [
        RoundRecord("paris", "Paris, France", "/photos/paris.jpg", 48.8566, 2.3522, "easy"),
        RoundRecord("tokyo", "Tokyo, Japan", "/photos/tokyo.jpg", 35.6762, 139.6503, "easy"),
        RoundRecord("new-york", "New York City, USA", "/photos/new-york.jpg", 40.7128, -74.0060, "easy"),
        RoundRecord("sydney", "Sydney, Australia", "/photos/sydney.jpg", -33.8688, 151.2093, "easy"),
        RoundRecord("cape-town", "Cape Town, South Africa", "/photos/cape-town.jpg", -33.9249, 18.4241, "medium"),
        RoundRecord("cusco", "Cusco, Peru", "/photos/cusco.jpg", -13.5320, -71.9675, "medium"),
        RoundRecord("reykjavik", "Reykjavik, Iceland", "/photos/reykjavik.jpg", 64.1466, -21.9426, "medium"),
        RoundRecord("hanoi", "Hanoi, Vietnam", "/photos/hanoi.jpg", 21.0278, 105.8342, "medium"),
        RoundRecord("ulaanbaatar", "Ulaanbaatar, Mongolia", "/photos/ulaanbaatar.jpg", 47.8864, 106.9057, "hard"),
        RoundRecord("tromso", "Tromsø, Norway", "/photos/tromso.jpg", 69.6492, 18.9553, "hard"),
        RoundRecord("tbilisi", "Tbilisi, Georgia", "/photos/tbilisi.jpg", 41.7151, 44.8271, "hard"),
        RoundRecord("hobart", "Hobart, Tasmania", "/photos/hobart.jpg", -42.8821, 147.3272, "hard"),
    ]
    return RoundDeck.from_rows(rows)


def load_round_deck(*, root: Path) -> RoundDeck:
    # Default behavior: fall back to the built-in deck when the CSV is missing or invalid.
    # Force strict behavior by setting MAPMIND_STRICT_ASSETS=1.
    strict = os.getenv("MAPMIND_STRICT_ASSETS", "").strip().lower() in {"1", "true", "yes"}

    try:
        return load_round_csv(root / "assets" / ROUNDS_FILE)
    except RoundLoadError:
        if strict:
            raise
        return _fallback_round_deck()
