"""Convert a JSON export of rounds into `assets/sample_rounds.csv`.

Contract
- Input: a JSON array of round objects, e.g. `data/sample_rounds.json`. Each
  object has `name`, `image`, `difficulty` and a coordinate either flat
  (`lat`/`lng`) or nested (`location.lat`/`location.lng`). `id` is optional.
- Output: `<repo>/assets/sample_rounds.csv` with header
  `id,name,image,lat,lng,difficulty`, the format the server loads at startup.
- Rows missing a name, image or coordinate are dropped and reported.
- Missing ids are slugified from the name; duplicate ids get a numeric suffix.

Usage:
    uv run python scripts/import_sample_rounds.py data/sample_rounds.json

This script is deterministic.
"""

from __future__ import annotations

import json
import re
import sys
from pathlib import Path

import pandas as pd

COLUMNS = ["id", "name", "image", "lat", "lng", "difficulty"]
DIFFICULTIES = {"easy", "medium", "hard"}


def _slugify(s: str) -> str:
    s = s.strip().casefold()
    s = re.sub(r"[^a-z0-9]+", "-", s)
    return s.strip("-")


def _flatten(df: pd.DataFrame) -> pd.DataFrame:
    """Accept nested `location.lat` / `coordinates.lng` style columns."""

    out = df.copy()
    for axis in ("lat", "lng"):
        if axis in out.columns:
            continue
        nested = [c for c in out.columns if c.endswith(f".{axis}")]
        if nested:
            out[axis] = out[nested[0]]
    if "image" not in out.columns and "photo" in out.columns:
        out["image"] = out["photo"]
    return out


def _dedupe_ids(ids: list[str]) -> list[str]:
    seen: dict[str, int] = {}
    out: list[str] = []
    for rid in ids:
        n = seen.get(rid, 0)
        seen[rid] = n + 1
        out.append(rid if n == 0 else f"{rid}-{n + 1}")
    return out


def normalize_rounds(df: pd.DataFrame) -> tuple[pd.DataFrame, int]:
    """Return (clean rows in loader format, number of dropped rows)."""

    df = _flatten(df)
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = pd.NA

    df["lat"] = pd.to_numeric(df["lat"], errors="coerce")
    df["lng"] = pd.to_numeric(df["lng"], errors="coerce")
    df["difficulty"] = df["difficulty"].fillna("medium").astype(str).str.strip().str.casefold()
    df.loc[~df["difficulty"].isin(DIFFICULTIES), "difficulty"] = "medium"

    valid = (
        df["name"].notna()
        & df["image"].notna()
        & df["lat"].between(-90, 90)
        & df["lng"].between(-180, 180)
    )
    kept = df.loc[valid, COLUMNS].copy()

    kept["name"] = kept["name"].astype(str).str.strip()
    kept["image"] = kept["image"].astype(str).str.strip()
    ids = [
        str(rid).strip() if isinstance(rid, str) and rid.strip() else _slugify(name)
        for rid, name in zip(kept["id"].tolist(), kept["name"].tolist(), strict=True)
    ]
    kept["id"] = _dedupe_ids(ids)

    return kept.reset_index(drop=True), int((~valid).sum())


def main(argv: list[str]) -> int:
    repo_root = Path(__file__).resolve().parents[1]
    src = Path(argv[1]) if len(argv) > 1 else repo_root / "data" / "sample_rounds.json"
    dst = repo_root / "assets" / "sample_rounds.csv"

    if not src.exists():
        raise FileNotFoundError(f"Missing source rounds: {src}")

    records = json.loads(src.read_text(encoding="utf-8"))
    if not isinstance(records, list) or not records:
        raise ValueError(f"Expected a non-empty JSON array in {src}")

    rounds, dropped = normalize_rounds(pd.json_normalize(records))
    if rounds.empty:
        raise ValueError(f"No usable rounds in {src}")

    dst.parent.mkdir(parents=True, exist_ok=True)
    rounds.to_csv(dst, index=False)
    print(f"wrote {len(rounds)} rounds to {dst} ({dropped} dropped)")
    return 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv))
