from __future__ import annotations

from pathlib import Path

import pytest

from mapmind.rounds.registry import RoundDeck, RoundLoadError, RoundRecord, load_round_csv, load_round_deck
from mapmind.rounds.singleton import get_rounds

HEADER = "id,name,image,lat,lng,difficulty\n"


def _write_deck(root: Path, body: str) -> Path:
    (root / "assets").mkdir(exist_ok=True)
    path = root / "assets" / "sample_rounds.csv"
    path.write_text(HEADER + body, encoding="utf-8")
    return path


def test_fixture_deck_loaded_at_session_start(round_by_id) -> None:
    deck = get_rounds()
    assert len(deck) == 12
    paris = round_by_id("round-0001")
    assert (paris.lat, paris.lng) == (48.8566, 2.3522)
    assert paris.difficulty == "easy"
    assert {r.difficulty for r in deck.records} == {"easy", "medium", "hard"}


def test_draw_caps_at_requested_count() -> None:
    deck = get_rounds()
    drawn = deck.draw(n=5, seed=1)
    assert len(drawn) == 5
    assert len({r.id for r in drawn}) == 5


def test_draw_never_exceeds_deck_size() -> None:
    deck = get_rounds()
    assert len(deck.draw(n=50, seed=1)) == 12


def test_draw_is_deterministic_per_seed() -> None:
    deck = get_rounds()
    assert [r.id for r in deck.draw(n=5, seed=42)] == [r.id for r in deck.draw(n=5, seed=42)]


def test_draw_rejects_non_positive_count() -> None:
    with pytest.raises(ValueError):
        get_rounds().draw(n=0, seed=1)


def test_missing_id_is_slugified_from_name(tmp_path: Path) -> None:
    path = _write_deck(tmp_path, ",Cape Town South Africa,/p/ct.jpg,-33.9,18.4,medium\n")
    deck = load_round_csv(path)
    assert deck.records[0].id == "cape-town-south-africa"


@pytest.mark.parametrize(
    "row,needle",
    [
        ("r1,Somewhere,/p.jpg,abc,1.0,easy\n", "lat/lng"),
        ("r1,Somewhere,/p.jpg,91.0,1.0,easy\n", "out of range"),
        ("r1,Somewhere,/p.jpg,10.0,1.0,impossible\n", "difficulty"),
        ("r1,,/p.jpg,10.0,1.0,easy\n", "required"),
        ("r1,A,/a.jpg,1,1,easy\nr1,B,/b.jpg,2,2,easy\n", "Duplicate"),
    ],
)
def test_invalid_rows_raise(tmp_path: Path, row: str, needle: str) -> None:
    path = _write_deck(tmp_path, row)
    with pytest.raises(RoundLoadError) as e:
        load_round_csv(path)
    assert needle in str(e.value)


def test_bad_header_raises(tmp_path: Path) -> None:
    (tmp_path / "bad.csv").write_text("name,lat\nParis,48\n", encoding="utf-8")
    with pytest.raises(RoundLoadError):
        load_round_csv(tmp_path / "bad.csv")


def test_empty_deck_raises() -> None:
    with pytest.raises(RoundLoadError):
        RoundDeck.from_rows([])


def test_missing_file_uses_fallback_when_not_strict(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MAPMIND_STRICT_ASSETS", raising=False)
    deck = load_round_deck(root=tmp_path)
    assert len(deck) >= 5
    assert "paris" in {r.id for r in deck.records}


def test_missing_file_raises_when_strict(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MAPMIND_STRICT_ASSETS", "1")
    with pytest.raises(RoundLoadError):
        load_round_deck(root=tmp_path)


def test_record_location_and_dict() -> None:
    r = RoundRecord("x", "X", "/x.jpg", 1.5, -2.5, "hard")
    assert r.location.lat == 1.5
    assert r.as_dict()["lng"] == -2.5


def test_valid_file_loads_when_not_strict(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MAPMIND_STRICT_ASSETS", raising=False)
    _write_deck(tmp_path, "r1,Lima,/p/lima.jpg,-12.05,-77.04,medium\n\nr2,Oslo,/p/oslo.jpg,59.91,10.75,hard\n")

    deck = load_round_deck(root=tmp_path)

    assert [r.id for r in deck.records] == ["r1", "r2"]


def test_invalid_file_falls_back_when_not_strict(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MAPMIND_STRICT_ASSETS", raising=False)
    _write_deck(tmp_path, "r1,Somewhere,/p.jpg,not-a-number,1.0,easy\n")

    deck = load_round_deck(root=tmp_path)

    assert "paris" in {r.id for r in deck.records}


def test_byte_order_mark_and_crlf_are_tolerated(tmp_path: Path) -> None:
    (tmp_path / "bom.csv").write_bytes(
        ("\ufeff" + HEADER + "r1,Quito,/p/quito.jpg,-0.18,-78.47,easy\n").replace("\n", "\r\n").encode("utf-8")
    )
    deck = load_round_csv(tmp_path / "bom.csv")
    assert deck.records[0].name == "Quito"
    assert deck.records[0].difficulty == "easy"


def test_error_reports_physical_line(tmp_path: Path) -> None:
    path = _write_deck(tmp_path, "r1,A,/a.jpg,1,1,easy\n\nr2,B,/b.jpg,1,1,nope\n")
    with pytest.raises(RoundLoadError) as e:
        load_round_csv(path)
    assert f"{path}:4:" in str(e.value)


def test_non_utf8_file_raises_load_error(tmp_path: Path) -> None:
    (tmp_path / "latin1.csv").write_bytes((HEADER + "r1,Tromsø,/p.jpg,69.6,18.9,hard\n").encode("latin-1"))
    with pytest.raises(RoundLoadError):
        load_round_csv(tmp_path / "latin1.csv")
