import pytest

from bb_scraper.errors import RowArityMismatch, ScrapeError
from bb_scraper.models import (
    GAME_RESULT_HEADERS,
    Dataset,
    ExtractResult,
    PageKind,
    Scope,
    ScrapeReport,
    TeamDirectory,
    TeamOutcome,
)

PLAYER_HEADERS = ("Name", "#", "Race", "Team", "ST")


def players(*records, scope=None, season="5", headers=PLAYER_HEADERS):
    return Dataset(PageKind.PLAYERS, scope or Scope.all(), season, headers, records)


# ===================== PAGE KIND =====================

@pytest.mark.parametrize("value", ["players", "PLAYERS", " players ", PageKind.PLAYERS])
def test_page_kind_parse(value):
    assert PageKind.parse(value) is PageKind.PLAYERS


def test_page_kind_parse_rejects_unknown():
    with pytest.raises(ValueError):
        PageKind.parse("standings")


def test_page_kind_layouts():
    assert PageKind.GAME_RESULTS.arity == 7
    assert PageKind.INJURIES.arity == 12
    assert PageKind.PLAYERS.arity is None
    assert PageKind.GAME_RESULTS.optional_column == GAME_RESULT_HEADERS.index("Match id")
    assert PageKind.TEAMS.per_team is False
    assert PageKind.GAME_RESULTS.team_columns == (2, 5)


# ===================== SCOPE =====================

def test_scope_keys():
    assert Scope.all().key == "all"
    assert Scope.team(7).key == "7"
    assert Scope.subset([12, 7, 12]).key == "7-12"
    assert str(Scope.team(3)) == "3"


def test_scope_subset_of_every_team_is_all():
    assert Scope.subset(range(32)).is_all


@pytest.mark.parametrize("bad", [-1, 32])
def test_scope_rejects_out_of_range_ids(bad):
    with pytest.raises(ValueError):
        Scope.team(bad)


def test_scope_ids_and_flags():
    assert Scope.all().ids() == list(range(32))
    assert Scope.team(4).is_single
    assert not Scope.subset([1, 2]).is_single


# ===================== DATASET =====================

def test_dataset_coerces_and_validates():
    ds = Dataset("game-results", Scope.all(), 5, GAME_RESULT_HEADERS, [[5, 1, "A", 1, 0, "B", ""]])
    assert ds.page_kind is PageKind.GAME_RESULTS
    assert ds.season == "5"
    assert ds.records == (("5", "1", "A", "1", "0", "B", ""),)
    assert ds.key == ("game-results", "all")


def test_dataset_rejects_wrong_arity():
    with pytest.raises(RowArityMismatch):
        Dataset(PageKind.TEAMS, Scope.all(), "", (), [("1", "A", "extra")])
    with pytest.raises(RowArityMismatch):
        players(("Grug", "#1", "Orc", "X"))
    with pytest.raises(RowArityMismatch):
        Dataset(PageKind.INJURIES, Scope.all(), "", ("S", "W"), ())


def test_headerless_players_arity_comes_from_first_record():
    ds = players(("a", "b", "c"), ("d", "e", "f"), headers=())
    assert ds.arity == 3
    with pytest.raises(RowArityMismatch):
        players(("a", "b", "c"), ("d", "e"), headers=())


def test_team_names_cover_every_team_column():
    ds = Dataset(PageKind.GAME_RESULTS, Scope.all(), "5", (), [
        ("5", "1", "A", "1", "0", "B", "10"),
        ("5", "2", "C", "2", "2", "A", "11"),
    ])
    assert ds.team_names() == ["A", "B", "C"]


def test_replace_teams_swaps_only_present_teams():
    old = players(
        ("Grug", "#1", "Orc", "Red Star Pathfinders", "4"),
        ("Krak", "#2", "Orc", "Vuvu Boys", "3"),
        season="4",
    )
    new = players(("Zug", "#9", "Troll", "Vuvu Boys", "5"), scope=Scope.team(2), season="5")

    merged = old.replace_teams(new)
    assert merged.records == (
        ("Grug", "#1", "Orc", "Red Star Pathfinders", "4"),
        ("Zug", "#9", "Troll", "Vuvu Boys", "5"),
    )
    assert merged.season == "5"
    assert merged.scope == Scope.all()
    # the originals are untouched
    assert len(old) == 2 and old.records[1][0] == "Krak"


def test_replace_teams_drops_rows_with_old_column_layout():
    old = players(("Grug", "#1", "Orc", "Red Star Pathfinders", "4"))
    new = players(
        ("Zug", "#9", "Troll", "Vuvu Boys", "5", "Block"),
        headers=PLAYER_HEADERS + ("Skills",),
    )
    merged = old.replace_teams(new)
    assert merged.headers == PLAYER_HEADERS + ("Skills",)
    assert [r[0] for r in merged] == ["Zug"]


def test_replace_teams_with_new_layout_and_no_rows():
    old = players(("Grug", "#1", "Orc", "Red Star Pathfinders", "4"))
    new = players(headers=PLAYER_HEADERS + ("Skills",))
    merged = old.replace_teams(new)
    assert merged.headers == PLAYER_HEADERS + ("Skills",)
    assert merged.records == ()


def test_replace_teams_headerless_rows_drop_stale_headers():
    old = players(("Grug", "#1", "Orc", "Red Star Pathfinders", "4"))
    new = players(("Zug", "#9", "Troll", "Vuvu Boys"), headers=())
    merged = old.replace_teams(new)
    assert merged.headers == ()
    assert merged.records == (("Zug", "#9", "Troll", "Vuvu Boys"),)


def test_replace_teams_rejects_other_kinds():
    with pytest.raises(ScrapeError):
        players().replace_teams(TeamDirectory.fallback().to_dataset())


def test_extract_result_prefers_page_season():
    result = ExtractResult(records=(("1", "A"),), season="6")
    assert result.to_dataset(PageKind.TEAMS, Scope.all(), season="5").season == "6"
    assert ExtractResult().to_dataset(PageKind.TEAMS, Scope.all(), season="5").season == "5"


# ===================== TEAMS =====================

def test_team_directory_lookup(league_teams):
    assert league_teams.ids() == [1, 2, 10, 12, 24]
    assert league_teams.name_for(24) == "Sportsball Union"
    assert league_teams.name_for(5) == "Team 5"
    assert league_teams.id_for("Vuvu Boys") == 2
    assert league_teams.id_for("Nobody") is None


def test_team_directory_first_name_wins():
    teams = TeamDirectory.from_pairs([(3, "Long Name"), (1, "A"), (3, "Short")])
    assert [(e.id, e.name) for e in teams] == [(1, "A"), (3, "Long Name")]


def test_team_directory_dataset_round_trip(league_teams):
    ds = league_teams.to_dataset("5")
    assert ds.records[0] == ("1", "Red Star Pathfinders")
    assert TeamDirectory.from_dataset(ds) == league_teams


def test_fallback_directory_covers_every_team():
    teams = TeamDirectory.fallback()
    assert len(teams) == 32
    assert teams.name_for(0) == "Team 0"


# ===================== REPORT =====================

def test_scrape_report_tracks_each_team():
    report = ScrapeReport()
    ok = players(("Grug", "#1", "Orc", "A", "4"), scope=Scope.team(3))
    report.add(TeamOutcome(3, True, dataset=ok))
    report.add(TeamOutcome(1, False, error="HTTP 500"))
    report.add(TeamOutcome(2, True, dataset=players(scope=Scope.team(2))))

    assert len(report) == 3
    assert 1 in report and 5 not in report
    assert report.succeeded == [2, 3]
    assert report.failed == [1]
    assert report[1].error == "HTTP 500"
    assert not report.all_ok and report.any_ok
    assert [d.scope.key for d in report.datasets()] == ["2", "3"]


def test_empty_report_is_not_all_ok():
    assert not ScrapeReport().all_ok
