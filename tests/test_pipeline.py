import pytest

from bb_scraper.cache import MemoryCacheStore
from bb_scraper.errors import FetchError, PartialScrapeError, TableNotFound
from bb_scraper.models import Dataset, PageKind, Scope
from bb_scraper.pipeline import (
    collect_players,
    load_team_directory,
    merge_players,
    refresh_team_names,
    scrape_and_extract,
)

LETTERS = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdef"
ROSTER_HEADERS = ("Name", "#", "Race", "Team", "ST", "AG", "Skills")


@pytest.fixture
def roster_site(fake_site, roster_page):
    def build(team_ids, names=None):
        names = names or {}
        return fake_site({
            f"team.php?i={i}": roster_page(names.get(i, f"Squad {LETTERS[i]}"))
            for i in team_ids
        })
    return build


# ===================== PLAYERS =====================

def test_each_team_reported_independently(roster_site, quick_settings):
    site = roster_site([1, 2], {1: "Red Star Pathfinders", 2: "Vuvu Boys"})
    cache = MemoryCacheStore()

    report = collect_players([2, 3, 1], fetcher=site, settings=quick_settings, cache=cache)

    assert report.succeeded == [1, 2]
    assert report.failed == [3]
    assert "404" in report[3].error
    assert report[1].dataset.records[0][3] == "Red Star Pathfinders"
    assert ("players", "1") in cache.keys() and ("players", "3") not in cache.keys()
    assert sorted(site.requests) == ["team.php?i=1", "team.php?i=2", "team.php?i=3"]


def test_merge_keeps_ascending_team_order(roster_site, quick_settings):
    site = roster_site([5, 4])
    report = collect_players([5, 4], fetcher=site, settings=quick_settings)
    merged = merge_players(report, Scope.subset([4, 5]))
    assert [rec[3] for rec in merged] == ["Squad E", "Squad E", "Squad F", "Squad F"]
    assert merged.headers == ROSTER_HEADERS


def test_partial_failure_carries_rows_that_arrived(roster_site, quick_settings):
    site = roster_site([1, 2])
    cache = MemoryCacheStore()

    with pytest.raises(PartialScrapeError) as exc:
        scrape_and_extract(
            PageKind.PLAYERS, Scope.subset([1, 2, 3]),
            cache=cache, fetcher=site, settings=quick_settings,
        )

    err = exc.value
    assert err.report.failed == [3]
    assert err.context["failed"] == [3]
    assert len(err.dataset) == 4
    assert err.dataset.scope.key == "1-2-3"
    # the incomplete aggregate is not cached, the per-team entries are
    assert ("players", "1-2-3") not in cache.keys()
    assert ("players", "2") in cache.keys()


def test_all_teams_failing_is_a_fetch_error(fake_site, quick_settings):
    with pytest.raises(FetchError):
        scrape_and_extract(PageKind.PLAYERS, Scope.team(5), fetcher=fake_site({}), settings=quick_settings)


def test_full_league_run_is_cached_and_reused(roster_site, fake_site, quick_settings):
    site = roster_site(range(32))
    cache = MemoryCacheStore()

    dataset = scrape_and_extract(PageKind.PLAYERS, cache=cache, fetcher=site, settings=quick_settings)
    assert len(dataset) == 64
    assert dataset.records[0][3] == "Squad A"
    assert dataset.records[-1][3] == "Squad f"
    assert cache.load(PageKind.PLAYERS, Scope.all()) == dataset

    offline = fake_site({})
    again = scrape_and_extract(PageKind.PLAYERS, cache=cache, fetcher=offline, settings=quick_settings)
    assert again == dataset
    assert offline.requests == []


def test_refresh_bypasses_cache(roster_site, quick_settings):
    cache = MemoryCacheStore()
    cache.save(Dataset(PageKind.PLAYERS, Scope.team(1), "4", ROSTER_HEADERS, [
        ("Old", "#1", "Orc", "Squad B", "1", "1", ""),
    ]))
    site = roster_site([1])

    cached = scrape_and_extract(PageKind.PLAYERS, Scope.team(1), cache=cache, fetcher=site, settings=quick_settings)
    assert cached.records[0][0] == "Old"
    assert site.requests == []

    fresh = scrape_and_extract(
        PageKind.PLAYERS, Scope.team(1), use_cache=False, cache=cache, fetcher=site, settings=quick_settings,
    )
    assert [rec[0] for rec in fresh] == ["Grug", "Krak & Sons"]
    assert cache.load(PageKind.PLAYERS, Scope.team(1)) == fresh


def test_single_team_run_updates_league_table(roster_site, quick_settings):
    cache = MemoryCacheStore()
    cache.save(Dataset(PageKind.PLAYERS, Scope.all(), "5", ROSTER_HEADERS, [
        ("Old", "#1", "Orc", "Red Star Pathfinders", "1", "1", ""),
        ("Krak", "#2", "Goblin", "Vuvu Boys", "3", "3", ""),
    ]))
    site = roster_site([1], {1: "Red Star Pathfinders"})

    scrape_and_extract(
        PageKind.PLAYERS, Scope.team(1), use_cache=False, cache=cache, fetcher=site, settings=quick_settings,
    )

    league = cache.load(PageKind.PLAYERS, Scope.all())
    assert [rec[0] for rec in league] == ["Krak", "Grug", "Krak & Sons"]
    assert league.scope.is_all


# ===================== LEAGUE PAGES =====================

def test_game_results_filtered_to_scope(fake_site, quick_settings, season_html, league_teams):
    site = fake_site({"season.php": season_html})
    cache = MemoryCacheStore()

    roadies = scrape_and_extract(
        "game-results", Scope.team(10), cache=cache, fetcher=site, teams=league_teams, settings=quick_settings,
    )
    assert [rec[6] for rec in roadies] == ["2241"]
    assert roadies.scope == Scope.team(10)

    # whole season cached once, narrowed per request
    assert len(cache.load(PageKind.GAME_RESULTS, Scope.all())) == 2
    bouncers = scrape_and_extract(
        "game-results", Scope.team(12), cache=cache, fetcher=site, teams=league_teams, settings=quick_settings,
    )
    assert [rec[1] for rec in bouncers] == ["9"]
    assert site.requests == ["season.php"]


def test_injuries_use_cached_season_when_page_has_none(fake_site, quick_settings, league_teams):
    cache = MemoryCacheStore()
    cache.save(Dataset(PageKind.GAME_RESULTS, Scope.all(), "8", (), ()))
    page = "<h2>Injuries</h2>W3 Vuvu Boys Krak Zog DUR 1 Bruised by Red Star Pathfinders Grug BRU 4<br>"
    site = fake_site({"injury.php": page})

    dataset = scrape_and_extract(
        PageKind.INJURIES, cache=cache, fetcher=site, teams=league_teams, settings=quick_settings,
    )
    assert dataset.season == "8"
    assert dataset.records[0][:4] == ("8", "3", "Vuvu Boys", "Krak Zog")


def test_missing_table_propagates(fake_site, quick_settings, league_teams):
    site = fake_site({"season.php": "<html>Down for maintenance</html>"})
    with pytest.raises(TableNotFound):
        scrape_and_extract(PageKind.GAME_RESULTS, fetcher=site, teams=league_teams, settings=quick_settings)


def test_team_list_refresh_and_directory(fake_site, index_html):
    cache = MemoryCacheStore()
    site = fake_site({"index.php": index_html})

    teams = refresh_team_names(cache=cache, fetcher=site)
    assert teams.ids() == [10, 12, 24]
    assert cache.load_teams() == teams

    offline = fake_site({})
    assert load_team_directory(cache=cache, fetcher=offline) == teams
    assert offline.requests == []


def test_team_directory_falls_back_to_generic_names(fake_site):
    teams = load_team_directory(cache=MemoryCacheStore(), fetcher=fake_site({}))
    assert len(teams) == 32
    assert teams.name_for(7) == "Team 7"


def test_teams_page_kind(fake_site, quick_settings, index_html):
    site = fake_site({"index.php": index_html})
    dataset = scrape_and_extract(PageKind.TEAMS, Scope.team(10), use_cache=False, fetcher=site, settings=quick_settings)
    # the team list has no team column to filter on
    assert [rec[0] for rec in dataset] == ["10", "12", "24"]
    assert dataset.season == "5"


def test_unexpected_worker_error_only_fails_that_team(roster_site, quick_settings, caplog):
    site = roster_site([1, 3])

    def flaky(path):
        if path == "team.php?i=2":
            raise TimeoutError("read timed out")
        return site(path)

    with caplog.at_level("ERROR"):
        report = collect_players([1, 2, 3], fetcher=flaky, settings=quick_settings)

    assert report.succeeded == [1, 3]
    assert report.failed == [2]
    assert report[2].error == "TimeoutError: read timed out"
    assert "Team 2 failed unexpectedly" in caplog.text


def test_single_team_run_with_new_columns_and_no_rows(roster_page, fake_site, quick_settings):
    cache = MemoryCacheStore()
    cache.save(Dataset(PageKind.PLAYERS, Scope.all(), "5", ROSTER_HEADERS, [
        ("Old", "#1", "Orc", "Red Star Pathfinders", "1", "1", ""),
        ("Krak", "#2", "Goblin", "Vuvu Boys", "3", "3", ""),
    ]))
    html = roster_page("Red Star Pathfinders", rows="").replace(
        "<th>Skills</th>", "<th>Skills</th><th>SPP</th>"
    )
    site = fake_site({"team.php?i=1": html})

    dataset = scrape_and_extract(
        PageKind.PLAYERS, Scope.team(1), use_cache=False, cache=cache, fetcher=site, settings=quick_settings,
    )
    assert len(dataset) == 0

    league = cache.load(PageKind.PLAYERS, Scope.all())
    assert league.headers == ROSTER_HEADERS + ("SPP",)
    assert league.records == ()


def test_game_results_season_from_stats_pages(fake_site, quick_settings, season_html, league_teams):
    untitled = season_html.replace("<title>Brutalball Schedule - Season 5</title>", "")
    site = fake_site({
        "season.php": untitled,
        "stat_team_performance.php": "<title>Team performance - Season 6</title>",
    })

    dataset = scrape_and_extract(PageKind.GAME_RESULTS, fetcher=site, teams=league_teams, settings=quick_settings)

    assert dataset.season == "6"
    assert {rec[0] for rec in dataset} == {"6"}
    assert site.requests == ["season.php", "stat_team.php", "stat_team_performance.php"]


def test_game_results_season_stays_blank_without_any_source(fake_site, quick_settings, season_html, league_teams):
    untitled = season_html.replace("<title>Brutalball Schedule - Season 5</title>", "")
    site = fake_site({"season.php": untitled, "stat_team.php": "<title>Stats</title>"})

    dataset = scrape_and_extract(PageKind.GAME_RESULTS, fetcher=site, teams=league_teams, settings=quick_settings)

    assert dataset.season == ""
    assert {rec[0] for rec in dataset} == {""}
