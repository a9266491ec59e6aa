import pytest

from bb_scraper.errors import FetchError
from bb_scraper.models import TeamDirectory
from bb_scraper.settings import Settings


ROSTER_TEMPLATE = """
<html><head><title>{team}</title></head><body>
<TABLE class=teamroster cellspacing=0>
<tr><td colspan=8><h5>{team} (6 - 0 - 2) Team owner Dozer</h5></td></tr>
<th>Name</th><th>ST</th><th>AG</th><th>Skills</th>
{rows}
<tr class="footer"><td>Total</td><td>11</td><td>9</td><td></td></tr>
</TABLE>
</body></html>
"""

ROSTER_ROWS = """
<tr class="playerrow"><td>[CAPTAIN] Grug #27 Common Orc</td><td>4</td><td>3</td><td>Block, Tackle</td></tr>
<tr class="playerrow1"><td>Krak &amp; Sons #3 Big&nbsp;Un</td><td>5</td><td>2</td><td>Guard</td></tr>
<tr class="playerrow"><td>Broken #9 Goblin</td><td>2</td><td>4</td></tr>
"""

SEASON_HTML = """
<html><head><title>Brutalball Schedule - Season 5</title></head>
<body>
  <table>
    <tr><td colspan=4 class="conference">WEEK 2</td></tr>
    <tr class="playerrow">
      <td class="basichome"><a href="team.php?i=10">Budget Roadies</a> &nbsp; <strong>6</strong></td>
      <td class=spacer>&nbsp;</td>
      <td class="basicaway"><strong>8</strong> &nbsp;<a href="team.php?i=24">Sportsball Union</a></td>
      <td class=spacer align=center><a href=game.php?i=2241></a></td>
    </tr>
  </table>
  <table>
    <tr><td colspan=4 class="conference">WEEK 9</td></tr>
    <tr class="playerrow1">
      <td class="basichome"><a href="team.php?i=12">Blood Pit Bouncers</a></td>
      <td class=spacer>&nbsp;</td>
      <td class="basicaway"><a href="team.php?i=24">Sportsball Union</a></td>
      <td class=spacer align=center>&nbsp;</td>
    </tr>
    <tr class="playerrow"><td>bye</td></tr>
  </table>
  <table><tr><td>Standings</td></tr></table>
</body></html>
"""

INDEX_HTML = """
<html><head><title>Brutalball - Season 5</title></head><body>
<ul class="mega-links"><li><a href="team.php?i=24">Sportsball</a></li></ul>
<table align=center>
  <tr><th>Team</th><th>W</th></tr>
  <tr><td class="namecheck"><a href="team.php?i=24">Sportsball Union</a> (3-1-0)</td><td>3</td></tr>
  <tr><td class="namecheck"><a href="team.php?i=10">Budget Roadies</a></td><td>1</td></tr>
  <tr><td class="namecheck"><a href="team.php?i=12">Blood Pit Bouncers</a></td><td>0</td></tr>
  <tr><td class="namecheck"><a href="team.php?i=10">Budget Roadies</a></td><td>1</td></tr>
</table>
</body></html>
"""

INJURY_HTML = """
<html><head><title>Injuries - Season 5</title></head><body><h2>Injury report</h2>
W7 Red Star Pathfinders Grug Mauler DUR 3 Smashed Hand by Vuvu Boys Krak BRU 12 SR Drops from 71 to 68<br>
W8 Vuvu Boys Big Krunk SR 55 DUR 0 Killed by Red Star Pathfinders Grug Mauler BRU 20 BOUNTY COLLECTED<br>
W9 Unknown Side Bob Smith DUR 2 Broken Ribs by Nobody BRU 5 Drops from 60 to 58<br>
Not an event line<br>
W10 Broken line DUR x<br>
</body></html>
"""


def make_roster_page(team, rows=ROSTER_ROWS):
    return ROSTER_TEMPLATE.format(team=team, rows=rows)


class FakeSite:
    """Maps page paths to HTML; unknown paths fail like a 404."""

    def __init__(self, pages):
        self.pages = dict(pages)
        self.requests = []

    def __call__(self, path):
        self.requests.append(path)
        if path not in self.pages:
            raise FetchError(f"GET {path} returned HTTP 404", context={"path": path, "status_code": 404})
        return self.pages[path]


@pytest.fixture
def roster_html():
    return make_roster_page("Red Star Pathfinders")


@pytest.fixture
def roster_page():
    return make_roster_page


@pytest.fixture
def season_html():
    return SEASON_HTML


@pytest.fixture
def index_html():
    return INDEX_HTML


@pytest.fixture
def injury_html():
    return INJURY_HTML


@pytest.fixture
def fake_site():
    return FakeSite


@pytest.fixture
def quick_settings(tmp_path):
    return Settings(
        store_dir=str(tmp_path / "store"),
        out_dir=str(tmp_path / "out"),
        workers=4,
        request_pause_ms=0,
        jitter_ms=0,
    )


@pytest.fixture
def league_teams():
    return TeamDirectory.from_pairs([
        (1, "Red Star Pathfinders"),
        (2, "Vuvu Boys"),
        (10, "Budget Roadies"),
        (12, "Blood Pit Bouncers"),
        (24, "Sportsball Union"),
    ])
