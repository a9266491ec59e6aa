# models.py
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

from .errors import RowArityMismatch, ScrapeError
from .settings import TEAM_COUNT

Record = Tuple[str, ...]

PLAYER_BASE_HEADERS = ("Name", "#", "Race", "Team")
GAME_RESULT_HEADERS = ("S", "W", "Home team", "Home", "Away", "Away team", "Match id")
TEAM_HEADERS = ("Id", "Team")
INJURY_HEADERS = (
    "S", "W", "Victim Team", "Victim", "DUR", "SR0", "SR1",
    "Type", "Offender Team", "Offender", "BRU", "Bounty",
)


class PageKind(str, Enum):
    PLAYERS = "players"
    GAME_RESULTS = "game-results"
    TEAMS = "teams"
    INJURIES = "injuries"

    @classmethod
    def parse(cls, value: "PageKind | str") -> "PageKind":
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower().replace("_", "-")
        for kind in cls:
            if kind.value == key:
                return kind
        raise ValueError(f"Unknown page kind: {value!r}")

    @property
    def fixed_headers(self) -> Tuple[str, ...]:
        """Column layout for kinds whose arity never changes; () for players."""
        return _FIXED_HEADERS.get(self, ())

    @property
    def arity(self) -> Optional[int]:
        return len(self.fixed_headers) or None

    @property
    def team_columns(self) -> Tuple[int, ...]:
        """Columns holding a team name, used for per-team output."""
        return _TEAM_COLUMNS.get(self, ())

    @property
    def optional_column(self) -> Optional[int]:
        """Column that drop_optional_column removes (game results: Match id)."""
        if self is PageKind.GAME_RESULTS:
            return GAME_RESULT_HEADERS.index("Match id")
        return None

    @property
    def per_team(self) -> bool:
        return bool(self.team_columns)


_FIXED_HEADERS = {
    PageKind.GAME_RESULTS: GAME_RESULT_HEADERS,
    PageKind.TEAMS: TEAM_HEADERS,
    PageKind.INJURIES: INJURY_HEADERS,
}

_TEAM_COLUMNS = {
    PageKind.PLAYERS: (3,),
    PageKind.GAME_RESULTS: (2, 5),
    PageKind.INJURIES: (2,),
}


def _check_team_id(team_id: int) -> int:
    team_id = int(team_id)
    if not 0 <= team_id < TEAM_COUNT:
        raise ValueError(f"Team id {team_id} outside 0..{TEAM_COUNT - 1}")
    return team_id


@dataclass(frozen=True)
class Scope:
    """
    Which teams an operation covers. `team_ids is None` means all teams.
    Build with Scope.all(), Scope.team(id) or Scope.subset(ids).
    """

    team_ids: Optional[Tuple[int, ...]] = None

    @classmethod
    def all(cls) -> "Scope":
        return cls(None)

    @classmethod
    def team(cls, team_id: int) -> "Scope":
        return cls((_check_team_id(team_id),))

    @classmethod
    def subset(cls, team_ids: Iterable[int]) -> "Scope":
        ids = tuple(sorted({_check_team_id(i) for i in team_ids}))
        if not ids:
            raise ValueError("Scope.subset() needs at least one team id")
        if len(ids) == TEAM_COUNT:
            return cls.all()
        return cls(ids)

    @property
    def is_all(self) -> bool:
        return self.team_ids is None

    @property
    def is_single(self) -> bool:
        return self.team_ids is not None and len(self.team_ids) == 1

    def ids(self) -> List[int]:
        if self.team_ids is None:
            return list(range(TEAM_COUNT))
        return list(self.team_ids)

    @property
    def key(self) -> str:
        if self.team_ids is None:
            return "all"
        return "-".join(str(i) for i in self.team_ids)

    def __str__(self) -> str:
        return self.key


@dataclass(frozen=True)
class Dataset:
    """
    Immutable extraction result for one (page kind, scope, season).

    Every record must have the dataset arity: the page kind's fixed column
    count, or for players the header count (first record when headerless).
    """

    page_kind: PageKind
    scope: Scope
    season: str = ""
    headers: Tuple[str, ...] = ()
    records: Tuple[Record, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "page_kind", PageKind.parse(self.page_kind))
        object.__setattr__(self, "season", "" if self.season is None else str(self.season))
        object.__setattr__(self, "headers", tuple(str(h) for h in self.headers))
        object.__setattr__(
            self, "records", tuple(tuple(str(v) for v in rec) for rec in self.records)
        )

        fixed = self.page_kind.arity
        if fixed is not None and self.headers and len(self.headers) != fixed:
            raise RowArityMismatch(
                f"{self.page_kind.value} headers have {len(self.headers)} columns, expected {fixed}",
                context={"page_kind": self.page_kind.value},
            )

        expected = self.arity
        for idx, rec in enumerate(self.records):
            if len(rec) != expected:
                raise RowArityMismatch(
                    f"{self.page_kind.value} record {idx} has {len(rec)} fields, expected {expected}",
                    context={"page_kind": self.page_kind.value, "index": idx},
                )

    @property
    def arity(self) -> Optional[int]:
        if self.page_kind.arity is not None:
            return self.page_kind.arity
        if self.headers:
            return len(self.headers)
        if self.records:
            return len(self.records[0])
        return None

    @property
    def key(self) -> Tuple[str, str]:
        return self.page_kind.value, self.scope.key

    def __len__(self) -> int:
        return len(self.records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.records)

    def team_names(self) -> List[str]:
        """Distinct team-column values in document order."""
        seen: Dict[str, None] = {}
        for rec in self.records:
            for col in self.page_kind.team_columns:
                seen.setdefault(rec[col], None)
        return list(seen)

    def with_records(self, records: Sequence[Sequence[str]], **changes) -> "Dataset":
        fields_ = {
            "page_kind": self.page_kind,
            "scope": self.scope,
            "season": self.season,
            "headers": self.headers,
        }
        fields_.update(changes)
        return Dataset(records=tuple(tuple(r) for r in records), **fields_)

    def replace_teams(self, new: "Dataset") -> "Dataset":
        """
        Players merge: drop this dataset's rows for every team present in
        `new`, keep the rest, append `new` rows. Returns a new Dataset that
        takes the newer season and headers.
        """
        if new.page_kind is not self.page_kind:
            raise ScrapeError(
                f"Cannot merge {new.page_kind.value} into {self.page_kind.value}"
            )
        replaced = set(new.team_names())
        cols = self.page_kind.team_columns
        kept = [rec for rec in self.records if not any(rec[c] in replaced for c in cols)]
        width = new.arity
        headers = new.headers
        if not headers and (width is None or len(self.headers) == width):
            headers = self.headers
        if self.page_kind.arity is None and kept and width is not None and len(kept[0]) != width:
            # Site columns changed: only the new rows fit the new headers
            kept = []
        return self.with_records(
            kept + list(new.records),
            season=new.season or self.season,
            headers=headers,
        )


@dataclass(frozen=True)
class ExtractResult:
    """What a page extractor found, before it is bound to a scope."""

    records: Tuple[Record, ...] = ()
    headers: Tuple[str, ...] = ()
    team_name: str = ""
    season: str = ""

    def to_dataset(self, page_kind: PageKind, scope: Scope, season: str = "") -> Dataset:
        return Dataset(
            page_kind=page_kind,
            scope=scope,
            season=self.season or season,
            headers=self.headers,
            records=self.records,
        )


# ===================== TEAMS =====================

@dataclass(frozen=True)
class TeamEntry:
    id: int
    name: str


@dataclass(frozen=True)
class TeamDirectory:
    """Team id -> display name, sorted by id with one entry per id."""

    entries: Tuple[TeamEntry, ...] = ()

    @classmethod
    def from_pairs(cls, pairs: Iterable[Tuple[int, str]]) -> "TeamDirectory":
        by_id: Dict[int, str] = {}
        for team_id, name in pairs:
            by_id.setdefault(int(team_id), str(name))
        return cls(tuple(TeamEntry(i, by_id[i]) for i in sorted(by_id)))

    @classmethod
    def fallback(cls) -> "TeamDirectory":
        return cls.from_pairs((i, f"Team {i}") for i in range(TEAM_COUNT))

    @classmethod
    def from_dataset(cls, dataset: Dataset) -> "TeamDirectory":
        return cls.from_pairs((int(rec[0]), rec[1]) for rec in dataset.records)

    def to_dataset(self, season: str = "") -> Dataset:
        return Dataset(
            page_kind=PageKind.TEAMS,
            scope=Scope.all(),
            season=season,
            headers=TEAM_HEADERS,
            records=tuple((str(e.id), e.name) for e in self.entries),
        )

    def __iter__(self) -> Iterator[TeamEntry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def name_for(self, team_id: int) -> str:
        for entry in self.entries:
            if entry.id == team_id:
                return entry.name
        return f"Team {team_id}"

    def id_for(self, name: str) -> Optional[int]:
        for entry in self.entries:
            if entry.name == name:
                return entry.id
        return None

    def ids(self) -> List[int]:
        return [e.id for e in self.entries]

    def names(self) -> List[str]:
        return [e.name for e in self.entries]


# ===================== RUN OUTCOMES =====================

@dataclass(frozen=True)
class TeamOutcome:
    team_id: int
    ok: bool
    dataset: Optional[Dataset] = None
    error: Optional[str] = None


@dataclass
class ScrapeReport:
    """
    One outcome per requested team. A multi-team run is judged only through
    these per-team entries.
    """

    outcomes: Dict[int, TeamOutcome] = field(default_factory=dict)

    def add(self, outcome: TeamOutcome) -> None:
        self.outcomes[outcome.team_id] = outcome

    def __getitem__(self, team_id: int) -> TeamOutcome:
        return self.outcomes[team_id]

    def __contains__(self, team_id: int) -> bool:
        return team_id in self.outcomes

    def __len__(self) -> int:
        return len(self.outcomes)

    @property
    def succeeded(self) -> List[int]:
        return sorted(i for i, o in self.outcomes.items() if o.ok)

    @property
    def failed(self) -> List[int]:
        return sorted(i for i, o in self.outcomes.items() if not o.ok)

    @property
    def all_ok(self) -> bool:
        return bool(self.outcomes) and not self.failed

    @property
    def any_ok(self) -> bool:
        return bool(self.succeeded)

    def datasets(self) -> List[Dataset]:
        """Datasets of successful teams in ascending team id order."""
        return [
            self.outcomes[i].dataset
            for i in self.succeeded
            if self.outcomes[i].dataset is not None
        ]
