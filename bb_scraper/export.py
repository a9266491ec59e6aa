# export.py
from __future__ import annotations

import csv
import io
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import WriteError
from .logging_utils import get_logger
from .models import Dataset, PageKind, Record, TeamDirectory
from .roster import strip_number_hash
from .settings import DEFAULT_FILE, OUT_DIR
from .utils import sanitize_team_filename

logger = get_logger(__name__)


class ExportFormat(str, Enum):
    CSV = "csv"
    TSV = "tsv"

    @property
    def delimiter(self) -> str:
        return "," if self is ExportFormat.CSV else "\t"

    @property
    def extension(self) -> str:
        return self.value


@dataclass(frozen=True)
class ExportOptions:
    include_header: bool = False
    strip_number_hash: bool = False
    drop_optional_column: bool = False
    per_team_output: bool = False


# ===================== TRANSFORMS =====================

def apply_options(dataset: Dataset, options: ExportOptions) -> Tuple[Tuple[str, ...], List[Record]]:
    """
    Header and rows as they will be written. The dataset itself is untouched.
    """
    headers = dataset.headers
    rows: List[Record] = list(dataset.records)

    if options.strip_number_hash and dataset.page_kind is PageKind.PLAYERS:
        rows = [rec[:1] + (strip_number_hash(rec[1]),) + rec[2:] for rec in rows]

    drop = dataset.page_kind.optional_column if options.drop_optional_column else None
    if drop is not None:
        rows = [rec[:drop] + rec[drop + 1:] for rec in rows]
        if headers:
            headers = headers[:drop] + headers[drop + 1:]

    return headers, rows


def group_by_team(dataset: Dataset, rows: Sequence[Record]) -> Dict[str, List[Record]]:
    """
    Rows per team name in first-appearance order. A game result lands in both
    its home and away team's group.
    """
    groups: Dict[str, List[Record]] = {}
    for rec in rows:
        names = []
        for col in dataset.page_kind.team_columns:
            if rec[col] and rec[col] not in names:
                names.append(rec[col])
        for name in names:
            groups.setdefault(name, []).append(rec)
    return groups


# ===================== RENDERING =====================

def render_rows(
    headers: Sequence[str],
    rows: Sequence[Sequence[str]],
    fmt: ExportFormat,
    include_header: bool = False,
) -> str:
    """
    CSV quotes a field only when it holds a comma, a quote or a line break
    (quotes doubled). TSV is a plain tab join. Every line ends with '\\n'.
    """
    lines = [headers] if include_header and headers else []
    lines.extend(rows)

    if fmt is ExportFormat.TSV:
        return "".join("\t".join(row) + "\n" for row in lines)

    buf = io.StringIO()
    writer = csv.writer(buf, delimiter=",", quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerows(lines)
    return buf.getvalue()


def render(dataset: Dataset, fmt: ExportFormat = ExportFormat.CSV, options: Optional[ExportOptions] = None) -> str:
    options = options or ExportOptions()
    headers, rows = apply_options(dataset, options)
    return render_rows(headers, rows, ExportFormat(fmt), options.include_header)


# ===================== FILES =====================

def default_destination(out_dir: str, page_kind: PageKind, fmt: ExportFormat, per_team: bool) -> Path:
    """out/<page>/all.<ext>, or the out/<page>/ directory for per-team output."""
    base = Path(out_dir) / page_kind.value
    if per_team:
        return base
    return base / f"{DEFAULT_FILE}.{fmt.extension}"


def resolve_team_filename(directory: Path, stem: str, seen: Dict[str, int], ext: str) -> Path:
    """
    '<stem>.<ext>' the first time a stem is used in this run,
    then '<stem> (2).<ext>', '<stem> (3).<ext>' ...
    """
    count = seen.get(stem, 0)
    seen[stem] = count + 1
    if count == 0:
        return directory / f"{stem}.{ext}"
    return directory / f"{stem} ({count + 1}).{ext}"


def _write_text(path: Path, text: str) -> None:
    try:
        parent = path.parent
        if str(parent) and not parent.exists():
            os.makedirs(parent, exist_ok=True)
        with open(path, "w", newline="", encoding="utf-8") as f:
            f.write(text)
    except OSError as e:
        raise WriteError(f"Could not write {path}: {e}", context={"path": str(path)}) from e


def _ensure_directory(directory: Path) -> None:
    if directory.exists() and not directory.is_dir():
        raise WriteError(f"Path exists but is not a directory: {directory}", context={"path": str(directory)})
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise WriteError(f"Could not create {directory}: {e}", context={"path": str(directory)}) from e


def write(
    dataset: Dataset,
    fmt: ExportFormat = ExportFormat.CSV,
    options: Optional[ExportOptions] = None,
    destination: Path | str | None = None,
    teams: Optional[TeamDirectory] = None,
) -> List[Path]:
    """
    Write `dataset` and return the files created.

    Single-file output goes to `destination` (a directory gets 'all.<ext>'
    inside it). With per_team_output, `destination` is a directory and each
    team gets '<Team_Name>.<ext>'. Page kinds without a team column fall back
    to single-file output.
    """
    options = options or ExportOptions()
    fmt = ExportFormat(fmt)
    per_team = options.per_team_output
    if per_team and not dataset.page_kind.per_team:
        logger.warning("Per-team output does not apply to %s; writing one file", dataset.page_kind.value)
        per_team = False

    if destination is None:
        destination = default_destination(OUT_DIR, dataset.page_kind, fmt, per_team)
    destination = Path(destination)
    headers, rows = apply_options(dataset, options)

    if not per_team:
        path = destination
        if path.is_dir():
            path = path / f"{DEFAULT_FILE}.{fmt.extension}"
        _write_text(path, render_rows(headers, rows, fmt, options.include_header))
        logger.info("Wrote %d %s rows to: %s", len(rows), dataset.page_kind.value, path)
        return [path]

    _ensure_directory(destination)
    seen: Dict[str, int] = {}
    written: List[Path] = []
    for team_name, team_rows in group_by_team(dataset, rows).items():
        team_id = teams.id_for(team_name) if teams is not None else None
        stem = sanitize_team_filename(team_name, team_id or 0)
        path = resolve_team_filename(destination, stem, seen, fmt.extension)
        _write_text(path, render_rows(headers, team_rows, fmt, options.include_header))
        written.append(path)

    logger.info("Wrote %d per-team %s files to: %s", len(written), dataset.page_kind.value, destination)
    return written
