from __future__ import annotations

import logging
import sys
from typing import List, NoReturn, Optional, Tuple

import typer
from rich import print as rprint
from rich.logging import RichHandler
from rich.table import Table

from .config_io import DEFAULT_FIELD_MAP, dump_field_map, load_field_map
from .grade_core import evaluate_files, grade_exam, similarity_report
from .parse_core import dedupe
from .records import Outcome, Status
from .scoring_defaults import DEFAULTS, apply_overrides
from .stats_core import optical_stats, score_stats, total_stats
from .tools.answer_key_io import dump_answer_key, load_answer_key, load_answer_key_columns
from .tools.optical_io import load_optical
from .tools.report_writer import format_score, write_optical_csv
from .tools.roster_io import read_roster

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="optik-eval: parse optical scanner output, grade against a roster and key, and flag similar answer sheets.",
)


def _fail(what: str, e: Exception) -> NoReturn:
    rprint(f"[red]{what}:[/red] {e}")
    raise typer.Exit(code=2)


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
        force=True,
    )


# ------------------------------ PARSE --------------------------------
@app.command()
def parse(
    optical_txt: str = typer.Argument(..., help="Raw scanner output (fixed-width text)"),
    field_map: Optional[str] = typer.Option(None, "--field-map", "-f", help="Field map (.yaml/.yml or .json); default layout if omitted"),
    out_csv: str = typer.Option("optical.csv", "--out-csv", "-o", help="Output CSV of parsed records"),
    keep_duplicates: bool = typer.Option(False, "--keep-duplicates", help="Do not collapse repeated national IDs"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Text encoding of the scanner file (e.g. cp1254)"),
    roster: Optional[str] = typer.Option(None, "--roster", "-r", help="Roster (.xlsx or .csv) to check scanned IDs against"),
):
    """
    Parse a scanner file into records and print a short summary.
    """
    try:
        raw = load_optical(optical_txt, load_field_map(field_map), encoding=encoding)
    except Exception as e:
        _fail(f"Parsing failed for {optical_txt}", e)

    roster_rows = None
    if roster:
        try:
            roster_rows = read_roster(roster)
        except Exception as e:
            _fail(f"Failed to read roster {roster}", e)

    records = raw if keep_duplicates else dedupe(raw)
    write_optical_csv(records, out_csv, roster=roster_rows)

    st = optical_stats(raw, roster=roster_rows)
    rprint(f"Records: {st.total_records}  unique IDs: {st.unique_ids}  "
           f"repeated IDs dropped: {st.duplicate_count}")
    rprint(f"Absent: {st.absent_count}  answered: {st.attended_count}  "
           f"rooms: {st.room_count}  booklets: {', '.join(st.booklet_types) or '-'}")
    id_line = f"Invalid IDs: {st.invalid_id_count}"
    if st.unregistered_count is not None:
        id_line += f"  not on roster: {st.unregistered_count}"
    rprint(f"[yellow]{id_line}[/yellow]" if st.invalid_id_count or st.unregistered_count else id_line)
    rprint(f"[green]Wrote:[/green] {out_csv}")


# ----------------------------- EVALUATE ------------------------------
@app.command()
def evaluate(
    roster: str = typer.Argument(..., help="Roster / attendance list (.xlsx or .csv)"),
    optical_txt: str = typer.Argument(..., help="Raw scanner output"),
    key: str = typer.Option(..., "--key", "-k", help="Answer key (.json/.yaml or booklet-per-sheet .xlsx)"),
    field_map: Optional[str] = typer.Option(None, "--field-map", "-f", help="Field map (.yaml/.yml or .json)"),
    out_csv: str = typer.Option("results.csv", "--out-csv", "-o", help="Output CSV of per-student results"),
    out_xlsx: Optional[str] = typer.Option(None, "--out-xlsx", help="Optional XLSX with one sheet per room"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Text encoding of the scanner file"),
    points: Optional[float] = typer.Option(None, "--points", help=f"Points per correct answer (default {DEFAULTS.points_per_question})"),
    pass_mark: Optional[float] = typer.Option(None, "--pass-mark", help=f"Minimum passing score (default {DEFAULTS.pass_mark})"),
):
    """
    Match roster, optical records and answer key by national ID and score every student.
    """
    scoring = apply_overrides(points_per_question=points, pass_mark=pass_mark)
    try:
        run = grade_exam(roster, optical_txt, key, out_csv=out_csv, out_xlsx=out_xlsx,
                         field_map_path=field_map, encoding=encoding, scoring=scoring)
    except Exception as e:
        _fail("Evaluation failed", e)

    entered = [r for r in run.results if r.status is Status.ENTERED]
    passed = [r for r in entered if r.outcome is Outcome.PASS]
    rprint(f"Students: {len(run.results)}  scored: {len(entered)}  passed: {len(passed)}")
    rprint(f"[green]Wrote results:[/green] {out_csv}")
    if out_xlsx:
        rprint(f"[green]Wrote workbook:[/green] {out_xlsx}")


# ---------------------------- SIMILARITY -----------------------------
@app.command()
def similarity(
    roster: str = typer.Argument(..., help="Roster / attendance list (.xlsx or .csv)"),
    optical_txt: str = typer.Argument(..., help="Raw scanner output"),
    key: str = typer.Option(..., "--key", "-k", help="Answer key (.json/.yaml or .xlsx)"),
    field_map: Optional[str] = typer.Option(None, "--field-map", "-f", help="Field map (.yaml/.yml or .json)"),
    threshold: float = typer.Option(DEFAULTS.similarity_threshold, "--threshold", "-t", help="Flag pairs at or above this similarity (percent)"),
    out_csv: Optional[str] = typer.Option("similarity.csv", "--out-csv", "-o", help="Output CSV of flagged pairs"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Text encoding of the scanner file"),
):
    """
    Compare answer sheets of students in the same room with the same booklet.
    """
    try:
        run = evaluate_files(roster, optical_txt, key, field_map_path=field_map, encoding=encoding)
        matches = similarity_report(run, threshold_pct=threshold, out_csv=out_csv)
    except Exception as e:
        _fail("Similarity analysis failed", e)

    if not matches:
        rprint(f"[green]No pairs at or above {threshold:.1f}% similarity.[/green]")
    else:
        table = Table(title=f"Pairs at or above {threshold:.1f}% similarity")
        for col in ("Room", "Booklet", "Student A", "Student B", "Similarity", "Shared correct", "Shared wrong"):
            table.add_column(col)
        for m in matches:
            table.add_row(m.room_no, m.booklet_type,
                          f"{m.student_a.full_name} ({m.student_a.national_id})",
                          f"{m.student_b.full_name} ({m.student_b.national_id})",
                          f"%{m.similarity_pct:.1f}", str(m.shared_correct), str(m.shared_wrong))
        rprint(table)
    if out_csv:
        rprint(f"[green]Wrote:[/green] {out_csv}")


# ------------------------------ STATS --------------------------------
@app.command()
def stats(
    roster: str = typer.Argument(..., help="Roster / attendance list (.xlsx or .csv)"),
    optical_txt: str = typer.Argument(..., help="Raw scanner output"),
    key: str = typer.Option(..., "--key", "-k", help="Answer key (.json/.yaml or .xlsx)"),
    field_map: Optional[str] = typer.Option(None, "--field-map", "-f", help="Field map (.yaml/.yml or .json)"),
    encoding: str = typer.Option("utf-8", "--encoding", help="Text encoding of the scanner file"),
):
    """
    Score statistics per document type (students who sat the exam only).
    """
    try:
        run = evaluate_files(roster, optical_txt, key, field_map_path=field_map, encoding=encoding)
    except Exception as e:
        _fail("Evaluation failed", e)

    groups = list(score_stats(run.results).values())
    overall = total_stats(run.results)
    if overall is None:
        rprint("[yellow]No scored students.[/yellow]")
        return

    table = Table(title="Score statistics")
    for col in ("Document type", "Students", "Mean", "Min", "Max", "Passed", "Failed", "Pass rate"):
        table.add_column(col)
    for g in groups + [overall]:
        table.add_row(g.label, str(g.count), format_score(g.mean), format_score(g.minimum),
                      format_score(g.maximum), str(g.passed), str(g.failed), f"%{g.pass_rate:.1f}")
    rprint(table)


# ---------------------------- FIELD-MAP ------------------------------
@app.command("field-map")
def field_map_cmd(
    out_path: str = typer.Argument("field_map.yaml", help="Where to write the default field map (.yaml or .json)"),
):
    """
    Write the default scanner field map as a starting point for editing.
    """
    dump_field_map(DEFAULT_FIELD_MAP, out_path)
    rprint(f"[green]Wrote:[/green] {out_path}")


# ---------------------------- KEY-IMPORT -----------------------------
def _parse_column_mapping(spec: str) -> Tuple[Tuple[str, str], str]:
    # DOC:BOOKLET=COLUMN, e.g. SRC1:A=C
    try:
        left, column = spec.split("=", 1)
        doc, booklet = left.rsplit(":", 1)
    except ValueError:
        raise typer.BadParameter(f"Expected DOC:BOOKLET=COLUMN, got '{spec}'")
    return (doc.strip(), booklet.strip()), column.strip()


@app.command("key-import")
def key_import(
    source: str = typer.Argument(..., help="Answer key workbook (.xlsx) or JSON/YAML key"),
    out_path: str = typer.Option("answer_key.json", "--out", "-o", help="Output key (.json or .yaml)"),
    column: Optional[List[str]] = typer.Option(None, "--column", "-c",
        help="Column mode: DOC:BOOKLET=COLUMN (repeatable), answers read from the first sheet"),
    start_row: int = typer.Option(2, "--start-row", help="Column mode: first data row (1-based)"),
):
    """
    Convert an answer key into the JSON/YAML form used by the other commands.
    """
    try:
        if column:
            mappings = dict(_parse_column_mapping(c) for c in column)
            answer_key = load_answer_key_columns(source, mappings, start_row=start_row)
        else:
            answer_key = load_answer_key(source)
    except typer.BadParameter:
        raise
    except Exception as e:
        _fail(f"Failed to read answer key {source}", e)

    if not answer_key:
        rprint("[red]No answers found; nothing written.[/red]")
        raise typer.Exit(code=2)

    dump_answer_key(answer_key, out_path)
    for booklet, docs in answer_key.items():
        for doc, qmap in docs.items():
            rprint(f"  {booklet} / {doc}: {len(qmap)} question(s)")
    rprint(f"[green]Wrote:[/green] {out_path}")


# ------------------------------- MAIN --------------------------------
def app_main() -> None:
    """Entry point for console_scripts."""
    try:
        app()
    except KeyboardInterrupt:
        rprint("\n[red]Interrupted[/red]")
        sys.exit(130)


if __name__ == "__main__":
    app_main()
