"""CLI entry point for the Archival Lens workbench.

Provides commands:
  - ingest: Create a project from an image folder or PDF files
  - analyze / transcribe / cluster: Run the Gemini oracle over the pages
  - sync: Re-aggregate the entity reconciliation list
  - status: Show page, cluster and reconciliation counts
  - entities: Review and reconcile extracted names against the vocabulary
  - vocab: Manage the master vocabulary (authority file)
  - clusters: List and edit document clusters
  - export: Write CSV/TSV/JSON/ZIP exports
  - config: Manage configuration (API key)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from archlens import export as exporters
from archlens.clusters import correspondent, pages_for_cluster
from archlens.config import get_api_key, load_config, set_api_key
from archlens.entities.matcher import suggest as suggest_matches
from archlens.entities.models import ReconciliationStatus
from archlens.errors import ArchLensError, UnknownRecordError
from archlens.models import EntityType, PageStatus, Tier
from archlens.project import PageRange, ProjectController

logger = logging.getLogger(__name__)

app = typer.Typer(
    help="Archival Lens - Transcribe, cluster and index archival page scans",
    rich_markup_mode="rich",
)
console = Console()

entities_app = typer.Typer(help="Review and reconcile extracted entity names")
app.add_typer(entities_app, name="entities")

vocab_app = typer.Typer(help="Manage the master vocabulary (authority file)")
app.add_typer(vocab_app, name="vocab")

clusters_app = typer.Typer(help="List and edit document clusters")
app.add_typer(clusters_app, name="clusters")

export_app = typer.Typer(help="Export indexes, tables and project bundles")
app.add_typer(export_app, name="export")

config_app = typer.Typer(help="Manage configuration (API keys, settings)")
app.add_typer(config_app, name="config")

ProjectOption = Annotated[
    Path,
    typer.Option("--project", "-p", help="Project backup file (.json or .zip)"),
]
DEFAULT_PROJECT = Path("project.archlens.json")

_STATUS_STYLES = {
    "pending": "yellow",
    "matched": "green",
    "rejected": "dim",
    "custom": "cyan",
    "analyzed": "blue",
    "done": "green",
    "error": "red",
}


@app.callback()
def app_callback(
    debug: Annotated[
        bool, typer.Option("--debug", help="Write debug log to ~/.archlens/debug.log")
    ] = False,
) -> None:
    """Archival Lens workbench."""
    if debug:
        debug_dir = Path.home() / ".archlens"
        debug_dir.mkdir(exist_ok=True)
        fh = logging.FileHandler(debug_dir / "debug.log")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        pkg_logger = logging.getLogger("archlens")
        pkg_logger.setLevel(logging.DEBUG)
        pkg_logger.addHandler(fh)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@contextmanager
def _cli_errors() -> Iterator[None]:
    """Turn workbench errors into a red message and exit code 1."""
    try:
        yield
    except (ArchLensError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(code=1)


def _load(project_path: Path) -> ProjectController:
    if not project_path.exists():
        console.print(
            f"[yellow]Project not found:[/yellow] {project_path}\n"
            "Run [bold]archlens ingest SOURCE --project FILE[/bold] first."
        )
        raise typer.Exit(code=1)
    with _cli_errors():
        return ProjectController.load(project_path)


def _save(project: ProjectController, project_path: Path) -> None:
    # A .zip project is rewritten as its JSON backup beside it
    if project_path.suffix.lower() == ".zip":
        project_path = project_path.with_suffix(".json")
    project.save(project_path)
    console.print(f"[dim]Saved {project_path}[/dim]")


def _record_id(project: ProjectController, given: str) -> str:
    """Accept a full record id or a unique prefix of one."""
    ids = [r.id for r in project.records]
    if given in ids:
        return given
    candidates = [i for i in ids if i.startswith(given)]
    if len(candidates) == 1:
        return candidates[0]
    if len(candidates) > 1:
        raise ArchLensError(f"Record id prefix {given!r} is ambiguous ({len(candidates)} matches)")
    raise UnknownRecordError(given)


def _styled(value: str) -> str:
    style = _STATUS_STYLES.get(value, "")
    return f"[{style}]{value}[/{style}]" if style else value


def _resync_hint(project: ProjectController) -> None:
    if project.needs_resync:
        console.print("[yellow]Reconciliation list is stale.[/yellow] Run [bold]archlens sync[/bold].")


def _make_pipeline(project: ProjectController, config_path: Path | None):
    from archlens.oracle import GeminiOracleClient, OraclePipeline

    config = load_config(config_path)
    try:
        api_key = get_api_key()
    except RuntimeError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(code=1)
    return OraclePipeline(GeminiOracleClient(api_key=api_key, config=config), config, project.tier)


def _apply_with_progress(project: ProjectController, pages: list, label: str, run) -> None:
    """Run a page batch under a rich progress bar and apply each update."""
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    ) as progress:
        task = progress.add_task(label, total=len(pages))
        updates = asyncio.run(run(pages, lambda _u: progress.advance(task)))

    failed = 0
    for update in updates:
        project.update_page(update.page_id, **update.fields)
        failed += update.failed
    console.print(f"[green]{len(updates) - failed}[/green] succeeded, [red]{failed}[/red] failed")


# ---------------------------------------------------------------------------
# Project lifecycle
# ---------------------------------------------------------------------------


@app.command()
def ingest(
    sources: Annotated[
        list[Path],
        typer.Argument(help="An image folder, or one or more PDF files", exists=True),
    ],
    project_path: ProjectOption = DEFAULT_PROJECT,
    title: Annotated[str | None, typer.Option("--title", help="Project title")] = None,
    tier: Annotated[Tier, typer.Option("--tier", help="Gemini tier (FREE or PAID)")] = Tier.FREE,
    archive_name: Annotated[str, typer.Option("--archive", help="Archive name")] = "",
    start: Annotated[int | None, typer.Option("--start", help="First page (1-based)")] = None,
    end: Annotated[int | None, typer.Option("--end", help="Last page (inclusive)")] = None,
    config_path: Annotated[Path | None, typer.Option("--config", help="Config JSON")] = None,
) -> None:
    """Create a project from an image folder or PDF files."""
    from archlens.ingest import apply_page_range, derive_title, pages_from_folder, pages_from_pdfs

    config = load_config(config_path)
    with _cli_errors():
        if len(sources) == 1 and sources[0].is_dir():
            pages = pages_from_folder(sources[0])
            mode = "folder"
        else:
            not_pdf = [s for s in sources if s.suffix.lower() != ".pdf"]
            if not_pdf:
                raise ValueError(f"Expected a folder or PDF files, got: {', '.join(map(str, not_pdf))}")
            pages = pages_from_pdfs(sources, config.work_dir)
            mode = "pdf"

        page_range = None
        if start is not None or end is not None:
            page_range = PageRange(start=start or 1, end=end or len(pages))
            pages = apply_page_range(pages, page_range.start, page_range.end)

    if not pages:
        console.print("[yellow]No pages found.[/yellow]")
        raise typer.Exit(code=1)

    project = ProjectController.new(
        title or derive_title(sources[0]),
        pages,
        mode=mode,
        tier=tier,
        archive_name=archive_name,
        page_range=page_range,
    )
    console.print(Panel(f"[bold]{project.title}[/bold]\n{len(pages)} page(s), tier {tier.value}", title="New Project"))
    _save(project, project_path)


@app.command()
def analyze(
    project_path: ProjectOption = DEFAULT_PROJECT,
    all_pages: Annotated[bool, typer.Option("--all", help="Re-analyze pages already analyzed")] = False,
    config_path: Annotated[Path | None, typer.Option("--config", help="Config JSON")] = None,
) -> None:
    """Detect language, production mode and Hebrew handwriting per page."""
    project = _load(project_path)
    pages = [
        p for p in project.pages
        if all_pages or p.status in (PageStatus.PENDING, PageStatus.ERROR)
    ]
    if not pages:
        console.print("[dim]Nothing to analyze.[/dim]")
        return
    pipeline = _make_pipeline(project, config_path)
    _apply_with_progress(project, pages, "Analyzing", pipeline.analyze_pages)
    _save(project, project_path)


@app.command()
def transcribe(
    project_path: ProjectOption = DEFAULT_PROJECT,
    all_pages: Annotated[
        bool, typer.Option("--all", help="Transcribe every page, not only flagged ones")
    ] = False,
    translate: Annotated[
        bool, typer.Option("--translate", help="Request an English translation for every page")
    ] = False,
    config_path: Annotated[Path | None, typer.Option("--config", help="Config JSON")] = None,
) -> None:
    """Transcribe (and optionally translate) pages flagged for transcription."""
    project = _load(project_path)
    pages = [p for p in project.pages if all_pages or p.should_transcribe]
    if translate:
        pages = [p.model_copy(update={"should_translate": True}) for p in pages]
    if not pages:
        console.print("[dim]No pages flagged for transcription. Use --all to transcribe everything.[/dim]")
        return
    pipeline = _make_pipeline(project, config_path)
    _apply_with_progress(project, pages, "Transcribing", pipeline.transcribe_pages)
    _save(project, project_path)


@app.command()
def cluster(
    project_path: ProjectOption = DEFAULT_PROJECT,
    config_path: Annotated[Path | None, typer.Option("--config", help="Config JSON")] = None,
) -> None:
    """Group transcribed pages into documents and extract their entities."""
    project = _load(project_path)
    pages = [p for p in project.pages if p.transcription]
    if not pages:
        console.print("[yellow]No transcribed pages to cluster.[/yellow]")
        raise typer.Exit(code=1)

    pipeline = _make_pipeline(project, config_path)
    with _cli_errors(), console.status(f"Clustering {len(pages)} page(s)..."):
        clusters = asyncio.run(pipeline.cluster(pages, project.vocabulary))
    project.replace_clusters(clusters)
    console.print(f"[green]{len(clusters)}[/green] cluster(s)")
    _save(project, project_path)
    _resync_hint(project)


@app.command()
def sync(project_path: ProjectOption = DEFAULT_PROJECT) -> None:
    """Re-aggregate the reconciliation list from pages and clusters."""
    project = _load(project_path)
    before = len(project.records)
    records = project.resync()
    counts = project.store.status_counts()
    console.print(
        f"[bold]{len(records)}[/bold] record(s) ({len(records) - before:+d}): "
        + ", ".join(f"{_styled(s)} {n}" for s, n in counts.items())
    )
    _save(project, project_path)


@app.command()
def status(project_path: ProjectOption = DEFAULT_PROJECT) -> None:
    """Display project statistics: pages, clusters and reconciliation progress."""
    project = _load(project_path)
    stats = project.stats()

    console.print(
        Panel(
            f"Project: [bold]{project.title}[/bold]\n"
            f"Archive: {project.archive_name or '-'}  Tier: {project.tier.value}",
            title="Project Status",
        )
    )

    page_table = Table(title="Pages by Status")
    page_table.add_column("Status", style="bold")
    page_table.add_column("Count", justify="right")
    for s, count in sorted(stats["page_status"].items()):
        page_table.add_row(_styled(s), str(count))
    console.print(page_table)

    record_table = Table(title="Entities by Status")
    record_table.add_column("Status", style="bold")
    record_table.add_column("Count", justify="right")
    for s, count in stats["record_status"].items():
        record_table.add_row(_styled(s), str(count))
    console.print(record_table)

    console.print(f"\n[bold]Pages:[/bold] {stats['pages']}")
    console.print(f"[bold]Clusters:[/bold] {stats['clusters']}")
    console.print(f"[bold]Authorities:[/bold] {stats['authorities']}")
    console.print(f"[bold]Unresolved entities:[/bold] {stats['unresolved']}")
    _resync_hint(project)


# ---------------------------------------------------------------------------
# entities
# ---------------------------------------------------------------------------


@entities_app.command("list")
def entities_list(
    project_path: ProjectOption = DEFAULT_PROJECT,
    status_filter: Annotated[
        ReconciliationStatus | None, typer.Option("--status", help="Filter by status")
    ] = None,
    entity_type: Annotated[EntityType | None, typer.Option("--type", help="Filter by type")] = None,
    search: Annotated[str | None, typer.Option("--search", "-s", help="Name substring")] = None,
    limit: Annotated[int, typer.Option("--limit", help="Maximum rows")] = 50,
) -> None:
    """List reconciliation records."""
    project = _load(project_path)
    records = project.store.find(status=status_filter, entity_type=entity_type, search=search)

    table = Table(title=f"Entities ({len(records)})")
    table.add_column("ID", style="dim")
    table.add_column("Extracted Name", style="bold")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Matched")
    table.add_column("Seen", justify="right")
    for r in records[:limit]:
        matched = f"{r.matched_name} (#{r.matched_id})" if r.matched_id is not None else ""
        table.add_row(r.id[:8], r.extracted_name, r.type.value, _styled(r.status.value), matched, str(len(r.source_appearances)))
    console.print(table)
    if len(records) > limit:
        console.print(f"[dim]... {len(records) - limit} more (use --limit)[/dim]")


@entities_app.command("match")
def entities_match(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    authority_id: Annotated[int, typer.Argument(help="Authority id to link")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Link a record to an authority record."""
    project = _load(project_path)
    with _cli_errors():
        record = project.set_match(_record_id(project, record_id), authority_id)
    console.print(f"[green]Matched[/green] {record.extracted_name} -> {record.matched_name} (#{record.matched_id})")
    _save(project, project_path)


@entities_app.command("unlink")
def entities_unlink(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Return a record to pending, clearing any match."""
    project = _load(project_path)
    with _cli_errors():
        record = project.unlink(_record_id(project, record_id))
    console.print(f"{record.extracted_name}: {_styled(record.status.value)}")
    _save(project, project_path)


@entities_app.command("reject")
def entities_reject(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Mark a record as not an entity."""
    project = _load(project_path)
    with _cli_errors():
        record = project.reject(_record_id(project, record_id))
    console.print(f"{record.extracted_name}: {_styled(record.status.value)}")
    _save(project, project_path)


@entities_app.command("custom")
def entities_custom(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Keep a record as a new entity outside the vocabulary."""
    project = _load(project_path)
    with _cli_errors():
        record = project.promote_to_custom(_record_id(project, record_id))
    console.print(f"{record.extracted_name}: {_styled(record.status.value)} (added {record.added_at})")
    _save(project, project_path)


@entities_app.command("rename")
def entities_rename(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    new_name: Annotated[str, typer.Argument(help="Corrected extracted name")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Correct the extracted name of a record."""
    project = _load(project_path)
    with _cli_errors():
        record = project.rename_extracted(_record_id(project, record_id), new_name)
    console.print(f"Renamed to [bold]{record.extracted_name}[/bold]")
    _save(project, project_path)


@entities_app.command("note")
def entities_note(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    location_id: Annotated[str, typer.Argument(help="Location, e.g. 'Doc #3'")],
    note: Annotated[str, typer.Argument(help="Note text")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Attach a note to one source appearance of a record."""
    project = _load(project_path)
    with _cli_errors():
        record = project.set_appearance_note(_record_id(project, record_id), location_id, note)
    if not record.has_location(location_id):
        console.print(f"[yellow]{record.extracted_name} does not appear at {location_id}; nothing changed.[/yellow]")
        return
    console.print(f"Note set on {record.extracted_name} @ {location_id}")
    _save(project, project_path)


@entities_app.command("promote")
def entities_promote(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    project_path: ProjectOption = DEFAULT_PROJECT,
    life_span: Annotated[str | None, typer.Option("--life-span")] = None,
    affiliation: Annotated[str | None, typer.Option("--affiliation")] = None,
    nationality: Annotated[str | None, typer.Option("--nationality")] = None,
    notes: Annotated[str | None, typer.Option("--notes")] = None,
) -> None:
    """Add the record's name to the master vocabulary and match it there."""
    project = _load(project_path)
    bio = {
        k: v
        for k, v in {
            "life_span": life_span,
            "affiliation": affiliation,
            "nationality": nationality,
            "notes": notes,
        }.items()
        if v is not None
    }
    with _cli_errors():
        record, authority = project.promote_to_authority(_record_id(project, record_id), **bio)
    console.print(f"[green]Added authority #{authority.id}[/green] {authority.name} ({authority.type.value})")
    _save(project, project_path)


@entities_app.command("suggest")
def entities_suggest(
    record_id: Annotated[str, typer.Argument(help="Record id (or unique prefix)")],
    project_path: ProjectOption = DEFAULT_PROJECT,
    limit: Annotated[int, typer.Option("--limit", help="Maximum suggestions")] = 5,
) -> None:
    """Show fuzzy vocabulary candidates for a record's name."""
    project = _load(project_path)
    with _cli_errors():
        record = project.store.get(_record_id(project, record_id))
    candidates = suggest_matches(record.extracted_name, project.vocabulary.by_type(record.type), limit=limit)
    if not candidates:
        console.print(f"[dim]No candidates for {record.extracted_name}[/dim]")
        return
    table = Table(title=f"Candidates for {record.extracted_name}")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Score", justify="right")
    for authority, score in candidates:
        table.add_row(str(authority.id), authority.name, f"{score:.0f}")
    console.print(table)


# ---------------------------------------------------------------------------
# vocab
# ---------------------------------------------------------------------------


@vocab_app.command("list")
def vocab_list(
    project_path: ProjectOption = DEFAULT_PROJECT,
    entity_type: Annotated[EntityType | None, typer.Option("--type", help="Filter by type")] = None,
) -> None:
    """List authority records."""
    project = _load(project_path)
    records = project.vocabulary.by_type(entity_type) if entity_type else project.vocabulary.all_records()
    table = Table(title=f"Master Vocabulary ({len(records)})")
    table.add_column("ID", justify="right")
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Life Span")
    table.add_column("Affiliation")
    for a in records:
        table.add_row(str(a.id), a.name, a.type.value, a.life_span or "", a.affiliation or "")
    console.print(table)


@vocab_app.command("add")
def vocab_add(
    name: Annotated[str, typer.Argument(help="Canonical name")],
    entity_type: Annotated[EntityType, typer.Option("--type", help="Entity type")] = EntityType.PERSON,
    project_path: ProjectOption = DEFAULT_PROJECT,
    life_span: Annotated[str | None, typer.Option("--life-span")] = None,
    affiliation: Annotated[str | None, typer.Option("--affiliation")] = None,
    alt_names: Annotated[list[str] | None, typer.Option("--alt-name", help="Alternative name (repeatable)")] = None,
) -> None:
    """Add an authority record."""
    project = _load(project_path)
    bio = {"life_span": life_span, "affiliation": affiliation, "alt_names": alt_names or []}
    with _cli_errors():
        authority = project.add_authority(name, entity_type, **{k: v for k, v in bio.items() if v})
    console.print(f"[green]Added authority #{authority.id}[/green] {authority.name}")
    _save(project, project_path)
    _resync_hint(project)


@vocab_app.command("rename")
def vocab_rename(
    authority_id: Annotated[int, typer.Argument(help="Authority id")],
    new_name: Annotated[str, typer.Argument(help="New canonical name")],
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Rename an authority record."""
    project = _load(project_path)
    with _cli_errors():
        authority = project.rename_authority(authority_id, new_name)
    console.print(f"#{authority.id} is now [bold]{authority.name}[/bold]")
    _save(project, project_path)


# ---------------------------------------------------------------------------
# clusters
# ---------------------------------------------------------------------------


@clusters_app.command("list")
def clusters_list(project_path: ProjectOption = DEFAULT_PROJECT) -> None:
    """List document clusters."""
    project = _load(project_path)
    pages = project.pages
    table = Table(title=f"Clusters ({len(project.clusters)})")
    table.add_column("ID", justify="right")
    table.add_column("Title", style="bold")
    table.add_column("Pages")
    table.add_column("Date")
    table.add_column("Prison")
    for c in project.clusters:
        members = pages_for_cluster(c, pages)
        table.add_row(str(c.id), c.title, c.page_range or str(len(members)), c.standardized_date or c.original_date or "", c.prison_name or "")
    console.print(table)


@clusters_app.command("edit")
def clusters_edit(
    cluster_id: Annotated[int, typer.Argument(help="Cluster id")],
    project_path: ProjectOption = DEFAULT_PROJECT,
    title: Annotated[str | None, typer.Option("--title")] = None,
    summary: Annotated[str | None, typer.Option("--summary")] = None,
    date: Annotated[str | None, typer.Option("--date", help="Standardized date YYYY-MM-DD")] = None,
    prison: Annotated[str | None, typer.Option("--prison")] = None,
    senders: Annotated[
        list[str] | None, typer.Option("--sender", help="NAME or NAME:ROLE (repeatable, replaces senders)")
    ] = None,
    recipients: Annotated[
        list[str] | None, typer.Option("--recipient", help="NAME or NAME:ROLE (repeatable, replaces recipients)")
    ] = None,
) -> None:
    """Edit one cluster's metadata or correspondents."""
    project = _load(project_path)
    fields: dict = {}
    if title is not None:
        fields["title"] = title
    if summary is not None:
        fields["summary"] = summary
    if date is not None:
        fields["standardized_date"] = date
    if prison is not None:
        fields["prison_name"] = prison
    for key, values in (("senders", senders), ("recipients", recipients)):
        if values is not None:
            parsed = [v.split(":", 1) for v in values]
            fields[key] = [correspondent(p[0].strip(), p[1].strip() if len(p) > 1 else None) for p in parsed]
    if not fields:
        console.print("[yellow]Nothing to change.[/yellow]")
        raise typer.Exit(code=1)

    with _cli_errors():
        updated = project.update_cluster(cluster_id, **fields)
    console.print(f"Updated cluster {updated.id}: [bold]{updated.title}[/bold]")
    _save(project, project_path)
    _resync_hint(project)


# ---------------------------------------------------------------------------
# export
# ---------------------------------------------------------------------------


def _write(out: Path, text: str) -> None:
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {out}")


@export_app.command("index")
def export_index(
    out: Annotated[Path, typer.Argument(help="Output CSV")] = Path("project_index.csv"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Reconciliation list as CSV."""
    _write(out, exporters.project_index_csv(_load(project_path).records))


@export_app.command("authority")
def export_authority(
    out: Annotated[Path, typer.Argument(help="Output CSV")] = Path("authority_file.csv"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Master vocabulary as CSV."""
    _write(out, exporters.authority_csv(_load(project_path).vocabulary))


@export_app.command("pages")
def export_pages(
    out: Annotated[Path, typer.Argument(help="Output TSV")] = Path("pages.tsv"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Page metadata and transcriptions as TSV."""
    _write(out, exporters.pages_tsv(_load(project_path).pages))


@export_app.command("clusters")
def export_clusters(
    out: Annotated[Path, typer.Argument(help="Output TSV")] = Path("clusters.tsv"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Cluster metadata as TSV."""
    _write(out, exporters.clusters_tsv(_load(project_path).clusters))


@export_app.command("json")
def export_json(
    out: Annotated[Path, typer.Argument(help="Output JSON")] = Path("export.json"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Full research export as JSON."""
    _write(out, exporters.full_json(_load(project_path)))


@export_app.command("zip")
def export_zip(
    out: Annotated[Path, typer.Argument(help="Output ZIP")] = Path("project.zip"),
    project_path: ProjectOption = DEFAULT_PROJECT,
) -> None:
    """Project backup plus page images as a ZIP."""
    exporters.project_zip(_load(project_path), out)
    console.print(f"[green]Wrote[/green] {out}")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@config_app.command("set-api-key")
def config_set_api_key(
    key: Annotated[str, typer.Argument(help="Gemini API key to store in system keyring")],
) -> None:
    """Store the Gemini API key in the system keyring (service: archlens-gemini)."""
    if not key.strip():
        console.print("[red]Error:[/red] API key cannot be empty")
        raise typer.Exit(code=1)
    set_api_key(key.strip())
    console.print("[green]✓[/green] API key stored in system keyring (service: archlens-gemini)")


@config_app.command("show")
def config_show(
    config_path: Annotated[Path | None, typer.Option("--config", help="Config JSON")] = None,
) -> None:
    """Show effective configuration and whether an API key is available."""
    config = load_config(config_path)
    table = Table(title="Configuration")
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in vars(config).items():
        table.add_row(name, str(value))
    try:
        key = get_api_key()
        table.add_row("api_key", f"{key[:4]}...{key[-4:]}" if len(key) > 8 else "set")
    except RuntimeError:
        table.add_row("api_key", "[red]not set[/red]")
    console.print(table)
