"""tripguard CLI -- itinerary segment validation.

Provides commands for checking candidate segments, auditing whole
itineraries, time-of-day review, and managing stored itineraries and their
segments.
"""

import logging
import sys
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from pydantic import ValidationError

from tripguard.models import Itinerary

# ---------------------------------------------------------------------------
# App and sub-apps
# ---------------------------------------------------------------------------

app = typer.Typer(
    name="tripguard",
    help="Travel itinerary guard -- validate, deduplicate, and store trip segments.",
    no_args_is_help=True,
)

itinerary_app = typer.Typer(
    name="itinerary",
    help="Manage stored itineraries.",
    no_args_is_help=True,
)

segment_app = typer.Typer(
    name="segment",
    help="Add, update, and delete segments on stored itineraries.",
    no_args_is_help=True,
)

app.add_typer(itinerary_app, name="itinerary")
app.add_typer(segment_app, name="segment")


# ---------------------------------------------------------------------------
# Global option types
# ---------------------------------------------------------------------------

JsonFlag = Annotated[bool, typer.Option("--json", help="Output as JSON.")]
PlainFlag = Annotated[bool, typer.Option("--plain", help="Output as plain text (no color).")]
VerboseFlag = Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output.")]
QuietFlag = Annotated[bool, typer.Option("--quiet", "-q", help="Suppress non-essential output.")]
ConfigOpt = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Rule engine config YAML."),
]
DataDirOpt = Annotated[
    Optional[Path],
    typer.Option(
        "--data-dir",
        envvar="TRIPGUARD_DATA_DIR",
        help="Itinerary storage directory (default ~/.tripguard/itineraries).",
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_format(json_flag: bool = False, plain_flag: bool = False) -> str:
    """Determine output format: json > plain > TTY auto-detect > rich."""
    if json_flag:
        return "json"
    if plain_flag:
        return "plain"
    # Auto-detect: use rich if stdout is a TTY, plain otherwise
    if sys.stdout.isatty():
        return "rich"
    return "plain"


def _setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging based on verbosity flags."""
    if quiet:
        logging.basicConfig(level=logging.ERROR)
    elif verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)


def _load_mapping(file: str) -> dict[str, Any]:
    """Read a YAML file that must contain a mapping.

    Raises typer.BadParameter with a readable message for a missing file,
    a YAML syntax error (with line/column), or a non-mapping document.
    """
    path = Path(file)

    if not path.exists():
        hint = ""
        if not path.is_absolute():
            hint = f" (looked in {Path.cwd()})"
        raise typer.BadParameter(
            f"File not found: {file}{hint}\n  Hint: Check the file path and try again."
        )

    try:
        with open(path) as f:
            raw = yaml.safe_load(f)
    except yaml.YAMLError as exc:
        msg = f"YAML parse error in {file}"
        if hasattr(exc, "problem_mark") and exc.problem_mark is not None:
            mark = exc.problem_mark
            msg += f" at line {mark.line + 1}, column {mark.column + 1}"
        if hasattr(exc, "problem") and exc.problem:
            msg += f": {exc.problem}"
        raise typer.BadParameter(msg)

    if not isinstance(raw, dict):
        raise typer.BadParameter(
            f"Expected a YAML mapping (dict) in {file}, got {type(raw).__name__}"
        )
    return raw


def _validation_message(file: str, exc: ValidationError) -> str:
    lines = [f"Validation errors in {file}:"]
    for err in exc.errors():
        loc = " -> ".join(str(x) for x in err["loc"])
        lines.append(f"  {loc}: {err['msg']}")
    return "\n".join(lines)


def _load_itinerary(file: str) -> Itinerary:
    """Load a YAML file and parse it into an Itinerary model."""
    raw = _load_mapping(file)
    try:
        return Itinerary(**raw)
    except ValidationError as exc:
        raise typer.BadParameter(_validation_message(file, exc))


def _load_segment(file: str):
    """Load a YAML file holding a single segment."""
    from tripguard.models import parse_segment

    raw = _load_mapping(file)
    try:
        return parse_segment(raw)
    except ValidationError as exc:
        raise typer.BadParameter(_validation_message(file, exc))


def _build_engine(config: Optional[Path]):
    from tripguard.engine import RuleEngine, load_engine_config

    if config is None:
        return RuleEngine()
    if not config.exists():
        raise typer.BadParameter(f"Config file not found: {config}")
    try:
        return RuleEngine(load_engine_config(config))
    except (yaml.YAMLError, ValidationError, TypeError) as exc:
        raise typer.BadParameter(f"Invalid rule config {config}: {exc}")


def _build_service(data_dir: Optional[Path], config: Optional[Path]):
    from tripguard.service import SegmentService
    from tripguard.storage import JsonItineraryStorage

    return SegmentService(JsonItineraryStorage(data_dir), engine=_build_engine(config))


def _emit_mutation(result, json: bool, plain: bool) -> None:
    from tripguard.output import get_formatter

    fmt = get_formatter(_get_format(json, plain))
    typer.echo(fmt.format_mutation(result))
    if not result.accepted:
        raise typer.Exit(code=1)


def _error_panel(message: str) -> None:
    """Print an error message, using Rich panel if available."""
    try:
        from rich.console import Console
        from rich.panel import Panel

        console = Console(stderr=True)
        console.print(Panel(message, title="Error", border_style="red"))
    except Exception:
        typer.echo(f"Error: {message}", err=True)


# ---------------------------------------------------------------------------
# Core commands (work directly on YAML files)
# ---------------------------------------------------------------------------


@app.command()
def check(
    file: str = typer.Argument(help="Path to itinerary YAML file"),
    segment_file: str = typer.Argument(help="Path to candidate segment YAML file"),
    config: ConfigOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Dry-run adding a segment to an itinerary: duplicates, rules, and timing."""
    _setup_logging(verbose, quiet)
    try:
        itinerary = _load_itinerary(file)
        candidate = _load_segment(segment_file)
        from tripguard.service import SegmentService
        from tripguard.storage import InMemoryItineraryStorage

        service = SegmentService(InMemoryItineraryStorage([itinerary]), engine=_build_engine(config))
        result = service.add(itinerary.id, candidate)
        _emit_mutation(result, json, plain)
    except typer.Exit:
        raise
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command()
def audit(
    file: str = typer.Argument(help="Path to itinerary YAML file"),
    config: ConfigOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Re-check every segment of an itinerary against the rules."""
    _setup_logging(verbose, quiet)
    try:
        itinerary = _load_itinerary(file)
        from tripguard.output import get_formatter

        engine = _build_engine(config)
        results = engine.validate_all(itinerary)
        fmt = get_formatter(_get_format(json, plain))
        typer.echo(fmt.format_audit(itinerary, results))

        if not all(r.valid for r in results.values()):
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command()
def show(
    file: str = typer.Argument(help="Path to itinerary YAML file"),
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Show an itinerary's segments in start-time order."""
    _setup_logging(verbose, quiet)
    try:
        itinerary = _load_itinerary(file)
        from tripguard.output import get_formatter

        fmt = get_formatter(_get_format(json, plain))
        typer.echo(fmt.format_itinerary(itinerary))
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command()
def times(
    file: str = typer.Argument(help="Path to itinerary YAML file"),
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Flag segments scheduled at implausible times of day."""
    _setup_logging(verbose, quiet)
    try:
        itinerary = _load_itinerary(file)
        from tripguard.output import get_formatter
        from tripguard.timecheck import validate_itinerary_times

        issues = validate_itinerary_times(itinerary.sorted_segments())
        fmt = get_formatter(_get_format(json, plain))
        typer.echo(fmt.format_time_issues(issues))
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@app.command()
def rules(
    config: ConfigOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
) -> None:
    """List the validation rules and whether each is active."""
    from tripguard.output import get_formatter

    engine = _build_engine(config)
    active = {r.rule_id for r in engine.rules if engine.is_active(r)}
    fmt = get_formatter(_get_format(json, plain))
    typer.echo(fmt.format_rules(engine.rules, active))


# ---------------------------------------------------------------------------
# Itinerary commands (stored itineraries)
# ---------------------------------------------------------------------------


@itinerary_app.command(name="import")
def itinerary_import(
    file: str = typer.Argument(help="Path to itinerary YAML file"),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing itinerary."),
    data_dir: DataDirOpt = None,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Store an itinerary from YAML so segments can be managed by id."""
    _setup_logging(verbose, quiet)
    from tripguard.storage import JsonItineraryStorage, StorageError

    itinerary = _load_itinerary(file)
    storage = JsonItineraryStorage(data_dir)
    try:
        if storage.exists(itinerary.id) and not force:
            _error_panel(f"Itinerary {itinerary.id} already exists. Use --force to overwrite.")
            raise typer.Exit(code=1)
        storage.save(itinerary)
    except StorageError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)

    if not quiet:
        typer.echo(f"Imported itinerary {itinerary.id} ({len(itinerary.segments)} segments)")


@itinerary_app.command(name="list")
def itinerary_list(
    data_dir: DataDirOpt = None,
    json: JsonFlag = False,
) -> None:
    """List stored itinerary ids."""
    import json as jsonlib

    from tripguard.storage import JsonItineraryStorage

    ids = JsonItineraryStorage(data_dir).list_ids()
    if json:
        typer.echo(jsonlib.dumps({"type": "itinerary_ids", "ids": ids}, indent=2))
        return
    if not ids:
        typer.echo("No stored itineraries.")
        return
    for itinerary_id in ids:
        typer.echo(itinerary_id)


@itinerary_app.command(name="show")
def itinerary_show(
    itinerary_id: str = typer.Argument(help="Stored itinerary id"),
    data_dir: DataDirOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
) -> None:
    """Show a stored itinerary."""
    from tripguard.output import get_formatter
    from tripguard.storage import JsonItineraryStorage, StorageError

    try:
        itinerary = JsonItineraryStorage(data_dir).load(itinerary_id)
    except StorageError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=1)

    fmt = get_formatter(_get_format(json, plain))
    typer.echo(fmt.format_itinerary(itinerary))


# ---------------------------------------------------------------------------
# Segment commands (stored itineraries)
# ---------------------------------------------------------------------------


@segment_app.command(name="add")
def segment_add(
    itinerary_id: str = typer.Argument(help="Stored itinerary id"),
    segment_file: str = typer.Argument(help="Path to segment YAML file"),
    data_dir: DataDirOpt = None,
    config: ConfigOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Add a segment to a stored itinerary."""
    _setup_logging(verbose, quiet)
    try:
        raw = _load_mapping(segment_file)
        service = _build_service(data_dir, config)
        _emit_mutation(service.add(itinerary_id, raw), json, plain)
    except typer.Exit:
        raise
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@segment_app.command(name="update")
def segment_update(
    itinerary_id: str = typer.Argument(help="Stored itinerary id"),
    segment_id: str = typer.Argument(help="Segment id to update"),
    patch_file: str = typer.Argument(help="YAML file with the fields to change"),
    data_dir: DataDirOpt = None,
    config: ConfigOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Apply a partial update to a segment on a stored itinerary."""
    _setup_logging(verbose, quiet)
    try:
        patch = _load_mapping(patch_file)
        service = _build_service(data_dir, config)
        _emit_mutation(service.update(itinerary_id, segment_id, patch), json, plain)
    except typer.Exit:
        raise
    except typer.BadParameter:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@segment_app.command(name="delete")
def segment_delete(
    itinerary_id: str = typer.Argument(help="Stored itinerary id"),
    segment_id: str = typer.Argument(help="Segment id to delete"),
    data_dir: DataDirOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
    verbose: VerboseFlag = False,
    quiet: QuietFlag = False,
) -> None:
    """Delete a segment from a stored itinerary."""
    _setup_logging(verbose, quiet)
    try:
        service = _build_service(data_dir, None)
        _emit_mutation(service.delete(itinerary_id, segment_id), json, plain)
    except typer.Exit:
        raise
    except Exception as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=2)


@segment_app.command(name="list")
def segment_list(
    itinerary_id: str = typer.Argument(help="Stored itinerary id"),
    data_dir: DataDirOpt = None,
    json: JsonFlag = False,
    plain: PlainFlag = False,
) -> None:
    """List a stored itinerary's segments with their ids."""
    import json as jsonlib

    from tripguard.storage import JsonItineraryStorage, StorageError

    try:
        itinerary = JsonItineraryStorage(data_dir).load(itinerary_id)
    except StorageError as exc:
        _error_panel(str(exc))
        raise typer.Exit(code=1)

    segments = itinerary.sorted_segments()
    if json:
        data = {
            "type": "segments",
            "itinerary_id": itinerary.id,
            "segments": [
                {
                    "id": s.id,
                    "type": s.type,
                    "label": s.label,
                    "start": s.start_datetime.isoformat(),
                    "end": s.end_datetime.isoformat(),
                }
                for s in segments
            ],
        }
        typer.echo(jsonlib.dumps(data, indent=2))
        return
    for s in segments:
        typer.echo(f"{s.id}  {s.start_datetime:%Y-%m-%d %H:%M}  {s.type:<9} {s.label}")
