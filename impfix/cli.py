"""Click CLI for impfix."""

import datetime
import logging
import sys
from pathlib import Path

import click

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s — %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)


def _parse_when(value: str | None, param: str) -> datetime.datetime | None:
    if not value:
        return None
    try:
        return datetime.datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected an ISO date or datetime, got {value!r}", param_hint=param)


def _store():
    from impfix.database import init_db
    from impfix.rule_store import get_rule_store
    init_db()
    return get_rule_store()


@click.group()
@click.option("--debug", is_flag=True, help="Log at DEBUG level")
def cli(debug):
    """impfix: radiology impression extraction and fixer rules."""
    from impfix.config import settings
    level = logging.DEBUG if debug else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.getLogger().setLevel(level)


@cli.command()
def init_db():
    """Create the SQLite schema."""
    from impfix.database import init_db
    init_db()
    click.echo("Database initialized successfully.")


@cli.command()
@click.argument("report", type=click.File("r", encoding="utf-8"))
def extract(report):
    """Print the cleaned IMPRESSION section of REPORT (use - for stdin)."""
    from impfix.impression.extractor import extract_impression

    result = extract_impression(report.read())
    if result.empty:
        click.echo("No impression found.", err=True)
        sys.exit(1)
    click.echo(result.text)


@cli.command()
@click.argument("report", type=click.File("r", encoding="utf-8"))
@click.option("--study", "study_description", default="", help="Study description the rules are matched against")
@click.option("--comparison-date", default=None, help="Date of the comparison study (ISO format)")
@click.option("--now", default=None, help="Reference time for comparison age (ISO format, default: now)")
@click.option("--rules-file", type=click.Path(exists=True, dir_okay=False, path_type=Path), default=None,
              help="Use rules from a JSON backup instead of the database")
def process(report, study_description, comparison_date, now, rules_file):
    """Extract the impression from REPORT and apply the fixer rules."""
    from impfix.fixers.pipeline import process_report
    from impfix.fixers.serialization import RuleFormatError, load_rules, record_to_rule
    from impfix.impression.extractor import Report

    comparison = _parse_when(comparison_date, "--comparison-date")
    reference = _parse_when(now, "--now")

    if rules_file:
        try:
            rules = [record_to_rule(r) for r in load_rules(rules_file.read_bytes())]
        except RuleFormatError as e:
            click.echo(f"Could not read {rules_file}: {e}", err=True)
            sys.exit(1)
    else:
        rules = _store().rules()

    result = process_report(
        Report(text=report.read(), study_description=study_description, comparison_date=comparison),
        rules,
        now=reference,
    )
    if result.applied_rule_ids:
        click.echo(f"Applied rules: {', '.join(result.applied_rule_ids)}", err=True)
    if result.empty:
        click.echo("No impression found.", err=True)
        sys.exit(1)
    click.echo(result.text)


@cli.command()
def run_web():
    """Start the FastAPI web interface."""
    import uvicorn
    from impfix.config import settings
    from impfix.database import init_db
    init_db()
    uvicorn.run(
        "impfix.web.app:app",
        host=settings.web_host,
        port=settings.web_port,
        reload=False,
    )


# ----------------------------------------------------------------------
# Rule editing
# ----------------------------------------------------------------------

@cli.group()
def rules():
    """View and edit the configured fixer rules."""


@rules.command("list")
def list_rules():
    """List fixer rules in the order they are applied."""
    from impfix.fixers.serialization import record_to_rule

    records = _store().list_records()
    if not records:
        click.echo("No fixer rules configured.")
        return
    for i, record in enumerate(records, 1):
        rule = record_to_rule(record)
        status = "enabled" if rule.enabled else "disabled"
        comparison = ""
        if rule.require_comparison:
            comparison = f"  comparison<={rule.max_comparison_weeks}w" if rule.max_comparison_weeks else "  comparison"
        click.echo(f"  {i:3d}. {rule.id}  {str(rule):30s}  {rule.criteria.describe():40s}  [{status}]{comparison}")


@rules.command("add")
@click.option("--label", default="New", help="Short name shown in listings")
@click.option("--mode", type=click.Choice(["insert", "replace"]), default="insert")
@click.option("--text", required=True, help="Text inserted into or replacing the impression")
@click.option("--required", default="", help="Comma-separated keywords that must ALL appear")
@click.option("--any-of", default="", help="Comma-separated keywords of which at least ONE must appear")
@click.option("--exclude", default="", help="Comma-separated keywords that must NOT appear")
@click.option("--require-comparison", is_flag=True, help="Only match when the study has a comparison")
@click.option("--max-comparison-weeks", default=0, type=click.IntRange(min=0), help="Max comparison age (0 = no limit)")
@click.option("--disabled", is_flag=True, help="Create the rule disabled")
def add_rule(label, mode, text, required, any_of, exclude, require_comparison, max_comparison_weeks, disabled):
    """Append a new fixer rule."""
    from impfix.fixers.serialization import FixerRuleRecord

    record = _store().add(FixerRuleRecord(
        enabled=not disabled,
        label=label,
        mode=mode,
        text=text,
        require_comparison=require_comparison,
        max_comparison_weeks=max_comparison_weeks,
        criteria_required=required,
        criteria_any_of=any_of,
        criteria_exclude=exclude,
    ))
    click.echo(f"Added rule {record.id}.")


@rules.command("remove")
@click.argument("rule_id")
def remove_rule(rule_id):
    """Delete a fixer rule."""
    from impfix.rule_store import RuleNotFoundError

    try:
        _store().delete(rule_id)
    except RuleNotFoundError:
        click.echo(f"No fixer rule '{rule_id}'", err=True)
        sys.exit(1)
    click.echo(f"Removed rule {rule_id}.")


@rules.command("move")
@click.argument("rule_id")
@click.argument("offset", type=int)
def move_rule(rule_id, offset):
    """Move a rule OFFSET places (negative moves it earlier)."""
    from impfix.rule_store import RuleNotFoundError

    try:
        index = _store().move(rule_id, offset)
    except RuleNotFoundError:
        click.echo(f"No fixer rule '{rule_id}'", err=True)
        sys.exit(1)
    click.echo(f"Rule {rule_id} is now #{index + 1}.")


@rules.command("toggle")
@click.argument("rule_id")
def toggle_rule(rule_id):
    """Enable or disable a fixer rule."""
    from impfix.rule_store import RuleNotFoundError

    try:
        enabled = _store().toggle(rule_id)
    except RuleNotFoundError:
        click.echo(f"No fixer rule '{rule_id}'", err=True)
        sys.exit(1)
    click.echo(f"Rule {rule_id} {'enabled' if enabled else 'disabled'}.")


@rules.command("clone")
@click.argument("rule_id")
def clone_rule(rule_id):
    """Copy a fixer rule to the end of the list."""
    from impfix.rule_store import RuleNotFoundError

    try:
        record = _store().clone(rule_id)
    except RuleNotFoundError:
        click.echo(f"No fixer rule '{rule_id}'", err=True)
        sys.exit(1)
    click.echo(f"Cloned rule {rule_id} as {record.id}.")


@rules.command("backup")
@click.argument("path", type=click.Path(dir_okay=False, writable=True, path_type=Path))
def backup_rules(path):
    """Write all fixer rules to a JSON file."""
    store = _store()
    count = len(store.list_records())
    if count == 0:
        click.echo("No entries to backup.", err=True)
        sys.exit(1)
    path.write_text(store.backup(), encoding="utf-8")
    click.echo(f"Backed up {count} rule(s) to {path}")


@rules.command("restore")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def restore_rules(path):
    """Append the fixer rules from a JSON backup (each gets a new id)."""
    from impfix.fixers.serialization import RuleFormatError

    try:
        added = _store().restore(path.read_bytes())
    except RuleFormatError as e:
        click.echo(f"Failed to read backup file: {e}", err=True)
        sys.exit(1)
    if not added:
        click.echo("No entries found in the backup file.", err=True)
        sys.exit(1)
    click.echo(f"Imported {len(added)} rule(s).")


if __name__ == "__main__":
    cli()
