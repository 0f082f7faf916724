"""
DocFlow CLI

Command-line interface for the document decision pipeline. State lives in a
JSON store file, so documents can be added, processed and reviewed across
separate invocations.

Examples:

    # Inspect extraction and risk without storing anything
    docflow analyze invoice.txt --type invoice

    # Add and process a document
    docflow add invoice.pdf --type invoice --process

    # Review queue
    docflow pending
    docflow approve doc_1a2b3c4d5e6f --reviewer u_alice --comments "PO matched"
    docflow reject doc_1a2b3c4d5e6f --reviewer u_alice --reason "Duplicate"

    # Audit trail
    docflow audit-export -o audit.csv

    # Housekeeping
    docflow documents --user u_alice
    docflow delete doc_1a2b3c4d5e6f --user u_alice
    docflow export -o backup.json
    docflow import backup.json
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from . import __version__
from .config import load_config
from .document import DocumentStatus
from .doctypes.registry import get_registry
from .exceptions import DocflowError
from .identity import Actor
from .sources import source_for
from .storage.json_store import JsonFileRecordStore
from .workflow import DocumentWorkflow

DEFAULT_STORE = Path('docflow_store.json')

STATUS_STYLES = {
    DocumentStatus.PENDING: 'white',
    DocumentStatus.PROCESSING: 'cyan',
    DocumentStatus.NEEDS_REVIEW: 'yellow',
    DocumentStatus.APPROVED: 'green',
    DocumentStatus.REJECTED: 'red',
}


class InterceptHandler(logging.Handler):
    """Route standard logging records into loguru."""

    def emit(self, record: logging.LogRecord) -> None:
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(level, record.getMessage())


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None):
    """Configure loguru logging."""
    # Remove default handler
    logger.remove()

    # Console logging
    log_level = "DEBUG" if verbose else "WARNING"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=log_level,
        colorize=True
    )

    # File logging
    if log_file:
        logger.add(
            log_file,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}",
            level="DEBUG",
            rotation="10 MB"
        )

    # Library core logs through the standard logging module
    logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)


def status_text(status: DocumentStatus) -> str:
    style = STATUS_STYLES.get(status, 'white')
    return f"[{style}]{status.value}[/]"


class CliContext:
    """Lazily built workflow shared by the commands of one invocation."""

    def __init__(self, store_path: Path, config_path: Optional[Path], verbose: bool):
        self.store_path = store_path
        self.config_path = config_path
        self.verbose = verbose
        self.console = Console()
        self._workflow: Optional[DocumentWorkflow] = None

    @property
    def workflow(self) -> DocumentWorkflow:
        if self._workflow is None:
            config = load_config(self.config_path)
            store = JsonFileRecordStore(self.store_path, max_audit_entries=config.audit_max_entries)
            self._workflow = DocumentWorkflow(store, config=config)
        return self._workflow

    def fail(self, error: Exception) -> None:
        self.console.print(f"[bold red]Error: {error}[/]")
        if self.verbose:
            logger.exception("Full traceback:")
        raise SystemExit(1)


pass_context = click.make_pass_decorator(CliContext)


def _actor(user_id: Optional[str], ctx: CliContext) -> Optional[Actor]:
    if not user_id:
        return None
    user = ctx.workflow.store.get_user(user_id)
    return Actor(id=user_id, name=(user or {}).get('username') or user_id)


@click.group()
@click.version_option(__version__, prog_name='docflow')
@click.option(
    '--store', '-s',
    'store_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=DEFAULT_STORE,
    envvar='DOCFLOW_STORE',
    show_default=True,
    help='JSON store file'
)
@click.option(
    '--config', '-c',
    'config_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help='YAML configuration merged over the defaults'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.option(
    '--log-file',
    type=click.Path(path_type=Path),
    default=None,
    help='Write logs to file'
)
@click.pass_context
def cli(ctx, store_path: Path, config_path: Optional[Path], verbose: bool, log_file: Optional[Path]):
    """DocFlow - rule-based document review pipeline."""
    setup_logging(verbose=verbose, log_file=log_file)
    ctx.obj = CliContext(store_path, config_path, verbose)


@cli.command('types')
@pass_context
def list_types(ctx: CliContext):
    """List registered document types."""
    table = Table(title="Document Types")
    table.add_column("Name", style="cyan")
    table.add_column("Display Name")
    table.add_column("Fields", justify="right")
    table.add_column("Critical Fields")

    for doc_type in get_registry().get_all():
        table.add_row(
            doc_type.name,
            doc_type.display_name,
            str(len(doc_type.fields)),
            ', '.join(doc_type.critical_fields),
        )
    ctx.console.print(table)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--type', '-t', 'document_type', required=True, help='Document type name')
@click.option('--json', 'as_json', is_flag=True, help='Print the analysis as JSON')
@pass_context
def analyze(ctx: CliContext, file: Path, document_type: str, as_json: bool):
    """Extract fields and score risk without storing the document."""
    try:
        text = source_for(file).produce_text(file)
        analysis = ctx.workflow.analyze(text, document_type)
    except DocflowError as e:
        ctx.fail(e)

    if as_json:
        click.echo(json.dumps(analysis.to_dict(), indent=2))
        return

    table = Table(title=f"Extracted Fields: {file.name}")
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    for name, value in analysis.fields.items():
        table.add_row(name, value)
    ctx.console.print(table)

    risk = analysis.risk
    ctx.console.print(f"\n[bold]Risk score:[/] {analysis.risk_score}/10")
    if risk:
        for tier, points in risk.keyword_points.items():
            matched = ', '.join(risk.matched_keywords.get(tier, [])) or '-'
            ctx.console.print(f"  {tier}: +{points} ({matched})")
        ctx.console.print(f"  amount: +{risk.amount_points}")
        ctx.console.print(f"  sparsity: +{risk.sparsity_points} ({risk.field_count} fields)")

    if analysis.keywords:
        ctx.console.print(f"\n[bold]Keywords:[/] {', '.join(analysis.keywords)}")

    ctx.console.print()
    ctx.console.print(analysis.summary)


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option('--type', '-t', 'document_type', required=True, help='Document type name')
@click.option('--user', '-u', 'user_id', default=None, help='Uploading user id')
@click.option('--process/--no-process', default=False, help='Run the decision pipeline right away')
@pass_context
def add(ctx: CliContext, file: Path, document_type: str, user_id: Optional[str], process: bool):
    """Add a document from a text or PDF file."""
    try:
        actor = _actor(user_id, ctx)
        document = ctx.workflow.ingest(file, document_type, actor=actor)
        ctx.console.print(f"[green]✓ Added {document.id}[/] ({document.name})")

        if process:
            decision = ctx.workflow.process_document(document.id, actor=actor)
            ctx.console.print(f"Decision: {status_text(decision.status)}")
            ctx.console.print(f"Reason: {decision.reason}")
    except DocflowError as e:
        ctx.fail(e)


@cli.command()
@click.argument('document_id')
@click.option('--user', '-u', 'user_id', default=None, help='Acting user id')
@pass_context
def process(ctx: CliContext, document_id: str, user_id: Optional[str]):
    """Run extraction, scoring and rules on a stored document."""
    try:
        decision = ctx.workflow.process_document(document_id, actor=_actor(user_id, ctx))
        document = ctx.workflow.get_document(document_id)
    except DocflowError as e:
        ctx.fail(e)

    ctx.console.print(f"[bold]{document.name}[/] ({document.id})")
    ctx.console.print(f"Risk score: {document.risk_score}/10")
    ctx.console.print(f"Decision: {status_text(decision.status)}")
    ctx.console.print(f"Reason: {decision.reason}")
    if decision.applied_rules:
        ctx.console.print(f"Rules: {', '.join(decision.applied_rules)}")


@cli.command()
@click.argument('document_id')
@click.option('--reviewer', '-r', required=True, help='Reviewer user id')
@click.option('--comments', default='', help='Review comments')
@pass_context
def approve(ctx: CliContext, document_id: str, reviewer: str, comments: str):
    """Approve a document."""
    try:
        result = ctx.workflow.approve_document(document_id, reviewer, comments)
    except DocflowError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ {result['message']}[/]")


@cli.command()
@click.argument('document_id')
@click.option('--reviewer', '-r', required=True, help='Reviewer user id')
@click.option('--reason', required=True, help='Rejection reason')
@pass_context
def reject(ctx: CliContext, document_id: str, reviewer: str, reason: str):
    """Reject a document."""
    try:
        result = ctx.workflow.reject_document(document_id, reviewer, reason)
    except DocflowError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ {result['message']}[/]")


@cli.command()
@click.argument('document_id')
@click.option('--user', '-u', 'user_id', default=None, help='Acting user id')
@pass_context
def delete(ctx: CliContext, document_id: str, user_id: Optional[str]):
    """Delete a document; its audit history is kept."""
    try:
        result = ctx.workflow.delete_document(document_id, actor=_actor(user_id, ctx))
    except DocflowError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ {result['message']}[/]")


@cli.command()
@click.option('--user', '-u', 'user_id', default=None, help='Only documents uploaded by this user')
@pass_context
def documents(ctx: CliContext, user_id: Optional[str]):
    """List stored documents."""
    try:
        if user_id:
            found = ctx.workflow.get_documents_by_user(user_id)
        else:
            found = ctx.workflow.store.list_documents()
    except DocflowError as e:
        ctx.fail(e)

    if not found:
        ctx.console.print("No documents found")
        return

    table = Table(title="Documents")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Status")
    table.add_column("Uploaded By")

    for document in found:
        table.add_row(
            document.id,
            document.name,
            document.type,
            status_text(document.status),
            document.uploaded_by or '-',
        )
    ctx.console.print(table)


@cli.command()
@pass_context
def pending(ctx: CliContext):
    """List documents waiting for review."""
    try:
        documents = ctx.workflow.get_pending_reviews()
    except DocflowError as e:
        ctx.fail(e)

    if not documents:
        ctx.console.print("No documents pending review")
        return

    table = Table(title="Pending Review")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Risk", justify="right")
    table.add_column("Reason")

    for document in documents:
        table.add_row(
            document.id,
            document.name,
            document.type,
            str(document.risk_score),
            document.workflow_reason,
        )
    ctx.console.print(table)


@cli.command()
@pass_context
def stats(ctx: CliContext):
    """Show workflow statistics."""
    try:
        statistics = ctx.workflow.get_statistics()
    except DocflowError as e:
        ctx.fail(e)

    table = Table(title="Workflow Statistics")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    for key, value in statistics.items():
        table.add_row(key.replace('_', ' ').title(), str(value))
    ctx.console.print(table)


@cli.command('audit-export')
@click.option(
    '--output', '-o',
    'output_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='CSV file (stdout if omitted)'
)
@pass_context
def audit_export(ctx: CliContext, output_path: Optional[Path]):
    """Export the audit trail as CSV."""
    try:
        csv_text = ctx.workflow.audit_log.export_to_csv()
    except DocflowError as e:
        ctx.fail(e)

    if output_path is None:
        click.echo(csv_text, nl=False)
        return

    try:
        output_path.write_text(csv_text, encoding='utf-8')
    except OSError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ Audit log written to: {output_path}[/]")


@cli.command('export')
@click.option(
    '--output', '-o',
    'output_path',
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help='JSON file (stdout if omitted)'
)
@pass_context
def export_data(ctx: CliContext, output_path: Optional[Path]):
    """Export users, documents and the audit trail as JSON."""
    try:
        data = ctx.workflow.store.export_data()
    except DocflowError as e:
        ctx.fail(e)

    text = json.dumps(data, indent=2, ensure_ascii=False)
    if output_path is None:
        click.echo(text)
        return

    try:
        output_path.write_text(text, encoding='utf-8')
    except OSError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ Data exported to: {output_path}[/]")


@cli.command('import')
@click.argument('input_path', type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_context
def import_data(ctx: CliContext, input_path: Path):
    """Import a JSON export, replacing the sections it contains."""
    try:
        data = json.loads(input_path.read_text(encoding='utf-8'))
    except (OSError, ValueError) as e:
        ctx.fail(e)

    try:
        counts = ctx.workflow.store.import_data(data)
    except DocflowError as e:
        ctx.fail(e)

    summary = ', '.join(f"{count} {name.replace('_', ' ')}" for name, count in counts.items())
    ctx.console.print(f"[green]✓ Imported {summary or 'nothing'}[/]")


@cli.command('add-user')
@click.argument('user_id')
@click.option('--username', required=True, help='Display name used in the audit trail')
@click.option('--role', default='reviewer', show_default=True, help='User role')
@pass_context
def add_user(ctx: CliContext, user_id: str, username: str, role: str):
    """Register a user so reviews are attributed by name."""
    try:
        ctx.workflow.store.add_user({'id': user_id, 'username': username, 'role': role})
    except DocflowError as e:
        ctx.fail(e)
    ctx.console.print(f"[green]✓ Added user {user_id}[/] ({username})")


def main():
    cli()


if __name__ == '__main__':
    main()
