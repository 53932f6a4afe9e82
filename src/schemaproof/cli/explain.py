"""proof explain command - lock impact of a migration script."""

from pathlib import Path
from typing import Any

import click

from schemaproof.cli.utils import emit_json
from schemaproof.locks.explainer import MigrationExplainer, split_statements


@click.command()
@click.argument("sql_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--rows", type=click.IntRange(min=0), default=None, help="Estimated table rows")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def explain_command(sql_file: Path, rows: int | None, as_json: bool) -> None:
    """Explain the PostgreSQL locks a migration script will take.

    SQL_FILE is split into statements on ';'.
    """
    statements = split_statements(sql_file.read_text(encoding="utf-8"))
    if not statements:
        raise click.ClickException(f"No SQL statements found in {sql_file}")

    metadata: dict[str, Any] = {"source": str(sql_file)}
    if rows is not None:
        metadata["estimatedRows"] = rows

    explainer = MigrationExplainer()
    analysis = explainer.analyze(statements, metadata)
    if as_json:
        emit_json(explainer.to_dict(analysis))
    else:
        click.echo(explainer.render_markdown(analysis))
