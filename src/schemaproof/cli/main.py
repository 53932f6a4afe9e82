"""SchemaProof CLI - proof command."""

import click

from schemaproof.cli.explain import explain_command
from schemaproof.cli.investigate import investigate_command
from schemaproof.cli.score import score_command
from schemaproof.cli.verify import verify_command
from schemaproof.core.logging import configure_logging, set_run_id


@click.group()
@click.version_option(version="0.1.0", prog_name="proof")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON on stderr")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, json_logs: bool) -> None:
    """SchemaProof - migration risk and schema readiness analyzer."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(json_format=json_logs, level="DEBUG" if verbose else "WARNING")
    ctx.obj["run_id"] = set_run_id()


cli.add_command(explain_command, name="explain")
cli.add_command(score_command, name="score")
cli.add_command(investigate_command, name="investigate")
cli.add_command(verify_command, name="verify")


if __name__ == "__main__":
    cli()
