"""proof score command - SCS / MRI / TCI for a schema and its evidence."""

from pathlib import Path

import click

from schemaproof.cli.utils import cli_errors, emit_json, load_cli_config, read_document
from schemaproof.config.loader import load_weight_config
from schemaproof.core.formatting import format_percent
from schemaproof.evidence.ledger import EvidenceLedger
from schemaproof.schema.models import Schema, load_steps
from schemaproof.scoring.engine import ScoringEngine

_input = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.command()
@click.argument("schema_file", type=_input)
@click.argument("evidence_file", type=_input)
@click.option("--steps", "steps_file", type=_input, default=None, help="Migration steps file")
@click.option(
    "--weights",
    "weights_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Weight config (JSON or YAML). Default: .schemaproof/weights.json",
)
@click.option("--json", "as_json", is_flag=True, help="Output scores as JSON")
@click.option(
    "--bundle",
    "as_bundle",
    is_flag=True,
    help="Output an evidence bundle (evidence + scores) for investigate/verify",
)
def score_command(
    schema_file: Path,
    evidence_file: Path,
    steps_file: Path | None,
    weights_file: Path | None,
    as_json: bool,
    as_bundle: bool,
) -> None:
    """Score schema coverage, migration risk and test confidence.

    SCHEMA_FILE is the compiled schema; EVIDENCE_FILE is a serialized ledger.
    """
    config = load_cli_config()
    with cli_errors():
        schema = Schema.from_dict(read_document(schema_file))
        ledger = EvidenceLedger.from_dict(read_document(evidence_file))
        steps = load_steps(read_document(steps_file)) if steps_file else []
        weights = load_weight_config(
            weights_file, repo_root=Path.cwd(), fallback=config.weights
        )

    result = ScoringEngine(ledger, config.scoring, weights).export_scores(schema, steps)

    if as_bundle:
        emit_json(
            {
                "commit": ledger.commit,
                "timestamp": result["timestamp"],
                "evidence": ledger.to_dict(),
                "scores": result,
            }
        )
        return
    if as_json:
        emit_json(result)
        return

    scores = result["scores"]
    readiness = result["readiness"]
    click.echo(f"Commit: {result['commit'] or 'uncommitted'}")
    click.echo(f"SCS: {format_percent(scores['scs'])}")
    click.echo(f"MRI: {format_percent(scores['mri'])}")
    click.echo(f"TCI: {format_percent(scores['tci'])}")
    click.echo(f"Verdict: {readiness['verdict']}")
    for reason in readiness["failures"]:
        click.echo(f"  - {reason}")
