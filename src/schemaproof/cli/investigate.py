"""proof investigate command - explain an evidence bundle's scores."""

from pathlib import Path

import click

from schemaproof.cli.utils import (
    cli_errors,
    emit_json,
    load_cli_config,
    read_document,
    weight_source,
)
from schemaproof.config.loader import load_weight_config
from schemaproof.evidence.bundle import EvidenceBundle
from schemaproof.investigate.investigator import Investigator


@click.command()
@click.argument("bundle_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--weights",
    "weights_file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Weight config (JSON or YAML). Default: .schemaproof/weights.json",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def investigate_command(bundle_file: Path, weights_file: Path | None, as_json: bool) -> None:
    """Investigate an evidence bundle element by element."""
    config = load_cli_config()
    with cli_errors():
        bundle = EvidenceBundle.from_dict(read_document(bundle_file))
        weights = load_weight_config(
            weights_file, repo_root=Path.cwd(), fallback=config.weights
        )

    investigator = Investigator(
        bundle,
        weights,
        config=config.investigator,
        weight_source=weight_source(weights_file, config.weights),
    )
    report = investigator.investigation()
    if as_json:
        emit_json(report.to_dict())
    else:
        click.echo(investigator.render(report))
