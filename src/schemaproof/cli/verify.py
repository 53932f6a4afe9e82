"""proof verify command - independent check of an evidence bundle."""

from pathlib import Path

import click

from schemaproof.cli.utils import cli_errors, emit_json, load_cli_config, read_document
from schemaproof.evidence.bundle import EvidenceBundle
from schemaproof.verify.object_store import GitObjectStore
from schemaproof.verify.verifier import Verifier


@click.command()
@click.argument("bundle_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--repo",
    "repo_path",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    default=".",
    help="Git repository holding the cited files (default: current directory)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def verify_command(bundle_file: Path, repo_path: Path, as_json: bool) -> None:
    """Verify an evidence bundle's citations, arithmetic and consistency."""
    config = load_cli_config()
    with cli_errors():
        bundle = EvidenceBundle.from_dict(read_document(bundle_file))
        store = GitObjectStore(repo_path.resolve())

    verifier = Verifier(bundle, store, store.workdir, config.verifier)
    report = verifier.verification()
    if as_json:
        emit_json(report.to_dict())
    else:
        click.echo(verifier.render(report))
