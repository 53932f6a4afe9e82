"""Tests for the proof CLI."""

import json
from collections.abc import Generator
from pathlib import Path
from typing import Any

import pygit2
import pytest
from click.testing import CliRunner

from schemaproof.cli.main import cli
from schemaproof.evidence.ledger import EvidenceLedger

runner = CliRunner()

MIGRATION_SQL = """
ALTER TABLE users ADD COLUMN bio text;
DROP TABLE sessions;
"""


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from an empty directory with no global config."""
    cwd = tmp_path / "cwd"
    cwd.mkdir()
    monkeypatch.chdir(cwd)
    monkeypatch.setattr(
        "schemaproof.config.loader.GLOBAL_CONFIG_PATH", tmp_path / "absent.yaml"
    )
    return cwd


@pytest.fixture
def temp_git_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Repository with one committed generated file."""
    repo_path = tmp_path / "repo"
    (repo_path / "gen").mkdir(parents=True)
    repo = pygit2.init_repository(str(repo_path))
    repo.config["user.name"] = "Test"
    repo.config["user.email"] = "test@test.com"

    (repo_path / "gen" / "schema.sql").write_text("CREATE TABLE users (id uuid);\n")
    repo.index.add("gen/schema.sql")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test", "test@test.com")
    repo.create_commit("HEAD", sig, sig, "Initial commit", tree, [])

    yield repo


def _write_json(path: Path, data: Any) -> Path:
    path.write_text(json.dumps(data))
    return path


@pytest.fixture
def score_inputs(
    tmp_path: Path, ledger: EvidenceLedger, user_schema_data: dict[str, Any]
) -> tuple[Path, Path]:
    ledger.record("col:User.email", "sql", {"file": "gen/schema.sql", "lines": "3"})
    ledger.record("col:User.email", "test", {"file": "tests/user.test.ts", "lines": "8"})
    schema_file = _write_json(tmp_path / "schema.json", user_schema_data)
    evidence_file = _write_json(tmp_path / "evidence.json", ledger.to_dict())
    return schema_file, evidence_file


class TestMain:
    """Top-level group."""

    def test_version(self) -> None:
        result = runner.invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_help_lists_commands(self) -> None:
        result = runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for name in ("explain", "score", "investigate", "verify"):
            assert name in result.output


class TestExplainCommand:
    """proof explain."""

    def test_given_migration_when_explain_json_then_summary(self, tmp_path: Path) -> None:
        # Given
        sql_file = tmp_path / "migration.sql"
        sql_file.write_text(MIGRATION_SQL)

        # When
        result = runner.invoke(cli, ["explain", str(sql_file), "--json"])

        # Then
        assert result.exit_code == 0
        summary = json.loads(result.stdout)["summary"]
        assert summary["totalOperations"] == 2
        assert summary["overallRiskScore"] == "CRITICAL"
        assert summary["blockingOperations"] >= 1

    def test_given_migration_when_explain_then_markdown(self, tmp_path: Path) -> None:
        sql_file = tmp_path / "migration.sql"
        sql_file.write_text(MIGRATION_SQL)

        result = runner.invoke(cli, ["explain", str(sql_file), "--rows", "5000"])

        assert result.exit_code == 0
        assert result.stdout.startswith("# Migration Impact Analysis")
        assert "## Risk Summary" in result.stdout

    def test_given_empty_script_when_explain_then_error(self, tmp_path: Path) -> None:
        # Given
        sql_file = tmp_path / "empty.sql"
        sql_file.write_text("-- nothing here\n;\n")

        # When
        result = runner.invoke(cli, ["explain", str(sql_file)])

        # Then
        assert result.exit_code == 1
        assert "No SQL statements found" in result.output

    def test_negative_rows_rejected(self, tmp_path: Path) -> None:
        sql_file = tmp_path / "migration.sql"
        sql_file.write_text(MIGRATION_SQL)

        result = runner.invoke(cli, ["explain", str(sql_file), "--rows", "-1"])

        assert result.exit_code == 2


class TestScoreCommand:
    """proof score."""

    def test_given_inputs_when_score_json_then_scores_and_metadata(
        self, score_inputs: tuple[Path, Path]
    ) -> None:
        # When
        result = runner.invoke(cli, ["score", *map(str, score_inputs), "--json"])

        # Then
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert set(data["scores"]) == {"scs", "mri", "tci"}
        assert data["metadata"]["tables"] == 2
        assert data["metadata"]["fields"] == 6
        assert data["metadata"]["citations"] == 2

    def test_given_inputs_when_score_then_text_summary(
        self, score_inputs: tuple[Path, Path]
    ) -> None:
        result = runner.invoke(cli, ["score", *map(str, score_inputs)])

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        assert lines[0] == "Commit: a1b2c3d4e5f60718293a4b5c6d7e8f9012345678"
        assert lines[1].startswith("SCS: ")
        assert any(line.startswith("Verdict: ") for line in lines)

    def test_given_steps_when_score_then_migration_risk_counted(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        # Given
        steps = _write_json(tmp_path / "steps.json", [{"kind": "drop_table", "table": "Post"}])

        # When
        result = runner.invoke(
            cli, ["score", *map(str, score_inputs), "--steps", str(steps), "--json"]
        )

        # Then
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["scores"]["mri"] > 0
        assert data["metadata"]["migrationSteps"] == 1

    def test_given_weights_file_when_score_then_coverage_reweighted(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        # Given - only col:User.email is covered
        weights = _write_json(tmp_path / "weights.json", {"overrides": {"col:User.email": 100}})
        args = ["score", *map(str, score_inputs), "--json"]

        # When
        plain = runner.invoke(cli, args)
        weighted = runner.invoke(cli, [*args, "--weights", str(weights)])

        # Then
        assert plain.exit_code == weighted.exit_code == 0
        before = json.loads(plain.stdout)["scores"]["scs"]
        after = json.loads(weighted.stdout)["scores"]["scs"]
        assert 0 < before < after < 1

    def test_given_schema_without_tables_when_score_then_error(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        # Given
        schema_file = _write_json(tmp_path / "bad.json", {"tables": {}})

        # When
        result = runner.invoke(cli, ["score", str(schema_file), str(score_inputs[1])])

        # Then
        assert result.exit_code == 1
        assert "SCHEMA_NO_TABLES" in result.output

    def test_given_unparseable_file_when_score_then_error(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        broken = tmp_path / "broken.json"
        broken.write_text("{not json")

        result = runner.invoke(cli, ["score", str(score_inputs[0]), str(broken)])

        assert result.exit_code == 1
        assert "Cannot read" in result.output


class TestInvestigateCommand:
    """proof investigate."""

    def _bundle_file(self, tmp_path: Path, score_inputs: tuple[Path, Path]) -> Path:
        result = runner.invoke(cli, ["score", *map(str, score_inputs), "--bundle"])
        assert result.exit_code == 0
        bundle_file = tmp_path / "bundle.json"
        bundle_file.write_text(result.stdout)
        return bundle_file

    def test_given_scored_bundle_when_investigate_then_report(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        # Given
        bundle_file = self._bundle_file(tmp_path, score_inputs)

        # When
        result = runner.invoke(cli, ["investigate", str(bundle_file), "--json"])

        # Then
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["metadata"]["weightSource"] == "defaults"
        assert data["metadata"]["citationCount"] == 2
        assert [row["element"] for row in data["evidence"]] == ["col:User.email"]

    def test_given_weights_file_when_investigate_then_source_reported(
        self, tmp_path: Path, score_inputs: tuple[Path, Path]
    ) -> None:
        # Given
        bundle_file = self._bundle_file(tmp_path, score_inputs)
        weights = _write_json(tmp_path / "weights.json", {"overrides": {"col:User.email": 1}})

        # When
        result = runner.invoke(
            cli, ["investigate", str(bundle_file), "--weights", str(weights)]
        )

        # Then
        assert result.exit_code == 0
        assert result.stdout.startswith("### 🕵️ Evidence Investigation")
        assert "override col:User.email" in result.stdout

    def test_given_bundle_without_evidence_when_investigate_then_error(
        self, tmp_path: Path
    ) -> None:
        bundle_file = _write_json(tmp_path / "bundle.json", {"scores": {}})

        result = runner.invoke(cli, ["investigate", str(bundle_file)])

        assert result.exit_code == 1
        assert "BUNDLE_MALFORMED" in result.output


class TestVerifyCommand:
    """proof verify."""

    def _bundle_for(self, tmp_path: Path, repo: pygit2.Repository) -> Path:
        head = str(repo.head.target)
        ledger = EvidenceLedger(head)
        ledger.record("tbl:users", "sql", {"file": "gen/schema.sql", "lines": "1"})
        ledger.record("tbl:users", "test", {"file": "gen/schema.sql", "lines": "1"})
        return _write_json(
            tmp_path / "bundle.json",
            {
                "commit": head,
                "timestamp": "2024-05-01T12:00:00+00:00",
                "evidence": ledger.to_dict(),
                "scores": {"scores": {"scs": 1.0, "tci": 0.8, "mri": 0.1}},
            },
        )

    def test_given_clean_repo_when_verify_json_then_passed(
        self, tmp_path: Path, temp_git_repo: pygit2.Repository
    ) -> None:
        # Given
        bundle_file = self._bundle_for(tmp_path, temp_git_repo)

        # When
        result = runner.invoke(
            cli, ["verify", str(bundle_file), "--repo", temp_git_repo.workdir, "--json"]
        )

        # Then
        assert result.exit_code == 0
        data = json.loads(result.stdout)
        assert data["citations"]["verified"] == 2
        assert data["math"]["acceptable"] is True
        assert data["opinion"]["verdict"] == "PASSED"

    def test_given_clean_repo_when_verify_then_markdown(
        self, tmp_path: Path, temp_git_repo: pygit2.Repository
    ) -> None:
        bundle_file = self._bundle_for(tmp_path, temp_git_repo)

        result = runner.invoke(cli, ["verify", str(bundle_file), "--repo", temp_git_repo.workdir])

        assert result.exit_code == 0
        assert "**VERIFICATION: PASSED** ✅" in result.stdout

    def test_given_non_repository_when_verify_then_error(
        self, tmp_path: Path, temp_git_repo: pygit2.Repository
    ) -> None:
        # Given
        bundle_file = self._bundle_for(tmp_path, temp_git_repo)
        plain = tmp_path / "plain"
        plain.mkdir()

        # When
        result = runner.invoke(cli, ["verify", str(bundle_file), "--repo", str(plain)])

        # Then
        assert result.exit_code == 1
        assert "Not a git repository" in result.output
