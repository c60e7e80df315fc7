"""Tests for the CLI interface."""

from pathlib import Path

import yaml
from click.testing import CliRunner

from recordcloak.cli.main import cli


class TestCLIBasics:
    """Test basic CLI functionality."""

    def test_cli_help(self):
        """Test that CLI help works."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "RecordCloak: deterministic hash masking" in result.output

    def test_cli_version(self):
        """Test that version flag works."""
        runner = CliRunner()
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "RecordCloak" in result.output

    def test_version_command(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["version"])
        assert result.exit_code == 0
        assert "RecordCloak v0.1.0" in result.output

    def test_mask_command_help(self):
        runner = CliRunner()
        result = runner.invoke(cli, ["mask", "--help"])
        assert result.exit_code == 0
        assert "Mask the fields of INPUT_FILE" in result.output


class TestMaskCommand:
    """Test mask command functionality."""

    def test_mask_default_output_path(self, input_file, rules_file):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_file), "--rules", str(rules_file), "--salt", "x"]
        )

        assert result.exit_code == 0, result.output
        output_path = input_file.parent / "accounts_masked.dat"
        assert output_path.read_text(encoding="utf-8").splitlines()[0] == "01AEBCC  |tail"
        assert "✓ Processed 4 lines" in result.output
        assert "Masked: 2" in result.output

    def test_mask_explicit_output(self, tmp_path, input_file, rules_file):
        output_path = tmp_path / "out" / "masked.txt"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            [
                "mask",
                str(input_file),
                "-r",
                str(rules_file),
                "-o",
                str(output_path),
                "--salt",
                "x",
                "--workers",
                "2",
                "--chunk-size",
                "1",
            ],
        )
        assert result.exit_code == 0, result.output
        assert output_path.exists()

    def test_salt_from_environment(self, tmp_path, input_file, rules_file):
        output_path = tmp_path / "masked.dat"
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["mask", str(input_file), "-r", str(rules_file), "-o", str(output_path)],
            env={"RECORDCLOAK_SALT": "x"},
        )
        assert result.exit_code == 0, result.output
        assert output_path.read_text(encoding="utf-8").startswith("01AEBCC  |tail")

    def test_dry_run(self, tmp_path, input_file, rules_file):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_file), "-r", str(rules_file), "--dry-run"]
        )
        assert result.exit_code == 0, result.output
        assert "Dry run: no output written" in result.output
        assert not (tmp_path / "accounts_masked.dat").exists()

    def test_rules_option_required(self, input_file):
        runner = CliRunner()
        result = runner.invoke(cli, ["mask", str(input_file)])
        assert result.exit_code == 2
        assert "--rules" in result.output

    def test_missing_rules_file(self, tmp_path, input_file):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_file), "-r", str(tmp_path / "missing.yaml")]
        )
        assert result.exit_code == 1
        assert "[rules]" in result.output
        assert "Rules file not found" in result.output

    def test_missing_input_file(self, tmp_path, rules_file):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(tmp_path / "missing.dat"), "-r", str(rules_file)]
        )
        assert result.exit_code == 1
        assert "[io]" in result.output

    def test_abort_policy(self, tmp_path, rules_file):
        input_path = tmp_path / "input.dat"
        input_path.write_text("01JohnDoe\n01Jo\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(
            cli,
            ["mask", str(input_path), "-r", str(rules_file), "--on-error", "abort"],
        )
        assert result.exit_code == 1
        assert "Run aborted at line 2" in result.output
        assert not (tmp_path / "input_masked.dat").exists()

    def test_pass_through_reports_failures(self, tmp_path, rules_file):
        input_path = tmp_path / "input.dat"
        input_path.write_text("01JohnDoe\n01Jo\n", encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_path), "-r", str(rules_file), "--dry-run", "-v"]
        )
        assert result.exit_code == 0, result.output
        assert "Failed lines (passed through): 1" in result.output
        assert "line 2:" in result.output

    def test_csv_mode(self, tmp_path):
        input_path = tmp_path / "input.csv"
        input_path.write_text("01,JohnDoe,rest\n", encoding="utf-8")
        rules_path = tmp_path / "rules.yaml"
        rules_path.write_text(
            '"01":\n  - {start: 3, length: 7, truncate: 5, filter: alpha}\n',
            encoding="utf-8",
        )
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_path), "-r", str(rules_path), "--csv", "--salt", "x"]
        )
        assert result.exit_code == 0, result.output
        masked = (tmp_path / "input_masked.csv").read_text(encoding="utf-8")
        assert masked == "01,AEBCC  ,rest\n"

    def test_invalid_algorithm(self, input_file, rules_file):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["mask", str(input_file), "-r", str(rules_file), "-a", "crc32"]
        )
        assert result.exit_code == 2


class TestRulesCommands:
    """Test rules inspection commands."""

    def test_validate(self, rules_file):
        runner = CliRunner()
        result = runner.invoke(cli, ["rules", "validate", str(rules_file)])
        assert result.exit_code == 0, result.output
        assert "2 prefixes, 2 field rules" in result.output
        assert "'01': 1 fields" in result.output

    def test_validate_flags_unreachable_prefix(self, tmp_path):
        rules_path = tmp_path / "rules.yaml"
        rules_path.write_text('"ABC": []\n', encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, ["rules", "validate", str(rules_path)])
        assert result.exit_code == 0
        assert "never matches prefix width" in result.output

    def test_validate_invalid_rules(self, tmp_path):
        rules_path = tmp_path / "rules.yaml"
        rules_path.write_text('"01":\n  - {start: -1, length: 7, truncate: 5}\n', encoding="utf-8")
        runner = CliRunner()
        result = runner.invoke(cli, ["rules", "validate", str(rules_path)])
        assert result.exit_code == 1
        assert "Rules validation failed" in result.output

    def test_show(self, rules_file: Path):
        runner = CliRunner()
        result = runner.invoke(cli, ["rules", "show", str(rules_file)])
        assert result.exit_code == 0, result.output
        document = yaml.safe_load(result.output)
        assert document["name"] == "accounts"
        assert document["rules"]["01"] == [
            {"start": 2, "length": 7, "truncate": 5, "filter": "alpha"}
        ]
