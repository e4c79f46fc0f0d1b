from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from paramdup import cli


def _invoke(runner: CliRunner, args: list[str]):
    return runner.invoke(cli.app, args)


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_cli_help_lists_commands() -> None:
    result = _invoke(CliRunner(), ["--help"])
    assert result.exit_code == 0
    for command_name in ("rewrite", "rewrite-tree", "suggest"):
        assert command_name in result.output


def test_rewrite_writes_output_file(
    tmp_path: Path, sample_input_path: Path, sample_output_path: Path
) -> None:
    out_path = tmp_path / "out.py"
    result = _invoke(CliRunner(), ["rewrite", str(sample_input_path), str(out_path)])
    assert result.exit_code == 0, result.output
    assert out_path.read_text(encoding="utf-8") == sample_output_path.read_text(
        encoding="utf-8"
    )
    assert (
        "Duplicated parameter 'number' as 'alternativeNumber' in function 'square'"
        in result.output
    )
    assert "Found and processed 8 function(s) with single parameters." in result.output
    assert "Successfully processed" in result.output


def test_rewrite_to_stdout(tmp_path: Path) -> None:
    source = _write(tmp_path / "mod.py", "def square(number):\n    return number\n")
    result = _invoke(CliRunner(), ["rewrite", str(source), "-"])
    assert result.exit_code == 0, result.output
    assert "def square(number, alternativeNumber):" in result.stdout
    assert source.read_text(encoding="utf-8") == "def square(number):\n    return number\n"


def test_rewrite_missing_input(tmp_path: Path) -> None:
    missing = tmp_path / "missing.py"
    result = _invoke(CliRunner(), ["rewrite", str(missing), str(tmp_path / "out.py")])
    assert result.exit_code == 2
    assert f"Error: Input file '{missing}' not found." in result.output
    assert not (tmp_path / "out.py").exists()


def test_rewrite_parse_error(tmp_path: Path) -> None:
    source = _write(tmp_path / "bad.py", "def broken(\n")
    out_path = tmp_path / "out.py"
    result = _invoke(CliRunner(), ["rewrite", str(source), str(out_path)])
    assert result.exit_code == 1
    assert "Error processing file:" in result.output
    assert not out_path.exists()


def test_rewrite_dry_run_writes_nothing(tmp_path: Path) -> None:
    source = _write(tmp_path / "mod.py", "def square(number):\n    return number\n")
    out_path = tmp_path / "out.py"
    result = _invoke(
        CliRunner(), ["rewrite", str(source), str(out_path), "--dry-run"]
    )
    assert result.exit_code == 0, result.output
    assert "Found and processed 1 function(s) with single parameters." in result.output
    assert "Dry run; no output written." in result.output
    assert not out_path.exists()


def test_rewrite_reads_config_file(tmp_path: Path) -> None:
    config_path = _write(
        tmp_path / "paramdup.toml",
        '[duplicate]\nexclude = ["main"]\ncount_receiver = true\n',
    )
    source = _write(
        tmp_path / "mod.py",
        "def main(argv):\n    pass\n\n\nclass Job:\n    def reset(self):\n        pass\n",
    )
    out_path = tmp_path / "out.py"
    result = _invoke(
        CliRunner(),
        ["rewrite", str(source), str(out_path), "--config", str(config_path)],
    )
    assert result.exit_code == 0, result.output
    text = out_path.read_text(encoding="utf-8")
    assert "def main(argv):" in text
    assert "def reset(self, alternativeSelf):" in text
    assert "Skipped function 'main': excluded by configuration" in result.output


def test_rewrite_flags_override_config(tmp_path: Path) -> None:
    config_path = _write(tmp_path / "paramdup.toml", "[duplicate]\ncount_receiver = true\n")
    source = _write(tmp_path / "mod.py", "class Job:\n    def reset(self):\n        pass\n")
    out_path = tmp_path / "out.py"
    result = _invoke(
        CliRunner(),
        [
            "rewrite",
            str(source),
            str(out_path),
            "--config",
            str(config_path),
            "--no-count-receiver",
        ],
    )
    assert result.exit_code == 0, result.output
    assert "def reset(self):" in out_path.read_text(encoding="utf-8")


def test_rewrite_tree_in_place(tmp_path: Path) -> None:
    first = _write(tmp_path / "pkg" / "a.py", "def one(value):\n    pass\n")
    second = _write(tmp_path / "pkg" / "sub" / "b.py", "def two(item):\n    pass\n")
    untouched = _write(tmp_path / "pkg" / "c.py", "def three(a, b):\n    pass\n")
    result = _invoke(
        CliRunner(), ["rewrite-tree", str(tmp_path / "pkg"), "--jobs", "2"]
    )
    assert result.exit_code == 0, result.output
    assert first.read_text(encoding="utf-8") == "def one(value, newValue):\n    pass\n"
    assert second.read_text(encoding="utf-8") == "def two(item, otherItem):\n    pass\n"
    assert untouched.read_text(encoding="utf-8") == "def three(a, b):\n    pass\n"
    assert (
        "Found and processed 2 function(s) with single parameters across 3 file(s)."
        in result.output
    )


def test_rewrite_tree_dry_run_and_errors(tmp_path: Path) -> None:
    good = _write(tmp_path / "good.py", "def one(value):\n    pass\n")
    _write(tmp_path / "bad.py", "def broken(\n")
    result = _invoke(CliRunner(), ["rewrite-tree", str(tmp_path), "--dry-run"])
    assert result.exit_code == 1
    assert "LibCST parse failed for" in result.output
    assert "Dry run; no files written." in result.output
    assert good.read_text(encoding="utf-8") == "def one(value):\n    pass\n"


def test_suggest_names() -> None:
    result = _invoke(CliRunner(), ["suggest", "value", "item1", "isActive", "x"])
    assert result.exit_code == 0, result.output
    assert "value -> newValue" in result.output
    assert "item1 -> item2" in result.output
    assert "isActive -> shouldBeActive" in result.output
    assert "x -> x2" in result.output


def test_suggest_table() -> None:
    result = _invoke(CliRunner(), ["suggest", "--table"])
    assert result.exit_code == 0, result.output
    assert "value -> newValue" in result.output
    assert len(result.output.strip().splitlines()) == 14


def test_suggest_requires_names() -> None:
    result = _invoke(CliRunner(), ["suggest"])
    assert result.exit_code == 2
    assert "No names given." in result.output


def test_suggest_rejects_invalid_identifier() -> None:
    result = _invoke(CliRunner(), ["suggest", "not-a-name"])
    assert result.exit_code == 2
    assert "Not a valid identifier: 'not-a-name'" in result.output


def test_rewrite_stops_when_check_budget_is_spent(tmp_path: Path) -> None:
    source = _write(
        tmp_path / "mod.py",
        "def a(x):\n    pass\n\n\ndef b(y):\n    pass\n",
    )
    out_path = tmp_path / "out.py"
    result = _invoke(
        CliRunner(),
        ["rewrite", str(source), str(out_path), "--check-budget", "1"],
    )
    assert result.exit_code == 2
    assert "Rewrite timed out at b." in result.output
    assert "--check-budget" in result.output
    assert not out_path.exists()


def test_rewrite_tree_reads_check_budget_from_config(tmp_path: Path) -> None:
    config_path = _write(tmp_path / "paramdup.toml", "[duplicate]\ncheck_budget = 1\n")
    target = _write(tmp_path / "pkg" / "a.py", "def one(value):\n    pass\n")
    result = _invoke(
        CliRunner(),
        ["rewrite-tree", str(tmp_path / "pkg"), "--config", str(config_path)],
    )
    assert result.exit_code == 2
    assert target.read_text(encoding="utf-8") == "def one(value):\n    pass\n"
