from __future__ import annotations

from contextlib import ExitStack, contextmanager
from pathlib import Path
from typing import Callable, List, Optional

import libcst as cst
import typer

from paramdup.config import (
    check_budget_limit,
    duplicate_defaults,
    duplication_options,
    merge_payload,
    worker_count,
)
from paramdup.naming import suggest_name, suggestion_table
from paramdup.rewrite.engine import (
    RewriteEngine,
    apply_plan,
    read_source,
    rewrite_source,
    write_source,
)
from paramdup.rewrite.model import DuplicationOptions
from paramdup.deadline_clock import CheckBudget
from paramdup.timeout_context import (
    Deadline,
    TimeoutExceeded,
    deadline_clock_scope,
    deadline_scope,
)

app = typer.Typer(add_completion=False)

_STDOUT_ALIAS = "-"


def _resolve_settings(
    *,
    config: Path | None,
    include_nested: bool | None,
    count_receiver: bool | None,
    exclude: List[str] | None,
    jobs: int | None = None,
    check_budget: int | None = None,
) -> tuple[DuplicationOptions, int, int | None]:
    defaults = duplicate_defaults(config_path=config)
    merged = merge_payload(
        {
            "include_nested": include_nested,
            "count_receiver": count_receiver,
            "exclude": list(exclude) if exclude else None,
            "jobs": jobs,
            "check_budget": check_budget,
        },
        defaults,
    )
    return (
        duplication_options(merged),
        worker_count(merged),
        check_budget_limit(merged),
    )


@contextmanager
def _cli_deadline_scope(timeout_ms: int | None, check_budget: int | None):
    with ExitStack() as stack:
        if timeout_ms:
            stack.enter_context(deadline_scope(Deadline.from_timeout_ms(timeout_ms)))
        if check_budget:
            stack.enter_context(deadline_clock_scope(CheckBudget(limit=check_budget)))
        yield


def _error(message: str) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)


def _run_rewrite(
    *,
    input_path: Path,
    output_path: str,
    options: DuplicationOptions,
    dry_run: bool,
    timeout_ms: int | None,
    check_budget: int | None,
    echo_fn: Callable[..., None] = typer.echo,
) -> int:
    to_stdout = output_path == _STDOUT_ALIAS

    def _report(message: str) -> None:
        # Keep stdout clean for the rewritten source.
        echo_fn(message, err=to_stdout)

    if not input_path.is_file():
        _error(f"Error: Input file '{input_path}' not found.")
        return 2
    try:
        with _cli_deadline_scope(timeout_ms, check_budget):
            result = rewrite_source(read_source(input_path), options)
            for record in result.records:
                _report(record.describe())
            for skip in result.skipped:
                _report(skip.describe())
            _report(
                f"Found and processed {result.modified_count} function(s) "
                "with single parameters."
            )
            if dry_run:
                _report("Dry run; no output written.")
                return 0
            if to_stdout:
                echo_fn(result.code, nl=False)
            else:
                write_source(Path(output_path), result.code)
    except TimeoutExceeded as exc:
        _error(f"{exc} Consider raising --timeout-ms or --check-budget.")
        return 2
    except (OSError, UnicodeDecodeError, cst.ParserSyntaxError) as exc:
        _error(f"Error processing file: {exc}")
        return 1
    _report(
        f"Successfully processed '{input_path}' and saved result to '{output_path}'"
    )
    return 0


def _run_rewrite_tree(
    *,
    paths: List[Path],
    options: DuplicationOptions,
    jobs: int,
    dry_run: bool,
    timeout_ms: int | None,
    check_budget: int | None,
) -> int:
    engine = RewriteEngine()
    try:
        with _cli_deadline_scope(timeout_ms, check_budget):
            plan = engine.plan_paths(paths, options, jobs=jobs)
            if not dry_run:
                apply_plan(plan)
    except TimeoutExceeded as exc:
        _error(f"{exc} Consider raising --timeout-ms or --check-budget.")
        return 2
    except OSError as exc:
        _error(f"Error writing output: {exc}")
        return 1
    for record in plan.records:
        typer.echo(record.describe())
    for skip in plan.skipped:
        typer.echo(skip.describe())
    for path, count in plan.file_counts:
        typer.echo(f"{path}: {count} function(s)")
    for error in plan.errors:
        _error(error)
    typer.echo(
        f"Found and processed {plan.modified_count} function(s) with single "
        f"parameters across {len(plan.file_counts)} file(s)."
    )
    if dry_run:
        typer.echo("Dry run; no files written.")
    return 1 if plan.errors else 0


@app.command("rewrite")
def rewrite(
    input_path: Path = typer.Argument(..., help="Python source file to rewrite."),
    output_path: str = typer.Argument(
        ..., help="Destination file, or '-' to write the result to stdout."
    ),
    config: Optional[Path] = typer.Option(None, "--config"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    include_nested: Optional[bool] = typer.Option(
        None, "--include-nested/--no-include-nested"
    ),
    count_receiver: Optional[bool] = typer.Option(
        None, "--count-receiver/--no-count-receiver"
    ),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", min=1),
    check_budget: Optional[int] = typer.Option(None, "--check-budget", min=1),
) -> None:
    """Duplicate the parameter of every single-parameter function in a file."""
    options, _, budget = _resolve_settings(
        config=config,
        include_nested=include_nested,
        count_receiver=count_receiver,
        exclude=exclude,
        check_budget=check_budget,
    )
    exit_code = _run_rewrite(
        input_path=input_path,
        output_path=output_path,
        options=options,
        dry_run=dry_run,
        timeout_ms=timeout_ms,
        check_budget=budget,
    )
    raise typer.Exit(code=exit_code)


@app.command("rewrite-tree")
def rewrite_tree(
    paths: List[Path] = typer.Argument(..., help="Files or directories to rewrite in place."),
    config: Optional[Path] = typer.Option(None, "--config"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    include_nested: Optional[bool] = typer.Option(
        None, "--include-nested/--no-include-nested"
    ),
    count_receiver: Optional[bool] = typer.Option(
        None, "--count-receiver/--no-count-receiver"
    ),
    exclude: Optional[List[str]] = typer.Option(None, "--exclude"),
    jobs: Optional[int] = typer.Option(None, "--jobs", min=1),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", min=1),
    check_budget: Optional[int] = typer.Option(None, "--check-budget", min=1),
) -> None:
    """Rewrite every *.py file under the given paths in place."""
    options, workers, budget = _resolve_settings(
        config=config,
        include_nested=include_nested,
        count_receiver=count_receiver,
        exclude=exclude,
        jobs=jobs,
        check_budget=check_budget,
    )
    exit_code = _run_rewrite_tree(
        paths=paths,
        options=options,
        jobs=workers,
        dry_run=dry_run,
        timeout_ms=timeout_ms,
        check_budget=budget,
    )
    raise typer.Exit(code=exit_code)


@app.command("suggest")
def suggest(
    names: Optional[List[str]] = typer.Argument(None),
    table: bool = typer.Option(False, "--table", help="List the semantic name table."),
) -> None:
    """Show the name the rewriter would give a duplicated parameter."""
    if table:
        for key, value in suggestion_table().items():
            typer.echo(f"{key} -> {value}")
    if not names and not table:
        _error("No names given.")
        raise typer.Exit(code=2)
    for name in names or []:
        if not name.isidentifier():
            _error(f"Not a valid identifier: {name!r}")
            raise typer.Exit(code=2)
        typer.echo(f"{name} -> {suggest_name(name)}")
