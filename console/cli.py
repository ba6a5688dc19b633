"""CLI interface for running and checking practice code."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional

import typer
from tqdm import tqdm

from console.config import PracticeConfig, load_config
from evaluator.failures import FailureAnalyzer
from evaluator.validation import SolutionValidator
from practice_core.schemas import ExecutionResult, TestCase, ValidationResult
from problems.catalog import Problem, ProblemCatalog, load_builtin_problems, load_problems
from sandbox.executor import SandboxExecutor
from sandbox.loader import RuntimeLoader

app = typer.Typer(help="Practice Runner CLI")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", "--log-level", help="Logging level"),
) -> None:
    """Run learner code and validate practice solutions."""
    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_settings(config_path: Optional[str]) -> PracticeConfig:
    if config_path is None:
        return PracticeConfig()
    try:
        return load_config(config_path)
    except FileNotFoundError as e:
        typer.secho(f"❌ Config file not found: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    except ValueError as e:
        typer.secho(f"❌ Invalid config: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _load_catalog(problems_path: Optional[str], config: PracticeConfig) -> ProblemCatalog:
    path = problems_path or config.problems_path
    try:
        return load_problems(path) if path else load_builtin_problems()
    except (FileNotFoundError, ValueError) as e:
        typer.secho(f"❌ Could not load problems: {e}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


def _read_source(file: str) -> str:
    path = Path(file)
    if not path.exists():
        typer.secho(f"❌ File not found: {file}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


async def _execute(code: str, config: PracticeConfig, timeout_ms: int | None) -> ExecutionResult:
    async with RuntimeLoader(config=config) as loader:
        return await SandboxExecutor(loader).execute(code, timeout_ms)


async def _validate(
    code: str,
    test_cases: list[TestCase],
    config: PracticeConfig,
    timeout_ms: int | None,
) -> ValidationResult:
    async with RuntimeLoader(config=config) as loader:
        validator = SolutionValidator(SandboxExecutor(loader))
        return await validator.validate(code, test_cases, timeout_ms)


async def _verify_all(
    problems: list[Problem],
    config: PracticeConfig,
    show_progress: bool,
) -> list[tuple[Problem, ValidationResult]]:
    outcomes: list[tuple[Problem, ValidationResult]] = []
    async with RuntimeLoader(config=config) as loader:
        validator = SolutionValidator(SandboxExecutor(loader))
        for problem in tqdm(problems, desc="Verifying", unit="problem", disable=not show_progress):
            result = await validator.validate(problem.solution, problem.test_cases)
            outcomes.append((problem, result))
    return outcomes


def _print_test_results(result: ValidationResult) -> None:
    for index, test in enumerate(result.test_results, start=1):
        if test.passed:
            typer.secho(f"  ✓ Test {index}: {test.message}", fg=typer.colors.GREEN)
            continue
        typer.secho(f"  ✗ Test {index}: {test.message}", fg=typer.colors.RED)
        if test.expected is not None:
            typer.echo(f"      expected: {test.expected!r}")
        if test.actual is not None:
            typer.echo(f"      actual:   {test.actual!r}")


@app.command()
def run(
    file: str = typer.Argument(..., help="Python file to execute"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Execution timeout in ms"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
) -> None:
    """Execute a file in the sandbox and print its output."""
    config = _load_settings(config_path)
    code = _read_source(file)

    result = asyncio.run(_execute(code, config, timeout_ms))

    if result.output:
        typer.echo(result.output)
    if not result.success:
        typer.secho(f"❌ {result.error}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)


@app.command()
def check(
    problem_id: str = typer.Argument(..., help="Practice problem ID"),
    solution_file: str = typer.Argument(..., help="File containing the solution"),
    problems_path: Optional[str] = typer.Option(None, "--problems", help="Problem YAML file"),
    timeout_ms: Optional[int] = typer.Option(None, "--timeout-ms", help="Per-step timeout in ms"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
) -> None:
    """Validate a solution against a problem's test cases."""
    config = _load_settings(config_path)
    catalog = _load_catalog(problems_path, config)

    problem = catalog.get(problem_id)
    if problem is None:
        typer.secho(f"❌ Problem not found: {problem_id}", fg=typer.colors.RED, err=True)
        raise typer.Exit(1)

    code = _read_source(solution_file)
    result = asyncio.run(_validate(code, problem.test_cases, config, timeout_ms))

    typer.secho(f"\n📝 {problem.title}\n", fg=typer.colors.BLUE)
    _print_test_results(result)
    if result.error:
        typer.secho(f"\n❌ {result.error}", fg=typer.colors.RED, err=True)

    if result.success:
        typer.secho(
            f"\n✅ All {result.total_count} tests passed!",
            fg=typer.colors.GREEN,
        )
        return

    typer.secho(
        f"\n⚠️  {result.passed_count}/{result.total_count} tests passed",
        fg=typer.colors.YELLOW,
    )
    raise typer.Exit(1)


@app.command()
def verify(
    problems_path: Optional[str] = typer.Option(None, "--problems", help="Problem YAML file"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="Show a progress bar"),
) -> None:
    """Check that every reference solution passes its own test cases."""
    config = _load_settings(config_path)
    catalog = _load_catalog(problems_path, config)
    problems = list(catalog)

    if not problems:
        typer.secho("No problems found.", fg=typer.colors.YELLOW)
        return

    outcomes = asyncio.run(_verify_all(problems, config, progress))

    analyzer = FailureAnalyzer()
    failed = [(problem, result) for problem, result in outcomes if not result.success]
    for _problem, result in failed:
        analyzer.record(result.failure_type)

    if not failed:
        typer.secho(f"✅ All {len(outcomes)} reference solutions pass", fg=typer.colors.GREEN)
        return

    typer.secho(f"\n❌ {len(failed)} of {len(outcomes)} problems failed:\n", fg=typer.colors.RED)
    for problem, result in failed:
        typer.echo(f"  {problem.id} ({result.failure_type}): {result.passed_count}/{result.total_count} passed")
    top = ", ".join(f"{name}={count}" for name, count in analyzer.get_top_failures())
    typer.echo(f"\n  Failure types: {top}")
    raise typer.Exit(1)


@app.command()
def list_problems(
    problems_path: Optional[str] = typer.Option(None, "--problems", help="Problem YAML file"),
    topic: Optional[str] = typer.Option(None, "--topic", help="Only list this topic"),
    config_path: Optional[str] = typer.Option(None, "--config", help="Path to YAML config"),
) -> None:
    """List the practice problems in the catalog."""
    config = _load_settings(config_path)
    catalog = _load_catalog(problems_path, config)

    topics = [topic] if topic else catalog.topics()
    found = 0
    for topic_id in topics:
        problems = catalog.for_topic(topic_id)
        if not problems:
            continue
        typer.secho(f"\n📚 {topic_id}", fg=typer.colors.BLUE)
        for problem in problems:
            found += 1
            typer.echo(
                f"  {problem.id}: {problem.title} "
                f"[{problem.difficulty.value}, {len(problem.test_cases)} tests]"
            )

    if not found:
        typer.secho("No problems found.", fg=typer.colors.YELLOW)


if __name__ == "__main__":
    app()
