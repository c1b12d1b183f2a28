"""Command-line interface for the casebook studies."""

from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

if TYPE_CHECKING:
    from casebook.config.settings import PipelineConfig
    from casebook.studies.base import StudyResult

app = typer.Typer(
    name="casebook",
    help="Narrative modeling case studies: hotels, urchins, flights and cells.",
    no_args_is_help=True,
)

console = Console()

DEFAULT_CONFIG = Path("configs/get-started.yaml")

ConfigOption = Annotated[
    Path,
    typer.Option(
        "--config",
        "-c",
        help="Path to configuration YAML file.",
        exists=True,
        dir_okay=False,
    ),
]
NoMlflowOption = Annotated[
    bool,
    typer.Option("--no-mlflow", help="Skip MLflow experiment tracking."),
]
RefreshOption = Annotated[
    bool,
    typer.Option("--refresh", help="Re-download remote datasets even if cached."),
]


def _load(config: Path) -> "PipelineConfig":
    """Load configuration and set up logging, exiting on invalid files."""
    from pydantic import ValidationError

    from casebook.config.loader import load_config
    from casebook.utils.logging import configure_logging

    console.print(f"[blue]Loading configuration from {config}[/blue]")
    try:
        pipeline_config = load_config(config)
    except (ValueError, ValidationError) as e:
        console.print(f"[red]Invalid configuration: {e}[/red]")
        raise typer.Exit(code=1) from e

    configure_logging(
        level=pipeline_config.logging.level,
        json_output=pipeline_config.logging.json_output,
    )
    return pipeline_config


def _track(pipeline_config: "PipelineConfig", result: "StudyResult") -> None:
    from casebook.evaluation.experiment import track_study

    try:
        run_id = track_study(pipeline_config, result)
        console.print(f"[dim]MLflow run: {run_id}[/dim]")
    except Exception as e:
        console.print(f"[yellow]MLflow logging failed: {e}[/yellow]")


def _run_study(
    name: str,
    pipeline_config: "PipelineConfig",
    *,
    no_mlflow: bool,
    refresh: bool = False,
) -> "StudyResult":
    """Run one study, report its outputs and optionally track it."""
    from casebook.studies import REMOTE_STUDIES, STUDIES

    runner = STUDIES[name]
    kwargs = {"refresh": refresh} if name in REMOTE_STUDIES else {}

    console.print(f"\n[bold blue]Running {name} study[/bold blue]")
    try:
        result = runner(pipeline_config, console=console, **kwargs)
    except FileNotFoundError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from e
    except Exception as e:
        console.print(f"[red]{name.title()} study failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print(f"[green]{result.question}[/green]")
    if result.report_path is not None:
        console.print(f"[green]Report: {result.report_path}[/green]")
    for model_name, path in result.model_paths.items():
        console.print(f"[green]Saved {model_name}: {path}[/green]")

    if not no_mlflow:
        _track(pipeline_config, result)
    return result


@app.command()
def hotels(
    config: ConfigOption = DEFAULT_CONFIG,
    no_mlflow: NoMlflowOption = False,
    refresh: RefreshOption = False,
) -> None:
    """Hotel stays: tune a lasso and a random forest, evaluate the winner."""
    _run_study("hotels", _load(config), no_mlflow=no_mlflow, refresh=refresh)


@app.command()
def urchins(
    config: ConfigOption = DEFAULT_CONFIG,
    no_mlflow: NoMlflowOption = False,
    refresh: RefreshOption = False,
) -> None:
    """Sea urchins: ordinary and Bayesian linear regression."""
    _run_study("urchins", _load(config), no_mlflow=no_mlflow, refresh=refresh)


@app.command()
def flights(
    config: ConfigOption = DEFAULT_CONFIG,
    no_mlflow: NoMlflowOption = False,
) -> None:
    """Flight delays: logistic regression on a preprocessing recipe."""
    _run_study("flights", _load(config), no_mlflow=no_mlflow)


@app.command()
def cells(
    config: ConfigOption = DEFAULT_CONFIG,
    no_mlflow: NoMlflowOption = False,
) -> None:
    """Cell images: resampling estimates and decision tree tuning."""
    _run_study("cells", _load(config), no_mlflow=no_mlflow)


@app.command(name="all")
def run_all(
    config: ConfigOption = DEFAULT_CONFIG,
    no_mlflow: NoMlflowOption = False,
    refresh: RefreshOption = False,
) -> None:
    """Run every study in tutorial order."""
    from casebook.studies import STUDIES

    pipeline_config = _load(config)
    results = [
        _run_study(name, pipeline_config, no_mlflow=no_mlflow, refresh=refresh)
        for name in STUDIES
    ]

    console.print()
    table = Table(title="Study Results")
    table.add_column("Study", style="cyan")
    table.add_column("Metric", style="blue")
    table.add_column("Value", style="green")
    for result in results:
        for metric, value in result.metrics.items():
            table.add_row(result.study, metric, f"{value:.4f}")
    console.print(table)


@app.command()
def fetch(
    config: ConfigOption = DEFAULT_CONFIG,
    refresh: RefreshOption = False,
) -> None:
    """Download and cache the remote datasets."""
    from casebook.utils.cache import DatasetCache

    pipeline_config = _load(config)
    cache = DatasetCache(pipeline_config.cache_dir)

    for name, url in [
        ("hotels", pipeline_config.data.hotels_url),
        ("urchins", pipeline_config.data.urchins_url),
    ]:
        try:
            path = cache.fetch(url, refresh=refresh)
        except Exception as e:
            console.print(f"[red]Download of {name} failed: {e}[/red]")
            raise typer.Exit(code=1) from e
        console.print(f"[green]{name}: {path}[/green]")


@app.command()
def validate(
    config: ConfigOption = DEFAULT_CONFIG,
    fetch_remote: Annotated[
        bool,
        typer.Option("--fetch", help="Download remote datasets that are not cached."),
    ] = False,
) -> None:
    """Validate data against defined schemas."""
    from casebook.validation import ConsoleReporter, ValidationRunner

    pipeline_config = _load(config)
    console.print("[blue]Running schema validation...[/blue]")

    runner = ValidationRunner(pipeline_config, fetch=fetch_remote)
    results = runner.run()

    reporter = ConsoleReporter(console)
    reporter.print_results(results)

    has_failures = any(r.schema_valid is False for r in results)
    if has_failures:
        raise typer.Exit(code=1)


@app.command()
def predict(
    model: Annotated[
        Path,
        typer.Option("--model", "-m", help="Path to a saved .joblib workflow."),
    ],
    input_path: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="CSV file with the predictor columns.",
            exists=True,
            dir_okay=False,
        ),
    ],
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output CSV path."),
    ],
) -> None:
    """Score a CSV file with a saved workflow."""
    import pandas as pd

    from casebook.modeling.persistence import load_workflow

    console.print(f"[blue]Loading workflow: {model}[/blue]")
    try:
        fitted, metadata = load_workflow(model)
    except (FileNotFoundError, TypeError) as e:
        console.print(f"[red]Model not found: {e}[/red]")
        raise typer.Exit(code=1) from e

    if metadata:
        console.print(f"[dim]Model: {metadata.get('model', '-')}[/dim]")
        console.print(f"[dim]Recipe: {metadata.get('recipe', '-')}[/dim]")

    try:
        data = pd.read_csv(input_path)
        scored = fitted.augment(data)
    except Exception as e:
        console.print(f"[red]Prediction failed: {e}[/red]")
        raise typer.Exit(code=1) from e

    output.parent.mkdir(parents=True, exist_ok=True)
    scored.to_csv(output, index=False)

    table = Table(title="Prediction Results")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Rows scored", str(len(scored)))
    if ".pred_class" in scored.columns:
        for level, count in scored[".pred_class"].value_counts().items():
            table.add_row(f"Predicted {level}", str(count))
    console.print(table)
    console.print(f"\n[green]Saved predictions to: {output}[/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from casebook import __version__

    console.print(f"casebook version {__version__}")


if __name__ == "__main__":
    app()
