"""
Shared study scaffolding.

A study runs a fixed sequence of library calls and collects what it
produced in a ``StudyResult``: scalar metrics, tables, figures and final
fitted workflows. ``finish_study`` writes the report and saves the models.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pandas as pd
from rich.console import Console

from casebook.config.settings import PipelineConfig
from casebook.evaluation.plots import FigureSink
from casebook.evaluation.report import ReportSection, generate_html_report, print_metrics, print_table
from casebook.modeling.persistence import save_workflow
from casebook.modeling.workflow import FittedWorkflow
from casebook.utils.logging import get_logger

log = get_logger(__name__)


@dataclass
class StudyResult:
    """
    Everything a study run produced.

    Attributes:
        study: Study identifier (``hotels``, ``urchins``, ...).
        question: The question the study answers.
        params: Chosen settings and selected hyperparameters.
        metrics: Scalar results (validation and test metrics).
        tables: Named result tables.
        sections: Report sections in display order.
        models: Final fitted workflows by name.
    """

    study: str
    question: str
    params: dict[str, Any] = field(default_factory=dict)
    metrics: dict[str, float] = field(default_factory=dict)
    tables: dict[str, pd.DataFrame] = field(default_factory=dict)
    sections: list[ReportSection] = field(default_factory=list)
    models: dict[str, FittedWorkflow] = field(default_factory=dict)
    figure_paths: dict[str, Path] = field(default_factory=dict)
    report_path: Path | None = None
    model_paths: dict[str, Path] = field(default_factory=dict)

    def section(self, title: str, text: str = "") -> ReportSection:
        """Append and return a new report section."""
        new = ReportSection(title=title, text=text)
        self.sections.append(new)
        return new

    def add_table(self, section: ReportSection, name: str, caption: str, table: pd.DataFrame) -> None:
        self.tables[name] = table
        section.tables[caption] = table


def new_sink(study: str, config: PipelineConfig, *, save_plots: bool) -> FigureSink:
    return FigureSink(study, config.plots_dir if save_plots else None)


def finish_study(
    result: StudyResult,
    config: PipelineConfig,
    sink: FigureSink,
    *,
    write_outputs: bool = True,
    console: Console | None = None,
) -> StudyResult:
    """
    Print the headline numbers and (optionally) write the report and models.
    """
    result.figure_paths = dict(sink.paths)
    print_metrics(result.metrics, f"{result.study}: results", console)
    for name, table in result.tables.items():
        print_table(table, f"{result.study}: {name}", console, max_rows=10)

    if not write_outputs:
        return result

    result.report_path = generate_html_report(
        f"{result.study.title()} study",
        result.sections,
        config.reports_dir / f"{result.study}.html",
        metadata={"question": result.question, **result.params},
    )
    for name, fitted in result.models.items():
        model_path, _ = save_workflow(
            fitted,
            config.models_dir / f"{result.study}_{name}",
            metrics=result.metrics,
            extra={"study": result.study, "params": result.params},
        )
        result.model_paths[name] = model_path

    log.info(
        "Study complete",
        study=result.study,
        report=str(result.report_path),
        models=list(result.model_paths),
    )
    return result
