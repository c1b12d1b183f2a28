"""
Study report generation.

Prints result tables to the console with rich and writes a self-contained
HTML report (tables plus base64-embedded PNG figures) per study.
"""

import html
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import numpy as np
import pandas as pd
from rich.console import Console
from rich.table import Table

from casebook.utils.logging import get_logger

log = get_logger(__name__)


def _format_value(value: object) -> str:
    if isinstance(value, float | np.floating):
        if np.isnan(value):
            return "-"
        if value != 0 and (abs(value) < 1e-3 or abs(value) >= 1e5):
            return f"{value:.3e}"
        return f"{value:.4f}"
    return str(value)


def print_table(
    df: pd.DataFrame,
    title: str,
    console: Console | None = None,
    *,
    max_rows: int = 20,
) -> None:
    """Print a DataFrame as a rich table (first ``max_rows`` rows)."""
    if console is None:
        return

    table = Table(title=title)
    for i, col in enumerate(df.columns):
        style = "cyan" if i == 0 else ("green" if pd.api.types.is_numeric_dtype(df[col]) else None)
        table.add_column(str(col), style=style, justify="right" if style == "green" else "left")

    for _, row in df.head(max_rows).iterrows():
        table.add_row(*(_format_value(v) for v in row.tolist()))

    if len(df) > max_rows:
        table.caption = f"{len(df) - max_rows} more rows"
    console.print(table)


def print_metrics(metrics: dict[str, float], title: str, console: Console | None = None) -> None:
    """Print key metrics as a two-column rich table."""
    if console is None:
        return

    table = Table(title=title)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", style="green", justify="right")
    for name, value in metrics.items():
        table.add_row(name, _format_value(value))
    console.print(table)


@dataclass
class ReportSection:
    """
    One block of the HTML report.

    Attributes:
        title: Section heading.
        text: Short explanatory paragraph.
        tables: Caption -> table.
        figures: Caption -> base64 PNG.
    """

    title: str
    text: str = ""
    tables: dict[str, pd.DataFrame] = field(default_factory=dict)
    figures: dict[str, str] = field(default_factory=dict)


def _table_html(df: pd.DataFrame, max_rows: int = 50) -> str:
    return df.head(max_rows).to_html(
        index=False,
        border=0,
        float_format=lambda v: _format_value(v),
        classes="results",
    )


STYLE = """
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            max-width: 1100px;
            margin: 0 auto;
            padding: 20px;
            background-color: #f5f5f5;
        }
        h1 { color: #333; border-bottom: 2px solid #4a90a4; padding-bottom: 10px; }
        h2 { color: #4a90a4; margin-top: 30px; }
        .section {
            background: white;
            border-radius: 8px;
            padding: 20px;
            margin-bottom: 20px;
            box-shadow: 0 2px 4px rgba(0,0,0,0.1);
        }
        .metadata { display: grid; grid-template-columns: repeat(auto-fit, minmax(200px, 1fr)); gap: 15px; }
        .metadata-item { background: #f8f9fa; padding: 10px 15px; border-radius: 4px; }
        .metadata-item strong { display: block; color: #666; font-size: 0.85em; margin-bottom: 5px; }
        table { width: 100%; border-collapse: collapse; margin: 15px 0; }
        th, td { padding: 8px 10px; text-align: left; border-bottom: 1px solid #ddd; }
        th { background-color: #4a90a4; color: white; font-weight: 600; }
        .plot-container { text-align: center; margin: 20px 0; }
        .plot-container img { max-width: 100%; height: auto; border-radius: 4px; }
        .timestamp { color: #999; font-size: 0.9em; text-align: right; }
"""


def generate_html_report(
    title: str,
    sections: list[ReportSection],
    output_path: Path,
    metadata: dict[str, object] | None = None,
) -> Path:
    """
    Write an HTML report.

    Args:
        title: Page title.
        sections: Report sections in display order.
        output_path: Target file.
        metadata: Key facts shown at the top (rows, seeds, ...).

    Returns:
        Path to the generated report.
    """
    log.info("Generating report", output=str(output_path), sections=len(sections))

    parts = [
        "<!DOCTYPE html>",
        '<html lang="en">',
        "<head>",
        '    <meta charset="UTF-8">',
        f"    <title>{html.escape(title)}</title>",
        f"    <style>{STYLE}    </style>",
        "</head>",
        "<body>",
        f"    <h1>{html.escape(title)}</h1>",
        f'    <p class="timestamp">Generated: {datetime.now().strftime("%Y-%m-%d %H:%M:%S")}</p>',
    ]

    if metadata:
        parts.append('    <div class="section"><div class="metadata">')
        for key, value in metadata.items():
            parts.append(
                f'        <div class="metadata-item"><strong>{html.escape(str(key))}</strong>'
                f"{html.escape(_format_value(value))}</div>"
            )
        parts.append("    </div></div>")

    for section in sections:
        parts.append('    <div class="section">')
        parts.append(f"        <h2>{html.escape(section.title)}</h2>")
        if section.text:
            parts.append(f"        <p>{html.escape(section.text)}</p>")
        for caption, table in section.tables.items():
            parts.append(f"        <h3>{html.escape(caption)}</h3>")
            parts.append(_table_html(table))
        for caption, encoded in section.figures.items():
            parts.append(
                '        <div class="plot-container">'
                f'<img src="data:image/png;base64,{encoded}" alt="{html.escape(caption)}">'
                f"<p>{html.escape(caption)}</p></div>"
            )
        parts.append("    </div>")

    parts.extend(["</body>", "</html>", ""])

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text("\n".join(parts), encoding="utf-8")

    log.info("Report generated", path=str(output_path))
    return output_path
