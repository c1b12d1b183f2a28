"""Rich console output for dataset validation."""

from collections import Counter

from rich.console import Console
from rich.table import Table

from casebook.validation.core import ValidationResult

# status -> (cell label, summary label, style)
STATUS_STYLES = {
    "pass": ("Pass", "Passed", "green"),
    "fail": ("Fail", "Failed", "red"),
    "missing": ("Missing", "Missing", "yellow"),
}


class ConsoleReporter:
    """Prints one row per dataset, a status tally and the schema failures."""

    def __init__(self, console: Console) -> None:
        self.console = console

    def print_results(self, results: list[ValidationResult]) -> None:
        table = Table(title="Dataset Validation Results")
        table.add_column("Dataset", style="cyan", no_wrap=True)
        table.add_column("Schema", style="blue")
        table.add_column("Status", justify="center")
        table.add_column("Rows", justify="right")
        table.add_column("Source", style="dim", overflow="fold")

        for result in results:
            label, _, style = STATUS_STYLES[result.status]
            table.add_row(
                result.dataset_name,
                result.schema_name or "-",
                f"[{style}]{label}[/{style}]",
                "-" if result.row_count is None else f"{result.row_count:,}",
                result.error_message if result.status == "missing" else str(result.file_path),
            )
        self.console.print(table)

        tally = Counter(r.status for r in results)
        self.console.print(
            "  ".join(
                f"[{style}]{summary}: {tally[status]}[/{style}]"
                for status, (_, summary, style) in STATUS_STYLES.items()
            )
        )
        if any(r.status == "missing" and r.error_message and "fetch" in r.error_message for r in results):
            self.console.print("[dim]Remote datasets are checked once cached; add --fetch to download.[/dim]")

        self._print_failures([r for r in results if r.status == "fail"])

    def _print_failures(self, failed: list[ValidationResult]) -> None:
        if not failed:
            return
        self.console.print()
        self.console.print("[bold red]Validation Errors:[/bold red]")
        for result in failed:
            self.console.print(f"[bold]{result.dataset_name}[/bold] (schema: {result.schema_name}):")
            self.console.print(f"  File: {result.file_path}", soft_wrap=True)
            for line in (result.error_message or "").splitlines():
                self.console.print(f"    {line}", soft_wrap=True)
