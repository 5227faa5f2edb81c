"""command line reader for drcov files"""

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .codec import read
from .errors import DrCovError
from .model import CoverageData, ModuleEntry


app = typer.Typer(
    help="read and summarize drcov coverage files",
    no_args_is_help=True,
    context_settings=dict(help_option_names=["-h", "--help"]),
    pretty_exceptions_short=True,
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def _module_info(
    module: ModuleEntry, block_count: int, covered_bytes: int
) -> Dict[str, Any]:
    return {
        "id": module.id,
        "path": module.path,
        "base": f"0x{module.base:x}",
        "end": f"0x{module.end:x}",
        "size": module.size,
        "blocks": block_count,
        "covered_bytes": covered_bytes,
    }


def generate_report(
    coverage: CoverageData,
    filename: str,
    detailed: bool = False,
    module_filter: Optional[str] = None,
) -> Dict[str, Any]:
    """collect everything the reader prints into one json-friendly structure"""
    stats = coverage.get_coverage_stats()

    covered_bytes: Dict[int, int] = {}
    for bb in coverage.basic_blocks:
        covered_bytes[bb.module_id] = covered_bytes.get(bb.module_id, 0) + bb.size

    modules = [
        _module_info(m, stats.get(m.id, 0), covered_bytes.get(m.id, 0))
        for m in coverage.modules
    ]

    report: Dict[str, Any] = {
        "file": filename,
        "version": coverage.header.version,
        "flavor": coverage.header.flavor,
        "module_table_version": coverage.module_version.value,
        "summary": {
            "total_modules": len(coverage.modules),
            "total_blocks": len(coverage.basic_blocks),
            "total_coverage_bytes": sum(bb.size for bb in coverage.basic_blocks),
        },
        "modules": modules,
    }

    if detailed:
        blocks: List[Dict[str, Any]] = []
        for bb in coverage.basic_blocks:
            module = coverage.find_module(bb.module_id)
            if module:
                blocks.append(
                    {
                        "module_id": bb.module_id,
                        "offset": f"0x{bb.start:x}",
                        "size": bb.size,
                        "absolute_address": f"0x{bb.absolute_address(module):x}",
                        "path": module.path,
                    }
                )
        report["blocks"] = blocks

    if module_filter is not None:
        needle = module_filter.lower()
        report["module_filter"] = {
            "filter": module_filter,
            "matches": [m for m in modules if needle in m["path"].lower()],
        }

    return report


def print_report_rich(report: Dict[str, Any]):
    """display a report using rich tables"""
    console = Console()

    title = (
        f"[bold cyan]DrCov File Analysis[/bold cyan]\n[dim]{escape(report['file'])}[/dim]"
    )
    console.print(Panel(title, expand=False))

    header_table = Table(show_header=False, box=None)
    header_table.add_column("Field", style="bold")
    header_table.add_column("Value", style="cyan")
    header_table.add_row("Version", str(report["version"]))
    header_table.add_row("Flavor", escape(report["flavor"]))
    header_table.add_row("Module Table Version", str(report["module_table_version"]))
    console.print(header_table)
    console.print()

    summary = report["summary"]
    summary_table = Table(
        title="[bold]Summary[/bold]", show_header=False, box=None
    )
    summary_table.add_column("Metric", style="bold")
    summary_table.add_column("Value", style="cyan")
    summary_table.add_row("Total Modules", f"{summary['total_modules']:,}")
    summary_table.add_row("Total Basic Blocks", f"{summary['total_blocks']:,}")
    summary_table.add_row(
        "Total Coverage", f"{summary['total_coverage_bytes']:,} bytes"
    )
    console.print(summary_table)
    console.print()

    if report["modules"]:
        modules_table = Table(title="[bold]Module Coverage[/bold]")
        modules_table.add_column("ID", justify="right", style="cyan")
        modules_table.add_column("Blocks", justify="right", style="yellow")
        modules_table.add_column("Size", justify="right", style="green")
        modules_table.add_column("Base Address", style="magenta", no_wrap=True)
        modules_table.add_column("Name", style="dim")
        for mod in report["modules"]:
            modules_table.add_row(
                str(mod["id"]),
                f"{mod['blocks']:,}",
                f"{mod['covered_bytes']:,} bytes",
                mod["base"],
                escape(mod["path"]),
            )
        console.print(modules_table)
        console.print()

    if "blocks" in report:
        blocks_table = Table(title="[bold]Detailed Basic Blocks[/bold]")
        blocks_table.add_column("Module", justify="right", style="cyan")
        blocks_table.add_column("Offset", style="magenta", no_wrap=True)
        blocks_table.add_column("Size", justify="right", style="yellow")
        blocks_table.add_column("Absolute Address", style="green", no_wrap=True)
        blocks_table.add_column("Module Name", style="dim")
        for block in report["blocks"]:
            blocks_table.add_row(
                str(block["module_id"]),
                block["offset"],
                str(block["size"]),
                block["absolute_address"],
                escape(block["path"]),
            )
        console.print(blocks_table)
        console.print()

    if "module_filter" in report:
        module_filter = report["module_filter"]
        console.print(
            f"[bold]Module-Specific Analysis: '{escape(module_filter['filter'])}'[/bold]"
        )
        if not module_filter["matches"]:
            console.print(
                f"No modules found matching: '{escape(module_filter['filter'])}'"
            )
        for mod in module_filter["matches"]:
            detail_table = Table(show_header=False, box=None)
            detail_table.add_column("Field", style="bold")
            detail_table.add_column("Value", style="green")
            detail_table.add_row("Module ID", str(mod["id"]))
            detail_table.add_row("Name", escape(mod["path"]))
            detail_table.add_row("Base", mod["base"])
            detail_table.add_row("End", mod["end"])
            detail_table.add_row("Size", f"{mod['size']:,} bytes")
            detail_table.add_row("Covered Blocks", f"{mod['blocks']:,}")
            detail_table.add_row("Covered Bytes", f"{mod['covered_bytes']:,}")
            console.print(detail_table)
            console.print()


def print_report_json(report: Dict[str, Any]):
    """output a report as JSON"""
    typer.echo(json.dumps(report, indent=2))


@app.command()
def main_command(
    file: Path = typer.Argument(..., help="drcov file to read"),
    detailed: bool = typer.Option(
        False, "--detailed", "-d", help="list every executed basic block"
    ),
    module: Optional[str] = typer.Option(
        None, "--module", "-m", help="show details for modules matching this name"
    ),
    json_output: bool = typer.Option(
        False, "--json", help="output information as JSON"
    ),
    verbose: bool = typer.Option(
        False, "-v", "--verbose", help="show error details on failure"
    ),
):
    """read a drcov file and summarize its modules and coverage"""
    try:
        coverage = read(file)
    except DrCovError as e:
        typer.echo(f"error: failed to parse '{file}': {e}", err=True)
        if verbose:
            typer.echo(f"  error type: {type(e).__name__}", err=True)
            if e.__cause__ is not None:
                typer.echo(f"  caused by: {e.__cause__!r}", err=True)
        raise typer.Exit(1)

    report = generate_report(coverage, str(file), detailed, module)
    if json_output:
        print_report_json(report)
    else:
        print_report_rich(report)


def main():
    """entry point for the drcov-read script"""
    app()


if __name__ == "__main__":
    main()
