"""CLI for unclutter readable-content extraction."""

from __future__ import annotations

import contextlib
import io
import json
import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from unclutter import __version__
from unclutter.errors import UnclutterError
from unclutter.extractors import ExtractionResult, extract_from_file, extract_from_url, parse
from unclutter.fetch import DEFAULT_TIMEOUT, is_url
from unclutter.markdown import render_markdown, to_markdown

# Force UTF-8 output on Windows to avoid cp1252 encoding errors
if sys.platform == "win32":
    sys.stdout = io.TextIOWrapper(sys.stdout.buffer, encoding="utf-8", errors="replace")
    sys.stderr = io.TextIOWrapper(sys.stderr.buffer, encoding="utf-8", errors="replace")

console = Console()
err_console = Console(stderr=True)


def _configure_logging(debug: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, markup=False)],
        force=True,
    )


def _spinner(message: str):
    """A stderr spinner on terminals, nothing otherwise."""
    if err_console.is_terminal:
        return err_console.status(message)
    return contextlib.nullcontext()


def _fail(message: str) -> None:
    err_console.print(f"[red]Error:[/red] {message}", highlight=False, soft_wrap=True)
    raise SystemExit(1)


@click.group(context_settings={"auto_envvar_prefix": "UNCLUTTER"})
@click.version_option(version=__version__)
def main():
    """unclutter - Extract the readable content of web pages.

    Loads a page into a virtual DOM, hands it to the readability
    extractor and prints the article as HTML, JSON or markdown.
    """
    pass


def _resolve_source(source: str, debug: bool, timeout: float, retries: int) -> ExtractionResult:
    """Extract from a URL, a file path, or '-' for stdin.

    Raises:
        SystemExit: If the source cannot be read or extracted.
    """
    try:
        if source == "-":
            return parse(click.get_binary_stream("stdin").read(), debug=debug)
        if is_url(source):
            return extract_from_url(source, timeout=timeout, retries=retries, debug=debug)
        return extract_from_file(source, debug=debug)
    except FileNotFoundError:
        _fail(f"File not found: {source}")
    except IsADirectoryError:
        _fail(f"Not a file: {source}")
    except OSError as e:
        _fail(f"Could not read {source}: {e.strerror or e}")
    except UnclutterError as e:
        _fail(str(e))


def _format_result(result: ExtractionResult, as_json: bool, markdown: bool,
                   prop: str | None) -> str:
    if prop:
        try:
            value = result.get_property(prop)
        except KeyError as e:
            _fail(e.args[0])
        if markdown and prop == "content":
            value = to_markdown(value)
        if isinstance(value, (dict, list)):
            return json.dumps(value, indent=2, ensure_ascii=False)
        return str(value)

    if as_json:
        data = result.to_dict()
        if markdown:
            data["content"] = to_markdown(result.content)
        return json.dumps(data, indent=2, ensure_ascii=False)

    if markdown:
        return render_markdown(result)
    return result.content


@main.command(name="parse")
@click.argument("source")
@click.option("--output", "-o", type=click.Path(dir_okay=False),
              help="Output file path (default: stdout)")
@click.option("--markdown", "-m", is_flag=True, help="Convert content to markdown")
@click.option("--json", "-j", "as_json", is_flag=True, help="Output the full result as JSON")
@click.option("--property", "-p", "prop", default=None,
              help="Print a single property (e.g. title, author, wordCount)")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True,
              help="HTTP timeout in seconds")
@click.option("--retries", type=click.IntRange(min=0), default=0, show_default=True,
              help="Retries for failed URL fetches")
@click.option("--debug", is_flag=True, help="Enable debug logging and statistics")
def parse_command(source: str, output: str | None, markdown: bool, as_json: bool,
                  prop: str | None, timeout: float, retries: int, debug: bool):
    """Parse HTML content from a file or URL.

    SOURCE can be a URL (https://...) or a file path (- for stdin).
    """
    _configure_logging(debug)

    with _spinner("Parsing content..."):
        result = _resolve_source(source, debug, timeout, retries)
    if err_console.is_terminal:
        err_console.print("[green]Content parsed successfully[/green]")

    text = _format_result(result, as_json, markdown, prop)

    if output:
        Path(output).write_text(text if text.endswith("\n") else text + "\n", encoding="utf-8")
        err_console.print(f"[green]Output written to {output}[/green]", highlight=False)
    else:
        click.echo(text)


def _record_line(record) -> None:
    if record.ok:
        err_console.print(f"[green]ok[/green]     {record.url}", highlight=False)
    else:
        err_console.print(f"[red]failed[/red] {record.url}  [dim]{record.error}[/dim]",
                          highlight=False)


def _display_summary(records) -> None:
    table = Table(title="Crawl Summary", show_header=True, header_style="bold")
    table.add_column("Status", justify="center")
    table.add_column("URL", max_width=50)
    table.add_column("Title", max_width=40)
    table.add_column("Words", justify="right")

    for record in records:
        status = "[green]ok[/green]" if record.ok else "[red]failed[/red]"
        detail = record.title if record.ok else record.error
        table.add_row(status, record.url, detail, str(record.word_count) if record.ok else "")

    console.print(table)
    failed = sum(1 for r in records if not r.ok)
    console.print(f"{len(records) - failed} succeeded, {failed} failed", highlight=False)


@main.command()
@click.argument("sitemap_url")
@click.option("--output-dir", "-d", required=True,
              type=click.Path(file_okay=False, path_type=Path),
              help="Directory receiving one file per page")
@click.option("--format", "-f", "fmt", type=click.Choice(["markdown", "html", "json"]),
              default="markdown", show_default=True, help="Output format per page")
@click.option("--limit", type=click.IntRange(min=1), default=None,
              help="Maximum number of pages")
@click.option("--include", default=None, help="Only crawl URLs containing this text")
@click.option("--retries", type=click.IntRange(min=0), default=3, show_default=True,
              help="Retries per failed fetch")
@click.option("--backoff", type=click.FloatRange(min=0), default=1.0, show_default=True,
              help="Base delay in seconds for exponential backoff")
@click.option("--delay", type=click.FloatRange(min=0), default=0.0, show_default=True,
              help="Pause between pages in seconds")
@click.option("--timeout", type=float, default=DEFAULT_TIMEOUT, show_default=True,
              help="HTTP timeout in seconds")
@click.option("--report", type=click.Path(dir_okay=False, path_type=Path), default=None,
              help="Write a crawl report (.csv or .jsonl)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
def sitemap(sitemap_url: str, output_dir: Path, fmt: str, limit: int | None,
            include: str | None, retries: int, backoff: float, delay: float,
            timeout: float, report: Path | None, debug: bool):
    """Extract every page listed in a sitemap.

    Failed page fetches are retried with exponential backoff. Exits with
    status 1 if any page still failed.
    """
    from unclutter.export import write_report
    from unclutter.sitemap import crawl_sitemap

    _configure_logging(debug)

    try:
        records = crawl_sitemap(
            sitemap_url, output_dir, fmt=fmt, limit=limit, include=include,
            retries=retries, backoff=backoff, delay=delay, timeout=timeout,
            on_page=_record_line,
        )
    except UnclutterError as e:
        _fail(str(e))

    if not records:
        err_console.print("[yellow]No pages found in sitemap.[/yellow]")
        return

    _display_summary(records)

    if report:
        report_fmt = "jsonl" if report.suffix.lower() in (".jsonl", ".ndjson") else "csv"
        with open(report, "w", newline="", encoding="utf-8") as f:
            write_report(records, f, fmt=report_fmt)

    if any(not r.ok for r in records):
        raise SystemExit(1)


if __name__ == "__main__":
    main()
