#!/usr/bin/env python3
"""C++ Feature Catalog tool - check and render the feature corpus.

Usage:
    catalog-tool check                    # Consistency report (console)
    catalog-tool check --json             # Output JSON for programmatic use
    catalog-tool check --summary          # One-line summary only
    catalog-tool check --save REPORT.md   # Also write a Markdown report
    catalog-tool render                   # Write the static site to output_root
    catalog-tool build                    # check + render in one run
    catalog-tool summary                  # Entry counts per standard/section
    catalog-tool serve --open             # Preview the site in a browser

Common options: --config, --input-root, --example-root, --output-root,
--fail-on-findings, --workers, -v.

Exit code: 0 normally. With fail_on_findings, the number of findings plus
malformed entries (capped at 125). 2 for config and I/O errors.
"""

import argparse
import json
import logging
import sys
from collections import Counter
from pathlib import Path

import requests
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape as rich_escape
from rich.table import Table

from catalog_config import ConfigError, load_config
from catalog_loader import load_catalog
from catalog_model import Status
from consistency_checker import (
    KIND_ORDER,
    check_catalog,
    format_summary,
    generate_markdown_report,
)
from doc_sources import open_source
from site_renderer import RenderOptions, render_site, write_site

logger = logging.getLogger("catalog_cli")
console = Console()
err_console = Console(stderr=True)

EXIT_CONFIG_OR_IO = 2
MAX_EXIT = 125


def setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=verbose, markup=False)],
        force=True,
    )
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


# ──────────────────────────────────────────────
# Pipeline
# ──────────────────────────────────────────────

def build_config(args):
    config = load_config(args.config)
    return config.with_overrides(
        input_root=args.input_root,
        example_root=args.example_root,
        output_root=args.output_root,
        fail_on_findings=True if args.fail_on_findings else None,
        workers=args.workers,
    )


def load_and_check(config):
    """Loader -> Checker. Returns (catalog, report)."""
    documents = open_source(config).documents()
    catalog = load_catalog(documents, workers=config.workers)
    report = check_catalog(catalog)
    logger.info("%s", format_summary(report))
    return catalog, report


def render(config, catalog, report, example_url=None):
    options = RenderOptions(
        example_root=Path(config.resolved_example_root),
        output_root=Path(config.output_root),
        site_title=config.site_title,
        example_url=example_url,
    )
    return render_site(catalog, options, report=report)


def exit_code(config, report) -> int:
    """Findings are advisory unless fail_on_findings is set."""
    if not config.fail_on_findings:
        return 0
    return min(len(report.findings) + len(report.malformed), MAX_EXIT)


# ──────────────────────────────────────────────
# Console output
# ──────────────────────────────────────────────

def print_report(report):
    """Findings grouped by kind, one table each."""
    if report.malformed:
        table = Table(title=f"MalformedEntry ({len(report.malformed)})", title_justify="left")
        table.add_column("Location", style="dim")
        table.add_column("Heading")
        table.add_column("Problem", style="red")
        for m in report.malformed:
            table.add_row(f"{m.document}:{m.line}", rich_escape(m.heading or "(document)"),
                          rich_escape(m.reason))
        console.print(table)

    for kind in KIND_ORDER:
        group = [f for f in report.findings if f.kind is kind]
        if not group:
            continue
        table = Table(title=f"{kind.value} ({len(group)})", title_justify="left")
        table.add_column("Standard", style="cyan")
        table.add_column("Section")
        table.add_column("Name", style="bold")
        table.add_column("Locations", style="dim")
        for f in group:
            table.add_row(f.standard.label, f.section.label, rich_escape(f.name),
                          rich_escape(", ".join(str(loc) for loc in f.locations)))
        console.print(table)

    for w in report.warnings:
        console.print(f"[yellow]warning[/yellow] {rich_escape(str(w.location))}: {rich_escape(w.message)}")

    if report.is_clean and not report.warnings:
        console.print("[green]ALL CLEAR[/green] -- master index and detail documents agree.")
    console.print(format_summary(report))


def print_render_warnings(result):
    for w in result.warnings:
        console.print(f"[yellow]{w.kind}[/yellow] {rich_escape(str(w.location))}: {rich_escape(w.message)}")


# ──────────────────────────────────────────────
# Commands
# ──────────────────────────────────────────────

def cmd_check(args, config) -> int:
    catalog, report = load_and_check(config)
    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    elif args.summary:
        print(format_summary(report))
    else:
        print_report(report)
    if args.save:
        Path(args.save).write_text(generate_markdown_report(report, catalog), encoding="utf-8")
        if not (args.json or args.summary):
            console.print(f"Report saved to: {args.save}")
    return exit_code(config, report)


def cmd_render(args, config) -> int:
    catalog, report = load_and_check(config)
    code = exit_code(config, report)
    if code:
        print_report(report)
        console.print("[red]Not rendering:[/red] fail_on_findings is set and the catalog has findings.")
        return code
    result = render(config, catalog, report)
    written = write_site(result, config.output_root)
    print_render_warnings(result)
    console.print(f"Wrote {len(written)} files to {config.output_root} "
                  f"({len(result.warnings)} broken example links)")
    return 0


def cmd_build(args, config) -> int:
    catalog, report = load_and_check(config)
    print_report(report)
    code = exit_code(config, report)
    if code:
        console.print("[red]Not rendering:[/red] fail_on_findings is set and the catalog has findings.")
        return code
    result = render(config, catalog, report)
    written = write_site(result, config.output_root)
    print_render_warnings(result)
    console.print(f"Wrote {len(written)} files to {config.output_root}")
    return 0


def cmd_summary(args, config) -> int:
    catalog, report = load_and_check(config)
    indexed = Counter((e.standard, e.section) for e in catalog.index_entries)

    table = Table(title="C++ Feature Catalog", title_justify="left")
    table.add_column("Std", style="cyan", no_wrap=True)
    table.add_column("Section", no_wrap=True)
    table.add_column("Detail", justify="right")
    table.add_column("Index", justify="right")
    table.add_column("Examples", justify="right")
    table.add_column("Deprecated", justify="right")
    table.add_column("Proposed", justify="right")

    pairs = sorted(set(catalog.pages()) | set(indexed))
    for standard, section in pairs:
        entries = catalog.entries_for(standard, section)
        statuses = Counter(e.status for e in entries)
        table.add_row(
            standard.label, section.label,
            str(len(entries)), str(indexed[(standard, section)]),
            str(sum(1 for e in entries if e.example_link)),
            str(statuses[Status.DEPRECATED]), str(statuses[Status.PROPOSED]),
        )
    console.print(table)
    console.print(format_summary(report))
    return exit_code(config, report)


def cmd_serve(args, config) -> int:
    from preview_server import EXAMPLE_URL, run_preview

    catalog, report = load_and_check(config)
    result = render(config, catalog, report, example_url=EXAMPLE_URL)
    print_render_warnings(result)
    run_preview(result.pages, config.resolved_example_root, port=args.port, open_browser=args.open)
    return 0


COMMANDS = {
    "check": cmd_check,
    "render": cmd_render,
    "build": cmd_build,
    "summary": cmd_summary,
    "serve": cmd_serve,
}


def build_parser():
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--config", help="Config file (default: ./catalog.yaml if present)")
    common.add_argument("--input-root", help="Corpus directory or http(s) URL")
    common.add_argument("--example-root", help="Directory example links resolve against")
    common.add_argument("--output-root", help="Where the rendered site is written")
    common.add_argument("--fail-on-findings", action="store_true",
                        help="Treat any finding or malformed entry as fatal")
    common.add_argument("--workers", type=int, help="Parse documents with N threads")
    common.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    parser = argparse.ArgumentParser(description="C++ Feature Catalog consistency checker and site renderer")
    sub = parser.add_subparsers(dest="command", required=True)

    check = sub.add_parser("check", parents=[common], help="Cross-check master index and detail documents")
    check.add_argument("--json", action="store_true", help="Output JSON")
    check.add_argument("--summary", action="store_true", help="One-line summary")
    check.add_argument("--save", metavar="PATH", help="Write a Markdown report to PATH")

    sub.add_parser("render", parents=[common], help="Render the static site")
    sub.add_parser("build", parents=[common], help="Check, then render")
    sub.add_parser("summary", parents=[common], help="Entry counts per standard and section")

    serve = sub.add_parser("serve", parents=[common], help="Preview the rendered site with Flask (examples served from example_root)")
    serve.add_argument("--port", type=int, default=5050)
    serve.add_argument("--open", action="store_true", help="Open a browser tab")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    try:
        config = build_config(args)
        return COMMANDS[args.command](args, config)
    except ConfigError as e:
        err_console.print(f"[red]config error:[/red] {rich_escape(str(e))}")
        return EXIT_CONFIG_OR_IO
    except (OSError, requests.RequestException) as e:
        err_console.print(f"[red]I/O failure:[/red] {rich_escape(str(e))}")
        return EXIT_CONFIG_OR_IO


if __name__ == "__main__":
    sys.exit(main())
