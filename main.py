"""CLI entrypoint for weekly digest generation and inspection."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Optional

from rich.table import Table

from config import Settings, get_settings
from core import CycleReport, Digest
from digest import DigestRuntime
from storage import LATEST_KEY, BaseDigestStore, get_digest_store
from utils.logger import configure_package_logging, console


def _apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    settings = settings.model_copy(deep=True)
    if getattr(args, "top_n", None):
        settings.digest.top_n = int(args.top_n)
    if getattr(args, "social", None):
        settings.social.provider = str(args.social)
    return settings


def _print_report(report: CycleReport) -> None:
    table = Table(title=f"Cycle {report.cycle_id}: {report.status}", show_header=True)
    table.add_column("Backend", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Topics", style="white")
    table.add_column("Error", style="red")
    for branch in report.branches:
        table.add_row(branch.backend.value, branch.status, str(branch.topic_count), branch.error or "")
    console.print(table)
    console.print(f"citations verified={report.verified_urls} valid={report.valid_urls}")
    if report.digest:
        _print_digest(report.digest)
    for error in report.errors:
        console.print(f"[red]{error}[/red]")


def _print_digest(digest: Digest) -> None:
    table = Table(title=digest.title, show_header=True)
    table.add_column("#", style="cyan")
    table.add_column("Topic", style="white")
    table.add_column("Score", style="green")
    table.add_column("Citations", style="white")
    table.add_column("Social", style="magenta")
    for idx, topic in enumerate(digest.topics, start=1):
        table.add_row(
            str(idx),
            topic.title,
            f"{topic.overall_score:.2f}",
            str(len(topic.citations)),
            f"{topic.social_impact_score:.2f}",
        )
    console.print(table)


async def _generate(settings: Settings, store: BaseDigestStore) -> CycleReport:
    runtime = DigestRuntime.from_settings(settings, store=store)
    try:
        return await runtime.run_cycle()
    finally:
        await runtime.aclose()


def _cmd_generate(args: argparse.Namespace, settings: Settings) -> int:
    settings = _apply_overrides(settings, args)
    with get_digest_store(settings) as store:
        report = asyncio.run(_generate(settings, store))
    if args.json:
        print(report.model_dump_json(by_alias=True, indent=2))
    else:
        _print_report(report)
    return 0 if report.published else 1


def _cmd_show(args: argparse.Namespace, settings: Settings) -> int:
    key = BaseDigestStore.backup_key(LATEST_KEY) if args.backup else LATEST_KEY
    with get_digest_store(settings) as store:
        digest: Optional[Digest] = store.read(key)
    if digest is None:
        console.print(f"[yellow]no digest stored under {key}[/yellow]")
        return 1
    if args.html:
        print(digest.raw_html)
    elif args.json:
        print(json.dumps(digest.to_payload(), ensure_ascii=False, indent=2))
    else:
        console.print(f"[bold]{digest.title}[/bold]  published {digest.published_at.isoformat()}")
        console.print(digest.summary)
        _print_digest(digest)
    return 0


def _cmd_invalidate(args: argparse.Namespace, settings: Settings) -> int:
    with get_digest_store(settings) as store:
        removed = store.invalidate(args.pattern)
    print(json.dumps({"pattern": args.pattern, "removed": removed}, ensure_ascii=False))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Weekly AI digest CLI")
    sub = parser.add_subparsers(dest="command", required=True)

    gen = sub.add_parser("generate", help="run one generation cycle")
    gen.add_argument("--top-n", type=int, default=None)
    gen.add_argument("--social", choices=["live", "synthetic"], default=None)
    gen.add_argument("--json", action="store_true")

    show = sub.add_parser("show", help="print the published digest")
    show.add_argument("--html", action="store_true")
    show.add_argument("--json", action="store_true")
    show.add_argument("--backup", action="store_true")

    inv = sub.add_parser("invalidate", help="drop stored keys matching a glob pattern")
    inv.add_argument("pattern")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    level = getattr(logging, str(settings.general.log_level or "INFO").upper(), logging.INFO)
    configure_package_logging(level=level)

    if args.command == "generate":
        return _cmd_generate(args, settings)
    if args.command == "show":
        return _cmd_show(args, settings)
    if args.command == "invalidate":
        return _cmd_invalidate(args, settings)
    return 2


if __name__ == "__main__":
    sys.exit(main())
