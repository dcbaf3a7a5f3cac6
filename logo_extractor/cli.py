"""Command-line interface for the logo_extractor project."""

from __future__ import annotations

import argparse
import logging
import time
from pathlib import Path
from typing import Iterable
from urllib.parse import urlparse

from .config import ExtractorConfig
from .io.models import SiteReport
from .io.outputs import (
    save_data_uri_candidates,
    write_batch_report,
    write_report,
    write_summary_table,
)
from .pipeline import process_batch, process_url, read_url_file

DEFAULT_OUT_DIR = Path("out")
_DEBUG_CANDIDATE_COUNT = 5


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments for the logo extractor."""
    parser = argparse.ArgumentParser(
        description="Find the brand logo and colors of one website or a list of websites."
    )
    target = parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--url", help="Single website URL to inspect.")
    target.add_argument(
        "--input",
        help="Path to a text file containing website URLs, one per line.",
    )
    parser.add_argument(
        "--out",
        default=str(DEFAULT_OUT_DIR),
        help="Directory path where JSON outputs will be written.",
    )
    parser.add_argument(
        "--assets",
        required=False,
        default=None,
        help="Directory path where inline (data URI) images will be saved.",
    )
    parser.add_argument(
        "--static",
        action="store_true",
        help="Parse HTTP-fetched HTML instead of rendering pages in a browser.",
    )
    parser.add_argument(
        "--no-colors",
        action="store_true",
        help="Skip brand color extraction.",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=4,
        help="Number of sites processed concurrently in batch mode.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=30.0,
        help="Navigation timeout in seconds.",
    )
    parser.add_argument(
        "--wait",
        type=float,
        default=1.0,
        help="Seconds to wait after a page has loaded.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )
    parser.add_argument(
        "--debug-candidates",
        action="store_true",
        help="Print the top ranked logo candidates for each site.",
    )
    return parser.parse_args(list(argv) if argv is not None else None)


def build_config(args: argparse.Namespace) -> ExtractorConfig:
    return ExtractorConfig(
        navigation_timeout=args.timeout,
        wait_after_load=args.wait,
        workers=args.workers,
        extract_colors=not args.no_colors,
        static=args.static,
    )


def _debug_candidates(report: SiteReport) -> None:
    """Print the top ranked candidates of *report*."""
    print(f"[candidates] {report.url}")
    if not report.candidates:
        print("  (no candidates)")
        return
    for index, candidate in enumerate(report.candidates[:_DEBUG_CANDIDATE_COUNT], start=1):
        url = candidate.url if len(candidate.url) <= 100 else candidate.url[:100] + "..."
        print(
            f"  {index}. {candidate.source_kind.value} (score={candidate.score}) -> {url}"
        )


def _save_assets(report: SiteReport, assets_dir: Path | None) -> None:
    if assets_dir is None or not report.candidates:
        return
    site_dir = assets_dir / _safe_host_label(report.url)
    report.candidates = save_data_uri_candidates(report.candidates, site_dir)
    saved = [candidate for candidate in report.candidates if candidate.saved_path]
    for candidate in saved:
        print(f"[saved] {_safe_host_label(report.url)}: {candidate.saved_path}")


def _print_report(report: SiteReport) -> None:
    host_label = _safe_host_label(report.url)
    if report.status != "success":
        print(f"[error] {host_label}: {report.error}")
    elif report.logo_url:
        logo = report.logo_url if len(report.logo_url) <= 100 else report.logo_url[:100] + "..."
        print(f"[logo] {host_label}: {logo}")
    else:
        print(f"[warn] {host_label}: no logo found")
    if report.colors.primary:
        print(
            f"[colors] {host_label}: {report.colors.primary} / "
            f"{report.colors.secondary or 'N/A'}"
        )
    print(f"[time] {host_label}: {report.execution_time_seconds:.2f}s")


def _run_single(url: str, config: ExtractorConfig, args: argparse.Namespace) -> int:
    report = process_url(url, config)
    _save_assets(report, Path(args.assets) if args.assets else None)
    if args.debug_candidates:
        _debug_candidates(report)
    result_path, images_path = write_report(Path(args.out), report)
    _print_report(report)
    print(f"[written] {result_path}, {images_path}")
    return 0 if report.status == "success" else 1


def _run_batch(input_path: Path, config: ExtractorConfig, args: argparse.Namespace) -> int:
    urls = read_url_file(input_path)
    if not urls:
        print(f"[error] no valid URLs found in {input_path}")
        return 1
    print(f"[batch] {len(urls)} URLs, {config.workers} workers")

    def progress(done: int, total: int, report: SiteReport) -> None:
        _print_report(report)

    started = time.perf_counter()
    reports = process_batch(urls, config, progress=progress)
    total_seconds = time.perf_counter() - started

    assets_dir = Path(args.assets) if args.assets else None
    for report in reports:
        _save_assets(report, assets_dir)
        if args.debug_candidates:
            _debug_candidates(report)

    out_dir = Path(args.out)
    batch_path = write_batch_report(out_dir / "batch-results.json", reports, total_seconds)
    summary_path = write_summary_table(out_dir / "summary.parquet", reports)
    successful = sum(1 for report in reports if report.status == "success")
    print(
        f"[batch] {successful}/{len(reports)} succeeded in {total_seconds:.2f}s -> {batch_path}"
    )
    if summary_path is not None:
        print(f"[summary] wrote {len(reports)} rows to {summary_path}")
    return 0


def _safe_host_label(url: str) -> str:
    parsed = urlparse(url)
    host = parsed.netloc or parsed.path or "site"
    sanitized = "".join(ch if ch.isalnum() or ch in "._-" else "_" for ch in host)
    sanitized = sanitized.strip("._-")
    return sanitized or "site"


def main(argv: Iterable[str] | None = None) -> int:
    """Entry point for the CLI."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = build_config(args)
    if args.url:
        return _run_single(args.url, config, args)
    return _run_batch(Path(args.input), config, args)


if __name__ == "__main__":
    raise SystemExit(main())
