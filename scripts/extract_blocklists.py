#!/usr/bin/env python3
"""Download ad/tracker filter lists and convert them to Pi-hole friendly files.

Usage:
    extract_blocklists.py [--output-dir DIR] [--lists LIST1,LIST2]

Examples:
    extract_blocklists.py
    extract_blocklists.py --output-dir /etc/pihole/custom
    extract_blocklists.py --lists easylist,easyprivacy
"""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable, List, Optional

import requests

from filter_lists import DomainSets, finalize, merge_all, parse_filter_list

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30
USER_AGENT = "Mozilla/5.0 (compatible; blocklist-extractor/1.0)"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"

BLOCKLIST_FILE = "blocklist.txt"
ALLOWLIST_FILE = "allowlist.txt"
HOSTS_FILE = "hosts.txt"
SOURCES_FILE = "sources.txt"

FILTER_LISTS = {
    "ublock-filters": "https://ublockorigin.github.io/uAssets/filters/filters.txt",
    "ublock-badware": "https://ublockorigin.github.io/uAssets/filters/badware.txt",
    "ublock-privacy": "https://ublockorigin.github.io/uAssets/filters/privacy.txt",
    "ublock-unbreak": "https://ublockorigin.github.io/uAssets/filters/unbreak.txt",
    "easylist": "https://ublockorigin.github.io/uAssets/thirdparties/easylist.txt",
    "easyprivacy": "https://ublockorigin.github.io/uAssets/thirdparties/easyprivacy.txt",
    "peter-lowe": "https://pgl.yoyo.org/adservers/serverlist.php?hostformat=hosts&showintro=0&mimetype=plaintext",
    "urlhaus-malware": "https://malware-filter.gitlab.io/urlhaus-filter/urlhaus-filter-hosts.txt",
    # Additional popular lists
    "adguard-dns": "https://adguardteam.github.io/AdGuardSDNSFilter/Filters/filter.txt",
    "steven-black-hosts": "https://raw.githubusercontent.com/StevenBlack/hosts/master/hosts",
    "energized-basic": "https://block.energized.pro/basic/formats/hosts.txt",
    "oisd-basic": "https://abp.oisd.nl/basic/",
}


def default_output_dir() -> Path:
    return Path.cwd() / "blocklists" / "ublock"


@dataclass
class ExtractionResult:
    blocked: set[str]
    allowed: set[str]
    sources: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def now_utc_iso() -> str:
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")


def fetch_url(url: str) -> Optional[str]:
    """Return the body of ``url`` or None if it could not be downloaded."""
    try:
        response = requests.get(
            url,
            headers={"User-Agent": USER_AGENT},
            timeout=REQUEST_TIMEOUT,
            allow_redirects=True,
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.error(f"Error fetching {url}: {e}")
        print(f"  Error fetching {url}: {e}")
        return None
    # raise_for_status() lets 3xx through, e.g. a redirect without Location or a 304.
    if not 200 <= response.status_code < 300:
        logger.error(f"Error fetching {url}: status code {response.status_code}")
        print(f"  Error fetching {url}: status code {response.status_code}")
        return None
    return response.content.decode("utf-8", errors="replace")


def resolve_lists(names: Optional[Iterable[str]]) -> List[str]:
    if names is None:
        return list(FILTER_LISTS)

    selected: List[str] = []
    for name in names:
        name = name.strip()
        if not name:
            continue
        if name not in FILTER_LISTS:
            logger.warning(f"Unknown list '{name}', skipping")
            print(f"Warning: Unknown list '{name}', skipping...")
            continue
        if name not in selected:
            selected.append(name)
    return selected


def extract(
    names: Iterable[str],
    fetch: Callable[[str], Optional[str]] = fetch_url,
) -> ExtractionResult:
    parsed_sources: List[DomainSets] = []
    sources: List[str] = []
    failed: List[str] = []

    for name in names:
        url = FILTER_LISTS.get(name)
        if url is None:
            logger.warning(f"Unknown list '{name}', skipping")
            print(f"Warning: Unknown list '{name}', skipping...")
            continue
        sources.append(name)
        print(f"Fetching: {name}")
        content = fetch(url)
        if content is None:
            failed.append(name)
            print("  -> Failed to fetch")
            print()
            continue

        parsed = parse_filter_list(content, name)
        parsed_sources.append(parsed)
        print(f"  -> Found {len(parsed.blocked)} blocked domains, {len(parsed.allowed)} allowed domains")
        print()

    accumulated = merge_all(parsed_sources)
    return ExtractionResult(
        blocked=finalize(accumulated),
        allowed=accumulated.allowed,
        sources=sources,
        failed=failed,
    )


def write_lines(lines: Iterable[str], destination: Path) -> None:
    destination.parent.mkdir(parents=True, exist_ok=True)
    text = "\n".join(lines)
    if not text.endswith("\n"):
        text += "\n"
    destination.write_text(text, encoding="utf-8")


def _list_header(title: str, generated: str, total: int, sources: List[str], usage: str) -> List[str]:
    return [
        f"# {title}",
        f"# Generated: {generated}",
        f"# Total domains: {total}",
        f"# Sources: {', '.join(sources)}",
        "#",
        f"# Usage: {usage}",
        "",
    ]


def write_outputs(result: ExtractionResult, output_dir: Path, generated: Optional[str] = None) -> List[Path]:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    generated = generated or now_utc_iso()
    blocked = sorted(result.blocked)
    allowed = sorted(result.allowed)

    blocklist_path = output_dir / BLOCKLIST_FILE
    write_lines(
        _list_header(
            "Pi-hole Blocklist - Generated from uBlock Origin filter lists",
            generated,
            len(blocked),
            result.sources,
            "Add this file URL to Pi-hole's adlist or copy domains to custom blocklist",
        )
        + blocked,
        blocklist_path,
    )

    allowlist_path = output_dir / ALLOWLIST_FILE
    write_lines(
        _list_header(
            "Pi-hole Allowlist - Exceptions from uBlock Origin filter lists",
            generated,
            len(allowed),
            result.sources,
            "Add these domains to Pi-hole's whitelist",
        )
        + allowed,
        allowlist_path,
    )

    hosts_path = output_dir / HOSTS_FILE
    hosts_lines = [
        "# Pi-hole Hosts Format Blocklist",
        f"# Generated: {generated}",
        f"# Total domains: {len(blocked)}",
        "",
    ]
    hosts_lines.extend(f"0.0.0.0 {domain}" for domain in blocked)
    write_lines(hosts_lines, hosts_path)

    sources_path = output_dir / SOURCES_FILE
    sources_lines = [
        "# Filter List Sources",
        "# These URLs can be added directly to Pi-hole if they support the format",
        "",
    ]
    for name in result.sources:
        sources_lines.extend([f"# {name}", FILTER_LISTS[name], ""])
    write_lines(sources_lines, sources_path)

    return [blocklist_path, allowlist_path, hosts_path, sources_path]


def print_available() -> None:
    print("Available filter lists:")
    for name, url in FILTER_LISTS.items():
        print(f"  {name}")
        print(f"    {url}")


def print_summary(result: ExtractionResult, output_dir: Path) -> None:
    print("=" * 50)
    print("Summary")
    print("=" * 50)
    print(f"Total blocked domains: {len(result.blocked)}")
    print(f"Total allowed domains: {len(result.allowed)}")
    if result.failed:
        print(f"Failed sources: {', '.join(result.failed)}")
    print()
    print("Output files:")
    print(f"  {output_dir / BLOCKLIST_FILE} - Domain list for Pi-hole")
    print(f"  {output_dir / ALLOWLIST_FILE} - Exception domains")
    print(f"  {output_dir / HOSTS_FILE}     - Hosts file format")
    print(f"  {output_dir / SOURCES_FILE}   - Source URLs")
    print()
    print("To use with Pi-hole:")
    print("  1. Copy blocklist.txt contents to: pihole -b <domain>")
    print("  2. Or add as URL to Group Management > Adlists")
    print("  3. Add allowlist.txt domains to: pihole -w <domain>")


def _split_lists(value: str) -> List[str]:
    return [part for part in value.split(",") if part.strip()]


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Convert ad/tracker filter lists to Pi-hole domain lists")
    p.add_argument("-o", "--output-dir", type=Path, default=None, metavar="DIR",
                   help="output directory for generated lists (default: ./blocklists/ublock)")
    p.add_argument("-l", "--lists", type=_split_lists, default=None, metavar="LIST1,LIST2",
                   help="comma-separated list of filter lists to use (default: all)")
    p.add_argument("-a", "--available", action="store_true", help="show available filter lists")
    return p


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=logging.WARNING, format=LOG_FORMAT)

    if args.available:
        print_available()
        return 0

    output_dir = args.output_dir or default_output_dir()

    print("uBlock Origin Filter List Extractor for Pi-hole")
    print("=" * 50)
    print()

    try:
        output_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.error(f"Cannot create output directory {output_dir}: {exc}")
        print(f"Cannot create output directory {output_dir}: {exc}", file=sys.stderr)
        return 1

    names = resolve_lists(args.lists)
    result = extract(names)

    try:
        write_outputs(result, output_dir)
    except OSError as exc:
        logger.error(f"Cannot write output to {output_dir}: {exc}")
        print(f"Cannot write output to {output_dir}: {exc}", file=sys.stderr)
        return 1

    print_summary(result, output_dir)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
