from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Tuple

MAX_DOMAIN_LENGTH = 253
COMMENT_PREFIXES = ("#", "!", "[")

HOSTS_ENTRY_RE = re.compile(r"^(?:0\.0\.0\.0|127\.0\.0\.1)\s+(.+)$")
DOMAIN_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9\-.]+\.[A-Za-z]{2,}$")
IPV4_RE = re.compile(r"^\d+\.\d+\.\d+\.\d+$")
INVALID_CHARS = frozenset("*/:")
# \n, \r\n and \r only; str.splitlines() would also split on form feeds etc.
LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


class RuleKind(Enum):
    BLOCK = "block"
    ALLOW = "allow"


@dataclass(frozen=True)
class LineMatch:
    kind: RuleKind
    token: str


@dataclass
class DomainSets:
    blocked: set[str] = field(default_factory=set)
    allowed: set[str] = field(default_factory=set)


def is_valid_domain(token: str) -> bool:
    if not token:
        return False
    if INVALID_CHARS.intersection(token):
        return False
    if token == "localhost":
        return False
    if IPV4_RE.match(token):
        return False
    if len(token) > MAX_DOMAIN_LENGTH:
        return False
    return bool(DOMAIN_RE.fullmatch(token))


def classify_hosts_entry(line: str) -> Optional[LineMatch]:
    """Handle ``0.0.0.0 host`` / ``127.0.0.1 host`` lines, dropping inline comments."""
    match = HOSTS_ENTRY_RE.match(line)
    if match is None:
        return None
    token = match.group(1).split("#", 1)[0].strip()
    return LineMatch(RuleKind.BLOCK, token)


def _strip_rule(line: str, prefix: str) -> str:
    return line[len(prefix):].split("^", 1)[0].strip()


def classify_block_rule(line: str) -> Optional[LineMatch]:
    if line.startswith("||") and "^" in line:
        return LineMatch(RuleKind.BLOCK, _strip_rule(line, "||"))
    return None


def classify_allow_rule(line: str) -> Optional[LineMatch]:
    if line.startswith("@@||") and "^" in line:
        return LineMatch(RuleKind.ALLOW, _strip_rule(line, "@@||"))
    return None


def classify_bare_domain(line: str) -> Optional[LineMatch]:
    if DOMAIN_RE.fullmatch(line):
        return LineMatch(RuleKind.BLOCK, line)
    return None


# Priority order; the first classifier that recognises a line owns it.
CLASSIFIERS: Tuple[Callable[[str], Optional[LineMatch]], ...] = (
    classify_hosts_entry,
    classify_block_rule,
    classify_allow_rule,
    classify_bare_domain,
)


def is_comment(line: str) -> bool:
    return not line or line.startswith(COMMENT_PREFIXES)


def classify_line(line: str) -> Optional[LineMatch]:
    line = line.strip()
    if is_comment(line):
        return None
    for classifier in CLASSIFIERS:
        result = classifier(line)
        if result is not None:
            return result
    return None


def parse_filter_list(text: str, source_name: str = "") -> DomainSets:
    """Extract blocked and allowed domains from one source's raw text.

    Lines that are not recognised, or whose token is not a plausible domain,
    are skipped. ``source_name`` only identifies the source to callers.
    """
    sets = DomainSets()
    for raw in LINE_BREAK_RE.split(text):
        result = classify_line(raw)
        # Validate before lowercasing: str.lower() can map non-ASCII into ASCII.
        if result is None or not is_valid_domain(result.token):
            continue
        domain = result.token.lower()
        if result.kind is RuleKind.ALLOW:
            sets.allowed.add(domain)
        else:
            sets.blocked.add(domain)
    return sets


def merge(accumulated: DomainSets, parsed: DomainSets) -> DomainSets:
    return DomainSets(
        blocked=accumulated.blocked | parsed.blocked,
        allowed=accumulated.allowed | parsed.allowed,
    )


def merge_all(results: Iterable[DomainSets]) -> DomainSets:
    merged = DomainSets()
    for result in results:
        merged = merge(merged, result)
    return merged


def finalize(sets: DomainSets) -> set[str]:
    # Allow rules win over block rules from any source.
    return sets.blocked - sets.allowed
