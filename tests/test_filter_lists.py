import itertools

import pytest

from filter_lists import (
    DomainSets,
    LineMatch,
    RuleKind,
    classify_allow_rule,
    classify_bare_domain,
    classify_block_rule,
    classify_hosts_entry,
    classify_line,
    finalize,
    is_valid_domain,
    merge,
    merge_all,
    parse_filter_list,
)

SCENARIO = """# comment
0.0.0.0 bad.example.com
||ads.example.org^
@@||ads.example.org^
plain.example.net
192.168.0.1
"""


@pytest.mark.parametrize(
    "token",
    ["example.com", "ads.example.co.uk", "a-b.example.io", "0ad.example.com"],
)
def test_valid_domains(token):
    assert is_valid_domain(token)


@pytest.mark.parametrize(
    "token",
    [
        "",
        "example.com:8080",
        "192.168.1.1",
        "localhost",
        "*.example.com",
        "/path/example.com",
        "example",
        "example.c",
        "-example.com",
        "example.123",
        "a" * 250 + ".com",
    ],
)
def test_invalid_domains(token):
    assert not is_valid_domain(token)


def test_hosts_entry_strips_inline_comment():
    assert classify_hosts_entry("0.0.0.0 example.com  # comment") == LineMatch(RuleKind.BLOCK, "example.com")
    assert classify_hosts_entry("127.0.0.1\ttracker.example.net") == LineMatch(RuleKind.BLOCK, "tracker.example.net")
    assert classify_hosts_entry("10.0.0.1 example.com") is None


def test_block_rule():
    assert classify_block_rule("||ads.example.com^") == LineMatch(RuleKind.BLOCK, "ads.example.com")
    assert classify_block_rule("||ads.example.com^$third-party") == LineMatch(RuleKind.BLOCK, "ads.example.com")
    assert classify_block_rule("||ads.example.com") is None
    assert classify_block_rule("@@||ads.example.com^") is None


def test_allow_rule():
    assert classify_allow_rule("@@||safe.example.com^") == LineMatch(RuleKind.ALLOW, "safe.example.com")
    assert classify_allow_rule("@@||safe.example.com^$document") == LineMatch(RuleKind.ALLOW, "safe.example.com")
    assert classify_allow_rule("||safe.example.com^") is None


def test_bare_domain():
    assert classify_bare_domain("plain.example.net") == LineMatch(RuleKind.BLOCK, "plain.example.net")
    assert classify_bare_domain("example.com/ads.js") is None
    assert classify_bare_domain("##.ad-banner") is None


@pytest.mark.parametrize("line", ["", "   ", "# hosts comment", "! adblock comment", "[Adblock Plus 2.0]"])
def test_comments_are_skipped(line):
    assert classify_line(line) is None


def test_first_matching_format_owns_the_line():
    # hosts entry with an invalid token must not fall through to another format
    sets = parse_filter_list("0.0.0.0 0.0.0.0\n127.0.0.1 localhost\n")
    assert sets.blocked == set()
    assert sets.allowed == set()


def test_unrecognised_lines_are_skipped():
    text = "example.com##.banner\n/ads/*\n||*.example.com^\n||example.com/path^\n@@||localhost^\n"
    sets = parse_filter_list(text, "cosmetic")
    assert sets == DomainSets()


@pytest.mark.parametrize(
    "line",
    [
        "0.0.0.0 example.com:8080",
        "||192.168.1.1^",
        "@@||localhost^",
        "||*.example.com^",
        "0.0.0.0 /path/example.com",
    ],
)
def test_invalid_tokens_never_added(line):
    sets = parse_filter_list(line)
    assert not sets.blocked
    assert not sets.allowed


def test_domains_are_lowercased():
    sets = parse_filter_list("||Ads.Example.COM^\n@@||CDN.example.com^\nTracker.Example.org\n")
    assert sets.blocked == {"ads.example.com", "tracker.example.org"}
    assert sets.allowed == {"cdn.example.com"}


def test_any_line_ending():
    sets = parse_filter_list("a.example.com\r\nb.example.com\rc.example.com\n")
    assert sets.blocked == {"a.example.com", "b.example.com", "c.example.com"}


def test_end_to_end_scenario():
    sets = parse_filter_list(SCENARIO, "test")
    assert sets.blocked == {"bad.example.com", "ads.example.org", "plain.example.net"}
    assert sets.allowed == {"ads.example.org"}
    assert finalize(sets) == {"bad.example.com", "plain.example.net"}


def test_merge_is_idempotent():
    once = parse_filter_list(SCENARIO)
    twice = merge(once, parse_filter_list(SCENARIO))
    assert twice == once


def test_merge_does_not_mutate_inputs():
    left = DomainSets({"a.example.com"}, set())
    right = DomainSets({"b.example.com"}, {"c.example.com"})
    merged = merge(left, right)
    assert merged.blocked == {"a.example.com", "b.example.com"}
    assert merged.allowed == {"c.example.com"}
    assert left.blocked == {"a.example.com"}
    assert not left.allowed


def test_allow_wins_over_every_source():
    blockers = [parse_filter_list("||tracker.example.com^") for _ in range(10)]
    allower = parse_filter_list("@@||tracker.example.com^")
    merged = merge_all(blockers + [allower])
    assert "tracker.example.com" in merged.blocked
    assert "tracker.example.com" not in finalize(merged)


def test_merge_order_does_not_matter():
    sources = [
        parse_filter_list("||a.example.com^\n0.0.0.0 b.example.com\n"),
        parse_filter_list("@@||a.example.com^\nc.example.com\n"),
        parse_filter_list("127.0.0.1 d.example.com\n@@||e.example.com^\n"),
    ]
    expected = merge_all(sources)
    for order in itertools.permutations(sources):
        merged = merge_all(order)
        assert merged == expected
        assert finalize(merged) == {"b.example.com", "c.example.com", "d.example.com"}


def test_non_ascii_token_is_rejected_before_lowercasing():
    # U+212A KELVIN SIGN lowercases to ASCII "k"
    kelvin = "\u212a"
    assert kelvin.lower() == "k"
    text = f"||ad{kelvin}.com^\n0.0.0.0 {kelvin}ads.example.com\n@@||{kelvin}ads.example.org^\n{kelvin}ads.example.net\n"
    sets = parse_filter_list(text)
    assert sets.blocked == set()
    assert sets.allowed == set()


def test_only_newline_variants_split_lines():
    sets = parse_filter_list("a.example.com\x0cb.example.com\nc.example.com d.example.com\n")
    assert sets.blocked == set()
