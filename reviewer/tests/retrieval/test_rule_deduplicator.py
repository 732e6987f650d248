import itertools

from reviewer.app.retrieval.deduplicator import RuleDeduplicator, is_duplicate
from reviewer.app.schemas.rules import Rule


def rule(rule_id, title, description):
    return Rule(id=rule_id, title=title, description=description)


RULES = [
    rule(
        "r-1",
        "Annual financial statements",
        "The issuer must publish audited annual financial statements within four months.",
    ),
    rule(
        "r-2",
        "Annual Financial Statements",
        "The issuer must publish audited annual financial statements within four months of year end.",
    ),
    rule(
        "extracted-rule-0",
        "Annual financial statements.",
        "Audited annual financial statements must be published.",
    ),
    rule(
        "r-3",
        "Board independence",
        "At least half of the board of directors must be independent non-executive directors.",
    ),
    rule(
        "r-4",
        "Risk factor disclosure",
        "Material risks specific to the issuer must be disclosed in a dedicated section.",
    ),
]


def test_exact_duplicates_collapse():
    a = rule("a", "Same title", "Same description text here.")
    b = rule("b", "same title ", "same description text here.")

    assert is_duplicate(a, b)
    assert len(RuleDeduplicator().deduplicate([a, b])) == 1


def test_unrelated_rules_are_kept():
    kept = RuleDeduplicator().deduplicate([RULES[3], RULES[4]])

    assert [r.id for r in kept] == ["r-3", "r-4"]


def test_near_duplicates_keep_the_more_detailed_real_rule():
    kept = RuleDeduplicator().deduplicate(RULES[:3])

    assert [r.id for r in kept] == ["r-2"]


def test_deduplicate_is_idempotent():
    dedup = RuleDeduplicator()
    once = dedup.deduplicate(RULES)

    assert dedup.deduplicate(once) == once


def test_deduplicate_is_order_independent():
    dedup = RuleDeduplicator()
    expected = {r.id for r in dedup.deduplicate(RULES)}

    for permutation in itertools.permutations(RULES):
        assert {r.id for r in dedup.deduplicate(list(permutation))} == expected


def test_output_preserves_input_order():
    dedup = RuleDeduplicator()
    kept = dedup.deduplicate([RULES[4], RULES[3], RULES[0]])

    assert [r.id for r in kept] == ["r-4", "r-3", "r-1"]


def test_empty_input():
    assert RuleDeduplicator().deduplicate([]) == []
