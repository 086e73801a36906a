"""Tests for ContentFilter — whole-word detection and redaction."""

import pytest

from echoroom.moderation.content_filter import (
    DENYLIST,
    MASK,
    ContentFilter,
    compile_denylist,
    default_filter,
)


# ── Detection ────────────────────────────────────────────────────────────


class TestContainsViolation:
    def test_clean_text(self):
        assert not default_filter.contains_violation("hello everyone, how are you?")

    def test_single_term(self):
        assert default_filter.contains_violation("fuck this")

    def test_case_insensitive(self):
        assert default_filter.contains_violation("FUCK this")
        assert default_filter.contains_violation("Shit happens")

    def test_term_inside_longer_word_not_flagged(self):
        # "class" contains "ass", "scrap" contains "crap"
        assert not default_filter.contains_violation("the class was great")
        assert not default_filter.contains_violation("scrap that idea")

    def test_punctuation_boundaries(self):
        assert default_filter.contains_violation("what the fuck!")
        assert default_filter.contains_violation("(shit)")

    def test_multi_word_term(self):
        assert default_filter.contains_violation("suck my socks")

    def test_non_ascii_term(self):
        assert default_filter.contains_violation("eres un imbécil")
        assert default_filter.contains_violation("qué coño")

    def test_empty_text(self):
        assert not default_filter.contains_violation("")


# ── Redaction ────────────────────────────────────────────────────────────


class TestRedact:
    def test_single_term(self):
        assert default_filter.redact("fuck this") == "**** this"

    def test_multiple_terms(self):
        assert default_filter.redact("shit, you idiot") == "****, you ****"

    def test_preserves_clean_text(self):
        text = "a perfectly normal sentence"
        assert default_filter.redact(text) == text

    def test_longest_phrase_wins(self):
        # "puta madre" masked as a unit, not "**** madre"
        assert default_filter.redact("puta madre") == MASK

    def test_idempotent(self):
        for text in ["fuck this shit", "you MORON", "clean", "suck my dick"]:
            once = default_filter.redact(text)
            assert default_filter.redact(once) == once

    def test_mask_is_not_a_violation(self):
        assert not default_filter.contains_violation(MASK)

    def test_flagged_text_is_always_changed_by_redaction(self):
        for text in ["fuck", "Bitch please", "hey crackhead", "pendejo!"]:
            assert default_filter.contains_violation(text)
            assert default_filter.redact(text) != text


# ── Helpers ──────────────────────────────────────────────────────────────


class TestFindViolations:
    def test_order_and_lowercase(self):
        assert default_filter.find_violations("Shit and FUCK") == ["shit", "fuck"]

    def test_none(self):
        assert default_filter.find_violations("all good") == []


class TestCustomFilter:
    def test_custom_terms_and_mask(self):
        f = ContentFilter(terms=["darn"], mask="[x]")
        assert f.redact("darn it") == "[x] it"
        assert not f.contains_violation("fuck")

    def test_empty_denylist_matches_nothing(self):
        f = ContentFilter(terms=[])
        assert not f.contains_violation("fuck")
        assert f.redact("fuck") == "fuck"

    def test_regex_metacharacters_escaped(self):
        pattern = compile_denylist(["a.b"])
        assert pattern.search("a.b")
        assert not pattern.search("axb")

    def test_denylist_size(self):
        assert len(DENYLIST) == 64
