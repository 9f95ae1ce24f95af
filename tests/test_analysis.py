"""Tests for tokenizing, style scoring and complexity analysis."""

import pytest

from codebench.analysis.complexity import BranchComplexityAnalyzer, FixedIncrementAnalyzer
from codebench.analysis.style import FixedStyleScorer, HeuristicStyleScorer
from codebench.analysis.tokenizer import tokenize_code, word_set
from codebench.data.pattern import create_pattern


class TestTokenizer:
    def test_c_like_code(self):
        code = "if (a >= 10) { return x; } // note"
        assert tokenize_code(code) == ["if", "(", "a", ">=", "10", ")", "{", "return", "x", ";", "}"]

    def test_comments_dropped_strings_kept(self):
        code = 'x = "a # b"  # trailing\n/* block\ncomment */ y'
        assert tokenize_code(code) == ["x", "=", '"a # b"', "y"]

    def test_empty(self):
        assert tokenize_code("") == []

    def test_word_set_splits_identifiers(self):
        assert {"sort", "array"} <= word_set("sortArray")
        assert {"sort", "array"} <= word_set("sort_array")
        assert word_set("Create a function to sort an array") == {"create", "function", "sort", "array"}


class TestStyle:
    def test_fixed_score(self):
        assert FixedStyleScorer().score("anything") == 0.75

    def test_clean_code(self):
        assert HeuristicStyleScorer().score("def f():\n    return 1\n") == 1.0

    def test_penalties(self):
        scorer = HeuristicStyleScorer()
        assert scorer.score("x" * 101) == pytest.approx(0.6)
        assert scorer.score("x = 1 \ny = 2") == pytest.approx(0.85)
        assert scorer.score("if a:\n\tb\nif c:\n    d") == pytest.approx(0.7)

    def test_empty_code(self):
        assert HeuristicStyleScorer().score("") == 0.0


class TestComplexity:
    def test_fixed_increment_returns_new_value(self):
        p = create_pattern("x", "python", 2.0)
        assert FixedIncrementAnalyzer().analyze(p) == 3.0
        assert FixedIncrementAnalyzer(increment=0.5).analyze(p) == 2.5
        assert p.complexity == 2.0

    def test_branches_counted(self):
        p = create_pattern("while (i < n && ok) { i = x ? 1 : 2; }", "c", 0.0)
        # base 1 + while, &&, ?
        assert BranchComplexityAnalyzer().analyze(p) == 4.0
