import logging
import math
import random

import pytest

from langgen.derivation import (
    NO_NONTERMINAL,
    Derivation,
    SententialForm,
    choose_rule,
    derive_random,
    derive_sequence,
    random_word,
)
from langgen.errors import (
    DeadNonTerminalError,
    DerivationError,
    EmptyProductionError,
    NoNonTerminalError,
    RuleMismatchError,
    StepLimitExceeded,
)
from langgen.grammar import Grammar


def test_single_rule_scenario():
    grammar = Grammar.from_pairs([("E", "n")])
    derivation = Derivation(grammar)
    assert derivation.current.form == "E"
    assert derivation.is_complete() is False
    assert derivation.word() is None
    assert derivation.leftmost_nonterminal() == "E"

    derivation.step(0)
    assert derivation.current.form == "n"
    assert derivation.is_complete() is True
    assert derivation.word() == "n"
    assert derivation.leftmost_nonterminal() is None


def test_prefix_scenario_forms():
    grammar = Grammar.from_pairs([("E", "!E"), ("E", "n")])
    derivation = derive_sequence(grammar, [0, 1])
    assert derivation.forms() == ["E", "!E", "!n"]
    assert derivation.word() == "!n"
    assert derivation.rule_indices() == [0, 1]
    assert len(derivation) == 2
    assert derivation.steps[0][0] is None


def test_manual_expression_derivation(expression_grammar):
    derivation = Derivation(expression_grammar)
    for index in (0, 1, 0, 4, 4):
        derivation.step(index)
    assert derivation.forms() == ["E", "!E", "!E*E", "!!E*E", "!!n*E", "!!n*n"]
    assert derivation.word() == "!!n*n"


def test_sequence_with_shared_lhs():
    grammar = Grammar.from_pairs([("E", "E*E"), ("E", "n")])
    assert derive_sequence(grammar, [1]).word() == "n"


def test_rule_mismatch_on_first_step():
    grammar = Grammar.from_pairs([("E", "B"), ("B", "n")])
    with pytest.raises(RuleMismatchError) as excinfo:
        derive_sequence(grammar, [1])
    assert excinfo.value.nonterminal == "E"
    assert excinfo.value.lhs == "B"
    assert isinstance(excinfo.value, DerivationError)


def test_step_rule_mismatch_leaves_derivation_untouched():
    grammar = Grammar.from_pairs([("E", "B"), ("B", "n")])
    derivation = Derivation(grammar)
    with pytest.raises(RuleMismatchError):
        derivation.step(1)
    assert derivation.forms() == ["E"]
    derivation.step(0)
    derivation.step(1)
    assert derivation.word() == "n"


@pytest.mark.parametrize("index", [-1, 5, 99])
def test_out_of_range_index_is_a_mismatch(index):
    grammar = Grammar.from_pairs([("E", "n")])
    with pytest.raises(RuleMismatchError):
        Derivation(grammar).step(index)


def test_step_on_complete_derivation_raises():
    grammar = Grammar.from_pairs([("E", "n")])
    derivation = derive_sequence(grammar, [0])
    with pytest.raises(NoNonTerminalError):
        derivation.step(0)
    assert derivation.forms() == ["E", "n"]


def test_sequence_stops_quietly_once_complete():
    grammar = Grammar.from_pairs([("E", "!E"), ("E", "n")])
    derivation = derive_sequence(grammar, [1, 0, 0])
    assert derivation.forms() == ["E", "n"]
    assert derivation.word() == "n"


def test_incomplete_sequence_has_no_word():
    grammar = Grammar.from_pairs([("E", "!E"), ("E", "n")])
    derivation = derive_sequence(grammar, [0, 0])
    assert derivation.is_complete() is False
    assert derivation.word() is None
    assert derivation.leftmost_nonterminal() == "E"


def test_rule_refs_from_another_grammar_are_rejected():
    grammar = Grammar.from_pairs([("E", "n")])
    other = Grammar.from_pairs([("E", "n")])
    assert derive_sequence(grammar, [grammar.ref(0)]).word() == "n"
    with pytest.raises(RuleMismatchError):
        derive_sequence(grammar, [other.ref(0)])


def test_rewrite_length_and_leftmost_index(expression_grammar):
    form = SententialForm("n+E*E", 2)
    for index in expression_grammar.rule_indices_for("E"):
        rule = expression_grammar.rules[index]
        rewritten = form.rewrite(expression_grammar, index)
        assert len(rewritten.form) == len(form.form) - 1 + len(rule.rhs)
        expected = next((i for i, c in enumerate(rewritten.form) if c.isupper()), NO_NONTERMINAL)
        assert rewritten.leftmost_index == expected
    # the original snapshot is unchanged
    assert form.form == "n+E*E"


def test_sentential_form_sentinel():
    grammar = Grammar.from_pairs([("E", "ab")])
    form = SententialForm.initial(grammar)
    assert form.leftmost_index == 0
    done = form.rewrite(grammar, 0)
    assert done.leftmost_index == NO_NONTERMINAL
    assert done.is_complete() is True
    with pytest.raises(NoNonTerminalError):
        done.rewrite(grammar, 0)


def test_step_limit_zero_produces_no_word(expression_grammar):
    with pytest.raises(StepLimitExceeded) as excinfo:
        derive_random(expression_grammar, step_limit=0, seed=1)
    assert excinfo.value.derivation.forms() == ["E"]
    assert not isinstance(excinfo.value, DerivationError)
    assert random_word(expression_grammar, step_limit=0, seed=1) is None


def test_step_limit_stops_non_terminating_grammar():
    grammar = Grammar.from_pairs([("S", "aS")])
    with pytest.raises(StepLimitExceeded) as excinfo:
        derive_random(grammar, step_limit=4, seed=7)
    partial = excinfo.value.derivation
    assert len(partial) == 4
    assert partial.current.form == "aaaaS"
    assert partial.word() is None


def test_random_word_terminates_on_finite_grammar():
    grammar = Grammar.from_pairs([("S", "aA"), ("A", "b"), ("A", "c")])
    for seed in range(20):
        word = random_word(grammar, step_limit=2, seed=seed)
        assert word in {"ab", "ac"}


def test_random_derivation_is_reproducible(expression_grammar):
    first = derive_random(expression_grammar, seed=42, weights={4: 0.5, 0: 0.5}).forms()
    second = derive_random(expression_grammar, seed=42, weights={4: 0.5, 0: 0.5}).forms()
    assert first == second


def test_random_words_contain_no_nonterminals(expression_grammar):
    rng = random.Random(3)
    for _ in range(50):
        try:
            derivation = derive_random(expression_grammar, step_limit=30, rng=rng)
        except StepLimitExceeded:
            continue
        assert derivation.is_complete() is True
        assert not any(c.isupper() for c in derivation.word())


def test_dead_nonterminal_is_reported():
    grammar = Grammar.from_pairs([("S", "aB")])
    with pytest.raises(DeadNonTerminalError) as excinfo:
        derive_random(grammar, step_limit=10, seed=0)
    assert excinfo.value.nonterminal == "B"


def test_weights_restricted_to_applicable_rules():
    grammar = Grammar.from_pairs([("S", "aA"), ("A", "b"), ("A", "c")])
    weights = {0: 0.0, 1: 0.0, 2: 1.0}
    for seed in range(10):
        assert random_word(grammar, weights=weights, seed=seed) == "ac"


def test_choose_rule_honours_weights():
    rng = random.Random(0)
    picks = [choose_rule([3, 4], {3: 0.0, 4: 2.0}, rng) for _ in range(50)]
    assert set(picks) == {4}


@pytest.mark.parametrize(
    "weights",
    [
        {},
        {3: 0.0, 4: 0.0},
        {3: -1.0, 4: 2.0},
        {3: math.inf, 4: 1.0},
        {3: math.nan, 4: 1.0},
    ],
)
def test_choose_rule_falls_back_to_uniform(weights, caplog):
    rng = random.Random(5)
    with caplog.at_level(logging.INFO, logger="langgen.derivation"):
        picks = {choose_rule([3, 4], weights, rng) for _ in range(100)}
    assert picks == {3, 4}
    assert "choosing uniformly" in caplog.text


def test_choose_rule_single_choice_and_empty():
    assert choose_rule([7], {7: 0.0}, random.Random()) == 7
    with pytest.raises(ValueError):
        choose_rule([], None, random.Random())


def test_to_dict():
    grammar = Grammar.from_pairs([("E", "!E"), ("E", "n")])
    payload = derive_sequence(grammar, [0, 1]).to_dict()
    assert payload == {
        "complete": True,
        "word": "!n",
        "steps": [
            {"rule": None, "form": "E"},
            {"rule": 0, "form": "!E"},
            {"rule": 1, "form": "!n"},
        ],
    }


def test_empty_production_is_not_applied_in_sequence():
    grammar = Grammar.from_pairs([("S", "aE"), ("E", "")])
    derivation = Derivation(grammar)
    with pytest.raises(EmptyProductionError) as excinfo:
        derivation.apply_sequence([0, 1])
    assert excinfo.value.index == 1
    assert derivation.forms() == ["S", "aE"]
    assert derivation.word() is None


def test_empty_production_is_not_applied_at_random():
    grammar = Grammar.from_pairs([("S", "aE"), ("E", "")])
    with pytest.raises(EmptyProductionError):
        random_word(grammar, step_limit=5, seed=0)
