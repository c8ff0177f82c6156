"""Leftmost derivations over a :class:`~langgen.grammar.Grammar`."""

from __future__ import annotations

from dataclasses import dataclass
import math
import random
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import (
    DeadNonTerminalError,
    EmptyProductionError,
    NoNonTerminalError,
    RuleMismatchError,
    StepLimitExceeded,
)
from .grammar import Grammar, RuleRef, is_nonterminal
from .logging_config import setup_logger

logger = setup_logger(__name__)

NO_NONTERMINAL = -1

RuleHandle = Union[int, RuleRef]


def _first_nonterminal(form: str) -> int:
    for index, char in enumerate(form):
        if is_nonterminal(char):
            return index
    return NO_NONTERMINAL


def _resolve(grammar: Grammar, handle: RuleHandle, nonterminal: str) -> int:
    if isinstance(handle, RuleRef):
        if handle.grammar is not grammar:
            raise RuleMismatchError(handle, nonterminal)
        return handle.index
    if isinstance(handle, bool) or not isinstance(handle, int):
        raise RuleMismatchError(handle, nonterminal)
    if not 0 <= handle < len(grammar.rules):
        raise RuleMismatchError(handle, nonterminal)
    return handle


@dataclass(frozen=True)
class SententialForm:
    form: str
    leftmost_index: int

    @classmethod
    def initial(cls, grammar: Grammar) -> "SententialForm":
        return cls(form=grammar.start, leftmost_index=_first_nonterminal(grammar.start))

    def is_complete(self) -> bool:
        return self.leftmost_index == NO_NONTERMINAL

    def leftmost_nonterminal(self) -> Optional[str]:
        if self.is_complete():
            return None
        return self.form[self.leftmost_index]

    def rewrite(self, grammar: Grammar, rule_index: RuleHandle) -> "SententialForm":
        if self.is_complete():
            raise NoNonTerminalError(self.form)
        pos = self.leftmost_index
        nonterminal = self.form[pos]
        index = _resolve(grammar, rule_index, nonterminal)
        rule = grammar.rules[index]
        if rule.lhs != nonterminal:
            raise RuleMismatchError(index, nonterminal, rule.lhs)
        if not rule.rhs:
            raise EmptyProductionError(index, rule)
        rewritten = self.form[:pos] + rule.rhs + self.form[pos + 1 :]
        return SententialForm(form=rewritten, leftmost_index=_first_nonterminal(rewritten))

    def __str__(self) -> str:
        return self.form


def choose_rule(
    choices: Sequence[int],
    weights: Optional[Mapping[int, float]],
    rng: random.Random,
) -> int:
    """Pick one of ``choices`` proportionally to ``weights``.

    Indices missing from ``weights`` weigh nothing. When the restricted weights
    are unusable (negative, non-finite, or summing to zero) the pick is uniform.
    """
    if not choices:
        raise ValueError("No rule indices to choose from.")
    if len(choices) == 1:
        return choices[0]
    if weights is None:
        return choices[rng.randrange(len(choices))]

    cumulative: List[Tuple[float, int]] = []
    total = 0.0
    for index in choices:
        weight = float(weights.get(index, 0.0))
        if weight < 0 or not math.isfinite(weight):
            total = math.nan
            break
        total += weight
        cumulative.append((total, index))
    if not (total > 0 and math.isfinite(total)):
        logger.info("Degenerate weights for rules %s, choosing uniformly.", list(choices))
        return choices[rng.randrange(len(choices))]

    pick = rng.random() * total
    for threshold, index in cumulative:
        if pick < threshold:
            return index
    return cumulative[-1][1]  # pragma: no cover - rounding guard


class Derivation:
    """Append-only record of leftmost rewrite steps.

    ``steps`` holds ``(rule_index, form)`` pairs; the first pair is
    ``(None, start form)``.
    """

    def __init__(self, grammar: Grammar) -> None:
        self.grammar = grammar
        self._steps: List[Tuple[Optional[int], SententialForm]] = [(None, SententialForm.initial(grammar))]

    @property
    def steps(self) -> Tuple[Tuple[Optional[int], SententialForm], ...]:
        return tuple(self._steps)

    @property
    def current(self) -> SententialForm:
        return self._steps[-1][1]

    def __len__(self) -> int:
        return len(self._steps) - 1

    def forms(self) -> List[str]:
        return [form.form for _, form in self._steps]

    def rule_indices(self) -> List[int]:
        return [index for index, _ in self._steps[1:] if index is not None]

    def is_complete(self) -> bool:
        return self.current.is_complete()

    def word(self) -> Optional[str]:
        if self.is_complete():
            return self.current.form
        return None

    def leftmost_nonterminal(self) -> Optional[str]:
        return self.current.leftmost_nonterminal()

    def to_dict(self) -> Dict[str, object]:
        return {
            "complete": self.is_complete(),
            "word": self.word(),
            "steps": [{"rule": index, "form": form.form} for index, form in self._steps],
        }

    def step(self, rule_index: RuleHandle) -> SententialForm:
        nxt = self.current.rewrite(self.grammar, rule_index)
        index = rule_index.index if isinstance(rule_index, RuleRef) else rule_index
        self._steps.append((index, nxt))
        logger.debug("Applied rule %s: %s", index, nxt.form)
        return nxt

    def apply_sequence(self, indices: Iterable[RuleHandle]) -> "Derivation":
        for position, rule_index in enumerate(indices):
            if self.is_complete():
                logger.debug("Derivation complete before step %d, ignoring remaining rules.", position)
                break
            nonterminal = self.leftmost_nonterminal()
            index = _resolve(self.grammar, rule_index, nonterminal)
            if index not in self.grammar.rule_indices_for(nonterminal):
                raise RuleMismatchError(index, nonterminal, self.grammar.rules[index].lhs)
            self.step(rule_index)
        return self

    def run_random(
        self,
        step_limit: Optional[int] = None,
        weights: Optional[Mapping[int, float]] = None,
        rng: Optional[random.Random] = None,
    ) -> "Derivation":
        rng = rng if rng is not None else random.Random()
        steps = 0
        while not self.is_complete():
            if step_limit is not None and steps >= step_limit:
                logger.info("Step limit %d reached before completion at '%s'.", step_limit, self.current.form)
                raise StepLimitExceeded(step_limit, self)
            nonterminal = self.leftmost_nonterminal()
            choices = self.grammar.rule_indices_for(nonterminal)
            if not choices:
                raise DeadNonTerminalError(nonterminal)
            self.step(choose_rule(choices, weights, rng))
            steps += 1
        return self


def derive_sequence(grammar: Grammar, indices: Iterable[RuleHandle]) -> Derivation:
    return Derivation(grammar).apply_sequence(indices)


def derive_random(
    grammar: Grammar,
    step_limit: Optional[int] = None,
    weights: Optional[Mapping[int, float]] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> Derivation:
    if rng is None:
        rng = random.Random(seed)
    return Derivation(grammar).run_random(step_limit=step_limit, weights=weights, rng=rng)


def random_word(
    grammar: Grammar,
    step_limit: Optional[int] = None,
    weights: Optional[Mapping[int, float]] = None,
    rng: Optional[random.Random] = None,
    seed: Optional[int] = None,
) -> Optional[str]:
    """Generate one word, or ``None`` when the step limit runs out first."""
    try:
        derivation = derive_random(grammar, step_limit=step_limit, weights=weights, rng=rng, seed=seed)
    except StepLimitExceeded:
        return None
    return derivation.word()
