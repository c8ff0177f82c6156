from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from .errors import EmptyGrammarError, EmptyProductionError, MalformedRuleError


def is_nonterminal(char: str) -> bool:
    return "A" <= char <= "Z"


@dataclass(frozen=True)
class Rule:
    lhs: str
    rhs: str

    @classmethod
    def parse(cls, text: str) -> "Rule":
        lhs, sep, rhs = text.partition("->")
        if not sep:
            raise ValueError(f"Invalid production (missing '->'): {text}")
        lhs = lhs.strip()
        rhs = rhs.strip()
        if not lhs:
            raise ValueError(f"Missing left-hand side in production: {text}")
        return cls(lhs=lhs, rhs=rhs)

    def __str__(self) -> str:
        return f"{self.lhs} -> {self.rhs}"

    def is_well_formed(self) -> bool:
        return len(self.lhs) == 1 and is_nonterminal(self.lhs)

    def is_right_regular(self) -> bool:
        # s or sA, s a non-empty run of terminals
        if not self.rhs:
            return False
        if not any(is_nonterminal(c) for c in self.rhs):
            return True
        return (
            len(self.rhs) >= 2
            and is_nonterminal(self.rhs[-1])
            and not any(is_nonterminal(c) for c in self.rhs[:-1])
        )

    def is_left_regular(self) -> bool:
        # s or As
        if not self.rhs:
            return False
        if not any(is_nonterminal(c) for c in self.rhs):
            return True
        return (
            len(self.rhs) >= 2
            and is_nonterminal(self.rhs[0])
            and not any(is_nonterminal(c) for c in self.rhs[1:])
        )

    def is_strict_right(self) -> bool:
        return len(self.rhs) == 2 and not is_nonterminal(self.rhs[0]) and is_nonterminal(self.rhs[1])

    def is_strict_left(self) -> bool:
        return len(self.rhs) == 2 and is_nonterminal(self.rhs[0]) and not is_nonterminal(self.rhs[1])


@dataclass(frozen=True, eq=False)
class RuleRef:
    """A rule index bound to the grammar it indexes."""

    grammar: "Grammar"
    index: int

    @property
    def rule(self) -> Rule:
        return self.grammar.rules[self.index]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RuleRef):
            return NotImplemented
        return self.grammar is other.grammar and self.index == other.index

    def __hash__(self) -> int:
        return hash((id(self.grammar), self.index))

    def __repr__(self) -> str:
        return f"RuleRef({self.index}: {self.rule})"


class Grammar:
    """Context-free grammar over single-character symbols.

    Uppercase ASCII letters are non-terminals, everything else is a terminal.
    The start symbol is the left-hand side of the first rule, and a rule's
    position in ``rules`` is its index.
    """

    def __init__(self, rules: Sequence[Rule]) -> None:
        self._rules: Tuple[Rule, ...] = tuple(rules)
        if not self._rules:
            raise EmptyGrammarError("A grammar needs at least one rule.")
        self._start = self._rules[0].lhs
        nonterminals: Dict[str, None] = {}
        terminals: Dict[str, None] = {}
        by_lhs: Dict[str, List[int]] = {}
        for index, rule in enumerate(self._rules):
            nonterminals.setdefault(rule.lhs, None)
            by_lhs.setdefault(rule.lhs, []).append(index)
            for char in rule.rhs:
                if is_nonterminal(char):
                    nonterminals.setdefault(char, None)
                else:
                    terminals.setdefault(char, None)
        self._nonterminals = tuple(nonterminals)
        self._terminals = tuple(terminals)
        self._by_lhs = {symbol: tuple(indices) for symbol, indices in by_lhs.items()}

    @classmethod
    def from_pairs(cls, pairs: Sequence[Tuple[str, str]]) -> "Grammar":
        return cls([Rule(lhs=lhs, rhs=rhs) for lhs, rhs in pairs])

    @property
    def rules(self) -> Tuple[Rule, ...]:
        return self._rules

    @property
    def start(self) -> str:
        return self._start

    @property
    def nonterminals(self) -> Tuple[str, ...]:
        return self._nonterminals

    @property
    def terminals(self) -> Tuple[str, ...]:
        return self._terminals

    def __len__(self) -> int:
        return len(self._rules)

    def __repr__(self) -> str:
        return f"Grammar(start={self._start!r}, rules={len(self._rules)})"

    def is_well_formed(self) -> bool:
        return all(rule.is_well_formed() for rule in self._rules)

    def is_regular(self) -> bool:
        all_right = all(rule.is_right_regular() for rule in self._rules)
        all_left = all(rule.is_left_regular() for rule in self._rules)
        # terminal-only rules carry no strict marker either way
        any_right_strict = any(rule.is_strict_right() for rule in self._rules)
        any_left_strict = any(rule.is_strict_left() for rule in self._rules)
        return (all_right and not any_left_strict) or (all_left and not any_right_strict)

    def validate(self) -> None:
        for index, rule in enumerate(self._rules):
            if not rule.is_well_formed():
                raise MalformedRuleError(index, rule)
            if not rule.rhs:
                raise EmptyProductionError(index, rule)

    def rule_indices_for(self, nonterminal: str) -> List[int]:
        return list(self._by_lhs.get(nonterminal, ()))

    def ref(self, index: int) -> RuleRef:
        if not 0 <= index < len(self._rules):
            raise IndexError(f"Rule index {index} out of range for {len(self._rules)} rules.")
        return RuleRef(self, index)

    def refs_for(self, nonterminal: str) -> List[RuleRef]:
        return [RuleRef(self, index) for index in self._by_lhs.get(nonterminal, ())]

    def describe(self) -> Dict[str, object]:
        return {
            "start": self._start,
            "nonterminals": list(self._nonterminals),
            "terminals": list(self._terminals),
            "rules": [
                {"index": index, "lhs": rule.lhs, "rhs": rule.rhs}
                for index, rule in enumerate(self._rules)
            ],
            "well_formed": self.is_well_formed(),
            "regular": self.is_regular(),
        }
