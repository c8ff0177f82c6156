from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:  # pragma: no cover
    from .derivation import Derivation
    from .grammar import Rule


class GrammarError(Exception):
    pass


class EmptyGrammarError(GrammarError, ValueError):
    pass


class MalformedRuleError(GrammarError):
    def __init__(self, index: int, rule: "Rule") -> None:
        super().__init__(f"Rule {index} ({rule}) has a left-hand side that is not an uppercase letter.")
        self.index = index
        self.rule = rule


class EmptyProductionError(GrammarError):
    def __init__(self, index: int, rule: "Rule") -> None:
        super().__init__(f"Rule {index} for '{rule.lhs}' has an empty right-hand side.")
        self.index = index
        self.rule = rule


class DerivationError(GrammarError):
    """A rewrite step could not be applied."""


class RuleMismatchError(DerivationError):
    def __init__(self, rule_index: object, nonterminal: str, lhs: Optional[str] = None) -> None:
        if lhs is None:
            message = f"Rule {rule_index} cannot rewrite non-terminal '{nonterminal}'."
        else:
            message = f"Rule {rule_index} rewrites '{lhs}', but the leftmost non-terminal is '{nonterminal}'."
        super().__init__(message)
        self.rule_index = rule_index
        self.nonterminal = nonterminal
        self.lhs = lhs


class NoNonTerminalError(DerivationError):
    def __init__(self, form: str) -> None:
        super().__init__(f"No non-terminal left to rewrite in '{form}'.")
        self.form = form


class DeadNonTerminalError(DerivationError):
    def __init__(self, nonterminal: str) -> None:
        super().__init__(f"No rules applicable to non-terminal '{nonterminal}'.")
        self.nonterminal = nonterminal


class StepLimitExceeded(GrammarError):
    def __init__(self, step_limit: int, derivation: "Derivation") -> None:
        super().__init__(f"Derivation did not complete within {step_limit} steps.")
        self.step_limit = step_limit
        self.derivation = derivation
