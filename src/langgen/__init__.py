"""Context-free grammar classification and leftmost derivation."""

from .config import load_config
from .derivation import Derivation, SententialForm, derive_random, derive_sequence, random_word
from .errors import (
    DeadNonTerminalError,
    DerivationError,
    EmptyGrammarError,
    EmptyProductionError,
    GrammarError,
    MalformedRuleError,
    NoNonTerminalError,
    RuleMismatchError,
    StepLimitExceeded,
)
from .grammar import Grammar, Rule, RuleRef

__all__ = [
    "DeadNonTerminalError",
    "Derivation",
    "DerivationError",
    "EmptyGrammarError",
    "EmptyProductionError",
    "Grammar",
    "GrammarError",
    "MalformedRuleError",
    "NoNonTerminalError",
    "Rule",
    "RuleMismatchError",
    "RuleRef",
    "SententialForm",
    "StepLimitExceeded",
    "derive_random",
    "derive_sequence",
    "load_config",
    "random_word",
]
