from __future__ import annotations

import argparse
import json
import random
import sys
from pathlib import Path
from typing import List, Mapping, Optional, Sequence, Tuple

from .config import Config, default_config, load_config
from .derivation import Derivation, derive_random
from .errors import GrammarError, StepLimitExceeded
from .grammar import Grammar
from .logging_config import setup_logger

logger = setup_logger(__name__)

COMMANDS: Sequence[Tuple[str, str]] = (
    ("list", "List all commands"),
    ("list-rules", "List all grammar rules"),
    ("classify", "Report whether the grammar is well-formed and regular"),
    ("derive", "Derive a word, either 'random' or from a list of rule indices"),
)


def _generate_candidate(
    grammar: Grammar,
    step_limit: Optional[int],
    weights: Optional[Mapping[int, float]],
    seed: int,
) -> Derivation:
    try:
        return derive_random(grammar, step_limit=step_limit, weights=weights, seed=seed)
    except StepLimitExceeded as exc:
        return exc.derivation


def generate(
    config: Config,
    step_limit: Optional[int] = None,
    attempts: Optional[int] = None,
    seed: Optional[int] = None,
    uniform: bool = False,
) -> Tuple[Derivation, int, int]:
    """Run random derivations until one completes or the attempts run out.

    Returns the last derivation (complete or abandoned), its seed and the
    number of attempts made.
    """
    grammar = config.grammar()
    weights = None if uniform else config.weights()
    limit = step_limit if step_limit is not None else config.derive.step_limit
    budget = max(attempts if attempts is not None else config.derive.attempts, 1)
    rng = random.Random(seed if seed is not None else config.derive.seed)

    derivation: Optional[Derivation] = None
    candidate_seed = 0
    for attempt in range(1, budget + 1):
        candidate_seed = rng.getrandbits(32)
        derivation = _generate_candidate(grammar, limit, weights, candidate_seed)
        if derivation.is_complete():
            return derivation, candidate_seed, attempt
        logger.info("Attempt %d (seed %d) stopped at '%s'.", attempt, candidate_seed, derivation.current.form)

    if derivation is None:  # pragma: no cover - budget is at least one
        raise RuntimeError("Failed to run any derivation attempts.")
    return derivation, candidate_seed, budget


def _parse_indices(values: Sequence[str]) -> List[int]:
    indices: List[int] = []
    for value in values:
        try:
            indices.append(int(value))
        except ValueError:
            raise ValueError(f"Invalid rule index '{value}'. All values must be integers.") from None
    return indices


def _print_rules(grammar: Grammar) -> None:
    for index, rule in enumerate(grammar.rules):
        print(f"Rule {index}: {rule}")


def _print_classification(grammar: Grammar) -> None:
    print(f"Start symbol: {grammar.start}")
    print(f"Non-terminals: {' '.join(grammar.nonterminals)}")
    print(f"Terminals: {' '.join(grammar.terminals)}")
    print(f"Grammar well-formed = {str(grammar.is_well_formed()).lower()}")
    print(f"Grammar regular = {str(grammar.is_regular()).lower()}")


def _derive_sequence_verbose(grammar: Grammar, indices: Sequence[int]) -> Derivation:
    derivation = Derivation(grammar)
    print(f"Applying rules: {list(indices)}")
    print(f"Initial form: {derivation.current.form}")
    for step, index in enumerate(indices):
        if derivation.is_complete():
            print(f"Derivation already complete before step {step}.")
            break
        nonterminal = derivation.leftmost_nonterminal()
        valid = grammar.rule_indices_for(nonterminal)
        print(f"Step {step}: nonterminal '{nonterminal}', valid rules: {valid}, applying rule {index}")
        derivation.apply_sequence([index])
        print(f"  Result: {derivation.current.form}")
    return derivation


def _print_outcome(derivation: Derivation) -> None:
    print(f"Derivation complete = {str(derivation.is_complete()).lower()}")
    word = derivation.word()
    print(f"Derivation word = {word if word is not None else '<invalid>'}")


def _run_derive(args: argparse.Namespace, config: Config) -> int:
    grammar = config.grammar()
    if args.target[0] == "random":
        if len(args.target) > 1:
            raise ValueError("'derive random' takes no rule indices.")
        derivation, seed, attempts = generate(
            config,
            step_limit=args.step_limit,
            attempts=args.attempts,
            seed=args.seed,
            uniform=args.uniform,
        )
        if args.format == "json":
            payload = derivation.to_dict()
            payload.update({"seed": seed, "attempts": attempts})
            print(json.dumps(payload, indent=2))
        else:
            print(" => ".join(derivation.forms()))
            _print_outcome(derivation)
        if not derivation.is_complete():
            print(f"No word produced after {attempts} attempt(s).", file=sys.stderr)
            return 1
        return 0

    indices = _parse_indices(args.target)
    if args.format == "json":
        derivation = Derivation(grammar).apply_sequence(indices)
        print(json.dumps(derivation.to_dict(), indent=2))
    else:
        derivation = _derive_sequence_verbose(grammar, indices)
        _print_outcome(derivation)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Classify a context-free grammar and derive words from it.")
    parser.add_argument("--config", type=Path, default=None,
                        help="Path to a grammar TOML file (defaults to the built-in expression grammar).")
    parser.add_argument("--format", choices=("text", "json"), default="text",
                        help="Choose the output format.")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("list", help="List all commands.")
    sub.add_parser("list-rules", help="List all grammar rules.")
    sub.add_parser("classify", help="Report grammar well-formedness and regularity.")
    derive = sub.add_parser("derive", help="Derive a word from the grammar.")
    derive.add_argument("target", nargs="+",
                        help="'random', or rule indices to apply in order (e.g. 0 1 4).")
    derive.add_argument("--step-limit", type=int, default=None,
                        help="Override the step limit for random derivations.")
    derive.add_argument("--attempts", type=int, default=None,
                        help="Number of random attempts before giving up.")
    derive.add_argument("--seed", type=int, default=None, help="Seed for reproducible random derivations.")
    derive.add_argument("--uniform", action="store_true",
                        help="Ignore configured weights and choose applicable rules uniformly.")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config) if args.config is not None else default_config()
        grammar = config.grammar()

        if args.command == "list":
            print("Available commands:")
            for name, description in COMMANDS:
                print(f"{name} - {description}")
        elif args.command == "list-rules":
            if args.format == "json":
                print(json.dumps(grammar.describe()["rules"], indent=2))
            else:
                _print_rules(grammar)
        elif args.command == "classify":
            if args.format == "json":
                print(json.dumps(grammar.describe(), indent=2))
            else:
                _print_classification(grammar)
        elif args.command == "derive":
            return _run_derive(args, config)
    except (GrammarError, ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
