from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

try:  # Python 3.11+
    import tomllib
except ModuleNotFoundError:  # pragma: no cover - fallback for 3.10
    import tomli as tomllib  # type: ignore[no-redef]

from .grammar import Grammar, Rule
from .logging_config import setup_logger

logger = setup_logger(__name__)


@dataclass(frozen=True)
class WeightedRule:
    rule: Rule
    weight: float = 1.0


@dataclass(frozen=True)
class DeriveConfig:
    step_limit: Optional[int] = None
    attempts: int = 1
    seed: Optional[int] = None


@dataclass(frozen=True)
class Config:
    rules: Sequence[WeightedRule]
    derive: DeriveConfig
    source: Optional[Path] = None

    def grammar(self) -> Grammar:
        return Grammar([entry.rule for entry in self.rules])

    def weights(self) -> Dict[int, float]:
        return {index: entry.weight for index, entry in enumerate(self.rules)}


# The expression grammar the command line ships with, weighted so that
# random words stay short.
DEFAULT_RULES: Sequence[tuple[str, str, float]] = (
    ("E", "!E", 0.08),
    ("E", "E*E", 0.01),
    ("E", "E+E", 0.01),
    ("E", "(E)", 0.08),
    ("E", "n", 0.35),
    ("E", "E*n", 0.10),
    ("E", "E+n", 0.10),
    ("E", "E+B", 0.10),
    ("B", "-B", 0.02),
    ("B", "n/n", 0.15),
)
DEFAULT_STEP_LIMIT = 15


def default_config() -> Config:
    return Config(
        rules=tuple(WeightedRule(Rule(lhs, rhs), weight) for lhs, rhs, weight in DEFAULT_RULES),
        derive=DeriveConfig(step_limit=DEFAULT_STEP_LIMIT),
    )


def _split_weight(text: str) -> tuple[str, Optional[float]]:
    # look for a trailing " (weight)"
    value = text.strip()
    if not value.endswith(")"):
        return value, None
    idx = value.rfind("(")
    if idx <= 0 or not value[idx - 1].isspace():
        return value, None
    maybe_weight = value[idx + 1 : -1].strip()
    try:
        weight = float(maybe_weight)
    except ValueError:
        return value, None
    body = value[:idx].strip()
    # "E -> (1)" is a production, not an empty rule weighted 1
    if body.endswith("->"):
        return value, None
    return body, weight


def _check_weight(weight: Any, where: str) -> float:
    try:
        value = float(weight)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Weight for {where} must be a number, got {weight!r}.") from exc
    if value < 0:
        raise ValueError(f"Weight must not be negative for {where}.")
    return value


def _parse_rule_entry(entry: Any, lhs: Optional[str] = None) -> WeightedRule:
    if isinstance(entry, str):
        body, weight = _split_weight(entry)
        if lhs is None:
            rule = Rule.parse(body)
        else:
            if "->" in body:
                head, _, body = body.partition("->")
                if head.strip() and head.strip() != lhs:
                    raise ValueError(f"Unexpected symbol '{head.strip()}' in rule for '{lhs}'.")
            rule = Rule(lhs=lhs, rhs=body.strip())
        if not rule.rhs:
            raise ValueError(f"Empty production for symbol '{rule.lhs}'.")
        where = f"rule '{rule}'"
        return WeightedRule(rule, _check_weight(weight, where) if weight is not None else 1.0)
    if isinstance(entry, Mapping):
        rule_lhs = str(entry.get("lhs", lhs or "")).strip()
        rhs = str(entry.get("rhs", entry.get("value", ""))).strip()
        if not rule_lhs:
            raise ValueError(f"Missing 'lhs' in rule table {dict(entry)!r}.")
        if not rhs:
            raise ValueError(f"Empty production for symbol '{rule_lhs}'.")
        rule = Rule(lhs=rule_lhs, rhs=rhs)
        return WeightedRule(rule, _check_weight(entry.get("weight", 1.0), f"rule '{rule}'"))
    raise ValueError(f"Unsupported rule format: {entry!r}")


def _parse_rules(rules_raw: Any) -> List[WeightedRule]:
    rules: List[WeightedRule] = []
    if isinstance(rules_raw, list):
        for entry in rules_raw:
            rules.append(_parse_rule_entry(entry))
    elif isinstance(rules_raw, Mapping):
        for symbol, entries in rules_raw.items():
            options = entries if isinstance(entries, list) else [entries]
            if not options:
                raise ValueError(f"No productions defined for symbol '{symbol}'.")
            for entry in options:
                rules.append(_parse_rule_entry(entry, lhs=str(symbol)))
    else:
        raise ValueError("[grammar] rules must be an array or a table.")
    if not rules:
        raise ValueError("Grammar contains no rules.")
    return rules


def _parse_derive(derive_raw: Any) -> DeriveConfig:
    if derive_raw is None:
        return DeriveConfig(step_limit=DEFAULT_STEP_LIMIT)
    if not isinstance(derive_raw, Mapping):
        raise ValueError("[derive] must be a table if provided.")
    step_limit_raw = derive_raw.get("step_limit", DEFAULT_STEP_LIMIT)
    step_limit = None if step_limit_raw is None else int(step_limit_raw)
    if step_limit is not None and step_limit < 0:
        raise ValueError("derive.step_limit must not be negative.")
    attempts = max(1, int(derive_raw.get("attempts", 1)))
    seed_raw = derive_raw.get("seed")
    seed = None if seed_raw is None else int(seed_raw)
    return DeriveConfig(step_limit=step_limit, attempts=attempts, seed=seed)


def parse_config(raw: Mapping[str, Any], source: Optional[Path] = None) -> Config:
    grammar_raw = raw.get("grammar")
    if not isinstance(grammar_raw, Mapping):
        raise ValueError("Missing [grammar] section.")
    if "rules" not in grammar_raw:
        raise ValueError("Missing grammar.rules entry.")
    rules = _parse_rules(grammar_raw["rules"])
    return Config(rules=tuple(rules), derive=_parse_derive(raw.get("derive")), source=source)


def load_config(path: str | Path) -> Config:
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with config_path.open("rb") as handle:
        raw = tomllib.load(handle)

    try:
        config = parse_config(raw, source=config_path)
    except ValueError as exc:
        raise ValueError(f"{config_path}: {exc}") from exc
    logger.info("Loaded %d rules from %s", len(config.rules), config_path)
    return config
