"""Arbiter - Rules: typed rule records and the registry that resolves them."""

from arbiter.systems.rules.registry import RuleRegistry
from arbiter.systems.rules.types import (
    FinancialImpact,
    Rule,
    RuleParseError,
    RuleSet,
    RuleSource,
    parse_rule,
    parse_rule_records,
)

__all__ = [
    "FinancialImpact",
    "Rule",
    "RuleParseError",
    "RuleRegistry",
    "RuleSet",
    "RuleSource",
    "parse_rule",
    "parse_rule_records",
]
