"""Segment rules package -- built-in rules register themselves on import."""

from tripguard.rules.base import BaseRule, Rule, get_registered_rules, register_rule

__all__ = ["BaseRule", "Rule", "get_registered_rules", "register_rule"]
