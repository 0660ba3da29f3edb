"""Rule registry with tier-aware auto-discovery of ReadinessRule subclasses."""

from __future__ import annotations

import dataclasses
import importlib
import logging
import pkgutil

from recovery_engine.exceptions import RuleConfigurationError
from recovery_engine.models.enums import Priority
from recovery_engine.models.inputs import ReadinessInputs
from recovery_engine.rules.base import ReadinessRule

logger = logging.getLogger(__name__)

# Tier subpackage of recovery_engine.rules -> priority its rules must declare
TIER_PACKAGES: dict[str, Priority] = {
    "safety": Priority.SAFETY,
    "recovery": Priority.RECOVERY,
    "performance": Priority.PERFORMANCE,
    "context": Priority.CONTEXT,
}

_INPUT_FIELDS = frozenset(f.name for f in dataclasses.fields(ReadinessInputs))


class RuleRegistry:
    """Discovers and manages all ReadinessRule implementations.

    Rules live in one subpackage per priority tier (safety/, recovery/,
    performance/, context/). A new rule is added by placing a .py file in
    the matching tier directory; discovery rejects a rule whose declared
    priority does not match that directory.
    """

    def __init__(self) -> None:
        self._rules: dict[str, ReadinessRule] = {}

    def discover_rules(self) -> None:
        """Scan every tier subpackage and register the rules defined there.

        Raises:
            RuleConfigurationError: a rule's priority disagrees with its
                tier, it names an unknown input, or its id is taken.
        """
        import recovery_engine.rules as rules_pkg

        for tier_name, priority in TIER_PACKAGES.items():
            package = importlib.import_module(f"{rules_pkg.__name__}.{tier_name}")
            self._scan_package(package.__name__, list(package.__path__), priority)

    def _scan_package(self, package_name: str, package_path: list[str], tier: Priority) -> None:
        """Import every module of one tier and register the rules it defines."""
        for _importer, module_name, _is_pkg in pkgutil.walk_packages(
            package_path, prefix=package_name + "."
        ):
            module = importlib.import_module(module_name)

            for attr_name in dir(module):
                attr = getattr(module, attr_name)
                if (
                    isinstance(attr, type)
                    and issubclass(attr, ReadinessRule)
                    and attr.__module__ == module.__name__
                    and not getattr(attr, "__abstractmethods__", set())
                ):
                    self.register(attr(), tier=tier)

    def register(self, rule: ReadinessRule, tier: Priority | None = None) -> None:
        """Register a rule instance by its rule_id.

        With *tier* given, the rule must declare that priority.
        Re-registering the same rule class replaces the earlier instance.
        """
        if tier is not None and rule.priority != tier:
            raise RuleConfigurationError(
                f"Rule {rule.rule_id!r} declares {rule.priority.name} but lives in the "
                f"{tier.name.lower()} tier",
                rule_id=rule.rule_id,
            )
        unknown = sorted(set(rule.required_data) - _INPUT_FIELDS)
        if unknown:
            raise RuleConfigurationError(
                f"Rule {rule.rule_id!r} requires unknown inputs: {', '.join(unknown)}",
                rule_id=rule.rule_id,
            )
        existing = self._rules.get(rule.rule_id)
        if existing is not None and type(existing) is not type(rule):
            raise RuleConfigurationError(
                f"Rule id {rule.rule_id!r} already used by {type(existing).__name__}",
                rule_id=rule.rule_id,
            )
        self._rules[rule.rule_id] = rule
        logger.debug("Registered rule %s (%s)", rule.rule_id, rule.priority.name)

    def get(self, rule_id: str) -> ReadinessRule | None:
        """Retrieve a rule by its rule_id."""
        return self._rules.get(rule_id)

    def get_all_rules(self) -> list[ReadinessRule]:
        """All registered rules, highest-priority tier first, then by id."""
        return sorted(self._rules.values(), key=lambda r: (r.priority, r.rule_id))

    def rules_in_tier(self, priority: Priority) -> list[ReadinessRule]:
        return [r for r in self.get_all_rules() if r.priority == priority]

    @property
    def rule_ids(self) -> list[str]:
        """List all registered rule IDs."""
        return list(self._rules.keys())
