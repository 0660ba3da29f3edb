"""Readiness rules, auto-discovered by RuleRegistry."""
