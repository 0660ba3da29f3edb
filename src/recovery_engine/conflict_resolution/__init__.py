"""Combines rule adjustments into one readiness decision."""
