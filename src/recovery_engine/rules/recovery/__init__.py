"""RECOVERY tier: local muscle fatigue."""
