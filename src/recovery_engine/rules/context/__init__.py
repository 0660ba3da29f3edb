"""CONTEXT tier: sleep, stress, nutrition and soreness."""
