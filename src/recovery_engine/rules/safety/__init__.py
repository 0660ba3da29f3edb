"""SAFETY tier: injury-risk classification."""
