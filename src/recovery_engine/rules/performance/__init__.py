"""PERFORMANCE tier: fitness-fatigue balance."""
