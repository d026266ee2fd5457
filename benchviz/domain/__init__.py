"""Ruleset, classification and organization of benchmark results."""
