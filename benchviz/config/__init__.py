"""Ruleset document models, embedded defaults and environment settings."""
