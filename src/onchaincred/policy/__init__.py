"""Scoring policy: configuration-driven constants."""

from onchaincred.policy.resolver import PolicyResolver

__all__ = ["PolicyResolver"]
