"""Skill recommendation routing."""

from .recommender import RecommendationRouter, RouterChoice, fallback_skill_id, recent_context

__all__ = [
    "RecommendationRouter",
    "RouterChoice",
    "fallback_skill_id",
    "recent_context",
]
