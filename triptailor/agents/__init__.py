"""
Place-suggestion agents.

This package contains the preference aggregator, candidate provider,
heuristic reasoner, Gemini enhancer and the advisor that chains them.
"""

from .llm_config import llm_provider, LLMProvider
from .preferences import PreferenceAggregator
from .candidates import DatabasePlacesCandidateProvider, merge_prefer_internal
from .reasoner import HeuristicPlaceReasoner
from .enhancer import GeminiEnhancer
from .advisor import AiPlaceAdvisor

__all__ = [
    "llm_provider",
    "LLMProvider",
    "PreferenceAggregator",
    "DatabasePlacesCandidateProvider",
    "merge_prefer_internal",
    "HeuristicPlaceReasoner",
    "GeminiEnhancer",
    "AiPlaceAdvisor",
]
