"""Advice generation: prompting, the API client and output parsing."""

from .generator import AdviceGenerator
from .parsing import AdviceContent, fallback_advice, parse_advice
from .prompts import EMOTIONS, Perspective

__all__ = [
    "AdviceContent",
    "AdviceGenerator",
    "EMOTIONS",
    "Perspective",
    "fallback_advice",
    "parse_advice",
]
