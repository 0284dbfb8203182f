"""Gemini adapter.

Gemini is reached through its OpenAI-compatible endpoint, so the OpenAI
conversions apply unchanged.
"""

from .openai import OpenAIRequestAdapter

GeminiRequestAdapter = OpenAIRequestAdapter
