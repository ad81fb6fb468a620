"""LLM provider adapters.

OpenAILLMProvider implements ILLMProvider against any OpenAI-compatible
endpoint.  main.py builds it from settings and stores it on app.state.
"""

from pagestash.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
