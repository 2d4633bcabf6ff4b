"""
Mind Map Generation Service
============================

Relays a topic to the DeepSeek chat-completions API and returns the
Markdown outline it produces (Markmap dialect: # root, ## / ### levels,
- list items).

Stateless: no retries, no caching. The only timeout is the one
configured in GENERATION_TIMEOUT_SECONDS (unset by default).
"""

import re
from typing import Dict, List

import requests

from ..config import Settings
from src.utils.safe_logging import get_safe_logger

logger = get_safe_logger(__name__)


SYSTEM_PROMPT = "You are a specialized Mind Map generator. You output raw Markdown only."

USER_PROMPT_TEMPLATE = """
Create a comprehensive mind map about the following topic: "{topic}".

Format the output strictly as Markdown compatible with Markmap (using # for root, ## for level 2, ### for level 3, - for list items).
Do not include any conversational text, code blocks (like ```markdown), or explanations.
Start directly with the root node (# Title).
Ensure the hierarchy is logical and deep."""

_LEADING_FENCE = re.compile(r"^```(?:markdown)?\s*", re.IGNORECASE)
_TRAILING_FENCE = re.compile(r"```\s*$")


class GenerationError(Exception):
    """The provider call failed or returned something unusable."""


class GenerationNotConfiguredError(GenerationError):
    """No provider API key is configured."""


def build_messages(topic: str) -> List[Dict[str, str]]:
    """System/user prompt pair for a topic"""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": USER_PROMPT_TEMPLATE.format(topic=topic.strip())},
    ]


def clean_markdown(content: str) -> str:
    """Strip a code fence the model may have wrapped around its answer."""
    content = content.strip()
    content = _LEADING_FENCE.sub("", content)
    content = _TRAILING_FENCE.sub("", content)
    return content.strip()


def generate_mindmap_markdown(topic: str, settings: Settings) -> str:
    """
    Ask the provider for a mind map about ``topic``.

    Raises:
        GenerationNotConfiguredError: DEEPSEEK_API_KEY is empty
        GenerationError: transport failure, HTTP error or malformed reply
    """
    if not settings.DEEPSEEK_API_KEY:
        logger.error("DEEPSEEK_API_KEY environment variable is not set")
        raise GenerationNotConfiguredError("Server configuration error: API key not set")

    url = f"{settings.DEEPSEEK_API_BASE.rstrip('/')}/chat/completions"
    body = {
        "model": settings.DEEPSEEK_MODEL,
        "messages": build_messages(topic),
        "temperature": settings.GENERATION_TEMPERATURE,
    }
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.DEEPSEEK_API_KEY}",
    }

    try:
        response = requests.post(
            url,
            json=body,
            headers=headers,
            timeout=settings.GENERATION_TIMEOUT_SECONDS,
        )
        response.raise_for_status()
        data = response.json()
    except requests.exceptions.RequestException as e:
        logger.error("DeepSeek API request failed", error=str(e))
        raise GenerationError(f"DeepSeek API request failed: {e}") from e
    except ValueError as e:
        raise GenerationError(f"Failed to parse DeepSeek response: {e}") from e

    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError) as e:
        raise GenerationError("Invalid response structure from DeepSeek API") from e

    if not isinstance(content, str):
        raise GenerationError("Invalid response structure from DeepSeek API")

    return clean_markdown(content)
