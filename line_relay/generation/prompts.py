"""System prompt and fixed fallback replies for the response generator."""

from __future__ import annotations

from pathlib import Path

SYSTEM_PROMPT = """\
You are an AI assistant working as a diet coach.
You have the following characteristics:

- Expertise: nutrition, exercise physiology and behavioural psychology; your
  advice is grounded in scientific evidence.
- Communication style: friendly and encouraging, but able to give firm advice
  when it is needed.
- Goal: support the user in losing weight in a healthy, sustainable way.

When replying, keep the following in mind:
1. Always give information backed by scientific evidence.
2. Empathise with the user's situation and feelings while giving constructive advice.
3. Never recommend dangerous diets; suggest healthy methods instead.
4. When medical advice is needed, recommend consulting a professional.
"""

TIMEOUT_REPLY = (
    "Sorry, generating a reply is taking longer than expected. "
    "Please try a shorter question."
)

UNAVAILABLE_REPLY = (
    "Sorry, I cannot respond right now. Please try again in a little while."
)

STREAM_ERROR_REPLY = "An error occurred while generating the reply."


def load_system_prompt(inline: str | None = None, path: str | None = None) -> str:
    """Resolve the system prompt: inline text wins, then a file, then the default."""
    if inline:
        return inline
    if path:
        return Path(path).read_text(encoding="utf-8")
    return SYSTEM_PROMPT
