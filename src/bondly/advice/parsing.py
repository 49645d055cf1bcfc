"""Turn generated text into advice content, falling back to canned advice."""

import json
import logging
import re
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

ITEMS_PER_LIST = 3

# Greedy on purpose: from the first "{" to the last "}"
_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)

ADVICE_SCHEMA = {
    "type": "object",
    "properties": {
        "advice": {
            "type": "string",
            "description": "Main advice text, 2-3 short paragraphs.",
        },
        "actionSteps": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Exactly 3 concrete steps.",
        },
        "conversationStarters": {
            "type": "array",
            "items": {"type": "string"},
            "description": "Exactly 3 opening lines for a conversation with the partner.",
        },
    },
    "required": ["advice", "actionSteps", "conversationStarters"],
}


@dataclass
class AdviceContent:
    advice: str
    action_steps: list[str] = field(default_factory=list)
    conversation_starters: list[str] = field(default_factory=list)
    is_fallback: bool = False


FALLBACK_ADVICE = AdviceContent(
    advice=(
        "It takes courage to put a conflict into words, and you have already done "
        "that. Your feelings are valid, and so are your partner's, even where the "
        "two of you see things differently.\n\n"
        "Before trying to solve the problem, try to understand it together. Give "
        "each other room to speak without interruption, and listen for what "
        "matters to your partner beneath the specific disagreement."
    ),
    action_steps=[
        "Pick a calm moment when you both have time to talk without distractions.",
        "Describe how you feel using \"I\" statements instead of describing what your partner did wrong.",
        "Summarize your partner's point of view back to them before sharing your own.",
    ],
    conversation_starters=[
        "I'd like to understand how this has felt for you. Can you tell me?",
        "I care about us, and I want to find a way through this together.",
        "What is one thing I could do that would help you feel heard?",
    ],
    is_fallback=True,
)


def fallback_advice() -> AdviceContent:
    """A fresh copy of the canned advice."""
    return AdviceContent(
        advice=FALLBACK_ADVICE.advice,
        action_steps=list(FALLBACK_ADVICE.action_steps),
        conversation_starters=list(FALLBACK_ADVICE.conversation_starters),
        is_fallback=True,
    )


def _load_json(text: str) -> dict | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        match = _JSON_OBJECT_RE.search(text)
        if not match:
            return None
        try:
            data = json.loads(match.group(0))
        except json.JSONDecodeError:
            return None
    return data if isinstance(data, dict) else None


def _string_list(value) -> list[str] | None:
    if not isinstance(value, list):
        return None
    items = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    if not items or len(items) != len(value):
        return None
    return items[:ITEMS_PER_LIST]


def parse_advice(text: str | None) -> AdviceContent:
    """
    Parse generated text into AdviceContent.

    Accepts text that is JSON or that contains a JSON object. Anything that
    does not yield a non-empty ``advice`` string and non-empty string lists
    for ``actionSteps`` and ``conversationStarters`` is replaced by the
    canned fallback.
    """
    data = _load_json(text or "")
    if data is None:
        logger.warning("Generated advice was not JSON, using fallback")
        return fallback_advice()

    advice = data.get("advice")
    action_steps = _string_list(data.get("actionSteps"))
    starters = _string_list(data.get("conversationStarters"))

    if not isinstance(advice, str) or not advice.strip() or action_steps is None or starters is None:
        logger.warning("Generated advice had the wrong shape, using fallback")
        return fallback_advice()

    return AdviceContent(
        advice=advice.strip(),
        action_steps=action_steps,
        conversation_starters=starters,
    )
