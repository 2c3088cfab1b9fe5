import re
from dataclasses import dataclass
from typing import Optional


BEFORE_BLOCK = re.compile(r"--- OLD_CODE ---\n([\s\S]*?)\n--- END_OLD_CODE ---")
AFTER_BLOCK = re.compile(r"--- NEW_CODE ---\n([\s\S]*?)\n--- END_NEW_CODE ---")


@dataclass(frozen=True)
class ActionableSuggestion:
    explanation: str
    before_content: str
    after_content: str


def extract_suggestion(response_text: str) -> Optional[ActionableSuggestion]:
    """
    Pull one before/after code replacement out of CLI output.

    Returns None unless both blocks are present and neither is blank after
    trimming. Block contents are returned exactly as captured; the
    explanation is the remaining text, trimmed.
    """
    if not response_text:
        return None
    before_match = BEFORE_BLOCK.search(response_text)
    after_match = AFTER_BLOCK.search(response_text)
    if not before_match or not after_match:
        return None

    before_content = before_match.group(1)
    after_content = after_match.group(1)
    if not before_content.strip() or not after_content.strip():
        return None

    explanation = BEFORE_BLOCK.sub("", response_text, count=1)
    explanation = AFTER_BLOCK.sub("", explanation, count=1).strip()
    return ActionableSuggestion(
        explanation=explanation,
        before_content=before_content,
        after_content=after_content,
    )


def render_suggestion(suggestion: ActionableSuggestion, language: str) -> str:
    fence = language.lower() if language and language != "Unknown" else ""
    return (
        "**Proposed change** (descriptive only, nothing has been applied)\n\n"
        f"**Current code**:\n```{fence}\n{suggestion.before_content}\n```\n\n"
        f"**Proposed code**:\n```{fence}\n{suggestion.after_content}\n```"
    )
