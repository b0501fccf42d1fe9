import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ai_context import DEFAULT_CONTEXT_DAYS, get_upcoming_events
from services.action_interpreter import interpret_response
from services.errors import ValidationError
from services.prompt_composer import compose_messages

logger = logging.getLogger(__name__)

MAX_PROMPT_LENGTH = 2000
AI_TEMPERATURE = 0.3


def validate_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt is required")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise ValidationError(f"Prompt must be at most {MAX_PROMPT_LENGTH} characters")
    return prompt.strip()


def run_ai_actions(
    user_id: str,
    prompt: Any,
    store,
    chat_backend,
    now: Optional[datetime] = None,
    context_days: int = DEFAULT_CONTEXT_DAYS,
) -> Dict[str, Any]:
    """
    Natural-language request -> applied create/update actions.

    Raises ValidationError for an empty prompt, ProviderError when the model call
    fails and InterpretationError when its response cannot be parsed. Once parsing
    succeeds the result is returned even if no action was applied.
    """
    prompt = validate_prompt(prompt)
    now = now or datetime.now(timezone.utc)

    upcoming = get_upcoming_events(store, user_id, now=now, days=context_days)
    messages = compose_messages(now, upcoming, prompt)

    raw_text = chat_backend.complete(messages, json_mode=True, temperature=AI_TEMPERATURE)
    outcome = interpret_response(store, user_id, raw_text)

    summary = outcome["summary"]
    logger.info(
        "AI actions for user %s: %s created, %s updated, %s skipped of %s",
        user_id,
        summary["created"],
        summary["updated"],
        summary["skipped"],
        summary["total"],
    )
    outcome["message"] = f"Processed {summary['applied']} actions"
    return outcome
