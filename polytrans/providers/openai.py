"""
OpenAI provider.

Translates through configured OpenAI assistants. A translation may pass
through an intermediate language (e.g. pl -> en -> fr) according to the
path rules in settings; each hop runs one assistant.
"""

from typing import Any, Dict, List, Optional

import httpx

from polytrans.logger import get_logger
from polytrans.providers.assistants import AssistantClientFactory
from polytrans.providers.base import TranslationProvider, TranslationResult

logger = get_logger(__name__)

WILDCARD = "all"


def resolve_path(source_lang: str, target_lang: str, path_rules: List[Dict[str, str]]) -> List[str]:
    """
    Resolve the language path for a translation.

    The most specific rule wins: exact source and target (3), one side
    matched and the other "all" (2), both "all" (1). On equal scores the
    later rule wins.

    Returns:
        [source, target] or [source, intermediate, target]
    """
    best_rule = None
    best_score = 0

    for rule in path_rules:
        source = rule.get("source")
        target = rule.get("target")

        if source == source_lang and target == target_lang:
            score = 3
        elif (source == source_lang and target == WILDCARD) or (source == WILDCARD and target == target_lang):
            score = 2
        elif source == WILDCARD and target == WILDCARD:
            score = 1
        else:
            continue

        if score >= best_score:
            best_rule = rule
            best_score = score

    if best_rule is None:
        return [source_lang, target_lang]

    intermediate = (best_rule.get("intermediate") or "").strip()
    if not intermediate or intermediate.lower() == "none" or intermediate in (source_lang, target_lang):
        return [source_lang, target_lang]
    return [source_lang, intermediate, target_lang]


def select_assistant(assistants: Dict[str, str], source_lang: str, target_lang: str) -> Optional[str]:
    """Assistant for a hop, falling back to the first configured one."""
    key = f"{source_lang}_to_{target_lang}"
    assistant_id = assistants.get(key)
    if assistant_id:
        return assistant_id

    for direction, fallback in assistants.items():
        if fallback:
            logger.info(f"No specific mapping for {key}, using fallback: {direction} ({fallback})")
            return fallback
    return None


class OpenAIProvider(TranslationProvider):
    id = "openai"
    name = "OpenAI"
    description = "Translation through OpenAI assistants, with optional intermediate languages."

    def __init__(self, assistant_factory: Optional[AssistantClientFactory] = None,
                 transport: Optional[httpx.BaseTransport] = None):
        super().__init__(transport)
        self.assistant_factory = assistant_factory or AssistantClientFactory(transport=transport)

    def is_configured(self, settings) -> bool:
        openai = settings.openai
        return bool(openai.api_key) and any(openai.assistants.values())

    def translate(self, content: Dict[str, Any], source_lang: str, target_lang: str, settings) -> TranslationResult:
        self._check_content(content)

        path = resolve_path(source_lang, target_lang, settings.openai.path_rules)
        logger.info(f"OpenAI: resolved path {' -> '.join(path)}")

        current = content
        for step_source, step_target in zip(path, path[1:]):
            assistant_id = select_assistant(settings.openai.assistants, step_source, step_target)
            if not assistant_id:
                error = (
                    f"No assistant configured for translation step ({step_source} -> {step_target}). "
                    f"Configure '{step_source}_to_{step_target}' in assistants."
                )
                logger.error(error)
                return TranslationResult.fail(error)

            client = self.assistant_factory.create(assistant_id, settings)
            if client is None:
                return TranslationResult.fail(
                    f"Invalid assistant for step {step_source} -> {step_target}: no client can run {assistant_id}"
                )

            result = client.execute(assistant_id, current, step_source, step_target)
            if not result.success:
                logger.error(f"OpenAI: step {step_source} -> {step_target} failed: {result.error}")
                return result

            current = result.translated_content
            logger.info(f"OpenAI: step {step_source} -> {step_target} completed")

        return TranslationResult.ok(current)
