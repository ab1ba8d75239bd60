"""
Assistant clients for the OpenAI provider.

An assistant id is turned into a client by AssistantClientFactory. Built-in
ids (asst_...) get the OpenAI Assistants API client; plugins can substitute
or veto the client through hooks passed to the factory:

    def hook(assistant_id, settings, client):
        return client          # keep
        return MyClient(...)   # substitute
        return None            # veto
"""

import json
import time
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, Optional

import httpx

from polytrans.logger import get_logger
from polytrans.providers.base import TranslationResult, describe_http_error, get_httpx_timeout

logger = get_logger(__name__)

ASSISTANT_ID_PREFIX = "asst_"

TERMINAL_RUN_STATES = ("failed", "cancelled", "expired")

PROMPT_TEMPLATE = (
    "Please translate the following JSON content from {source} to {target}. "
    "Return only a JSON object with the same structure but translated content:\n\n{payload}"
)


class AssistantClient(ABC):
    """Runs one translation hop with a configured assistant."""

    @abstractmethod
    def execute(self, assistant_id: str, content: Dict[str, Any], source_lang: str, target_lang: str) -> TranslationResult:
        ...


class AssistantRunError(Exception):
    """Raised inside OpenAIAssistantClient; turned into a failed result."""


class OpenAIAssistantClient(AssistantClient):
    """OpenAI Assistants API (v2): thread, message, run, poll, read reply."""

    def __init__(self, api_key: str, api_url: str = "https://api.openai.com/v1", timeout: float = 30,
                 poll_interval: float = 1.0, max_wait: float = 120,
                 transport: Optional[httpx.BaseTransport] = None):
        self.api_key = api_key
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self._transport = transport

    def _client(self) -> httpx.Client:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "OpenAI-Beta": "assistants=v2",
        }
        return httpx.Client(
            base_url=self.api_url,
            headers=headers,
            timeout=get_httpx_timeout(self.timeout),
            transport=self._transport,
        )

    def execute(self, assistant_id: str, content: Dict[str, Any], source_lang: str, target_lang: str) -> TranslationResult:
        logger.info(f"OpenAI Assistant: executing {assistant_id} ({source_lang} -> {target_lang})")

        prompt = PROMPT_TEMPLATE.format(
            source=source_lang,
            target=target_lang,
            payload=json.dumps(content, ensure_ascii=False, indent=2),
        )

        try:
            with self._client() as client:
                thread_id = self._object_id(self._request(client, "POST", "/threads", {}), "thread")
                self._request(client, "POST", f"/threads/{thread_id}/messages", {"role": "user", "content": prompt})
                run_id = self._object_id(
                    self._request(client, "POST", f"/threads/{thread_id}/runs", {"assistant_id": assistant_id}), "run"
                )
                self._wait_for_run(client, thread_id, run_id)
                response_text = self._latest_assistant_message(client, thread_id)
        except AssistantRunError as e:
            logger.error(f"OpenAI Assistant {assistant_id} failed: {e}")
            return TranslationResult.fail(str(e))

        parsed = parse_json_object(response_text)
        if parsed is None:
            logger.error(f"Failed to parse translation response: {response_text[:500]}")
            return TranslationResult.fail("Failed to parse OpenAI response: no JSON object found")

        return TranslationResult.ok(parsed)

    def _request(self, client: httpx.Client, method: str, url: str, body: Dict[str, Any] = None) -> Dict[str, Any]:
        try:
            response = client.request(method, url, json=body)
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPStatusError as e:
            raise AssistantRunError(describe_http_error(e, "OpenAI"))
        except httpx.TimeoutException:
            raise AssistantRunError("OpenAI API request timeout")
        except httpx.HTTPError as e:
            raise AssistantRunError(f"OpenAI API call failed: {e}")
        except ValueError:
            raise AssistantRunError("OpenAI API returned invalid JSON")
        if not isinstance(payload, dict):
            raise AssistantRunError("OpenAI API returned an unexpected response")
        return payload

    @staticmethod
    def _object_id(payload: Dict[str, Any], kind: str) -> str:
        object_id = payload.get("id")
        if not object_id or not isinstance(object_id, str):
            raise AssistantRunError(f"OpenAI API response has no {kind} id")
        return object_id

    def _wait_for_run(self, client: httpx.Client, thread_id: str, run_id: str):
        deadline = time.monotonic() + self.max_wait
        while True:
            run = self._request(client, "GET", f"/threads/{thread_id}/runs/{run_id}")
            status = run.get("status")
            if status == "completed":
                return
            if status in TERMINAL_RUN_STATES:
                last_error = run.get("last_error")
                detail = last_error.get("message") if isinstance(last_error, dict) else None
                raise AssistantRunError(f"Assistant run {status}" + (f": {detail}" if detail else ""))
            if time.monotonic() >= deadline:
                raise AssistantRunError("Assistant run timed out")
            time.sleep(self.poll_interval)

    def _latest_assistant_message(self, client: httpx.Client, thread_id: str) -> str:
        messages = self._request(client, "GET", f"/threads/{thread_id}/messages?limit=20&order=desc")
        data = messages.get("data")
        if not isinstance(data, list):
            raise AssistantRunError("OpenAI API returned an unexpected message list")
        for message in data:
            if not isinstance(message, dict) or message.get("role") != "assistant":
                continue
            parts = []
            for block in message.get("content") or []:
                if not isinstance(block, dict) or block.get("type") != "text":
                    continue
                text = block.get("text")
                value = text.get("value") if isinstance(text, dict) else None
                if not isinstance(value, str):
                    raise AssistantRunError("Assistant message has a malformed text block")
                parts.append(value)
            return "".join(parts)
        raise AssistantRunError("No assistant message in thread")


AssistantClientHook = Callable[[str, Any, Optional[AssistantClient]], Optional[AssistantClient]]


class AssistantClientFactory:
    """Maps an assistant id to the client that can run it."""

    def __init__(self, hooks: Iterable[AssistantClientHook] = (), transport: Optional[httpx.BaseTransport] = None):
        self._hooks = list(hooks)
        self._transport = transport

    def create(self, assistant_id: str, settings) -> Optional[AssistantClient]:
        client = self._builtin_client(assistant_id, settings)
        for hook in self._hooks:
            client = hook(assistant_id, settings, client)
            if client is None:
                logger.debug(f"Assistant client for {assistant_id} vetoed by {getattr(hook, '__name__', hook)}")
                return None
        if client is None:
            logger.warning(f"No assistant client available for {assistant_id}")
        return client

    def _builtin_client(self, assistant_id: str, settings) -> Optional[AssistantClient]:
        if not assistant_id.startswith(ASSISTANT_ID_PREFIX) or not settings.openai.api_key:
            return None
        return OpenAIAssistantClient(
            api_key=settings.openai.api_key,
            api_url=settings.openai.api_url,
            timeout=settings.provider_timeout,
            poll_interval=settings.openai.poll_interval,
            max_wait=settings.openai.max_wait,
            transport=self._transport,
        )


# ============================================================
# Response parsing
# ============================================================

def match_json_object(text: str) -> Optional[str]:
    """
    Extract JSON object from mixed text using bracket matching.

    Args:
        text: Text potentially containing JSON object

    Returns:
        Extracted JSON object string, or None if not found
    """
    if not text:
        return None

    depth = 0
    start = -1
    in_string = False
    escape_next = False

    for i, char in enumerate(text):
        if escape_next:
            escape_next = False
            continue

        if char == '\\':
            escape_next = True
            continue

        if char == '"':
            in_string = not in_string
            continue

        if in_string:
            continue

        if char == '{':
            if depth == 0:
                start = i
            depth += 1
        elif char == '}' and depth:
            depth -= 1
            if depth == 0 and start >= 0:
                return text[start:i + 1]

    return None


def _strip_code_fence(text: str) -> str:
    lines = text.split('\n')
    if lines[0].startswith('```'):
        lines = lines[1:]
    if lines and lines[-1].strip() == '```':
        lines = lines[:-1]
    return '\n'.join(lines).strip()


def parse_json_object(text: str) -> Optional[Dict[str, Any]]:
    """
    Parse a JSON object out of an assistant reply.

    Tries a direct parse, then the body of a markdown code block, then the
    first balanced {...} span. Returns None when nothing parses to a dict.
    """
    if not text:
        return None

    text = text.strip()
    candidates = [text]
    if text.startswith('```'):
        candidates.append(_strip_code_fence(text))
    extracted = match_json_object(text)
    if extracted:
        candidates.append(extracted)

    for candidate in candidates:
        try:
            result = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(result, dict):
            return result

    return None
