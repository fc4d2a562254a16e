# miniapp_guide/llm_client.py
import asyncio
import logging
import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional, TypeVar

from langchain_core.messages import AIMessage, BaseMessage, SystemMessage
from langchain_google_vertexai import ChatVertexAI
from openai import OpenAI

from miniapp_guide.model_props import is_openai_model, parse_model_name

T = TypeVar("T")

logger = logging.getLogger("miniapp_guide")

USAGE_KEYS = ("prompt_token_count", "candidates_token_count", "total_token_count")


class MaxRetryErrorsException(Exception):
    pass


class BackoffWindow:
    """
    Process-wide pause shared by every oracle call.

    A 429 or a timeout pushes `wait_until` forward by a jittered delay that
    doubles on each hit (capped) and halves again on success.
    """

    def __init__(self, initial_seconds: float = 30.0, max_seconds: float = 600.0):
        self._lock = threading.Lock()
        self.wait_until = 0.0
        self.seconds = initial_seconds
        self.max_seconds = max_seconds

    def wait(self) -> None:
        while True:
            with self._lock:
                remaining = self.wait_until - time.monotonic()
            if remaining <= 0:
                return
            time.sleep(min(remaining, 1.0))

    def arm(self) -> float:
        with self._lock:
            delay = random.uniform(self.seconds * 0.95, self.seconds * 1.35)
            self.seconds = min(self.seconds * 2, self.max_seconds)
            self.wait_until = max(self.wait_until, time.monotonic() + delay)
            return delay

    def relax(self) -> None:
        with self._lock:
            self.seconds = max(1.0, self.seconds * 0.5)


ORACLE_BACKOFF = BackoffWindow()


def is_retryable_slowdown(e: Exception) -> bool:
    """True for timeouts and provider rate limiting (HTTP 429)."""
    if isinstance(e, (asyncio.TimeoutError, TimeoutError)):
        return True
    text = repr(e)
    if "TimeoutError" in text or "timed out" in text.lower():
        return True
    text = str(e)
    markers = ("RESOURCE_EXHAUSTED", "Resource has been exhausted", "Too Many Requests", "rate limit")
    return "429" in text and any(m.lower() in text.lower() for m in markers)


def call_with_retries_sync(
    fn: Callable[[], T],
    *,
    retries: int = 1,
    log: Callable[[str], None] | None = None,
    backoff: BackoffWindow = ORACLE_BACKOFF,
) -> T:
    """
    Call `fn` up to `retries` times (at least once).

    Only a 429 or a timeout arms the shared backoff window, and never on the
    last attempt; other failures are retried straight away. When every
    attempt fails MaxRetryErrorsException is raised from the last error.
    """
    attempts = max(1, retries)
    last_error: Exception | None = None

    for attempt in range(1, attempts + 1):
        backoff.wait()
        started = time.time()
        try:
            result = fn()
        except Exception as e:
            last_error = e
            if is_retryable_slowdown(e):
                delay = backoff.arm() if attempt < attempts else 0.0
                msg = f"Attempt {attempt} got 429/timeout, backing off ~{delay:.1f}s."
            else:
                msg = f"Attempt {attempt} failed."
            if log:
                log(f"{msg} (elapsed={time.time() - started:.2f}s): {e}")
            continue
        backoff.relax()
        return result

    raise MaxRetryErrorsException(f"All {attempts} retry attempts failed.") from last_error


def _usage_from_response(resp: Any) -> Optional[Dict[str, int]]:
    """
    Normalise token usage of an OpenAI Responses object or a Vertex chat
    message to USAGE_KEYS; None when the response carries no usage.
    """
    usage = getattr(resp, "usage", None)
    if usage is not None:
        values = (
            getattr(usage, "input_tokens", 0),
            getattr(usage, "output_tokens", 0),
            getattr(usage, "total_tokens", 0),
        )
        return {k: int(v or 0) for k, v in zip(USAGE_KEYS, values)}

    meta = getattr(resp, "usage_metadata", None)
    if meta is None and isinstance(getattr(resp, "response_metadata", None), dict):
        meta = resp.response_metadata.get("usage_metadata")
    if not meta:
        return None

    def pick(*names: str) -> int:
        for name in names:
            v = meta.get(name) if isinstance(meta, dict) else getattr(meta, name, None)
            if v:
                return int(v)
        return 0

    return {
        "prompt_token_count": pick("prompt_token_count", "input_tokens"),
        "candidates_token_count": pick("candidates_token_count", "output_tokens"),
        "total_token_count": pick("total_token_count", "total_tokens"),
    }


def _openai_role(message: BaseMessage) -> str:
    if isinstance(message, SystemMessage):
        return "developer"
    if isinstance(message, AIMessage):
        return "assistant"
    return "user"


class ChatLlmClient:
    """
    Chat-style oracle transport:

        text = chat_llm.invoke([SystemMessage(...), HumanMessage(...)])

    OpenAI model names (gpt-*, o1/o3/o4) go through the Responses API, with
    model-name suffixes turned into verbosity / reasoning parameters; any
    other name is served by ChatVertexAI.
    """

    def __init__(
        self,
        model_name: str,
        *,
        vertex_project: str,
        vertex_region: str,
        timeout: float | None = None,
    ):
        self.model_name = model_name
        self.provider = "openai" if is_openai_model(model_name) else "vertex"
        self.last_usage: Optional[Dict[str, int]] = None
        self._openai_params: Dict[str, Any] = {}
        self._client = None
        self._vertex = None

        if self.provider == "openai":
            self.model_name, self._openai_params = parse_model_name(model_name)
            kwargs: Dict[str, Any] = {"max_retries": 0}
            if timeout is not None:
                kwargs["timeout"] = timeout
            self._client = OpenAI(**kwargs)
        else:
            self._vertex = ChatVertexAI(
                project=vertex_project,
                location=vertex_region,
                model_name=model_name,
                timeout=timeout,
            )

    def _record_usage(self, resp: Any) -> None:
        usage = _usage_from_response(resp)
        if usage is None:
            return
        if self.last_usage is None:
            self.last_usage = usage
            return
        for key, value in usage.items():
            self.last_usage[key] = self.last_usage.get(key, 0) + value

    def _invoke_once(self, messages: List[BaseMessage]) -> str:
        if self._vertex is not None:
            resp = self._vertex.invoke(messages)
            self._record_usage(resp)
            return resp if isinstance(resp, str) else str(getattr(resp, "content", resp))

        resp = self._client.responses.create(
            model=self.model_name,
            input=[{"role": _openai_role(m), "content": str(m.content)} for m in messages],
            **self._openai_params,
        )
        self._record_usage(resp)
        return (getattr(resp, "output_text", "") or "").strip()

    def invoke(self, messages: List[BaseMessage], *, retries: int = 1) -> str:
        return call_with_retries_sync(
            lambda: self._invoke_once(messages),
            retries=retries,
            log=lambda msg: logger.warning(f"[CHAT-LLM-RETRY] {msg}"),
        )
