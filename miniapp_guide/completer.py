# miniapp_guide/completer.py
import logging
from typing import Optional, Protocol

from langchain_core.messages import HumanMessage, SystemMessage

from miniapp_guide import app_config
from miniapp_guide.llm_client import ChatLlmClient, MaxRetryErrorsException

logger = logging.getLogger("miniapp_guide")


class Completer(Protocol):
    """Text-completion oracle. `None` means the oracle gave no usable answer."""

    def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        ...


class LiveCompleter:
    def __init__(self, chat_llm: ChatLlmClient, retries: int = 1):
        self.chat_llm = chat_llm
        self.retries = retries

    def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        messages = [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
        try:
            return self.chat_llm.invoke(messages, retries=self.retries)
        except MaxRetryErrorsException as e:
            logger.warning(f"[ORACLE] unavailable after {self.retries} attempt(s): {e.__cause__!r}")
            return None


class DisabledCompleter:
    def complete(self, system_prompt: str, user_prompt: str) -> Optional[str]:
        return None


def build_completer(
    *,
    enabled: bool = app_config.ORACLE_ENABLED,
    model_name: str = app_config.LLM_MODEL,
    timeout: float = app_config.LLM_TIMEOUT,
    retries: int = app_config.LLM_RETRIES,
) -> Completer:
    if not enabled:
        logger.info("[ORACLE] disabled by configuration")
        return DisabledCompleter()
    chat_llm = ChatLlmClient(
        model_name=model_name,
        vertex_project=app_config.PROJECT_ID,
        vertex_region=app_config.REGION,
        timeout=timeout,
    )
    logger.info(f"[ORACLE] using {chat_llm.provider} model {chat_llm.model_name}")
    return LiveCompleter(chat_llm, retries=retries)
