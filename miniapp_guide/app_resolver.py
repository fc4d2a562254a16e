# miniapp_guide/app_resolver.py
import logging

from miniapp_guide.app_catalog import AppCatalog
from miniapp_guide.base_utils import BaseUtils
from miniapp_guide.completer import Completer
from miniapp_guide.guide_prompts import APP_SELECTION_SYSTEM_PROMPT, APP_SELECTION_USER_PROMPT

logger = logging.getLogger("miniapp_guide")


class AppResolver(BaseUtils):
    """
    Maps a free-text question to a mini-app id.

    Catalog routing rules are tried first; the LLM is only asked when none
    matches, and any LLM failure falls back to the catalog default.
    """

    def __init__(self, completer: Completer, catalog: AppCatalog):
        self.completer = completer
        self.catalog = catalog

    def resolve(self, question: str) -> str:
        app_id = self.catalog.match(question)
        if app_id:
            logger.info(f"[RESOLVE] rule match -> {app_id}")
            return app_id

        logger.info(f"[RESOLVE] no rule match, asking the LLM: {question!r}")
        return self._resolve_with_llm(question)

    def _resolve_with_llm(self, question: str) -> str:
        system_prompt = self.unsafe_string_format(
            APP_SELECTION_SYSTEM_PROMPT,
            APP_CATALOG=self.catalog.describe(),
            DEFAULT_APP_ID=self.catalog.default_app_id,
        )
        user_prompt = self.unsafe_string_format(APP_SELECTION_USER_PROMPT, USER_QUESTION=question)

        try:
            raw = self.completer.complete(system_prompt, user_prompt)
        except Exception as e:
            logger.warning(f"[RESOLVE] LLM call failed, using default app id: {e}")
            return self.catalog.default_app_id

        app_id = self.first_token(raw)
        if not app_id:
            logger.warning("[RESOLVE] LLM returned no app id, using default")
            return self.catalog.default_app_id

        if not self.catalog.knows(app_id):
            logger.warning(f"[RESOLVE] LLM returned an app id outside the catalog: {app_id}")
        logger.info(f"[RESOLVE] LLM match {question!r} -> {app_id}")
        return app_id
