# miniapp_guide/guide_synthesizer.py
import logging
import re
from typing import List, Optional, Sequence, Tuple

from miniapp_guide import app_config
from miniapp_guide.base_utils import BaseUtils
from miniapp_guide.completer import Completer
from miniapp_guide.dtos import ActionType, GuideResult, GuideStepResult, TargetElement
from miniapp_guide.element_retriever import ElementRetriever
from miniapp_guide.entities import ComposableInfo
from miniapp_guide.errors import GuideGenerationFailed
from miniapp_guide.guide_prompts import (
    KEYWORD_SYSTEM_PROMPT,
    KEYWORD_USER_PROMPT,
    SEQUENCE_SYSTEM_PROMPT,
    SEQUENCE_USER_PROMPT,
)

logger = logging.getLogger("miniapp_guide")

# question substrings -> search keyword, checked in order
KEYWORD_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("송금", "보내", "send"), "Send"),
    (("받", "receive"), "Receive"),
    (("잔액", "balance"), "Balance"),
    (("주소", "address"), "Address"),
    (("키", "key"), "Key"),
    (("설정", "setting"), "Settings"),
    (("내역", "history"), "History"),
)
DEFAULT_KEYWORD = ""

_NAVIGATE_QUOTED = re.compile(r"""navigateTo\(['"]([^'"]+)['"]\)""")
_NAVIGATE_SUFFIX = re.compile(r"navigateTo([A-Z][a-zA-Z]*)\(")


def classify_action(onclick_code: Optional[str], element_type: Optional[str]) -> ActionType:
    if onclick_code and "navigateTo" in onclick_code:
        return ActionType.NAVIGATE
    if element_type and element_type.startswith("Input"):
        return ActionType.INPUT
    if element_type == "Button":
        return ActionType.CLICK
    return ActionType.WAIT


def extract_next_screen(onclick_code: Optional[str]) -> Optional[str]:
    """
    navigateTo('send') / navigateTo("send") -> 'send';
    navigateToSendScreen( -> 'sendscreen'.
    """
    if not onclick_code:
        return None
    m = _NAVIGATE_QUOTED.search(onclick_code)
    if m:
        return m.group(1)
    m = _NAVIGATE_SUFFIX.search(onclick_code)
    if m:
        return m.group(1).lower()
    return None


def fallback_keyword(question: str) -> str:
    lowered = (question or "").lower()
    for needles, keyword in KEYWORD_RULES:
        if any(n in lowered for n in needles):
            return keyword
    return DEFAULT_KEYWORD


def validate_step_sequence(steps: Sequence[GuideStepResult]) -> List[int]:
    """
    Log adjacent steps that stay on the same screen. Returns the step numbers
    of the second step of each such pair; never rejects the sequence.
    """
    flagged = []
    for prev, cur in zip(steps, steps[1:]):
        if prev.target_screen == cur.target_screen:
            logger.warning(
                f"[GUIDE] steps {prev.step_number} and {cur.step_number} both target screen "
                f"{cur.target_screen}; the sequence may be redundant"
            )
            flagged.append(cur.step_number)
    return flagged


def _screen_of(element: ComposableInfo) -> str:
    return element.screen_name or "Unknown"


def as_int(value) -> Optional[int]:
    """
    Integer value of a JSON step field: ints, integral floats and digit
    strings. Bools and anything else give None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


class GuideSynthesizer(BaseUtils):
    def __init__(
        self,
        retriever: ElementRetriever,
        completer: Completer,
        keyword_sample_size: int = app_config.KEYWORD_SAMPLE_SIZE,
        max_candidates: int = app_config.MAX_CANDIDATES,
    ):
        self.retriever = retriever
        self.completer = completer
        self.keyword_sample_size = keyword_sample_size
        self.max_candidates = max_candidates

    def synthesize(self, question: str, app_id: str) -> GuideResult:
        elements = self.retriever.find_all(app_id)
        if not elements:
            logger.warning(f"[GUIDE] no indexed elements for app_id={app_id}")
            return GuideResult(app_id=app_id)
        logger.info(f"[GUIDE] app_id={app_id}: {len(elements)} indexed element(s)")

        keyword = self.extract_keyword(question, elements)
        candidates = self.retriever.search(app_id, keyword)[: self.max_candidates]
        if not candidates:
            logger.info(f"[GUIDE] no elements match keyword {keyword!r}")
            return GuideResult(app_id=app_id, intent=keyword or None)

        steps = self.generate_step_sequence(question, candidates)
        return GuideResult(app_id=app_id, intent=keyword or None, steps=steps)

    # -------- keyword --------
    def extract_keyword(self, question: str, elements: Sequence[ComposableInfo]) -> str:
        sample = "\n".join(
            f"- [{_screen_of(e)}] {e.type}: {e.searchable_text or ''}"
            for e in elements[: self.keyword_sample_size]
        )
        user_prompt = self.unsafe_string_format(
            KEYWORD_USER_PROMPT,
            USER_QUESTION=question,
            ELEMENT_SAMPLE=sample,
        )
        try:
            raw = self.completer.complete(KEYWORD_SYSTEM_PROMPT, user_prompt)
        except Exception as e:
            logger.warning(f"[GUIDE] keyword LLM call failed: {e}")
            raw = None

        keyword = self.first_token(raw)
        if keyword:
            logger.info(f"[GUIDE] keyword from LLM: {keyword!r}")
            return keyword

        keyword = fallback_keyword(question)
        logger.info(f"[GUIDE] keyword from rules: {keyword!r}")
        return keyword

    # -------- sequencing --------
    def build_sequence_prompt(self, question: str, candidates: Sequence[ComposableInfo]) -> str:
        lines = []
        for index, e in enumerate(candidates):
            lines.append(
                f'{index}. [{_screen_of(e)} 페이지] {e.composable_id or "no-id"} '
                f'(타입: {e.type}, 텍스트: "{e.text or ""}", '
                f'검색가능텍스트: "{e.searchable_text or ""}", onClick: {e.onclick_code or "none"})'
            )
        return self.unsafe_string_format(
            SEQUENCE_USER_PROMPT,
            USER_QUESTION=question,
            ELEMENT_LIST="\n".join(lines),
        )

    def generate_step_sequence(self, question: str, candidates: Sequence[ComposableInfo]) -> List[GuideStepResult]:
        user_prompt = self.build_sequence_prompt(question, candidates)
        logger.debug(f"[GUIDE] sequence prompt length: {len(user_prompt)} chars")

        try:
            raw = self.completer.complete(SEQUENCE_SYSTEM_PROMPT, user_prompt)
        except Exception as e:
            logger.exception("[GUIDE] sequencing LLM call failed")
            raise GuideGenerationFailed("The guide could not be generated: LLM call failed.") from e
        if raw is None or not raw.strip():
            raise GuideGenerationFailed("The guide could not be generated: empty LLM response.")

        steps = self.parse_steps(raw, candidates)
        if not steps:
            raise GuideGenerationFailed("The guide could not be generated: no usable steps.")

        validate_step_sequence(steps)
        return steps

    def parse_steps(self, raw: str, candidates: Sequence[ComposableInfo]) -> List[GuideStepResult]:
        try:
            data = self.load_fault_tolerant_json(self.clean_triple_backticks(raw).strip())
        except ValueError:
            logger.warning("[GUIDE] LLM response is not valid JSON")
            return []

        steps_node = data.get("steps") if isinstance(data, dict) else None
        if not isinstance(steps_node, list):
            logger.warning("[GUIDE] LLM response has no 'steps' array")
            return []

        steps: List[GuideStepResult] = []
        for position, node in enumerate(steps_node, start=1):
            if not isinstance(node, dict):
                logger.warning(f"[GUIDE] skipping malformed step entry: {node!r}")
                continue
            index = as_int(node.get("elementIndex"))
            if index is None or not 0 <= index < len(candidates):
                logger.warning(f"[GUIDE] elementIndex out of range: {node.get('elementIndex')!r}")
                continue
            step_number = as_int(node.get("stepNumber"))
            if step_number is None:
                step_number = position
            steps.append(self.build_step(step_number, candidates[index], str(node.get("message") or "")))
        return steps

    def build_step(self, step_number: int, element: ComposableInfo, message: str) -> GuideStepResult:
        return GuideStepResult(
            step_number=step_number,
            target_screen=_screen_of(element),
            target_element=TargetElement(
                composable_id=element.composable_id,
                fallback_selector=element.fallback_selector,
                type=element.type,
                text=element.text,
            ),
            guide_message=message,
            action_type=classify_action(element.onclick_code, element.type),
            next_screen=extract_next_screen(element.onclick_code),
            related_code=element.onclick_code,
        )
