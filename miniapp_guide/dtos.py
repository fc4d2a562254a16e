# miniapp_guide/dtos.py
"""Plain records passed between the extraction, indexing and guide stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(slots=True)
class ExtractedFile:
    """One source entry pulled out of an uploaded archive."""

    file_name: str
    content: str
    file_size: int

    def to_dict(self) -> dict:
        return {"fileName": self.file_name, "content": self.content, "fileSize": self.file_size}


@dataclass(slots=True)
class ElementDraft:
    """A UI element as produced by a parser, before it is attached to a screen."""

    type: str
    composable_id: Optional[str] = None
    text: Optional[str] = None
    semantic_hint: Optional[str] = None
    onclick_code: Optional[str] = None
    modifier_code: Optional[str] = None
    fallback_selector: Optional[str] = None
    source_file: Optional[str] = None
    line_number: Optional[int] = None


class ActionType(str, Enum):
    NAVIGATE = "NAVIGATE"
    CLICK = "CLICK"
    INPUT = "INPUT"
    WAIT = "WAIT"


@dataclass(slots=True)
class TargetElement:
    composable_id: Optional[str]
    fallback_selector: Optional[str]
    type: Optional[str]
    text: Optional[str]

    def to_dict(self) -> dict:
        return {
            "composableId": self.composable_id,
            "fallbackSelector": self.fallback_selector,
            "type": self.type,
            "text": self.text,
        }


@dataclass(slots=True)
class GuideStepResult:
    step_number: int
    target_screen: str
    target_element: TargetElement
    guide_message: str
    action_type: ActionType
    next_screen: Optional[str] = None
    related_code: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "stepNumber": self.step_number,
            "targetScreen": self.target_screen,
            "targetElement": self.target_element.to_dict(),
            "guideMessage": self.guide_message,
            "actionType": self.action_type.value,
            "nextScreen": self.next_screen,
            "relatedCode": self.related_code,
        }


@dataclass(slots=True)
class GuideResult:
    app_id: str
    intent: Optional[str] = None
    steps: List[GuideStepResult] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"appId": self.app_id, "steps": [s.to_dict() for s in self.steps]}
