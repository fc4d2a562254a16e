# miniapp_guide/entities.py
from datetime import datetime, timezone
from typing import TypeAlias

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    event,
)
from sqlalchemy.orm import Mapped, declarative_base, mapped_column, relationship

Base = declarative_base()

Timestamp: TypeAlias = datetime


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MiniAppCodeIndex(Base):
    """
    Root of one mini-app's extracted UI model.

    Replacing the index deletes every owned ScreenInfo and, through them,
    every ComposableInfo.
    """

    __tablename__ = "mini_app_code_index"

    app_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    indexed_at: Mapped[Timestamp] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    screens: Mapped[list["ScreenInfo"]] = relationship(
        back_populates="code_index",
        cascade="all, delete-orphan",
        order_by="ScreenInfo.id",
    )

    def add_screen(self, screen: "ScreenInfo") -> None:
        self.screens.append(screen)
        screen.app_id = self.app_id


class ScreenInfo(Base):
    __tablename__ = "screen_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("mini_app_code_index.app_id", ondelete="CASCADE"),
        nullable=False,
    )
    # file name without path and suffix, e.g. "TransferScreen"
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    source_file: Mapped[str | None] = mapped_column(String(500))

    code_index: Mapped[MiniAppCodeIndex] = relationship(back_populates="screens")
    composables: Mapped[list["ComposableInfo"]] = relationship(
        back_populates="screen",
        cascade="all, delete-orphan",
        order_by="ComposableInfo.id",
    )

    __table_args__ = (
        UniqueConstraint("app_id", "name", name="uq_screen_app_name"),
        Index("ix_screen_info_app_id", "app_id"),
    )

    def add_composable(self, composable: "ComposableInfo") -> None:
        self.composables.append(composable)
        composable.app_id = self.app_id


class ComposableInfo(Base):
    """
    One extracted UI element.

    Example, for

        Button(
            modifier = Modifier.testTag("btn_send").semantics { contentDescription = "송금" },
            onClick = { viewModel.transfer() }
        ) {
            Text("보내기")
        }

    type="Button", composable_id="btn_send", text="보내기", semantic_hint="송금",
    onclick_code="{ viewModel.transfer() }".
    """

    __tablename__ = "composable_info"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    screen_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("screen_info.id", ondelete="CASCADE"),
    )

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    composable_id: Mapped[str | None] = mapped_column(String(200))
    text: Mapped[str | None] = mapped_column(Text)
    semantic_hint: Mapped[str | None] = mapped_column(Text)
    onclick_code: Mapped[str | None] = mapped_column(Text)
    modifier_code: Mapped[str | None] = mapped_column(Text)
    fallback_selector: Mapped[str | None] = mapped_column(String(500))
    source_file: Mapped[str | None] = mapped_column(String(500))
    line_number: Mapped[int | None] = mapped_column(Integer)

    # text + semantic_hint + onclick_code + composable_id + screen name
    searchable_text: Mapped[str] = mapped_column(Text, nullable=False, default="")

    screen: Mapped[ScreenInfo | None] = relationship(back_populates="composables")

    __table_args__ = (
        Index("ix_composable_info_app_id", "app_id"),
        Index("ix_composable_info_type", "type"),
        Index("ix_composable_info_composable_id", "composable_id"),
    )

    @property
    def screen_name(self) -> str | None:
        return self.screen.name if self.screen is not None else None

    def build_searchable_text(self, screen_name: str | None = None) -> str:
        if screen_name is None:
            screen_name = self.screen_name
        parts = [self.text, self.semantic_hint, self.onclick_code, self.composable_id, screen_name]
        self.searchable_text = " ".join(p for p in parts if p).strip()
        return self.searchable_text


@event.listens_for(ComposableInfo, "before_insert")
@event.listens_for(ComposableInfo, "before_update")
def _refresh_searchable_text(mapper, connection, target: ComposableInfo) -> None:
    target.build_searchable_text()


@event.listens_for(ScreenInfo.name, "set")
def _propagate_screen_rename(target: ScreenInfo, value, oldvalue, initiator) -> None:
    if value == oldvalue:
        return
    for composable in target.composables:
        composable.build_searchable_text(screen_name=value)


class Guide(Base):
    """
    A stored answer to one user question. Steps are owned by the guide and
    kept densely numbered from 1.
    """

    __tablename__ = "guide"

    guide_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    app_id: Mapped[str] = mapped_column(String(100), nullable=False)
    intent: Mapped[str | None] = mapped_column(String(50))
    user_query: Mapped[str] = mapped_column(String(1000), nullable=False)
    created_at: Mapped[Timestamp] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )

    steps: Mapped[list["GuideStep"]] = relationship(
        back_populates="guide",
        cascade="all, delete-orphan",
        order_by="GuideStep.step_number",
    )

    __table_args__ = (
        Index("ix_guide_app_id", "app_id"),
    )

    def add_step(self, step: "GuideStep") -> None:
        self.steps.append(step)
        step.guide_id = self.guide_id
        step.step_number = len(self.steps)

    def remove_step(self, step: "GuideStep") -> None:
        self.steps.remove(step)
        for position, remaining in enumerate(self.steps, start=1):
            remaining.step_number = position

    def to_dict(self) -> dict:
        return {
            "guideId": self.guide_id,
            "appId": self.app_id,
            "intent": self.intent,
            "userQuery": self.user_query,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "steps": [s.to_dict() for s in self.steps],
        }


class GuideStep(Base):
    __tablename__ = "guide_step"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guide_id: Mapped[str] = mapped_column(
        String(100),
        ForeignKey("guide.guide_id", ondelete="CASCADE"),
        nullable=False,
    )
    step_number: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(String(1000), nullable=False)
    target_screen: Mapped[str | None] = mapped_column(String(200))
    target_element: Mapped[str | None] = mapped_column(String(200))
    # opaque to the service, e.g. {"x": 50, "y": 200, "width": 300, "height": 60}
    highlight_bounds: Mapped[str | None] = mapped_column(Text)

    guide: Mapped[Guide] = relationship(back_populates="steps")

    def to_dict(self) -> dict:
        return {
            "stepNumber": self.step_number,
            "instruction": self.instruction,
            "targetScreen": self.target_screen,
            "targetElement": self.target_element,
            "highlightBounds": self.highlight_bounds,
        }
