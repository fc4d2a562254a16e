# miniapp_guide/guide_store.py
import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from sqlalchemy.orm import Session, selectinload

from miniapp_guide.dtos import GuideStepResult
from miniapp_guide.entities import Guide, GuideStep

logger = logging.getLogger("miniapp_guide")


def _step_from_result(result: GuideStepResult) -> GuideStep:
    target = result.target_element
    return GuideStep(
        instruction=result.guide_message[:1000],
        target_screen=result.target_screen,
        target_element=target.composable_id or target.fallback_selector,
    )


class GuideStore:
    """
    Stored guides. Guides belong to an app id but not to a particular index
    build, so re-registering an app leaves them in place.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.SessionFactory = session_factory

    def save_guide(
        self,
        app_id: str,
        question: str,
        intent: Optional[str],
        steps: Sequence[GuideStepResult],
    ) -> Guide:
        guide = Guide(
            guide_id=str(uuid.uuid4()),
            app_id=app_id,
            intent=(intent or None) and intent[:50],
            user_query=(question or "")[:1000],
        )
        for result in steps:
            guide.add_step(_step_from_result(result))

        session = self.SessionFactory()
        try:
            guide = session.merge(guide)
            session.commit()
            logger.info(f"[GUIDE] stored guide {guide.guide_id} ({len(guide.steps)} step(s)) for app_id={app_id}")
            return guide
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def _query(self, session: Session):
        return session.query(Guide).options(selectinload(Guide.steps))

    def find_by_id(self, guide_id: str) -> Optional[Guide]:
        session = self.SessionFactory()
        try:
            return self._query(session).filter(Guide.guide_id == guide_id).one_or_none()
        finally:
            session.close()

    def find_by_app_id(self, app_id: str) -> List[Guide]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session)
                .filter(Guide.app_id == app_id)
                .order_by(Guide.created_at.desc())
                .all()
            )
        finally:
            session.close()

    def find_recent(self, app_id: str, since: datetime) -> List[Guide]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session)
                .filter(Guide.app_id == app_id, Guide.created_at >= since)
                .order_by(Guide.created_at.desc())
                .all()
            )
        finally:
            session.close()

    def find_by_intent(self, app_id: str, intent: str) -> List[Guide]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session)
                .filter(Guide.app_id == app_id, Guide.intent == intent)
                .order_by(Guide.created_at.desc())
                .all()
            )
        finally:
            session.close()

    def delete_by_app_id(self, app_id: str) -> int:
        session = self.SessionFactory()
        try:
            guides = session.query(Guide).filter(Guide.app_id == app_id).all()
            for guide in guides:
                session.delete(guide)
            session.commit()
            return len(guides)
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
