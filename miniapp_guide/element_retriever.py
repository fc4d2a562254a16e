# miniapp_guide/element_retriever.py
import logging
from typing import Callable, List, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from miniapp_guide.entities import ComposableInfo, ScreenInfo

logger = logging.getLogger("miniapp_guide")

RANK_HINT = 1
RANK_TEXT = 2
RANK_ONCLICK = 3
RANK_OTHER = 4


def match_rank(element: ComposableInfo, keyword: str) -> Optional[int]:
    """
    Relevance of `element` for `keyword` (lower is better), or None when no
    searched field contains it. Matching is case-sensitive.
    """
    if element.semantic_hint and keyword in element.semantic_hint:
        return RANK_HINT
    if element.text and keyword in element.text:
        return RANK_TEXT
    if element.onclick_code and keyword in element.onclick_code:
        return RANK_ONCLICK
    if keyword in (element.searchable_text or ""):
        return RANK_OTHER
    return None


class ElementRetriever:
    """
    Read side of the element index. Every result is detached from its session
    with the owning screen already loaded.
    """

    def __init__(self, session_factory: Callable[[], Session]):
        self.SessionFactory = session_factory

    def _query(self, session: Session, app_id: str):
        return (
            session.query(ComposableInfo)
            .options(selectinload(ComposableInfo.screen))
            .filter(ComposableInfo.app_id == app_id)
        )

    def find_all(self, app_id: str) -> List[ComposableInfo]:
        session = self.SessionFactory()
        try:
            return self._query(session, app_id).order_by(ComposableInfo.id).all()
        finally:
            session.close()

    def search(self, app_id: str, keyword: str) -> List[ComposableInfo]:
        keyword = keyword or ""
        session = self.SessionFactory()
        try:
            query = self._query(session, app_id)
            if keyword:
                # SQL LIKE may be case-insensitive; it only narrows the candidates
                query = query.filter(
                    or_(
                        ComposableInfo.searchable_text.contains(keyword, autoescape=True),
                        ComposableInfo.text.contains(keyword, autoescape=True),
                        ComposableInfo.semantic_hint.contains(keyword, autoescape=True),
                        ComposableInfo.onclick_code.contains(keyword, autoescape=True),
                    )
                )
            candidates = query.order_by(ComposableInfo.id).all()
        finally:
            session.close()

        ranked = []
        for element in candidates:
            rank = match_rank(element, keyword)
            if rank is not None:
                ranked.append((rank, element.id, element))
        ranked.sort(key=lambda item: (item[0], item[1]))

        logger.debug(f"[SEARCH] app_id={app_id} keyword={keyword!r}: {len(ranked)} match(es)")
        return [element for _, _, element in ranked]

    def find_by_screen(self, app_id: str, screen_name: str) -> List[ComposableInfo]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session, app_id)
                .join(ScreenInfo, ComposableInfo.screen_id == ScreenInfo.id)
                .filter(ScreenInfo.name == screen_name)
                .order_by(ComposableInfo.id)
                .all()
            )
        finally:
            session.close()

    def find_by_type(self, app_id: str, type_: str) -> List[ComposableInfo]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session, app_id)
                .filter(ComposableInfo.type == type_)
                .order_by(ComposableInfo.id)
                .all()
            )
        finally:
            session.close()

    def find_by_composable_id(self, app_id: str, composable_id: str) -> List[ComposableInfo]:
        session = self.SessionFactory()
        try:
            return (
                self._query(session, app_id)
                .filter(ComposableInfo.composable_id == composable_id)
                .order_by(ComposableInfo.id)
                .all()
            )
        finally:
            session.close()
