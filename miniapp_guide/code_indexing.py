# miniapp_guide/code_indexing.py
import logging
from typing import Callable, Dict, List, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from miniapp_guide.dtos import ElementDraft
from miniapp_guide.element_parser import parse_source_files, screen_name_for
from miniapp_guide.entities import ComposableInfo, MiniAppCodeIndex, ScreenInfo
from miniapp_guide.index_locks import INDEX_LOCKS, IndexLockRegistry
from miniapp_guide.zip_extractor import ZipExtractor

logger = logging.getLogger("miniapp_guide")


def group_by_screen(drafts: Sequence[ElementDraft]) -> Dict[str, List[ElementDraft]]:
    """
    Group drafts by screen name, keeping the order in which screens first
    appear and the order of drafts inside each screen.
    """
    groups: Dict[str, List[ElementDraft]] = {}
    for draft in drafts:
        groups.setdefault(screen_name_for(draft.source_file), []).append(draft)
    return groups


def composable_from_draft(app_id: str, draft: ElementDraft) -> ComposableInfo:
    return ComposableInfo(
        app_id=app_id,
        type=draft.type,
        composable_id=draft.composable_id,
        text=draft.text,
        semantic_hint=draft.semantic_hint,
        onclick_code=draft.onclick_code,
        modifier_code=draft.modifier_code,
        fallback_selector=draft.fallback_selector,
        source_file=draft.source_file,
        line_number=draft.line_number,
    )


class CodeIndexBuilder:
    def __init__(
        self,
        session_factory: Callable[[], Session],
        index_locks: IndexLockRegistry = INDEX_LOCKS,
    ):
        self.SessionFactory = session_factory
        self.index_locks = index_locks

    def rebuild_index(self, app_id: str, drafts: Sequence[ElementDraft]) -> int:
        """
        Replace the stored index of `app_id` with `drafts`.

        Runs under the per-app lock in a single transaction: either the new
        index is fully visible or the previous one is left untouched.
        Returns the number of stored elements.
        """
        groups = group_by_screen(drafts)

        with self.index_locks.hold(app_id):
            session = self.SessionFactory()
            try:
                existing = session.get(MiniAppCodeIndex, app_id)
                if existing is not None:
                    logger.info(f"[INDEX] dropping previous index for app_id={app_id}")
                    session.delete(existing)
                    session.flush()

                code_index = MiniAppCodeIndex(app_id=app_id)
                session.add(code_index)

                total = 0
                for screen_name, screen_drafts in groups.items():
                    screen = ScreenInfo(
                        name=screen_name,
                        source_file=screen_drafts[0].source_file,
                    )
                    code_index.add_screen(screen)
                    session.add(screen)

                    composables = [composable_from_draft(app_id, d) for d in screen_drafts]
                    for composable in composables:
                        screen.add_composable(composable)
                    session.add_all(composables)

                    total += len(composables)
                    logger.debug(f"[INDEX] screen {screen_name}: {len(composables)} element(s)")

                session.commit()
            except Exception:
                session.rollback()
                logger.exception(f"[INDEX] rebuild failed for app_id={app_id}; previous index kept")
                raise
            finally:
                session.close()

        logger.info(f"[INDEX] app_id={app_id}: {total} element(s) in {len(groups)} screen(s)")
        return total


class CodeIndexingService:
    """
    Registration flow: archive -> source files -> element drafts -> index.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        extractor: ZipExtractor | None = None,
        builder: CodeIndexBuilder | None = None,
    ):
        self.SessionFactory = session_factory
        self.extractor = extractor or ZipExtractor()
        self.builder = builder or CodeIndexBuilder(session_factory)

    def index_mini_app_code(self, app_id: str, archive_bytes: bytes, content_type: str | None) -> int:
        logger.info(f"[INDEX] indexing started for app_id={app_id}")
        files = self.extractor.extract(archive_bytes, content_type)
        drafts = parse_source_files(files)
        return self.builder.rebuild_index(app_id, drafts)

    def list_screens(self, app_id: str) -> List[ScreenInfo]:
        session = self.SessionFactory()
        try:
            return (
                session.query(ScreenInfo)
                .options(selectinload(ScreenInfo.composables))
                .filter(ScreenInfo.app_id == app_id)
                .order_by(ScreenInfo.name)
                .all()
            )
        finally:
            session.close()

    def count_elements(self, app_id: str) -> int:
        session = self.SessionFactory()
        try:
            return (
                session.query(func.count(ComposableInfo.id))
                .filter(ComposableInfo.app_id == app_id)
                .scalar()
            ) or 0
        finally:
            session.close()
