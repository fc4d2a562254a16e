# miniapp_guide/backend.py

import logging
from typing import Callable, Optional

from sqlalchemy.orm import Session

from miniapp_guide import app_config
from miniapp_guide.app_catalog import AppCatalog, load_app_catalog
from miniapp_guide.app_resolver import AppResolver
from miniapp_guide.code_indexing import CodeIndexingService
from miniapp_guide.completer import Completer, build_completer
from miniapp_guide.db_connection_hlpr import DBConnection
from miniapp_guide.element_retriever import ElementRetriever
from miniapp_guide.errors import GuideNotFound, InvalidRequest
from miniapp_guide.guide_store import GuideStore
from miniapp_guide.guide_synthesizer import GuideSynthesizer
from miniapp_guide.zip_extractor import ZipExtractor

logger = logging.getLogger("miniapp_guide")


def element_to_dict(element) -> dict:
    return {
        "id": element.id,
        "type": element.type,
        "composableId": element.composable_id,
        "text": element.text,
        "semanticHint": element.semantic_hint,
        "onClickCode": element.onclick_code,
        "fallbackSelector": element.fallback_selector,
        "screenName": element.screen_name,
        "sourceFile": element.source_file,
        "lineNumber": element.line_number,
    }


class GuideBackend:
    def __init__(
        self,
        session_factory: Optional[Callable[[], Session]] = None,
        completer: Optional[Completer] = None,
        catalog: Optional[AppCatalog] = None,
    ):
        if session_factory is None:
            db = DBConnection()
            db.create_schema()
            session_factory = db.build_db_session_factory()
        self.SessionFactory = session_factory

        self.completer = completer if completer is not None else build_completer()
        self.catalog = catalog if catalog is not None else load_app_catalog()

        self.extractor = ZipExtractor()
        self.indexing = CodeIndexingService(session_factory, extractor=self.extractor)
        self.retriever = ElementRetriever(session_factory)
        self.resolver = AppResolver(self.completer, self.catalog)
        self.synthesizer = GuideSynthesizer(
            self.retriever,
            self.completer,
            keyword_sample_size=app_config.KEYWORD_SAMPLE_SIZE,
            max_candidates=app_config.MAX_CANDIDATES,
        )
        self.guides = GuideStore(session_factory)

    # -----------------------
    # Analyze
    # -----------------------

    def handle_extract_files(self, archive_bytes: bytes, content_type: Optional[str]) -> list:
        return [f.to_dict() for f in self.extractor.extract(archive_bytes, content_type)]

    def handle_register_app(self, app_id: str, archive_bytes: bytes, content_type: Optional[str]) -> int:
        app_id = (app_id or "").strip()
        if not app_id:
            raise InvalidRequest("appId is required.")
        return self.indexing.index_mini_app_code(app_id, archive_bytes, content_type)

    def handle_list_screens(self, app_id: str) -> list:
        return [
            {
                "name": screen.name,
                "sourceFile": screen.source_file,
                "elementCount": len(screen.composables),
            }
            for screen in self.indexing.list_screens(app_id)
        ]

    def handle_search_elements(self, app_id: str, keyword: Optional[str]) -> list:
        return [element_to_dict(e) for e in self.retriever.search(app_id, keyword or "")]

    # -----------------------
    # Guides
    # -----------------------

    def handle_guide_query(self, payload: dict) -> dict:
        payload = payload or {}
        question = (payload.get("userQuestion") or "").strip()
        if not question:
            raise InvalidRequest("userQuestion is required.")

        app_id = (payload.get("appId") or "").strip()
        if not app_id:
            app_id = self.resolver.resolve(question)
            logger.info(f"[GUIDE] app id resolved from question: {app_id}")

        logger.info(f"[GUIDE] request app_id={app_id} question={question!r}")
        result = self.synthesizer.synthesize(question, app_id)

        response = result.to_dict()
        if result.steps:
            guide = self.guides.save_guide(app_id, question, result.intent, result.steps)
            response["guideId"] = guide.guide_id
        return response

    def handle_get_guide(self, guide_id: str) -> dict:
        guide = self.guides.find_by_id(guide_id)
        if guide is None:
            raise GuideNotFound()
        return guide.to_dict()

    def handle_list_guides(self, app_id: str, intent: Optional[str] = None) -> list:
        app_id = (app_id or "").strip()
        if not app_id:
            raise InvalidRequest("appId is required.")
        if intent:
            guides = self.guides.find_by_intent(app_id, intent)
        else:
            guides = self.guides.find_by_app_id(app_id)
        return [g.to_dict() for g in guides]
