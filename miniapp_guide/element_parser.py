# miniapp_guide/element_parser.py
import logging
from typing import Iterable, List, Optional

from miniapp_guide.dtos import ElementDraft, ExtractedFile
from miniapp_guide.html_parser import HtmlElementParser
from miniapp_guide.kotlin_parser import KotlinComposeParser

logger = logging.getLogger("miniapp_guide")

PARSERS = (KotlinComposeParser(), HtmlElementParser())


def parser_for(file_name: str):
    """Parser variant for a file, chosen by suffix; None when unsupported."""
    lowered = (file_name or "").lower()
    for parser in PARSERS:
        if lowered.endswith(parser.suffixes):
            return parser
    return None


def parse_source_file(file_name: str, source_text: str) -> List[ElementDraft]:
    parser = parser_for(file_name)
    if parser is None:
        logger.debug(f"[PARSE] no parser for {file_name}")
        return []
    return parser.parse(file_name, source_text)


def parse_source_files(files: Iterable[ExtractedFile]) -> List[ElementDraft]:
    drafts: List[ElementDraft] = []
    file_count = 0
    for extracted in files:
        file_count += 1
        drafts.extend(parse_source_file(extracted.file_name, extracted.content))
    logger.info(f"[PARSE] {len(drafts)} element(s) from {file_count} file(s)")
    return drafts


def screen_name_for(source_file: Optional[str]) -> str:
    """
    'app/src/main/java/ui/SendScreen.kt' -> 'SendScreen'; missing -> 'Unknown'.
    """
    if not source_file:
        return "Unknown"
    base = source_file.replace("\\", "/").rsplit("/", 1)[-1]
    stem, dot, _ = base.rpartition(".")
    return (stem if dot else base) or "Unknown"
