# miniapp_guide/html_parser.py
import logging
import re
from typing import Callable, List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

from miniapp_guide.dtos import ElementDraft

logger = logging.getLogger("miniapp_guide")

COVERED_TAGS = ("button", "input", "a", "form", "textarea", "select")
DATA_SELECTOR = "[data-action], [data-target], [data-id], [data-testid]"
ID_ATTRIBUTES = ("id", "data-testid", "data-id", "data-target")
HINT_ATTRIBUTES = ("title", "aria-label", "alt")


def normalized_text(tag: Tag) -> str:
    return " ".join(tag.get_text(" ").split())


def class_string(tag: Tag) -> Optional[str]:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        classes = classes.split()
    return " ".join(classes) or None


def attr(tag: Tag, name: str) -> Optional[str]:
    value = tag.get(name)
    if isinstance(value, list):
        value = " ".join(value)
    return value or None


def extract_id(tag: Tag) -> Optional[str]:
    """
    id > data-testid > data-id > data-target > first class > tag_<text>.
    """
    for name in ID_ATTRIBUTES:
        value = attr(tag, name)
        if value:
            return value
    classes = class_string(tag)
    if classes:
        return classes.split()[0]
    text = normalized_text(tag)
    if text:
        return f"{tag.name}_" + re.sub(r"\s+", "_", text)[:20]
    return None


def extract_semantic_hint(tag: Tag) -> Optional[str]:
    for name in HINT_ATTRIBUTES:
        value = attr(tag, name)
        if value:
            return value
    return None


def data_attribute_hint(tag: Tag) -> str:
    return "".join(
        f"{key}={attr(tag, key) or ''}; " for key in tag.attrs if key.startswith("data-")
    )


class HtmlElementParser:
    """
    Extracts interactive elements from one HTML page.

    Tags are collected kind by kind (buttons, inputs, links, forms,
    textareas, selects, then any other tag carrying a data-action /
    data-target / data-id / data-testid attribute), so the output is grouped
    by kind and in document order inside each kind.
    """

    suffixes = (".html", ".htm")

    def parse(self, file_name: str, source_text: str) -> List[ElementDraft]:
        try:
            soup = BeautifulSoup(source_text or "", "html.parser")
            drafts: List[ElementDraft] = []
            for collect in self._collectors():
                drafts.extend(collect(soup, file_name))
        except Exception:
            logger.warning(f"[PARSE] failed to parse HTML file {file_name}", exc_info=True)
            return []
        logger.debug(f"[PARSE] {file_name}: {len(drafts)} element(s)")
        return drafts

    def _collectors(self) -> List[Callable[[BeautifulSoup, str], List[ElementDraft]]]:
        return [
            self._buttons,
            self._inputs,
            self._links,
            self._forms,
            self._textareas,
            self._selects,
            self._data_elements,
        ]

    def _draft(self, tag: Tag, file_name: str, type_: str, **fields) -> ElementDraft:
        classes = class_string(tag)
        return ElementDraft(
            type=type_,
            composable_id=extract_id(tag),
            modifier_code=classes,
            fallback_selector=classes,
            source_file=file_name,
            line_number=tag.sourceline,
            **fields,
        )

    def _buttons(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, "Button",
                text=normalized_text(tag),
                semantic_hint=extract_semantic_hint(tag),
                onclick_code=attr(tag, "onclick"),
            )
            for tag in soup.find_all("button")
        ]

    def _inputs(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, f"Input_{attr(tag, 'type') or 'text'}",
                text=attr(tag, "placeholder"),
                semantic_hint=extract_semantic_hint(tag),
                onclick_code=attr(tag, "onclick"),
            )
            for tag in soup.find_all("input")
        ]

    def _links(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, "Link",
                text=normalized_text(tag),
                semantic_hint=attr(tag, "href"),
                onclick_code=attr(tag, "onclick"),
            )
            for tag in soup.find_all("a")
        ]

    def _forms(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, "Form",
                text=None,
                semantic_hint=attr(tag, "action"),
                onclick_code=attr(tag, "onsubmit"),
            )
            for tag in soup.find_all("form")
        ]

    def _textareas(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, "Textarea",
                text=attr(tag, "placeholder"),
                semantic_hint=extract_semantic_hint(tag),
            )
            for tag in soup.find_all("textarea")
        ]

    def _selects(self, soup, file_name):
        return [
            self._draft(
                tag, file_name, "Select",
                text=", ".join(normalized_text(option) for option in tag.find_all("option")),
                semantic_hint=extract_semantic_hint(tag),
            )
            for tag in soup.find_all("select")
        ]

    def _data_elements(self, soup, file_name):
        drafts = []
        for tag in soup.select(DATA_SELECTOR):
            if tag.name.lower() in COVERED_TAGS:
                continue
            drafts.append(
                self._draft(
                    tag, file_name, tag.name[:1].upper() + tag.name[1:],
                    text=normalized_text(tag),
                    semantic_hint=data_attribute_hint(tag),
                    onclick_code=attr(tag, "onclick"),
                )
            )
        return drafts
