# miniapp_guide/kotlin_parser.py
import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from miniapp_guide.dtos import ElementDraft
from miniapp_guide.kotlin_tokenizer import (
    IDENT,
    OPENERS,
    PUNCT,
    STRING,
    Token,
    match_brackets,
    tokenize,
)

logger = logging.getLogger("miniapp_guide")

COMPOSE_ELEMENT_TYPES = frozenset({
    "Button", "Text", "TextField", "OutlinedTextField", "Icon", "Image",
    "Card", "LazyColumn", "LazyRow", "Column", "Row", "Box", "IconButton",
    "FloatingActionButton", "Checkbox", "RadioButton", "Switch", "Slider",
})

# never callees
KOTLIN_KEYWORDS = frozenset({
    "if", "else", "when", "for", "while", "do", "try", "catch", "finally",
    "return", "throw", "break", "continue", "fun", "class", "object",
    "interface", "val", "var", "in", "is", "as", "this", "super", "null",
    "true", "false", "typealias", "package", "import", "constructor", "init",
    "where", "by",
})

DECLARATION_STARTS = frozenset({
    "fun", "val", "var", "class", "object", "interface", "typealias",
    "private", "public", "internal", "protected", "override", "abstract",
    "open", "data", "sealed", "enum", "inline", "suspend", "const",
    "lateinit", "import", "package",
})

_NAMED_DECLARATIONS = ("fun", "class", "interface", "object")


@dataclass(slots=True)
class CallArgument:
    name: Optional[str]
    start: int
    end: int
    text: str
    literal: Optional[str] = None


@dataclass(slots=True)
class LambdaBlock:
    # token range strictly inside the braces
    start: int
    end: int


def line_of(source: str, offset: Optional[int]) -> int:
    if offset is None or offset < 0 or offset > len(source):
        return 0
    return source.count("\n", 0, offset) + 1


def extract_test_tag(modifier_code: Optional[str]) -> Optional[str]:
    if not modifier_code:
        return None
    idx = modifier_code.find("testTag(")
    if idx < 0:
        return None
    return _quoted_after(modifier_code, idx)


def extract_semantic_hint(modifier_code: Optional[str]) -> Optional[str]:
    if not modifier_code:
        return None
    idx = modifier_code.find("semantics")
    if idx < 0:
        return None
    idx = modifier_code.find("contentDescription", idx)
    if idx < 0:
        return None
    return _quoted_after(modifier_code, idx)


def _quoted_after(text: str, idx: int) -> Optional[str]:
    open_q = text.find('"', idx)
    if open_q < 0:
        return None
    close_q = text.find('"', open_q + 1)
    if close_q < 0:
        return None
    return text[open_q + 1:close_q]


class ComposeTreeWalker:
    """
    Walks a token range and reports every call expression to `visitor`
    through visit_call(name, positional_args, named_args, trailing_block,
    callee_index), then recurses into the arguments and the trailing lambda.
    """

    def __init__(self, source: str, tokens: List[Token], visitor):
        self.source = source
        self.tokens = tokens
        self.matches = match_brackets(tokens)
        self.visitor = visitor

    def walk(self, start: int, end: int) -> None:
        i = start
        while i < end:
            if self._is_callee(i, end):
                i = self._visit_call_at(i, end)
            else:
                i += 1

    def _is_callee(self, i: int, end: int) -> bool:
        tok = self.tokens[i]
        if tok.kind != IDENT or tok.text in KOTLIN_KEYWORDS or i + 1 >= end:
            return False
        if i > 0:
            prev = self.tokens[i - 1]
            if prev.is_punct("@") or (prev.kind == IDENT and prev.text in _NAMED_DECLARATIONS):
                return False
        nxt = self.tokens[i + 1]
        return nxt.is_punct("(", "{") and not nxt.nl_before

    def _visit_call_at(self, i: int, end: int) -> int:
        tokens = self.tokens
        after = i + 1
        args: List[CallArgument] = []
        if tokens[after].is_punct("("):
            close = min(self.matches[after], end)
            args = self.split_arguments(after + 1, close)
            after = close + 1

        block = None
        if after < end and tokens[after].is_punct("{") and not tokens[after].nl_before:
            close = min(self.matches[after], end)
            block = LambdaBlock(after + 1, close)
            after = close + 1

        positional = [a for a in args if a.name is None]
        named: Dict[str, CallArgument] = {}
        for a in args:
            if a.name is not None:
                named.setdefault(a.name, a)

        self.visitor.visit_call(tokens[i].text, positional, named, block, i)

        for a in args:
            self.walk(a.start, a.end)
        if block is not None:
            self.walk(block.start, block.end)
        return min(after, end)

    def split_arguments(self, start: int, end: int) -> List[CallArgument]:
        args: List[CallArgument] = []
        seg_start = start
        i = start
        while i < end:
            tok = self.tokens[i]
            if tok.kind == PUNCT and tok.text in OPENERS:
                i = min(self.matches[i] + 1, end)
                continue
            if tok.is_punct(","):
                if seg_start < i:
                    args.append(self._make_argument(seg_start, i))
                seg_start = i + 1
            i += 1
        if seg_start < end:
            args.append(self._make_argument(seg_start, end))
        return args

    def _make_argument(self, start: int, end: int) -> CallArgument:
        tokens = self.tokens
        name = None
        if end - start >= 2 and tokens[start].kind == IDENT and tokens[start + 1].is_punct("="):
            name = tokens[start].text
            start += 2
        if start < end and tokens[start].is_punct("*"):
            start += 1
        if start >= end:
            return CallArgument(name, start, end, "")
        text = self.source[tokens[start].start:tokens[end - 1].end]
        literal = tokens[start].value if end - start == 1 and tokens[start].kind == STRING else None
        return CallArgument(name, start, end, text, literal)

    def find_direct_call(self, block: LambdaBlock, name: str) -> Iterator[Tuple[int, List[CallArgument]]]:
        """
        Yield (callee_index, arguments) for calls to `name` that are statements
        of `block` itself, not nested inside another expression.
        """
        tokens = self.tokens
        i = block.start
        while i < block.end:
            tok = tokens[i]
            if tok.kind == PUNCT and tok.text in OPENERS:
                i = min(self.matches[i] + 1, block.end)
                continue
            if (
                tok.kind == IDENT
                and tok.text == name
                and i + 1 < block.end
                and tokens[i + 1].is_punct("(")
                and not tokens[i + 1].nl_before
                and (i == block.start or tok.nl_before or tokens[i - 1].is_punct(";", "->"))
            ):
                close = min(self.matches[i + 1], block.end)
                yield i, self.split_arguments(i + 2, close)
            i += 1


class _ComposeFileScan:
    def __init__(self, file_name: str, source: str):
        self.file_name = file_name
        self.source = source
        self.tokens = tokenize(source)
        self.walker = ComposeTreeWalker(source, self.tokens, self)
        self.matches = self.walker.matches
        self.drafts: List[ElementDraft] = []

    # -------- top level --------
    def run(self) -> List[ElementDraft]:
        for start, end in self._composable_bodies():
            self.walker.walk(start, end)
        return self.drafts

    def _composable_bodies(self) -> Iterator[Tuple[int, int]]:
        tokens = self.tokens
        n = len(tokens)
        annotations: List[str] = []
        i = 0
        while i < n:
            tok = tokens[i]
            if tok.is_punct("@"):
                i, name = self._read_annotation(i)
                if name:
                    annotations.append(name)
                continue
            if tok.kind == IDENT and tok.text == "fun":
                body, i = self._function_body(i)
                if body is not None and "Composable" in annotations:
                    yield body
                annotations = []
                continue
            if tok.kind == IDENT and tok.text in ("class", "object", "interface", "val", "var", "typealias"):
                annotations = []
            if tok.kind == PUNCT and tok.text in OPENERS:
                i = self.matches[i] + 1
                continue
            i += 1

    def _read_annotation(self, i: int) -> Tuple[int, Optional[str]]:
        tokens = self.tokens
        n = len(tokens)
        j = i + 1
        # use-site target, e.g. @file:JvmName
        if j + 1 < n and tokens[j].kind == IDENT and tokens[j + 1].is_punct(":"):
            j += 2
        name = None
        while j < n and tokens[j].kind == IDENT:
            name = tokens[j].text
            j += 1
            if j + 1 < n and tokens[j].is_punct(".") and tokens[j + 1].kind == IDENT:
                j += 1
                continue
            break
        if j < n and tokens[j].is_punct("(") and not tokens[j].nl_before:
            j = self.matches[j] + 1
        return j, name

    def _function_body(self, i: int) -> Tuple[Optional[Tuple[int, int]], int]:
        tokens = self.tokens
        n = len(tokens)
        j = i + 1
        while j < n and not tokens[j].is_punct("("):
            if tokens[j].is_punct("{", "="):
                return None, j
            if tokens[j].is_punct("<"):
                j = self._skip_angle(j)
                continue
            j += 1
        if j >= n:
            return None, j
        j = self.matches[j] + 1

        while j < n:
            tok = tokens[j]
            if tok.is_punct("{"):
                close = self.matches[j]
                return (j + 1, close), close + 1
            if tok.is_punct("="):
                end = self._expression_end(j + 1)
                return (j + 1, end), end
            if tok.nl_before and self._starts_declaration(tok):
                return None, j
            if tok.is_punct("(", "["):
                j = self.matches[j] + 1
                continue
            j += 1
        return None, j

    def _skip_angle(self, j: int) -> int:
        depth = 0
        n = len(self.tokens)
        while j < n:
            tok = self.tokens[j]
            if tok.is_punct("<"):
                depth += 1
            elif tok.is_punct(">"):
                depth -= 1
                if depth == 0:
                    return j + 1
            elif tok.is_punct("{", "=") or (tok.nl_before and self._starts_declaration(tok)):
                return j
            j += 1
        return j

    def _expression_end(self, start: int) -> int:
        tokens = self.tokens
        n = len(tokens)
        j = start
        while j < n:
            tok = tokens[j]
            if j > start and tok.nl_before and self._starts_declaration(tok):
                return j
            if tok.kind == PUNCT and tok.text in OPENERS:
                j = self.matches[j] + 1
                continue
            j += 1
        return n

    def _starts_declaration(self, tok: Token) -> bool:
        return tok.is_punct("@") or (tok.kind == IDENT and tok.text in DECLARATION_STARTS)

    # -------- visitor --------
    def visit_call(
        self,
        name: str,
        positional_args: List[CallArgument],
        named_args: Dict[str, CallArgument],
        trailing_block: Optional[LambdaBlock],
        callee_index: int,
    ) -> None:
        if name not in COMPOSE_ELEMENT_TYPES:
            return

        text = next((a.literal for a in positional_args if a.literal is not None), None)
        if text is None:
            text = next((a.literal for a in named_args.values() if a.literal is not None), None)
        if text is None and trailing_block is not None:
            text = self._lambda_text(trailing_block)

        onclick = named_args.get("onClick")
        modifier = named_args.get("modifier")
        modifier_code = modifier.text if modifier is not None else None

        self.drafts.append(
            ElementDraft(
                type=name,
                composable_id=extract_test_tag(modifier_code),
                text=text,
                semantic_hint=extract_semantic_hint(modifier_code),
                onclick_code=onclick.text if onclick is not None else None,
                modifier_code=modifier_code,
                source_file=self.file_name,
                line_number=line_of(self.source, self.tokens[callee_index].start),
            )
        )

    def _lambda_text(self, block: LambdaBlock) -> Optional[str]:
        for _, args in self.walker.find_direct_call(block, "Text"):
            if args and args[0].literal is not None:
                return args[0].literal
        return None


class KotlinComposeParser:
    """
    Extracts UI element drafts from the @Composable functions of one Kotlin file.

    Example:

        @Composable
        fun SendScreen() {
            Button(onClick = { navigateTo("confirm") }) { Text("Send") }
        }

    yields two drafts: type="Button", text="Send",
    onclick_code='{ navigateTo("confirm") }', line_number=3, followed by the
    nested type="Text", text="Send" on the same line. A Text literal lifted
    into its parent's text is still an element of its own.
    """

    suffixes = (".kt",)

    def parse(self, file_name: str, source_text: str) -> List[ElementDraft]:
        try:
            drafts = _ComposeFileScan(file_name, source_text or "").run()
        except Exception:
            logger.warning(f"[PARSE] failed to parse Kotlin file {file_name}", exc_info=True)
            return []
        logger.debug(f"[PARSE] {file_name}: {len(drafts)} element(s)")
        return drafts
