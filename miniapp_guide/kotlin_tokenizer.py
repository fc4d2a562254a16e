# miniapp_guide/kotlin_tokenizer.py
"""
Lexer for the subset of Kotlin needed to find Compose calls.

Produces identifiers, string and char literals, numbers and punctuation with
their source offsets. Comments are dropped. String tokens carry a `value`:
literal chunks and raw escape sequences, with `$name` / `${...}` templates
removed.
"""

import re
from dataclasses import dataclass
from typing import Dict, List, Optional

IDENT = "IDENT"
STRING = "STRING"
CHAR = "CHAR"
NUMBER = "NUMBER"
PUNCT = "PUNCT"

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")", "]", "}"}

# longest first
PUNCTUATORS = (
    "===", "!==", "...",
    "?.", "?:", "::", "->", "..", "==", "!=", "<=", ">=", "&&", "||",
    "++", "--", "+=", "-=", "*=", "/=", "%=", "!!",
)

_IDENT_RE = re.compile(r"[^\W\d]\w*")
_NUMBER_RE = re.compile(
    r"0[xX][0-9a-fA-F_]+[uUL]*"
    r"|0[bB][01_]+[uUL]*"
    r"|\d[\d_]*(?:\.\d[\d_]*)?(?:[eE][+-]?\d+)?[fFdDuUL]*"
)


@dataclass(slots=True)
class Token:
    kind: str
    text: str
    start: int
    end: int
    nl_before: bool = False
    value: Optional[str] = None

    def is_punct(self, *texts: str) -> bool:
        return self.kind == PUNCT and self.text in texts


class KotlinTokenizer:
    def __init__(self, source: str):
        self.src = source
        self.n = len(source)
        self.pos = 0
        self._nl = False

    def tokenize(self) -> List[Token]:
        tokens: List[Token] = []
        src = self.src
        while self.pos < self.n:
            c = src[self.pos]
            if c == "\n":
                self._nl = True
                self.pos += 1
                continue
            if c.isspace():
                self.pos += 1
                continue
            if src.startswith("//", self.pos):
                eol = src.find("\n", self.pos)
                self.pos = self.n if eol < 0 else eol
                continue
            if src.startswith("/*", self.pos):
                self._skip_block_comment()
                continue

            start = self.pos
            value = None
            if c == '"':
                kind = STRING
                value = self._read_string()
            elif c == "'":
                kind = CHAR
                self._read_char()
            elif c == "`":
                kind = IDENT
                close = src.find("`", self.pos + 1)
                self.pos = self.n if close < 0 else close + 1
            elif c.isalpha() or c == "_":
                kind = IDENT
                self.pos = _IDENT_RE.match(src, self.pos).end()
            elif "0" <= c <= "9":
                kind = NUMBER
                self.pos = _NUMBER_RE.match(src, self.pos).end()
            else:
                kind = PUNCT
                self.pos += next((len(p) for p in PUNCTUATORS if src.startswith(p, self.pos)), 1)

            text = src[start:self.pos]
            if kind == IDENT and text.startswith("`"):
                text = text.strip("`")
            tokens.append(Token(kind, text, start, self.pos, self._nl, value))
            self._nl = False
        return tokens

    def _skip_block_comment(self) -> None:
        depth = 0
        while self.pos < self.n:
            if self.src.startswith("/*", self.pos):
                depth += 1
                self.pos += 2
            elif self.src.startswith("*/", self.pos):
                depth -= 1
                self.pos += 2
                if depth == 0:
                    return
            else:
                if self.src[self.pos] == "\n":
                    self._nl = True
                self.pos += 1

    def _read_string(self) -> str:
        if self.src.startswith('"""', self.pos):
            return self._read_raw_string()
        self.pos += 1
        chunks: List[str] = []
        while self.pos < self.n:
            c = self.src[self.pos]
            if c == '"':
                self.pos += 1
                break
            if c == "\n":
                # unterminated literal
                break
            if c == "\\":
                size = 6 if self.src.startswith("\\u", self.pos) else 2
                chunks.append(self.src[self.pos:self.pos + size])
                self.pos += size
                continue
            if c == "$" and self._skip_template():
                continue
            chunks.append(c)
            self.pos += 1
        return "".join(chunks)

    def _read_raw_string(self) -> str:
        self.pos += 3
        chunks: List[str] = []
        while self.pos < self.n:
            if self.src.startswith('"""', self.pos):
                extra = 0
                while self.src.startswith('"', self.pos + 3 + extra):
                    extra += 1
                chunks.append('"' * extra)
                self.pos += 3 + extra
                break
            c = self.src[self.pos]
            if c == "$" and self._skip_template():
                continue
            chunks.append(c)
            self.pos += 1
        return "".join(chunks)

    def _read_char(self) -> None:
        self.pos += 1
        while self.pos < self.n and self.src[self.pos] not in "'\n":
            self.pos += 2 if self.src[self.pos] == "\\" else 1
        if self.pos < self.n and self.src[self.pos] == "'":
            self.pos += 1

    def _skip_template(self) -> bool:
        nxt = self.src[self.pos + 1:self.pos + 2]
        if nxt == "{":
            self.pos += 2
            depth = 1
            while self.pos < self.n and depth:
                c = self.src[self.pos]
                if c == '"':
                    self._read_string()
                    continue
                if c == "'":
                    self._read_char()
                    continue
                if c == "{":
                    depth += 1
                elif c == "}":
                    depth -= 1
                self.pos += 1
            return True
        if nxt and (nxt.isalpha() or nxt == "_"):
            self.pos = _IDENT_RE.match(self.src, self.pos + 1).end()
            return True
        return False


def tokenize(source: str) -> List[Token]:
    return KotlinTokenizer(source).tokenize()


def match_brackets(tokens: List[Token]) -> Dict[int, int]:
    """
    Map every opener index to its closer index. Openers left open at the end
    of input map to len(tokens); stray closers are ignored.
    """
    matches: Dict[int, int] = {}
    stack: List[int] = []
    for i, tok in enumerate(tokens):
        if tok.kind != PUNCT:
            continue
        if tok.text in OPENERS:
            stack.append(i)
        elif tok.text in CLOSERS:
            for depth in range(len(stack) - 1, -1, -1):
                if OPENERS[tokens[stack[depth]].text] == tok.text:
                    for opener in stack[depth:]:
                        matches[opener] = i
                    del stack[depth:]
                    break
    for opener in stack:
        matches[opener] = len(tokens)
    return matches
