"""
Baryon Lexer - Tokenizes Baryon source code
Uses shared language definition from common/baryon.json
"""

import re
import json
import os
from typing import Iterator, List
from dataclasses import dataclass
from enum import Enum, auto


class TokenType(Enum):
    # Structure
    LPAREN = auto()
    RPAREN = auto()

    # Literals
    IDENTIFIER = auto()
    STRING = auto()
    NUMBER = auto()
    CHARACTER = auto()

    # Other
    COMMENT = auto()
    EOF = auto()
    ILLEGAL = auto()


@dataclass(frozen=True)
class Token:
    type: TokenType
    literal: str
    line: int
    column: int


COMMON_DIR = os.path.join(os.path.dirname(__file__), 'common')


def load_language_config():
    """Load language definition from common/baryon.json"""
    path = os.path.join(COMMON_DIR, 'baryon.json')
    with open(path) as f:
        return json.load(f)


def load_target_config(target: str):
    """Load target config from common/targets/{target}.json"""
    path = os.path.join(COMMON_DIR, 'targets', f'{target}.json')
    if not os.path.exists(path):
        raise FileNotFoundError(f"Could not find common/targets/{target}.json")
    with open(path) as f:
        return json.load(f)


# Load config at module level
BALA = load_language_config()

IDENTIFIER_RE = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')
NUMBER_RE = re.compile(r'[0-9]+(?:\.[0-9]*)?')
WHITESPACE = ' \t\r\n'


class Lexer:
    """
    Forward-only tokenizer for Baryon source.

    Tokens are produced lazily by tokens(); the stream always ends with
    exactly one EOF token. Comments are emitted as COMMENT tokens and left
    for the consumer to drop.
    """

    def __init__(self, source: str):
        self.source = source
        self.pos = 0
        self.line = 1
        self.col = 1
        self._done = False

    def peek(self, offset: int = 0) -> str:
        pos = self.pos + offset
        return self.source[pos] if pos < len(self.source) else ''

    def advance(self, count: int = 1) -> str:
        result = self.source[self.pos:self.pos + count]
        for ch in result:
            self.pos += 1
            if ch == '\n':
                self.line += 1
                self.col = 1
            elif ch == '\r':
                # \r\n ends the line on the \n
                if self.peek() != '\n':
                    self.line += 1
                    self.col = 1
                else:
                    self.col += 1
            else:
                self.col += 1
        return result

    def match_regex(self, pattern: re.Pattern) -> str:
        match = pattern.match(self.source, self.pos)
        if match:
            return self.advance(len(match.group(0)))
        return ''

    def skip_whitespace(self):
        while self.peek() and self.peek() in WHITESPACE:
            self.advance()

    def read_string(self, quote: str) -> str:
        """Read a quoted literal; an unterminated literal yields what was read."""
        self.advance()  # opening quote
        value = ''
        while self.peek():
            ch = self.peek()
            if ch == '\\' and self.peek(1) == quote:
                self.advance(2)
                value += quote
                continue
            if ch == quote:
                self.advance()
                break
            value += self.advance()
        return value

    def read_comment(self) -> str:
        self.advance(len(BALA['literals']['comment']))
        start = self.pos
        while self.peek() and self.peek() not in '\r\n':
            self.advance()
        return self.source[start:self.pos]

    def next_token(self) -> Token:
        self.skip_whitespace()
        line, col = self.line, self.col
        ch = self.peek()

        if not ch:
            return Token(TokenType.EOF, '', line, col)
        if ch == '(':
            return Token(TokenType.LPAREN, self.advance(), line, col)
        if ch == ')':
            return Token(TokenType.RPAREN, self.advance(), line, col)
        if ch == '"':
            return Token(TokenType.STRING, self.read_string('"'), line, col)
        if ch == "'":
            return Token(TokenType.CHARACTER, self.read_string("'"), line, col)
        if self.source.startswith(BALA['literals']['comment'], self.pos):
            return Token(TokenType.COMMENT, self.read_comment(), line, col)
        if m := self.match_regex(IDENTIFIER_RE):
            return Token(TokenType.IDENTIFIER, m, line, col)
        if m := self.match_regex(NUMBER_RE):
            return Token(TokenType.NUMBER, m, line, col)

        # Unknown - one character, let the parser decide
        return Token(TokenType.ILLEGAL, self.advance(), line, col)

    def tokens(self) -> Iterator[Token]:
        while not self._done:
            token = self.next_token()
            if token.type == TokenType.EOF:
                self._done = True
            yield token

    def tokenize(self) -> List[Token]:
        return list(self.tokens())
