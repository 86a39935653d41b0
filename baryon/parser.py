"""
Baryon Parser - Reads tokens into S-expressions, then builds the typed AST
Keywords and implementation kinds come from common/baryon.json
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence, Union
from dataclasses import dataclass, field

from .lexer import Lexer, Token, TokenType, BALA
from .ast import (
    Program, Parameter, ImplementationBlock, OutputBlock,
    Atom, StringField, ListField, PairListField, FieldValue,
)
from .config.logging import get_logger

log = get_logger(__name__)

KW = BALA['keywords']
FIELDS = BALA['fields']
QUOTED = (TokenType.STRING, TokenType.CHARACTER)
NUMERIC_RE = re.compile(r'-?[0-9]+(?:\.[0-9]*)?')


class ParseError(SyntaxError):
    """One or more structural errors, each prefixed with its position."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__('\n'.join(self.errors))

    def __str__(self) -> str:
        return '\n'.join(self.errors)


def at(token: Token, message: str) -> str:
    return f"Line {token.line}, Column {token.column}: {message}"


def describe_token(token: Token) -> str:
    return f"{token.type.name} '{token.literal}'"


@dataclass
class SExpr:
    """A leaf wrapping one token, or a list tagged with its '(' token."""
    token: Token
    children: List['SExpr'] = field(default_factory=list)

    @property
    def is_list(self) -> bool:
        return self.token.type == TokenType.LPAREN

    @property
    def head(self) -> Optional['SExpr']:
        return self.children[0] if self.children else None

    def is_identifier(self, literal: Optional[str] = None) -> bool:
        if self.is_list or self.token.type != TokenType.IDENTIFIER:
            return False
        return literal is None or self.token.literal == literal

    def is_string(self) -> bool:
        return not self.is_list and self.token.type == TokenType.STRING


class Parser:
    def __init__(self, source: Union[str, Iterable[Token]]):
        tokens = Lexer(source).tokens() if isinstance(source, str) else iter(source)
        self.tokens = (t for t in tokens if t.type != TokenType.COMMENT)
        self.last: Optional[Token] = None
        self.errors: List[str] = []

    def advance(self) -> Token:
        # Keep returning EOF once the stream is drained
        token = next(self.tokens, None)
        if token is None:
            line, col = (self.last.line, self.last.column) if self.last else (1, 1)
            token = Token(TokenType.EOF, '', line, col)
        self.last = token
        return token

    # S-expression reader

    def read(self) -> SExpr:
        while True:
            token = self.advance()
            if token.type == TokenType.LPAREN:
                break
            if token.type == TokenType.EOF:
                raise ParseError([at(token, "unexpected end of input before program definition")])
            if token.type == TokenType.RPAREN:
                raise ParseError([at(token, "unexpected ')' before program definition")])

        root = self.read_list(token)

        trailing = self.advance()
        if trailing.type != TokenType.EOF:
            raise ParseError([at(trailing, f"unexpected {describe_token(trailing)} after program definition")])
        return root

    def read_list(self, opening: Token) -> SExpr:
        node = SExpr(opening)
        while True:
            token = self.advance()
            if token.type == TokenType.RPAREN:
                return node
            if token.type == TokenType.EOF:
                raise ParseError([at(token,
                    "missing closing parenthesis in S-expression "
                    f"(opened at line {opening.line}, column {opening.column})")])
            if token.type == TokenType.LPAREN:
                node.children.append(self.read_list(token))
            else:
                node.children.append(SExpr(token))

    # AST builder

    def error(self, token: Token, message: str):
        self.errors.append(at(token, message))

    def parse(self) -> Program:
        root = self.read()
        children = root.children

        if not children or not children[0].is_identifier(KW['program']):
            where = children[0].token if children else root.token
            raise ParseError([at(where, f"program must start with '{KW['program']}'")])
        if len(children) < 2 or not children[1].is_identifier():
            where = children[1].token if len(children) > 1 else root.token
            raise ParseError([at(where, "invalid program name")])
        if len(children) < 3:
            raise ParseError([at(root.token, "invalid program structure: not enough elements")])
        body = children[2]
        if not body.is_list:
            raise ParseError([at(body.token, "invalid program structure: program body must be a list")])

        self.errors = []
        name = children[1].token.literal
        description = ''
        parameters: List[Parameter] = []
        implementations: List[ImplementationBlock] = []
        outputs: List[OutputBlock] = []
        metadata: Dict[str, str] = {}

        for entry in body.children:
            if not entry.is_list:
                self.error(entry.token, f"unexpected {describe_token(entry.token)} in program body")
                continue
            if not entry.children:
                continue
            head = entry.head
            if not head.is_identifier():
                self.error(head.token, f"unexpected {describe_token(head.token)} in program body")
                continue

            keyword = head.token.literal
            if keyword == KW['desc']:
                if len(entry.children) > 1 and entry.children[1].is_string():
                    description = entry.children[1].token.literal
            elif keyword in BALA['implementations']:
                implementations.append(self.parse_implementation(entry))
            elif keyword == KW['outputs']:
                outputs.extend(self.parse_outputs(entry))
            elif keyword == KW['metadata']:
                metadata.update(self.parse_metadata(entry))
            else:
                param = self.parse_parameter(entry)
                if param is not None:
                    parameters.append(param)

        if self.errors:
            raise ParseError(self.errors)

        program = Program(
            name=name,
            description=description,
            parameters=parameters,
            implementations=implementations,
            metadata=metadata,
            outputs=outputs,
        )
        log.debug("parsed program", program=name, parameters=len(parameters),
                  implementations=len(implementations), outputs=len(outputs))
        return program

    def words(self, nodes: Sequence[SExpr]) -> List[Atom]:
        """
        Collect the leaves of nodes as atoms, joining unquoted tokens that touch.

        `./workdir/out.txt` lexes as several ILLEGAL and IDENTIFIER tokens with
        no gap between them; here it becomes a single atom again. Nested lists
        are skipped and break a word.
        """
        atoms: List[Atom] = []
        prev: Optional[Token] = None
        for node in nodes:
            if node.is_list:
                prev = None
                continue
            token = node.token
            quoted = token.type in QUOTED
            touching = (
                prev is not None and not quoted and prev.type not in QUOTED
                and token.line == prev.line
                and token.column == prev.column + len(prev.literal)
            )
            if touching:
                atoms[-1] = Atom(atoms[-1].text + token.literal)
            else:
                atoms.append(Atom(token.literal, quoted))
            prev = token
        return atoms

    def literal_value(self, atom: Atom):
        if atom.quoted:
            return atom.text
        if atom.text == BALA['literals']['true']:
            return True
        if atom.text == BALA['literals']['false']:
            return False
        if NUMERIC_RE.fullmatch(atom.text):
            return float(atom.text) if '.' in atom.text else int(atom.text)
        return atom.text

    def enum_values(self, nodes: Sequence[SExpr]) -> List[str]:
        # Values are direct leaves or leaves one list deep; (key ...) pairs are not values
        values = []
        for node in nodes:
            if node.is_list:
                if node.head is not None and node.head.is_identifier():
                    continue
                values.extend(a.text for a in self.words(node.children))
            else:
                values.extend(a.text for a in self.words([node]))
        return values

    def parse_parameter(self, entry: SExpr) -> Optional[Parameter]:
        name_token = entry.head.token
        name = name_token.literal
        kids = entry.children

        if len(kids) < 2:
            self.error(name_token, f"parameter '{name}' has no type")
            return None

        type_node, rest = kids[1], kids[2:]
        constraints: List[str] = []
        if type_node.is_list:
            if type_node.head is None or not type_node.head.is_identifier(KW['enum']):
                self.error(type_node.token, f"invalid type for parameter '{name}'")
                return None
            param_type = KW['enum']
            constraints = self.enum_values(type_node.children[1:])
        elif type_node.is_identifier():
            param_type = type_node.token.literal
        else:
            self.error(type_node.token, f"invalid type {describe_token(type_node.token)} for parameter '{name}'")
            return None

        if param_type == KW['enum']:
            constraints += self.enum_values(rest)
            if not constraints:
                self.error(name_token, f"enum parameter '{name}' requires at least one allowed value")
                return None

        description = ''
        default = None
        metadata: Dict[str, str] = {}
        for child in rest:
            if not child.is_list or child.head is None or not child.head.is_identifier():
                continue
            key = child.head.token.literal
            values = child.children[1:]
            if key == KW['desc']:
                if values and values[0].is_string():
                    description = values[0].token.literal
                    metadata[key] = description
            elif key == KW['default']:
                atoms = self.words(values)
                if atoms:
                    default = self.literal_value(atoms[0])
            else:
                atoms = self.words(values)
                metadata[key] = atoms[0].text if atoms else ''

        return Parameter(
            name=name,
            type=param_type,
            constraints=constraints,
            default=default,
            description=description,
            metadata=metadata,
        )

    def parse_implementation(self, entry: SExpr) -> ImplementationBlock:
        kind = entry.head.token.literal
        fields: Dict[str, Optional[FieldValue]] = {}

        for child in entry.children[1:]:
            if not child.is_list or child.head is None:
                continue
            if not child.head.is_identifier():
                self.error(child.head.token, f"invalid field name {describe_token(child.head.token)} in '{kind}' block")
                continue
            key = child.head.token.literal
            values = child.children[1:]

            if key in FIELDS['strings']:
                if values and values[0].is_string():
                    fields[key] = StringField(values[0].token.literal)
                else:
                    fields[key] = None
            elif key in FIELDS['pairs']:
                pairs = []
                for pair in values:
                    if not pair.is_list:
                        continue
                    atoms = self.words(pair.children)
                    if len(atoms) >= 2:
                        pairs.append((atoms[0].text, atoms[1].text))
                fields[key] = PairListField(pairs)
            elif key in FIELDS['lists']:
                fields[key] = ListField(self.words(values))
            else:
                atoms = self.words(values)
                fields[key] = StringField(atoms[0].text) if atoms else None

        return ImplementationBlock(name=kind, fields=fields)

    def parse_outputs(self, entry: SExpr) -> List[OutputBlock]:
        outputs = []
        for child in entry.children[1:]:
            if not child.is_list:
                self.error(child.token, f"invalid output entry {describe_token(child.token)}")
                continue
            atoms = self.words(child.children)
            if len(atoms) < 2:
                self.error(child.token, "output entry requires a name and a format")
                continue
            label = atoms[2].text if len(atoms) > 2 else ''
            outputs.append(OutputBlock(atoms[0].text, atoms[1].text, label))
        return outputs

    def parse_metadata(self, entry: SExpr) -> Dict[str, str]:
        metadata = {}
        for child in entry.children[1:]:
            if not child.is_list or child.head is None or not child.head.is_identifier():
                where = child.head.token if child.is_list and child.head else child.token
                self.error(where, "invalid metadata entry, expected (key value)")
                continue
            atoms = self.words(child.children[1:])
            metadata[child.head.token.literal] = atoms[0].text if atoms else ''
        return metadata


def parse_program(source: str) -> Program:
    """Parse Baryon source text into a Program, raising ParseError on failure."""
    return Parser(source).parse()
