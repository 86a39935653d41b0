"""
Baryon - A workflow definition language for reproducible bioinformatics
Programs are S-expressions transpiled to BASH, Python, R, NextFlow or Galaxy
"""

from .lexer import Lexer, Token, TokenType
from .ast import (
    Program, Parameter, ImplementationBlock, OutputBlock,
    Atom, StringField, ListField, PairListField, ParamType, ImplementationKind,
)
from .parser import Parser, ParseError, SExpr, parse_program
from .transpilers import (
    BaseTranspiler, TranspileError, TypeValidationError, ImplementationError,
    UnsupportedLanguageError, TranspilerDescriptor, TranspilerRegistry, build_registry,
    BashTranspiler, PythonTranspiler, RTranspiler, NextflowTranspiler, GalaxyTranspiler,
)
from .importer import Importer, GalaxyImporter

__version__ = '0.1.0'

__all__ = [
    'Lexer', 'Token', 'TokenType',
    'Program', 'Parameter', 'ImplementationBlock', 'OutputBlock',
    'Atom', 'StringField', 'ListField', 'PairListField', 'ParamType', 'ImplementationKind',
    'Parser', 'ParseError', 'SExpr', 'parse_program',
    'BaseTranspiler', 'TranspileError', 'TypeValidationError', 'ImplementationError',
    'UnsupportedLanguageError', 'TranspilerDescriptor', 'TranspilerRegistry', 'build_registry',
    'BashTranspiler', 'PythonTranspiler', 'RTranspiler', 'NextflowTranspiler', 'GalaxyTranspiler',
    'Importer', 'GalaxyImporter',
]
