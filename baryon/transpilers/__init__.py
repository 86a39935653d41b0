"""
Baryon Transpilers - Convert Baryon programs to other languages
"""

from dataclasses import dataclass
from typing import Callable, Dict, List

from ..lexer import load_target_config
from .base import (
    BaseTranspiler, TranspileError, TypeValidationError, ImplementationError,
)
from .bash import BashTranspiler
from .python import PythonTranspiler
from .r import RTranspiler
from .nextflow import NextflowTranspiler
from .galaxy import GalaxyTranspiler


class UnsupportedLanguageError(LookupError):
    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unsupported language '{name}'")


@dataclass(frozen=True)
class TranspilerDescriptor:
    name: str
    extension: str
    display: str
    factory: Callable[[], BaseTranspiler]


class TranspilerRegistry:
    """Name to descriptor table; names are stored and looked up in lowercase."""

    def __init__(self):
        self._entries: Dict[str, TranspilerDescriptor] = {}

    def register(self, descriptor: TranspilerDescriptor):
        self._entries[descriptor.name.lower()] = descriptor

    def get(self, name: str) -> TranspilerDescriptor:
        try:
            return self._entries[name.strip().lower()]
        except KeyError:
            raise UnsupportedLanguageError(name) from None

    def names(self) -> List[str]:
        return list(self._entries)

    def __contains__(self, name: str) -> bool:
        return name.strip().lower() in self._entries


TRANSPILERS = {
    'bash': BashTranspiler,
    'python': PythonTranspiler,
    'r': RTranspiler,
    'nextflow': NextflowTranspiler,
    'galaxy': GalaxyTranspiler,
}


def build_registry() -> TranspilerRegistry:
    registry = TranspilerRegistry()
    for name, cls in TRANSPILERS.items():
        T = load_target_config(name)
        registry.register(TranspilerDescriptor(name, T['ext'], T['display'], cls))
    return registry


__all__ = [
    'BaseTranspiler',
    'TranspileError',
    'TypeValidationError',
    'ImplementationError',
    'UnsupportedLanguageError',
    'TranspilerDescriptor',
    'TranspilerRegistry',
    'TRANSPILERS',
    'build_registry',
    'BashTranspiler',
    'PythonTranspiler',
    'RTranspiler',
    'NextflowTranspiler',
    'GalaxyTranspiler',
]
