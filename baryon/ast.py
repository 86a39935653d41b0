"""
Baryon AST - Typed program model built by the parser
"""

from typing import Any, Dict, Optional, Tuple, Union
from dataclasses import dataclass, field
from enum import Enum


class ParamType(str, Enum):
    STRING = 'string'
    NUMBER = 'number'
    INTEGER = 'integer'
    BOOLEAN = 'boolean'
    FILE = 'file'
    DIRECTORY = 'directory'
    CHARACTER = 'character'
    ENUM = 'enum'


class ImplementationKind(str, Enum):
    RUN_DOCKER = 'run_docker'


BUILTIN_TYPES = tuple(t.value for t in ParamType)


def _freeze(obj, name):
    object.__setattr__(obj, name, tuple(getattr(obj, name)))


# Implementation field values

@dataclass(frozen=True)
class Atom:
    """A literal inside a field; unquoted atoms may name a parameter."""
    text: str
    quoted: bool = False

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class StringField:
    value: str


@dataclass(frozen=True)
class ListField:
    items: Tuple[Atom, ...] = ()

    def __post_init__(self):
        _freeze(self, 'items')


@dataclass(frozen=True)
class PairListField:
    pairs: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'pairs', tuple(tuple(p) for p in self.pairs))


FieldValue = Union[StringField, ListField, PairListField]


@dataclass(frozen=True)
class Parameter:
    name: str
    type: str
    constraints: Tuple[str, ...] = ()
    default: Optional[Any] = None
    description: str = ''
    metadata: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self):
        _freeze(self, 'constraints')

    @property
    def has_default(self) -> bool:
        return self.default is not None

    def describe(self) -> str:
        lines = [f"\t\tParam: {self.name}", f"\t\t\tType: {self.type}"]
        if self.constraints:
            lines.append(f"\t\t\tConstraints: {list(self.constraints)}")
        if self.has_default:
            lines.append(f"\t\t\tDefault: {self.default!r}")
        if self.description:
            lines.append(f"\t\t\tDescription: {self.description}")
        if self.metadata:
            lines.append("\t\t\tMetadata:")
            lines.extend(f"\t\t\t\t{k}: {v}" for k, v in self.metadata.items())
        return '\n'.join(lines) + '\n'


@dataclass(frozen=True)
class ImplementationBlock:
    name: str
    fields: Dict[str, Optional[FieldValue]] = field(default_factory=dict)

    def string_field(self, key: str) -> Optional[str]:
        value = self.fields.get(key)
        if isinstance(value, StringField):
            return value.value
        return None

    def list_field(self, key: str) -> Tuple[Atom, ...]:
        value = self.fields.get(key)
        if isinstance(value, ListField):
            return value.items
        return ()

    def pairs_field(self, key: str) -> Tuple[Tuple[str, str], ...]:
        value = self.fields.get(key)
        if isinstance(value, PairListField):
            return value.pairs
        return ()

    def describe(self) -> str:
        lines = [f"\t\tBlock: {self.name}"]
        if self.fields:
            lines.append("\t\t\tFields:")
            for key, value in self.fields.items():
                if isinstance(value, StringField):
                    shown = value.value
                elif isinstance(value, ListField):
                    shown = [str(a) for a in value.items]
                elif isinstance(value, PairListField):
                    shown = [list(p) for p in value.pairs]
                else:
                    shown = None
                lines.append(f"\t\t\t\t{key}: {shown}")
        return '\n'.join(lines) + '\n'


@dataclass(frozen=True)
class OutputBlock:
    name: str
    format: str = ''
    label: str = ''

    def describe(self) -> str:
        lines = [f"\t\tOutput: {self.name}"]
        if self.format:
            lines.append(f"\t\t\tFormat: {self.format}")
        if self.label:
            lines.append(f"\t\t\tLabel: {self.label}")
        return '\n'.join(lines) + '\n'


@dataclass(frozen=True)
class Program:
    name: str
    description: str = ''
    parameters: Tuple[Parameter, ...] = ()
    implementations: Tuple[ImplementationBlock, ...] = ()
    metadata: Dict[str, str] = field(default_factory=dict)
    outputs: Tuple[OutputBlock, ...] = ()

    def __post_init__(self):
        _freeze(self, 'parameters')
        _freeze(self, 'implementations')
        _freeze(self, 'outputs')

    def parameter(self, name: str) -> Optional[Parameter]:
        """Look up a parameter by name; the last declaration wins."""
        found = None
        for param in self.parameters:
            if param.name == name:
                found = param
        return found

    def describe(self) -> str:
        out = f"Program: {self.name}\n"
        if self.description:
            out += f"\tDescription: {self.description}\n"
        if self.metadata:
            out += "\tMetadata:\n"
            out += ''.join(f"\t\t{k}: {v}\n" for k, v in self.metadata.items())
        if self.parameters:
            out += "\tParameters:\n"
            out += ''.join(p.describe() for p in self.parameters)
        if self.implementations:
            out += "\tImplementations:\n"
            out += ''.join(i.describe() for i in self.implementations)
        if self.outputs:
            out += "\tOutputs:\n"
            out += ''.join(o.describe() for o in self.outputs)
        return out
