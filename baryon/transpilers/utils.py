"""
Baryon Transpiler Utilities - Helpers shared by every backend
"""

from typing import List, Optional, Sequence

from ..ast import Atom, Parameter, Program, ParamType


def format_description(desc: str) -> str:
    """Collapse a multi-line description into one line"""
    return ' '.join(line.strip() for line in desc.split('\n'))


def identify_file_parameters(params: Sequence[Parameter]) -> List[str]:
    """Names of parameters typed file or directory"""
    return [p.name for p in params if p.type in (ParamType.FILE.value, ParamType.DIRECTORY.value)]


def is_param_reference(name: str, params: Sequence[Parameter]) -> bool:
    return any(p.name == name for p in params)


def get_param_type(name: str, params: Sequence[Parameter]) -> str:
    for p in params:
        if p.name == name:
            return p.type
    return ''


def referenced_parameter(atom: Atom, program: Program) -> Optional[Parameter]:
    """The parameter a bare atom names, or None for quoted atoms and constants"""
    if atom.quoted:
        return None
    return program.parameter(atom.text)
