"""
Baryon Base Transpiler
Shared skeleton for every backend. Subclasses override the write_* steps and
register their implementation handlers and type validators.
"""

from io import StringIO
from typing import Callable, Dict, FrozenSet, List

from ..lexer import BALA, load_target_config
from ..ast import ImplementationBlock, Parameter, Program
from ..config.logging import get_logger

log = get_logger(__name__)

ImplementationHandler = Callable[[ImplementationBlock, Program], None]
TypeValidator = Callable[[Parameter], None]


class TranspileError(Exception):
    """Raised by handlers and validators when generation cannot proceed."""


class TypeValidationError(TranspileError):
    pass


class ImplementationError(TranspileError):
    pass


class BaseTranspiler:
    """Base transpiler with the fixed generation order shared by all targets."""

    target_name = ''  # Override in subclasses
    reserved_names: FrozenSet[str] = frozenset()

    def __init__(self):
        self.T = load_target_config(self.target_name)
        self._indent_level = 0
        self.buffer = StringIO()
        self.impl_handlers: Dict[str, ImplementationHandler] = {}
        self.type_validators: Dict[str, TypeValidator] = {}

    @property
    def indent_level(self) -> int:
        return self._indent_level

    @indent_level.setter
    def indent_level(self, level: int):
        if level < 0:
            raise ValueError(f"indentation level cannot be negative: {level}")
        self._indent_level = level

    @property
    def strict(self) -> bool:
        return self.T.get('validators') == 'strict'

    def write_line(self, line: str = ''):
        if line:
            self.buffer.write('  ' * self.indent_level + line + '\n')
        else:
            self.buffer.write('\n')

    def comment(self, text: str) -> str:
        return f"{self.T.get('comment', '#')} {text}"

    def register_implementation_handler(self, name: str, handler: ImplementationHandler):
        self.impl_handlers[name] = handler

    def register_type_validator(self, type_name: str, validator: TypeValidator):
        self.type_validators[type_name] = validator

    def transpile(self, program: Program) -> str:
        self.buffer = StringIO()
        self.indent_level = 0
        log.debug("transpiling", target=self.target_name, program=program.name)
        self.check_names(program)

        self.write_header(program)
        self.write_signature(program)
        self.write_type_validation(program)
        self.write_guards(program)
        self.write_implementations(program)
        self.write_closing(program)

        return self.buffer.getvalue()

    def named_identifiers(self, program: Program) -> List[str]:
        """Baryon names that become identifiers in the generated code"""
        return [p.name for p in program.parameters]

    def check_names(self, program: Program):
        for name in self.named_identifiers(program):
            if name in self.reserved_names:
                raise TranspileError(f"name '{name}' is reserved in {self.T['display']} output")

    def write_type_validation(self, program: Program):
        for param in program.parameters:
            if param.has_default:
                continue
            try:
                self.validate_parameter(param)
            except Exception as err:
                raise TypeValidationError(
                    f"error generating type validation: error validating parameter '{param.name}': {err}"
                ) from err

    def validate_parameter(self, param: Parameter):
        validator = self.type_validators.get(param.type)
        if validator is None:
            if self.strict:
                raise TranspileError(f"no validator registered for type '{param.type}'")
            self.write_line(self.comment(f"No specific validation for type '{param.type}'"))
            return
        validator(param)

    def write_implementations(self, program: Program):
        if not program.implementations:
            self.write_no_implementation(program)
            return
        for impl in program.implementations:
            handler = self.impl_handlers.get(impl.name)
            if handler is None:
                raise ImplementationError(
                    f"error processing implementations: no handler registered for implementation type '{impl.name}'"
                )
            log.debug("dispatching implementation", target=self.target_name, kind=impl.name)
            try:
                handler(impl, program)
            except Exception as err:
                raise ImplementationError(
                    f"error processing implementations: error processing '{impl.name}' implementation: {err}"
                ) from err

    def require_image(self, impl: ImplementationBlock) -> str:
        image = impl.string_field('image')
        if not image:
            raise TranspileError("Docker image not specified or invalid")
        return image

    def is_working_dir_marker(self, text: str) -> bool:
        return text in BALA['workingDirMarkers']

    def is_placeholder(self, text: str) -> bool:
        return text == BALA['placeholder']

    # Steps - override in subclasses

    def write_header(self, program: Program):
        pass

    def write_signature(self, program: Program):
        pass

    def write_guards(self, program: Program):
        pass

    def write_no_implementation(self, program: Program):
        raise NotImplementedError

    def write_closing(self, program: Program):
        pass
