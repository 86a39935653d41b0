"""
Baryon Galaxy Transpiler - Converts Baryon programs to a Galaxy tool XML file
Builds a galaxy.Tool model step by step and serializes it at the end.
Every parameter type must have a validator here; a missing one is an error.
"""

import shlex
from typing import Dict

from ..ast import ImplementationBlock, ImplementationKind, Parameter, ParamType, Program
from ..galaxy import Container, Data, GalaxyValidationError, Option, Param, Tool, Validator
from .base import BaseTranspiler, TranspileError
from .utils import format_description, is_param_reference, referenced_parameter

GALAXY_TYPES = {
    'string': 'text',
    'number': 'float',
    'integer': 'integer',
    'boolean': 'boolean',
    'file': 'data',
    'directory': 'data',
    'character': 'text',
    'enum': 'select',
}

DATA_TABLE_KEY = 'galaxy_data_table'


class GalaxyTranspiler(BaseTranspiler):
    target_name = 'galaxy'

    def __init__(self):
        super().__init__()
        self.tool = None
        self.params: Dict[str, Param] = {}
        self.register_implementation_handler(ImplementationKind.RUN_DOCKER.value, self.handle_docker)
        for type_name, validator in {
            ParamType.STRING: self.validate_required,
            ParamType.NUMBER: self.validate_required,
            ParamType.INTEGER: self.validate_required,
            ParamType.BOOLEAN: self.validate_boolean,
            ParamType.ENUM: self.validate_enum,
            ParamType.FILE: self.validate_required,
            ParamType.DIRECTORY: self.validate_required,
            ParamType.CHARACTER: self.validate_character,
        }.items():
            self.register_type_validator(type_name.value, validator)

    def write_header(self, program: Program):
        self.tool = Tool(
            id=program.name,
            name=program.name,
            version=self.T['version'],
            profile=self.T['profile'],
            description=format_description(program.description),
        )
        self.params = {}

    def write_signature(self, program: Program):
        for param in program.parameters:
            gparam = self.build_param(param)
            self.params[param.name] = gparam
            self.tool.inputs.append(gparam)

    def build_param(self, param: Parameter) -> Param:
        gparam = Param(
            type=GALAXY_TYPES.get(param.type, 'text'),
            name=param.name,
            label=param.description or param.name,
            help=format_description(param.description),
        )
        data_table = param.metadata.get(DATA_TABLE_KEY)
        if param.type == 'file' and data_table:
            gparam.type = 'select'
            gparam.data_table = data_table
        elif param.type == 'enum':
            gparam.options = [Option(c) for c in param.constraints]
        elif param.type == 'boolean':
            gparam.truevalue = f"--{param.name}"
            gparam.falsevalue = ''
            if param.has_default:
                gparam.checked = param.default is True or str(param.default).lower() == 'true'

        if param.has_default and param.type != 'boolean':
            gparam.value = str(param.default)
        if 'format' in param.metadata and gparam.type == 'data':
            gparam.format = param.metadata['format']
        return gparam

    # Type validators

    def validate_required(self, param: Parameter):
        gparam = self.params[param.name]
        gparam.optional = False
        if gparam.type == 'text':
            gparam.validators.append(Validator('empty_field', f"{param.name} is required"))

    def validate_boolean(self, param: Parameter):
        # A checkbox always has a value
        pass

    def validate_character(self, param: Parameter):
        gparam = self.params[param.name]
        gparam.optional = False
        gparam.validators.append(Validator('regex', f"{param.name} must be a single character", '^.$'))

    def validate_enum(self, param: Parameter):
        if not param.constraints:
            raise TranspileError("enum type requires constraints with allowed values")
        self.params[param.name].optional = False

    # Implementation handlers

    def argument(self, atom, program: Program) -> str:
        param = referenced_parameter(atom, program)
        if param is None:
            return shlex.quote(atom.text)
        if param.type == 'file' and param.metadata.get(DATA_TABLE_KEY):
            return f"'${param.name}.fields.path'"
        if param.type == 'boolean':
            return f"${param.name}"
        return f"'${param.name}'"

    def handle_docker(self, impl: ImplementationBlock, program: Program):
        image = self.require_image(impl)
        # The chained command runs in a single container
        used = [c.value for c in self.tool.containers]
        if used and image not in used:
            raise TranspileError(f"Galaxy tools run one container; blocks use both '{used[0]}' and '{image}'")
        if not used:
            self.tool.containers.append(Container(image))

        for key, val in impl.pairs_field('env'):
            value = f"${val}" if is_param_reference(val, program.parameters) else val
            self.tool.environment.append((key, value))

        words = []
        command = impl.string_field('command')
        if command:
            words.append(command)
        for atom in impl.list_field('arguments'):
            if not atom.quoted and self.is_placeholder(atom.text):
                continue
            words.append(self.argument(atom, program))

        line = ' '.join(words)
        if line:
            self.tool.command = f"{self.tool.command} && {line}" if self.tool.command else line

    def write_no_implementation(self, program: Program):
        self.tool.command = "echo 'No implementation defined for this tool' && exit 1"

    def write_closing(self, program: Program):
        for out in program.outputs:
            self.tool.outputs.append(Data(out.name, out.format, out.label))
        try:
            self.tool.validate()
        except GalaxyValidationError as err:
            raise TranspileError(f"invalid Galaxy tool: {err}") from err
        self.buffer.write(self.tool.to_xml())
