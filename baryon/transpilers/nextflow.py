"""
Baryon NextFlow Transpiler - Converts Baryon programs to a DSL2 pipeline
One process per implementation block, wired together by a workflow block
"""

import shlex

from ..ast import ImplementationBlock, ImplementationKind, Parameter, ParamType, Program
from .base import BaseTranspiler, TranspileError
from .utils import format_description, get_param_type, identify_file_parameters, is_param_reference, referenced_parameter


def gq(value) -> str:
    """Single-quoted Groovy string literal"""
    return "'" + str(value).replace('\\', '\\\\').replace("'", "\\'") + "'"


def gstring_escape(text: str) -> str:
    """Escape text for a triple-quoted Groovy GString"""
    return text.replace('\\', '\\\\').replace('$', '\\$').replace('"', '\\"')


# Groovy keywords and script globals; parameter names become process inputs
NEXTFLOW_RESERVED = frozenset({
    'abstract', 'as', 'assert', 'break', 'case', 'catch', 'class', 'const', 'continue',
    'def', 'do', 'else', 'extends', 'false', 'final', 'finally', 'for', 'goto',
    'if', 'implements', 'import', 'in', 'instanceof', 'interface', 'new', 'null',
    'package', 'return', 'static', 'super', 'switch', 'this', 'throw', 'throws',
    'trait', 'true', 'try', 'var', 'void', 'while',
    'params', 'workflow', 'nextflow', 'task', 'process',
})


class NextflowTranspiler(BaseTranspiler):
    target_name = 'nextflow'
    reserved_names = NEXTFLOW_RESERVED

    def __init__(self):
        super().__init__()
        self.processes = 0
        self.register_implementation_handler(ImplementationKind.RUN_DOCKER.value, self.handle_docker)
        for type_name, validator in {
            ParamType.STRING: self.validate_present,
            ParamType.NUMBER: self.validate_number,
            ParamType.INTEGER: self.validate_integer,
            ParamType.BOOLEAN: self.validate_boolean,
            ParamType.ENUM: self.validate_enum,
            ParamType.FILE: self.validate_present,
            ParamType.DIRECTORY: self.validate_present,
            ParamType.CHARACTER: self.validate_character,
        }.items():
            self.register_type_validator(type_name.value, validator)

    def fail_if(self, condition: str, message: str):
        self.write_line(f"if ({condition}) {{")
        self.indent_level += 1
        self.write_line(f'error "{gstring_escape(message)}"')
        self.indent_level -= 1
        self.write_line('}')

    def process_name(self, program: Program, index: int) -> str:
        impl = program.implementations[index]
        if len(program.implementations) == 1:
            return impl.name
        return f"{impl.name}_{index + 1}"

    def write_header(self, program: Program):
        self.processes = 0
        self.write_line('#!/usr/bin/env nextflow')
        self.write_line(self.comment(f"Nextflow Workflow: {program.name}"))
        if program.description:
            self.write_line(self.comment(format_description(program.description)))
        self.write_line()
        self.write_line('nextflow.enable.dsl = 2')
        self.write_line()

    def format_default(self, param: Parameter) -> str:
        value = param.default
        if isinstance(value, bool):
            return 'true' if value else 'false'
        if isinstance(value, (int, float)) and param.type in ('number', 'integer'):
            return repr(value)
        return gq(value)

    def write_signature(self, program: Program):
        self.write_line(self.comment('Input Parameters'))
        for param in program.parameters:
            if param.type == 'enum' and param.constraints:
                self.write_line(self.comment(f"Allowed values: {', '.join(param.constraints)}"))
            if param.has_default:
                self.write_line(f"params.{param.name} = {self.format_default(param)}")
            elif param.type == 'boolean':
                self.write_line(f"params.{param.name} = false")
            else:
                self.write_line(f"params.{param.name} = null")
        self.write_line()
        if any(not p.has_default for p in program.parameters):
            self.write_line(self.comment('Parameter validation'))

    # Type validators

    def validate_present(self, param: Parameter):
        self.fail_if(f"params.{param.name} == null", f"Missing required parameter: --{param.name}")

    def validate_number(self, param: Parameter):
        self.validate_present(param)
        self.fail_if(f"!(params.{param.name} instanceof Number)", f"{param.name} must be a number")

    def validate_integer(self, param: Parameter):
        self.validate_present(param)
        self.fail_if(f"!(params.{param.name} instanceof Integer || params.{param.name} instanceof Long)",
                     f"{param.name} must be an integer")

    def validate_boolean(self, param: Parameter):
        self.fail_if(f"!(params.{param.name} instanceof Boolean)", f"{param.name} must be true or false")

    def validate_character(self, param: Parameter):
        self.validate_present(param)
        self.fail_if(f"params.{param.name}.toString().length() != 1", f"{param.name} must be a single character")

    def validate_enum(self, param: Parameter):
        if not param.constraints:
            raise TranspileError("enum type requires constraints with allowed values")
        self.validate_present(param)
        values = ', '.join(gq(c) for c in param.constraints)
        self.fail_if(f"!([{values}].contains(params.{param.name}))",
                     f"{param.name} must be one of: {', '.join(param.constraints)}")

    def write_guards(self, program: Program):
        checks = [p for p in program.parameters if p.type in ('file', 'directory')]
        if not checks:
            return
        self.write_line()
        self.write_line(self.comment('File existence checks'))
        for param in checks:
            test = 'isFile' if param.type == 'file' else 'isDirectory'
            self.fail_if(f"params.{param.name} != null && !file(params.{param.name}).{test}()",
                         f"{param.type} given for --{param.name} does not exist")

    # Implementation handlers

    def handle_docker(self, impl: ImplementationBlock, program: Program):
        image = self.require_image(impl)
        file_params = identify_file_parameters(program.parameters)
        name = self.process_name(program, self.processes)
        self.processes += 1

        options = []
        for src, dst in impl.pairs_field('volumes'):
            kind = get_param_type(src, program.parameters)
            if self.is_working_dir_marker(src):
                source = '${workflow.launchDir}'
            elif kind in ('file', 'directory'):
                source = f"${{file(params.{src}).parent}}"
            elif kind:
                source = f"${{params.{src}}}"
            else:
                source = gstring_escape(src)
            options.append(f"-v {source}:{gstring_escape(dst)}")
        for key, val in impl.pairs_field('env'):
            value = f"${{params.{val}}}" if is_param_reference(val, program.parameters) else gstring_escape(val)
            options.append(f"-e {gstring_escape(key)}={value}")

        words = []
        command = impl.string_field('command')
        if command:
            words.append(gstring_escape(command))
        for atom in impl.list_field('arguments'):
            if not atom.quoted and self.is_placeholder(atom.text):
                continue
            param = referenced_parameter(atom, program)
            if param is None:
                words.append(gstring_escape(shlex.quote(atom.text)))
            elif param.type == 'boolean':
                words.append(f"${{{param.name} ? '--{param.name}' : ''}}")
            else:
                words.append(f"${{{param.name}}}")

        self.write_line()
        self.write_line(f"process {name} {{")
        self.indent_level += 1
        self.write_line(f"container {gq(image)}")
        if options:
            self.write_line(f'containerOptions "{" ".join(options)}"')
        self.write_line()
        if program.parameters:
            self.write_line('input:')
            for param in program.parameters:
                kind = 'path' if param.name in file_params else 'val'
                self.write_line(f"{kind} {param.name}")
            self.write_line()
        self.write_line('output:')
        if program.outputs:
            for out in program.outputs:
                self.write_line(f"path {gq(out.label or out.name)}, emit: {out.name.replace('.', '_').replace('-', '_')}")
        else:
            self.write_line("path 'results/'")
        self.write_line()
        self.write_line('script:')
        self.write_line('"""')
        if words:
            self.write_line(' '.join(words))
        self.write_line('"""')
        self.indent_level -= 1
        self.write_line('}')

    def write_no_implementation(self, program: Program):
        self.write_line()
        self.write_line(self.comment('No implementation blocks found'))
        self.write_line('workflow {')
        self.indent_level += 1
        self.write_line('error "No implementation defined for this workflow"')
        self.indent_level -= 1
        self.write_line('}')

    def write_closing(self, program: Program):
        if not program.implementations:
            return
        file_params = identify_file_parameters(program.parameters)
        inputs = ', '.join(
            f"file(params.{p.name})" if p.name in file_params else f"params.{p.name}"
            for p in program.parameters
        )
        self.write_line()
        self.write_line('workflow {')
        self.indent_level += 1
        for index in range(len(program.implementations)):
            self.write_line(f"{self.process_name(program, index)}({inputs})")
        self.indent_level -= 1
        self.write_line('}')
