"""
Baryon BASH Transpiler - Converts Baryon programs to a standalone shell script
Parameters become --name value options; containers run through docker run
"""

import shlex

from ..ast import ImplementationBlock, ImplementationKind, Parameter, ParamType, Program
from .base import BaseTranspiler, TranspileError
from .utils import format_description, get_param_type, identify_file_parameters, is_param_reference, referenced_parameter


def dq(value) -> str:
    """Escape text for use inside a double-quoted shell word"""
    text = str(value)
    for ch in ('\\', '"', '$', '`'):
        text = text.replace(ch, '\\' + ch)
    return text


# Variables the generated script sets or depends on
BASH_RESERVED = frozenset({
    'docker_args', 'cmd_args', 'main_mount_dir', 'output_dir',
    'PATH', 'IFS', 'HOME', 'PWD', 'OLDPWD', 'SHELL', 'BASH',
})


class BashTranspiler(BaseTranspiler):
    target_name = 'bash'
    reserved_names = BASH_RESERVED

    def __init__(self):
        super().__init__()
        self.register_implementation_handler(ImplementationKind.RUN_DOCKER.value, self.handle_docker)
        for type_name, validator in {
            ParamType.STRING: self.validate_string,
            ParamType.NUMBER: self.validate_number,
            ParamType.INTEGER: self.validate_integer,
            ParamType.BOOLEAN: self.validate_boolean,
            ParamType.ENUM: self.validate_enum,
            ParamType.FILE: self.validate_string,
            ParamType.DIRECTORY: self.validate_string,
            ParamType.CHARACTER: self.validate_character,
        }.items():
            self.register_type_validator(type_name.value, validator)

    def fail_if(self, condition: str, message: str):
        self.write_line(f"if {condition}; then")
        self.indent_level += 1
        self.write_line(f'echo "Error: {dq(message)}" >&2')
        self.write_line('exit 1')
        self.indent_level -= 1
        self.write_line('fi')

    def write_header(self, program: Program):
        self.write_line('#!/usr/bin/env bash')
        self.write_line(self.comment(program.name))
        if program.description:
            self.write_line(self.comment(format_description(program.description)))
        self.write_line('set -euo pipefail')
        self.write_line()

    def format_default(self, param: Parameter) -> str:
        value = param.default
        if isinstance(value, bool):
            value = 'true' if value else 'false'
        return shlex.quote(str(value))

    def write_signature(self, program: Program):
        usage = []
        for param in program.parameters:
            option = f"--{param.name}" if param.type == 'boolean' else f"--{param.name} <{param.type}>"
            usage.append(f"[{option}]" if param.has_default or param.type == 'boolean' else option)

        self.write_line('usage() {')
        self.indent_level += 1
        self.write_line(f'echo "Usage: $0 {dq(" ".join(usage))}" >&2')
        for param in program.parameters:
            desc = format_description(param.description or f"Parameter of type '{param.type}'")
            if param.type == 'enum' and param.constraints:
                desc += f" (allowed values: {', '.join(param.constraints)})"
            self.write_line(f'echo "  --{param.name}: {dq(desc)}" >&2')
        self.write_line('exit 1')
        self.indent_level -= 1
        self.write_line('}')
        self.write_line()

        for param in program.parameters:
            if param.has_default:
                self.write_line(f"{param.name}={self.format_default(param)}")
            elif param.type == 'boolean':
                self.write_line(f"{param.name}=false")
            else:
                self.write_line(f'{param.name}=""')
        if program.parameters:
            self.write_line()

        self.write_line('while [[ $# -gt 0 ]]; do')
        self.indent_level += 1
        self.write_line('case "$1" in')
        self.indent_level += 1
        for param in program.parameters:
            self.write_line(f"--{param.name})")
            self.indent_level += 1
            if param.type == 'boolean':
                self.write_line(f"{param.name}=true")
                self.write_line('shift')
            else:
                self.write_line(f'{param.name}="${{2:-}}"')
                self.write_line('shift 2')
            self.write_line(';;')
            self.indent_level -= 1
        self.write_line('-h|--help)')
        self.indent_level += 1
        self.write_line('usage')
        self.write_line(';;')
        self.indent_level -= 1
        self.write_line('*)')
        self.indent_level += 1
        self.write_line('echo "Unknown option: $1" >&2')
        self.write_line('usage')
        self.write_line(';;')
        self.indent_level -= 1
        self.indent_level -= 1
        self.write_line('esac')
        self.indent_level -= 1
        self.write_line('done')

        if any(not p.has_default for p in program.parameters):
            self.write_line()
            self.write_line(self.comment('Parameter validation'))

    # Type validators

    def require(self, param: Parameter):
        self.fail_if(f'[[ -z "${{{param.name}}}" ]]', f"--{param.name} is required")

    def validate_string(self, param: Parameter):
        self.require(param)

    def validate_number(self, param: Parameter):
        self.require(param)
        self.fail_if(f'! [[ "${{{param.name}}}" =~ ^-?[0-9]+(\\.[0-9]+)?$ ]]', f"{param.name} must be a number")

    def validate_integer(self, param: Parameter):
        self.require(param)
        self.fail_if(f'! [[ "${{{param.name}}}" =~ ^-?[0-9]+$ ]]', f"{param.name} must be an integer")

    def validate_boolean(self, param: Parameter):
        self.fail_if(f'[[ "${{{param.name}}}" != "true" && "${{{param.name}}}" != "false" ]]',
                     f"{param.name} must be true or false")

    def validate_character(self, param: Parameter):
        self.fail_if(f'[[ ${{#{param.name}}} -ne 1 ]]', f"{param.name} must be a single character")

    def validate_enum(self, param: Parameter):
        if not param.constraints:
            raise TranspileError("enum type requires constraints with allowed values")
        self.write_line(f'case "${{{param.name}}}" in')
        self.indent_level += 1
        self.write_line('|'.join(shlex.quote(c) for c in param.constraints) + ') ;;')
        self.write_line('*)')
        self.indent_level += 1
        self.write_line(f'echo "Error: {param.name} must be one of: {dq(", ".join(param.constraints))}" >&2')
        self.write_line('exit 1')
        self.write_line(';;')
        self.indent_level -= 1
        self.indent_level -= 1
        self.write_line('esac')

    def write_guards(self, program: Program):
        checks = [p for p in program.parameters if p.type in ('file', 'directory')]
        if not checks:
            return
        self.write_line()
        self.write_line(self.comment('File existence checks'))
        self.write_line('if [[ ! -f /.dockerenv ]]; then')
        self.indent_level += 1
        for param in checks:
            test = '-f' if param.type == 'file' else '-d'
            self.fail_if(f'[[ ! {test} "${{{param.name}}}" ]]', f"{param.type} given for --{param.name} does not exist")
        self.indent_level -= 1
        self.write_line('fi')

    # Implementation handlers

    def handle_docker(self, impl: ImplementationBlock, program: Program):
        image = self.require_image(impl)
        file_params = identify_file_parameters(program.parameters)

        self.write_line()
        self.write_line(self.comment(f"{impl.name}: {image}"))
        for name in file_params:
            self.write_line(f'{name}_dir="$(cd "$(dirname "${{{name}}}")" && pwd)"')
            self.write_line(f'{name}_filename="$(basename "${{{name}}}")"')
        if file_params:
            self.write_line(f'main_mount_dir="${{{file_params[0]}_dir}}"')
        else:
            self.write_line('main_mount_dir="$(pwd)"')

        self.write_line('docker_args=()')
        volumes = impl.pairs_field('volumes')
        for src, dst in volumes:
            kind = get_param_type(src, program.parameters)
            if self.is_working_dir_marker(src):
                source = '${main_mount_dir}'
            elif kind in ('file', 'directory'):
                source = f"${{{src}_dir}}"
            elif kind:
                source = f"${{{src}}}"
            else:
                source = dq(src)
            self.write_line(f'docker_args+=(-v "{source}:{dq(dst)}")')
        if not volumes:
            self.write_line('docker_args+=(-v "${main_mount_dir}:/data")')
        for key, val in impl.pairs_field('env'):
            value = f"${{{val}}}" if is_param_reference(val, program.parameters) else dq(val)
            self.write_line(f'docker_args+=(-e "{dq(key)}={value}")')

        self.write_line('cmd_args=()')
        command = impl.string_field('command')
        if command:
            self.write_line(f"cmd_args+=({' '.join(shlex.quote(a) for a in shlex.split(command))})")
        for atom in impl.list_field('arguments'):
            if not atom.quoted and self.is_placeholder(atom.text):
                continue
            param = referenced_parameter(atom, program)
            if param is None:
                self.write_line(f"cmd_args+=({shlex.quote(atom.text)})")
            elif param.name in file_params:
                self.write_line(f'cmd_args+=("${{{param.name}_filename}}")')
            elif param.type == 'boolean':
                self.write_line(f'if [[ "${{{param.name}}}" == "true" ]]; then')
                self.indent_level += 1
                self.write_line(f'cmd_args+=("--{param.name}")')
                self.indent_level -= 1
                self.write_line('fi')
            else:
                self.write_line(f'cmd_args+=("${{{param.name}}}")')

        self.write_line(f'docker run --rm "${{docker_args[@]}}" {shlex.quote(image)} ${{cmd_args[@]+"${{cmd_args[@]}}"}}')

    def write_no_implementation(self, program: Program):
        self.write_line()
        self.write_line(self.comment('No implementation blocks found'))
        self.write_line('echo "No implementation defined for this workflow" >&2')
        self.write_line('exit 1')

    def write_closing(self, program: Program):
        if not program.implementations:
            return
        self.write_line()
        self.write_line(f'output_dir="${{main_mount_dir}}/{dq(program.name)}_results"')
        self.write_line('mkdir -p "${output_dir}"')
        self.write_line('echo "Output directory: ${output_dir}"')
        for out in program.outputs:
            self.write_line(f'echo "{dq(out.name)}: ${{main_mount_dir}}/{dq(out.label or out.name)}"')
