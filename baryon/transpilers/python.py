"""
Baryon Python Transpiler - Converts Baryon programs to a Python module
Generates a keyword-only function plus an argparse entry point
"""

import json
import keyword
import shlex

from ..ast import ImplementationBlock, ImplementationKind, Parameter, ParamType, Program
from .base import BaseTranspiler, TranspileError
from .utils import format_description, get_param_type, identify_file_parameters, is_param_reference, referenced_parameter

PY_TYPES = {
    'string': 'str',
    'number': 'float',
    'integer': 'int',
    'boolean': 'bool',
    'file': 'str',
    'directory': 'str',
    'character': 'str',
    'enum': 'str',
}


# Module names, helpers and locals the generated function relies on
GENERATED_NAMES = {
    'os', 'sys', 'subprocess', 'logging', 'logger', 'field', 'dataclass', 'Dict', 'List',
    'Result', 'validate_path', 'is_running_in_docker', 'run_docker',
    'str', 'int', 'float', 'bool', 'len', 'type', 'isinstance', 'Exception',
    'TypeError', 'ValueError', 'FileNotFoundError', 'NotADirectoryError', 'NotImplementedError',
    'volumes', 'env_vars', 'docker_args', 'outputs', 'output_dir', 'main_mount_dir', 'e',
}


def py_str(value) -> str:
    """Double-quoted Python string literal"""
    return json.dumps(str(value))


class PythonTranspiler(BaseTranspiler):
    target_name = 'python'
    reserved_names = frozenset(keyword.kwlist) | frozenset(GENERATED_NAMES)

    def __init__(self):
        super().__init__()
        self.register_implementation_handler(ImplementationKind.RUN_DOCKER.value, self.handle_docker)
        for type_name, validator in {
            ParamType.STRING: self.validate_string,
            ParamType.NUMBER: self.validate_number,
            ParamType.INTEGER: self.validate_integer,
            ParamType.BOOLEAN: self.validate_boolean,
            ParamType.ENUM: self.validate_enum,
            ParamType.FILE: self.validate_path,
            ParamType.DIRECTORY: self.validate_path,
            ParamType.CHARACTER: self.validate_character,
        }.items():
            self.register_type_validator(type_name.value, validator)

    def write_header(self, program: Program):
        for line in [
            '#!/usr/bin/env python3',
            '',
            'import os',
            'import sys',
            'import subprocess',
            'import logging',
            'from typing import Dict, List',
            'from dataclasses import dataclass, field',
            '',
            'logger = logging.getLogger(__name__)',
            '',
            '',
            '@dataclass',
            'class Result:',
            '    status: str',
            '    output_dir: str',
            '    message: str = ""',
            '    outputs: Dict[str, str] = field(default_factory=dict)',
            '',
            '',
            'def validate_path(path: str) -> str:',
            '    """Validate and normalize a file path."""',
            '    if not path:',
            '        raise ValueError("Path cannot be empty")',
            '    return os.path.abspath(os.path.expanduser(path))',
            '',
            '',
            'def is_running_in_docker() -> bool:',
            '    """Check if we are running inside a Docker container."""',
            '    return os.path.exists("/.dockerenv")',
            '',
            '',
            'def run_docker(image: str, volumes: Dict[str, str], env: Dict[str, str], args: List[str]) -> str:',
            '    """Run a Docker container with the given mounts, environment and arguments."""',
            '    cmd = ["docker", "run", "--rm"]',
            '    for src, dst in volumes.items():',
            '        cmd.extend(["-v", f"{src}:{dst}"])',
            '    for key, val in env.items():',
            '        cmd.extend(["-e", f"{key}={val}"])',
            '    cmd.append(image)',
            '    cmd.extend(args)',
            '',
            '    logger.info("Running Docker command: %s", " ".join(cmd))',
            '    result = subprocess.run(cmd, capture_output=True, text=True, check=False)',
            '    if result.returncode != 0:',
            '        raise RuntimeError(f"Docker execution failed: {result.stderr}")',
            '    return result.stdout',
            '',
            '',
        ]:
            self.write_line(line)

    def named_identifiers(self, program: Program):
        return [program.name] + super().named_identifiers(program)

    def format_default(self, param: Parameter) -> str:
        value = param.default
        if param.type == 'boolean':
            return repr(value) if isinstance(value, bool) else repr(str(value).lower() == 'true')
        if param.type in ('number', 'integer') and isinstance(value, (int, float)) and not isinstance(value, bool):
            return repr(value)
        return py_str(value)

    def write_signature(self, program: Program):
        params = []
        for param in program.parameters:
            text = f"{param.name}: {PY_TYPES.get(param.type, 'object')}"
            if param.has_default:
                text += f" = {self.format_default(param)}"
            params.append(text)
        arglist = f"*, {', '.join(params)}" if params else ''
        self.write_line(f"def {program.name}({arglist}) -> Result:")

        self.indent_level += 1
        self.write_line('"""')
        if program.description:
            self.write_line(format_description(program.description))
            self.write_line()
        if program.parameters:
            self.write_line('Parameters:')
            for param in program.parameters:
                desc = param.description or f"Parameter of type '{param.type}'"
                if param.type == 'enum' and param.constraints:
                    desc += f" (allowed values: {', '.join(param.constraints)})"
                self.write_line(f"    {param.name}: {format_description(desc)}")
            self.write_line()
        self.write_line('Returns:')
        self.write_line(f"    Result: {format_description(program.metadata.get('return', 'Results of the operation'))}")
        self.write_line('"""')

        if any(not p.has_default for p in program.parameters):
            self.write_line('# Parameter validation')

    # Type validators

    def check_instance(self, param: Parameter, condition: str, what: str):
        self.write_line(f"if {condition}:")
        self.indent_level += 1
        self.write_line(f'raise TypeError(f"{param.name} must be {what}, got {{type({param.name}).__name__}}")')
        self.indent_level -= 1

    def validate_string(self, param: Parameter):
        self.check_instance(param, f"not isinstance({param.name}, str)", 'a string')

    def validate_number(self, param: Parameter):
        self.check_instance(param, f"not isinstance({param.name}, (int, float)) or isinstance({param.name}, bool)", 'a number')

    def validate_integer(self, param: Parameter):
        self.check_instance(param, f"not isinstance({param.name}, int) or isinstance({param.name}, bool)", 'an integer')

    def validate_boolean(self, param: Parameter):
        self.check_instance(param, f"not isinstance({param.name}, bool)", 'a boolean')

    def validate_enum(self, param: Parameter):
        if not param.constraints:
            raise TranspileError("enum type requires constraints with allowed values")
        values = ', '.join(py_str(c) for c in param.constraints)
        self.write_line(f"{param.name}_valid_values = [{values}]")
        self.validate_string(param)
        self.write_line(f"if {param.name} not in {param.name}_valid_values:")
        self.indent_level += 1
        self.write_line(f'raise ValueError(f"{param.name} must be one of {{{param.name}_valid_values}}")')
        self.indent_level -= 1

    def validate_path(self, param: Parameter):
        self.validate_string(param)
        self.write_line(f"{param.name}_path = validate_path({param.name})")

    def validate_character(self, param: Parameter):
        self.validate_string(param)
        self.write_line(f"if len({param.name}) != 1:")
        self.indent_level += 1
        self.write_line(f'raise ValueError("{param.name} must be a single character")')
        self.indent_level -= 1

    def write_guards(self, program: Program):
        for param in program.parameters:
            if param.type not in ('file', 'directory'):
                continue
            if param.has_default:
                self.write_line(f"{param.name}_path = validate_path({param.name})")

        checks = [p for p in program.parameters if p.type in ('file', 'directory')]
        if not checks:
            return
        self.write_line()
        self.write_line('# File existence checks')
        self.write_line('if not is_running_in_docker():')
        self.indent_level += 1
        for param in checks:
            if param.type == 'file':
                self.write_line(f"if not os.path.isfile({param.name}_path):")
                self.indent_level += 1
                self.write_line(f'raise FileNotFoundError(f"File {{{param.name}_path}} does not exist")')
            else:
                self.write_line(f"if not os.path.isdir({param.name}_path):")
                self.indent_level += 1
                self.write_line(f'raise NotADirectoryError(f"Directory {{{param.name}_path}} does not exist")')
            self.indent_level -= 1
        self.indent_level -= 1

    # Implementation handlers

    def handle_docker(self, impl: ImplementationBlock, program: Program):
        image = self.require_image(impl)
        file_params = identify_file_parameters(program.parameters)

        self.write_line()
        self.write_line(f"# {impl.name}: {image}")
        for name in file_params:
            self.write_line(f"{name}_dir = os.path.dirname({name}_path)")
            self.write_line(f"{name}_filename = os.path.basename({name}_path)")
        if file_params:
            self.write_line(f"main_mount_dir = {file_params[0]}_dir")
        else:
            self.write_line('main_mount_dir = os.path.abspath(os.getcwd())')

        self.write_line('volumes = {}')
        volumes = impl.pairs_field('volumes')
        for src, dst in volumes:
            kind = get_param_type(src, program.parameters)
            if self.is_working_dir_marker(src):
                key = 'main_mount_dir'
            elif kind in ('file', 'directory'):
                key = f"{src}_dir"
            elif kind:
                key = f"str({src})"
            else:
                key = py_str(src)
            self.write_line(f"volumes[{key}] = {py_str(dst)}")
        if not volumes:
            self.write_line('volumes[main_mount_dir] = "/data"')

        self.write_line('env_vars = {}')
        for key, val in impl.pairs_field('env'):
            value = f"str({val})" if is_param_reference(val, program.parameters) else py_str(val)
            self.write_line(f"env_vars[{py_str(key)}] = {value}")

        self.write_line('docker_args = []')
        command = impl.string_field('command')
        if command:
            self.write_line(f"docker_args.extend([{', '.join(py_str(a) for a in shlex.split(command))}])")
        for atom in impl.list_field('arguments'):
            if not atom.quoted and self.is_placeholder(atom.text):
                continue
            param = referenced_parameter(atom, program)
            if param is None:
                self.write_line(f"docker_args.append({py_str(atom.text)})")
            elif param.name in file_params:
                self.write_line(f"docker_args.append({param.name}_filename)")
            elif param.type == 'boolean':
                self.write_line(f"if {param.name}:")
                self.indent_level += 1
                self.write_line(f'docker_args.append("--{param.name}")')
                self.indent_level -= 1
            else:
                self.write_line(f"docker_args.append(str({param.name}))")

        self.write_line('try:')
        self.indent_level += 1
        self.write_line(f"run_docker({py_str(image)}, volumes, env_vars, docker_args)")
        self.indent_level -= 1
        self.write_line('except Exception as e:')
        self.indent_level += 1
        self.write_line('logger.error("Docker execution failed: %s", e)')
        self.write_line('return Result(status="error", output_dir="", message=str(e))')
        self.indent_level -= 1

    def write_no_implementation(self, program: Program):
        self.write_line()
        self.write_line(self.comment('No implementation blocks found'))
        self.write_line('raise NotImplementedError("No implementation defined for this function")')

    def write_closing(self, program: Program):
        if program.implementations:
            self.write_line()
            self.write_line(f'output_dir = os.path.join(main_mount_dir, "{program.name}_results")')
            self.write_line('os.makedirs(output_dir, exist_ok=True)')
            self.write_line('outputs = {}')
            for out in program.outputs:
                label = out.label or out.name
                self.write_line(f"outputs[{py_str(out.name)}] = os.path.normpath(os.path.join(main_mount_dir, {py_str(label)}))")
            self.write_line('return Result(status="success", output_dir=output_dir, outputs=outputs)')

        self.indent_level = 0
        self.write_line()
        self.write_line()
        self.write_line('if __name__ == "__main__":')
        self.indent_level += 1
        self.write_line('import argparse')
        self.write_line()
        self.write_line(f"parser = argparse.ArgumentParser(description={py_str(format_description(program.description))})")
        for param in program.parameters:
            self.write_line(f"parser.add_argument({self.argparse_options(param)})")
        self.write_line('args = parser.parse_args()')
        self.write_line()
        self.write_line(f"result = {program.name}(")
        self.indent_level += 1
        for param in program.parameters:
            self.write_line(f"{param.name}=args.{param.name},")
        self.indent_level -= 1
        self.write_line(')')
        self.write_line('print(f"Status: {result.status}")')
        self.write_line('if result.status != "success":')
        self.indent_level += 1
        self.write_line('print(f"Error: {result.message}", file=sys.stderr)')
        self.write_line('sys.exit(1)')
        self.indent_level -= 1
        self.write_line('print(f"Output directory: {result.output_dir}")')
        self.indent_level -= 1

    def argparse_options(self, param: Parameter) -> str:
        help_text = format_description(param.description or f"Parameter of type '{param.type}'")
        options = [py_str(f"--{param.name}")]
        if param.type == 'boolean':
            options.append('action=argparse.BooleanOptionalAction')
        elif param.type == 'integer':
            options.append('type=int')
        elif param.type == 'number':
            options.append('type=float')
        if param.type == 'enum' and param.constraints:
            options.append(f"choices=[{', '.join(py_str(c) for c in param.constraints)}]")
        if param.has_default:
            options.append(f"default={self.format_default(param)}")
        elif param.type == 'boolean':
            options.append('default=False')
        else:
            options.append('required=True')
        options.append(f"help={py_str(help_text)}")
        return ', '.join(options)
