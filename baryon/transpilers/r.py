"""
Baryon R Transpiler - Converts Baryon programs to a documented R function
Containers are run through rrundocker::run_in_docker
"""

import json
import shlex
from typing import List

from ..ast import ImplementationBlock, ImplementationKind, Parameter, ParamType, Program
from .base import BaseTranspiler, TranspileError
from .utils import format_description, get_param_type, identify_file_parameters, is_param_reference, referenced_parameter

# Matches ../ and ..\ in a path
TRAVERSAL_PATTERN = r'"\\.\\.(/|\\\\)"'


# Reserved words of the R language plus locals of the generated function
R_RESERVED = frozenset({
    'if', 'else', 'repeat', 'while', 'function', 'for', 'in', 'next', 'break',
    'TRUE', 'FALSE', 'NULL', 'Inf', 'NaN', 'NA',
    'NA_integer_', 'NA_real_', 'NA_character_', 'NA_complex_',
    'main_mount_dir',
})


def r_str(value) -> str:
    return json.dumps(str(value))


class RTranspiler(BaseTranspiler):
    target_name = 'r'
    reserved_names = R_RESERVED

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

    def block(self, condition: str, *body: str):
        self.write_line(f"if ({condition}) {{")
        self.indent_level += 1
        for line in body:
            self.write_line(line)
        self.indent_level -= 1
        self.write_line('}')

    def write_list(self, opener: str, items: List[str], closer: str):
        self.write_line(opener)
        self.indent_level += 1
        for i, item in enumerate(items):
            self.write_line(item + (',' if i < len(items) - 1 else ''))
        self.indent_level -= 1
        self.write_line(closer)

    def write_header(self, program: Program):
        self.write_line(f"#' {program.name}")
        self.write_line("#'")
        if program.description:
            self.write_line(f"#' @description {format_description(program.description)}")
        for param in program.parameters:
            desc = param.description or f"Parameter of type '{param.type}'"
            if param.type == 'enum' and param.constraints:
                desc += f" (allowed values: {', '.join(param.constraints)})"
            self.write_line(f"#' @param {param.name} {format_description(desc)}")
        self.write_line(f"#' @return {format_description(program.metadata.get('return', 'Results of the operation'))}")
        self.write_line("#'")
        self.write_line("#' @export")

    def named_identifiers(self, program: Program):
        return [program.name] + super().named_identifiers(program)

    def format_default(self, param: Parameter) -> str:
        value = param.default
        if isinstance(value, bool):
            return 'TRUE' if value else 'FALSE'
        if isinstance(value, (int, float)) and param.type in ('number', 'integer'):
            return repr(value)
        return r_str(value)

    def write_signature(self, program: Program):
        params = []
        for param in program.parameters:
            params.append(f"{param.name} = {self.format_default(param)}" if param.has_default else param.name)
        self.write_line(f"{program.name} <- function({', '.join(params)}) {{")
        self.indent_level += 1
        if any(not p.has_default for p in program.parameters):
            self.write_line('# Type validation')

    # Type validators

    def validate_string(self, param: Parameter):
        n = param.name
        self.block(f"!is.character({n}) || length({n}) != 1", f'stop("{n} must be a single character string")')

    def validate_number(self, param: Parameter):
        n = param.name
        self.block(f"!is.numeric({n}) || length({n}) != 1", f'stop("{n} must be a single numeric value")')

    def validate_integer(self, param: Parameter):
        n = param.name
        self.block(f"!is.numeric({n}) || length({n}) != 1 || {n} != round({n})",
                   f'stop("{n} must be a single integer value")')

    def validate_character(self, param: Parameter):
        n = param.name
        self.block(f"!is.character({n}) || length({n}) != 1 || nchar({n}) != 1",
                   f'stop("{n} must be a single character")')

    def validate_boolean(self, param: Parameter):
        n = param.name
        self.block(f"!is.logical({n}) || length({n}) != 1", f'stop("{n} must be a single logical value (TRUE/FALSE)")')

    def validate_enum(self, param: Parameter):
        if not param.constraints:
            raise TranspileError("enum type requires constraints with allowed values")
        n = param.name
        self.write_line(f"valid_{n} <- c({', '.join(r_str(c) for c in param.constraints)})")
        self.block(f"!is.character({n}) || length({n}) != 1 || !({n} %in% valid_{n})",
                   f'stop(paste0("{n} must be one of: ", paste(valid_{n}, collapse = ", ")))')

    def write_guards(self, program: Program):
        checked = [p for p in program.parameters if p.type in ('string', 'file', 'directory')]
        if checked:
            self.write_line()
            self.write_line('# Security checks')
        for param in checked:
            self.block(f"grepl({TRAVERSAL_PATTERN}, {param.name})", f'stop("Path traversal detected in {param.name}")')

        for param in program.parameters:
            if param.type not in ('file', 'directory'):
                continue
            exists = 'file.exists' if param.type == 'file' else 'dir.exists'
            self.write_line()
            self.write_line(f"# Check if {param.type} exists")
            self.write_line('if (!rrundocker::is_running_in_docker()) {')
            self.indent_level += 1
            self.block(f"!{exists}({param.name})", f'stop(paste("{param.name}:", {param.name}, "does not exist"))')
            self.indent_level -= 1
            self.write_line('}')

    # Implementation handlers

    def handle_docker(self, impl: ImplementationBlock, program: Program):
        image = self.require_image(impl)
        file_params = identify_file_parameters(program.parameters)

        self.write_line()
        self.write_line(f"# {impl.name}: {image}")
        for name in file_params:
            self.write_line(f"{name}_abspath <- normalizePath({name}, mustWork = FALSE)")
            self.write_line(f"{name}_dir <- dirname({name}_abspath)")
            self.write_line(f"{name}_filename <- basename({name})")
        if file_params:
            self.write_line(f"main_mount_dir <- {file_params[0]}_dir")
        else:
            self.write_line('main_mount_dir <- normalizePath(getwd(), mustWork = FALSE)')

        volumes = []
        for src, dst in impl.pairs_field('volumes'):
            kind = get_param_type(src, program.parameters)
            if self.is_working_dir_marker(src):
                volumes.append(f"c(main_mount_dir, {r_str(dst)})")
            elif kind in ('file', 'directory'):
                volumes.append(f"c({src}_dir, {r_str(dst)})")
            elif kind:
                volumes.append(f"c({src}, {r_str(dst)})")
            else:
                volumes.append(f"c({r_str(src)}, {r_str(dst)})")
        if not volumes:
            volumes.append('c(main_mount_dir, "/data")')

        env = []
        for key, val in impl.pairs_field('env'):
            value = f"as.character({val})" if is_param_reference(val, program.parameters) else r_str(val)
            env.append(f"{r_str(key)} = {value}")

        args = []
        command = impl.string_field('command')
        if command:
            args.extend(r_str(a) for a in shlex.split(command))
        for atom in impl.list_field('arguments'):
            if not atom.quoted and self.is_placeholder(atom.text):
                continue
            param = referenced_parameter(atom, program)
            if param is None:
                args.append(r_str(atom.text))
            elif param.name in file_params:
                args.append(f"{param.name}_filename")
            elif param.type == 'boolean':
                args.append(f'if ({param.name}) "--{param.name}" else character(0)')
            else:
                args.append(f"as.character({param.name})")

        self.write_line('tryCatch({')
        self.indent_level += 1
        self.write_line('rrundocker::run_in_docker(')
        self.indent_level += 1
        self.write_line(f"image_name = {r_str(image)},")
        self.write_list('volumes = list(', volumes, '),' if env or args else ')')
        if env:
            self.write_list('env = c(', env, '),' if args else ')')
        if args:
            self.write_list('additional_arguments = c(', args, ')')
        self.indent_level -= 1
        self.write_line(')')
        self.indent_level -= 1
        self.write_line('}, error = function(e) {')
        self.indent_level += 1
        self.write_line('stop(paste("Docker execution failed:", e$message))')
        self.indent_level -= 1
        self.write_line('})')

    def write_no_implementation(self, program: Program):
        self.write_line()
        self.write_line(self.comment('No implementation blocks found'))
        self.write_line('stop("No implementation defined for this function")')

    def write_closing(self, program: Program):
        if program.implementations:
            self.write_line()
            items = [
                'status = "success"',
                f'output_dir = file.path(main_mount_dir, "{program.name}_results")',
            ]
            if program.outputs:
                outs = ', '.join(f"{r_str(o.name)} = file.path(main_mount_dir, {r_str(o.label or o.name)})"
                                 for o in program.outputs)
                items.append(f"outputs = list({outs})")
            self.write_list('return(list(', items, '))')
        self.indent_level = 0
        self.write_line('}')
