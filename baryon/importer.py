"""
Baryon Importers - Convert external tool descriptions back to Baryon source
"""

import re
from io import StringIO

from .lexer import BALA
from .galaxy import Tool
from .config.logging import get_logger

log = get_logger(__name__)

BARYON_TYPES = {
    'text': 'string',
    'integer': 'integer',
    'float': 'number',
    'boolean': 'boolean',
    'data': 'file',
    'select': 'enum',
}

NUMBER_RE = re.compile(r'-?[0-9]+(?:\.[0-9]*)?')
RESERVED = set(BALA['keywords'].values()) | set(BALA['implementations'])


def quote(text: str) -> str:
    text = str(text).replace('"', '\\"')
    # A trailing backslash would escape the closing quote
    if text.endswith('\\'):
        text += ' '
    return '"' + text + '"'


def identifier(name: str) -> str:
    name = re.sub(r'[^A-Za-z0-9_]', '_', name) or 'unnamed'
    if name[0].isdigit():
        name = f"_{name}"
    if name in RESERVED:
        name += '_'
    return name


class Importer:
    """Reads an external description with import_() and renders it with export()"""

    def __init__(self):
        self.indent = 0
        self.buffer = StringIO()

    def write_line(self, line: str = ''):
        self.buffer.write(('  ' * self.indent + line if line else '') + '\n')

    def import_(self, content: bytes):
        raise NotImplementedError

    def export(self) -> str:
        raise NotImplementedError


class GalaxyImporter(Importer):
    def __init__(self):
        super().__init__()
        self.tool = None

    def import_(self, content: bytes):
        self.tool = Tool.from_xml(content)
        log.debug("imported galaxy tool", tool=self.tool.id, params=len(self.tool.inputs))

    def default(self, param) -> str:
        if param.type == 'boolean':
            if param.checked is None:
                return ''
            return 'true' if param.checked else 'false'
        if not param.value:
            return ''
        if param.type in ('integer', 'float') and NUMBER_RE.fullmatch(param.value):
            return param.value
        return quote(param.value)

    def write_param(self, param):
        name = identifier(param.name)
        attrs = []
        if param.help or param.label:
            attrs.append(f"(desc {quote(param.help or param.label)})")
        default = self.default(param)
        if default:
            attrs.append(f"(default {default})")
        tail = (' ' + ' '.join(attrs)) if attrs else ''

        if param.type == 'select' and param.data_table:
            self.write_line(f"({name} file (galaxy_data_table {quote(param.data_table)}){tail})")
        elif param.type == 'select' and param.options:
            values = ' '.join(quote(o.value) for o in param.options)
            self.write_line(f"({name} (enum ({values})){tail})")
        else:
            ptype = 'string' if param.type == 'select' else BARYON_TYPES.get(param.type, 'string')
            self.write_line(f"({name} {ptype}{tail})")

    def export(self) -> str:
        if self.tool is None:
            raise ValueError("nothing imported")
        tool = self.tool
        self.buffer = StringIO()
        self.indent = 0

        self.write_line(f"(bala {identifier(tool.id or tool.name)} (")
        self.indent += 1
        if tool.description:
            self.write_line(f"(desc {quote(tool.description)})")

        if tool.inputs:
            self.write_line()
            self.write_line('; Parameter definition')
            for param in tool.inputs:
                self.write_param(param)

        if tool.containers or tool.command:
            self.write_line()
            self.write_line('; Implementation: run_docker')
            self.write_line('(run_docker')
            self.indent += 1
            if tool.containers:
                self.write_line(f"(image {quote(tool.containers[0].value)})")
            if tool.command:
                self.write_line(f"(command {quote(' '.join(tool.command.split()))})")
            if tool.environment:
                pairs = ' '.join(f"({quote(k)} {quote(v)})" for k, v in tool.environment)
                self.write_line(f"(env {pairs})")
            self.indent -= 1
            self.write_line(')')

        if tool.outputs:
            self.write_line()
            self.write_line('(outputs')
            self.indent += 1
            for data in tool.outputs:
                parts = [quote(data.name), quote(data.format)]
                if data.label:
                    parts.append(quote(data.label))
                self.write_line(f"({' '.join(parts)})")
            self.indent -= 1
            self.write_line(')')

        self.indent -= 1
        self.write_line('))')
        return self.buffer.getvalue()
