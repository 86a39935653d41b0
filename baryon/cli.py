"""
Baryon command line interface

    baryon --input tool.bala [--lang r] [--output out.R]
    baryon --input tool.bala --check
    baryon --input tool.xml --from-galaxy [--output tool.bala]
"""

import argparse
import os
import stat
import sys
import tempfile
from typing import List, Optional

from .config import get_settings, get_logger, setup_logging
from .importer import GalaxyImporter
from .parser import parse_program
from .transpilers import TranspilerRegistry, build_registry

log = get_logger(__name__)

BARYON_EXT = '.bala'


def default_output(input_path: str, ext: str) -> str:
    return os.path.splitext(input_path)[0] + ext


def output_mode(path: str) -> int:
    """Keep the mode of an existing file, otherwise follow the umask"""
    if os.path.exists(path):
        return stat.S_IMODE(os.stat(path).st_mode)
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(path: str, content: str):
    """Write content next to path first, then move it into place"""
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    tmp = None
    try:
        with tempfile.NamedTemporaryFile('w', dir=directory, prefix='.baryon-', suffix='.tmp',
                                         delete=False, encoding='utf-8') as f:
            tmp = f.name
            f.write(content)
        os.chmod(tmp, output_mode(path))
        os.replace(tmp, path)
    except BaseException:
        if tmp and os.path.exists(tmp):
            os.unlink(tmp)
        raise


def build_parser(registry: TranspilerRegistry, default_lang: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='baryon',
        description='Transpile Baryon workflow definitions to other languages',
    )
    parser.add_argument('--input', '-i', required=True, help='Baryon source file (or Galaxy XML with --from-galaxy)')
    parser.add_argument('--output', '-o', help='Output file (default: input name with the target extension)')
    parser.add_argument('--lang', '-l', default=default_lang,
                        help=f"Target language: {', '.join(registry.names())} (default: {default_lang})")
    parser.add_argument('--check', action='store_true', help='Only parse the input and print a summary')
    parser.add_argument('--from-galaxy', action='store_true', help='Convert a Galaxy tool XML file to Baryon')
    parser.add_argument('--log-level', type=str.upper,
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
                        help='Logging level (default from BARYON_LOG_LEVEL)')
    return parser


def run(args: argparse.Namespace, registry: TranspilerRegistry) -> int:
    print(f"Reading: {args.input}")
    with open(args.input, 'rb') as f:
        content = f.read()

    if args.from_galaxy:
        print("Importing Galaxy tool...")
        importer = GalaxyImporter()
        importer.import_(content)
        code = importer.export()
        output = args.output or default_output(args.input, BARYON_EXT)
        print(f"Writing: {output}")
        write_atomic(output, code)
        print(f"✅ Converted {args.input} to Baryon")
        return 0

    print("Parsing...")
    program = parse_program(content.decode('utf-8'))

    if args.check:
        print(program.describe(), end='')
        print("✅ Syntax OK")
        return 0

    descriptor = registry.get(args.lang)
    log.info("selected backend", lang=descriptor.name)
    print(f"Transpiling to {descriptor.display}...")
    code = descriptor.factory().transpile(program)

    output = args.output or default_output(args.input, descriptor.extension)
    print(f"Writing: {output}")
    write_atomic(output, code)
    print(f"✅ Transpiled {program.name} to {descriptor.display}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    settings = get_settings()
    registry = build_registry()
    args = build_parser(registry, settings.default_language).parse_args(argv)

    if args.log_level:
        settings = settings.model_copy(update={'log_level': args.log_level})
    setup_logging(settings)

    try:
        return run(args, registry)
    except Exception as err:
        log.debug("command failed", exc_info=True)
        print(f"Error: {err}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
