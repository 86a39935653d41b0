#!/usr/bin/env python3
"""
Unit tests for the transpiler framework, the registry and the properties
every backend shares.
"""

import unittest

from baryon.ast import Atom, BUILTIN_TYPES, ImplementationBlock, Parameter, Program, StringField
from baryon.parser import parse_program
from baryon.transpilers import (
    BaseTranspiler, ImplementationError, TranspileError, TranspilerDescriptor,
    TypeValidationError, UnsupportedLanguageError, build_registry,
    BashTranspiler, GalaxyTranspiler, NextflowTranspiler, PythonTranspiler, RTranspiler,
)
from baryon.transpilers.utils import (
    format_description, get_param_type, identify_file_parameters, is_param_reference, referenced_parameter,
)

from samples import ALIGN_SOURCE, MINIMAL_SOURCE, NO_IMAGE_SOURCE, NO_IMPLEMENTATION_SOURCE


class RecordingTranspiler(BaseTranspiler):
    """Writes one line per step so the generation order can be checked."""
    target_name = 'bash'

    def __init__(self):
        super().__init__()
        self.register_type_validator('string', lambda p: self.write_line(f"validate {p.name}"))
        self.register_implementation_handler('run_docker', self.handle)

    def handle(self, impl, program):
        if impl.string_field('image') == 'bad':
            raise TranspileError("bad image")
        self.write_line(f"run {impl.string_field('image')}")

    def write_header(self, program):
        self.write_line('header')

    def write_signature(self, program):
        self.write_line('signature')

    def write_guards(self, program):
        self.write_line('guards')

    def write_no_implementation(self, program):
        self.write_line('fallback')

    def write_closing(self, program):
        self.write_line('closing')


class StrictTranspiler(RecordingTranspiler):
    target_name = 'galaxy'


def docker(image):
    return ImplementationBlock('run_docker', {'image': StringField(image)})


class TestBaseTranspiler(unittest.TestCase):

    def setUp(self):
        self.t = RecordingTranspiler()

    def test_write_line_indents_two_spaces_per_level(self):
        self.t.indent_level = 2
        self.t.write_line('hello world')
        self.assertEqual(self.t.buffer.getvalue(), '    hello world\n')

    def test_empty_line_has_no_indentation(self):
        self.t.indent_level = 3
        self.t.write_line()
        self.assertEqual(self.t.buffer.getvalue(), '\n')

    def test_negative_indentation_is_rejected(self):
        with self.assertRaises(ValueError):
            self.t.indent_level = -1
        self.assertEqual(self.t.indent_level, 0)

    def test_comment_uses_target_marker(self):
        self.assertEqual(self.t.comment('note'), '# note')
        self.assertEqual(NextflowTranspiler().comment('note'), '// note')

    def test_generation_order(self):
        program = Program('p', parameters=[Parameter('x', 'string')], implementations=[docker('img')])
        self.assertEqual(self.t.transpile(program).splitlines(),
                         ['header', 'signature', 'validate x', 'guards', 'run img', 'closing'])

    def test_parameters_with_defaults_are_not_validated(self):
        program = Program('p', parameters=[Parameter('x', 'string', default='a')], implementations=[docker('img')])
        self.assertNotIn('validate x', self.t.transpile(program))

    def test_zero_implementations_use_the_fallback(self):
        program = Program('p')
        self.assertEqual(self.t.transpile(program).splitlines(),
                         ['header', 'signature', 'guards', 'fallback', 'closing'])

    def test_permissive_target_comments_unknown_types(self):
        program = Program('p', parameters=[Parameter('x', 'fastq')], implementations=[docker('img')])
        self.assertIn("# No specific validation for type 'fastq'", self.t.transpile(program))

    def test_strict_target_rejects_unknown_types(self):
        program = Program('p', parameters=[Parameter('x', 'fastq')], implementations=[docker('img')])
        with self.assertRaises(TypeValidationError) as cm:
            StrictTranspiler().transpile(program)
        message = str(cm.exception)
        self.assertIn("error validating parameter 'x'", message)
        self.assertIn("no validator registered for type 'fastq'", message)

    def test_missing_handler(self):
        program = Program('p', implementations=[ImplementationBlock('run_k8s')])
        with self.assertRaises(ImplementationError) as cm:
            self.t.transpile(program)
        self.assertIn("no handler registered for implementation type 'run_k8s'", str(cm.exception))

    def test_handler_errors_are_wrapped(self):
        program = Program('p', implementations=[docker('bad')])
        with self.assertRaises(ImplementationError) as cm:
            self.t.transpile(program)
        self.assertEqual(str(cm.exception),
                         "error processing implementations: error processing 'run_docker' implementation: bad image")
        self.assertIsInstance(cm.exception.__cause__, TranspileError)

    def test_unexpected_validator_errors_are_wrapped(self):
        self.t.register_type_validator('string', lambda p: {}['missing'])
        program = Program('p', parameters=[Parameter('x', 'string')], implementations=[docker('img')])
        with self.assertRaises(TypeValidationError) as cm:
            self.t.transpile(program)
        self.assertIn("error validating parameter 'x'", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, KeyError)

    def test_unexpected_handler_errors_are_wrapped(self):
        self.t.register_implementation_handler('run_docker', lambda impl, program: {}['missing'])
        with self.assertRaises(ImplementationError) as cm:
            self.t.transpile(Program('p', implementations=[docker('img')]))
        self.assertIn("error processing 'run_docker' implementation", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, KeyError)

    def test_registration_replaces(self):
        self.t.register_implementation_handler('run_docker', lambda impl, program: self.t.write_line('replaced'))
        program = Program('p', implementations=[docker('img')])
        self.assertIn('replaced', self.t.transpile(program))

    def test_state_is_reset_between_runs(self):
        program = Program('p', parameters=[Parameter('x', 'string')], implementations=[docker('img')])
        self.assertEqual(self.t.transpile(program), self.t.transpile(program))


class TestUtils(unittest.TestCase):

    def setUp(self):
        self.params = (Parameter('reads', 'file'), Parameter('out', 'directory'), Parameter('n', 'integer'))

    def test_format_description(self):
        self.assertEqual(format_description('first line\n   second line'), 'first line second line')

    def test_identify_file_parameters(self):
        self.assertEqual(identify_file_parameters(self.params), ['reads', 'out'])

    def test_parameter_lookup(self):
        self.assertTrue(is_param_reference('n', self.params))
        self.assertFalse(is_param_reference('m', self.params))
        self.assertEqual(get_param_type('out', self.params), 'directory')
        self.assertEqual(get_param_type('m', self.params), '')

    def test_quoted_atoms_never_reference_parameters(self):
        program = Program('p', parameters=self.params)
        self.assertEqual(referenced_parameter(Atom('n'), program).type, 'integer')
        self.assertIsNone(referenced_parameter(Atom('n', quoted=True), program))


class TestRegistry(unittest.TestCase):

    def setUp(self):
        self.registry = build_registry()

    def test_builtin_backends(self):
        self.assertEqual(self.registry.names(), ['bash', 'python', 'r', 'nextflow', 'galaxy'])

    def test_descriptors(self):
        expected = {
            'bash': ('.sh', 'BASH', BashTranspiler),
            'python': ('.py', 'Python', PythonTranspiler),
            'r': ('.R', 'R', RTranspiler),
            'nextflow': ('.nf', 'NextFlow', NextflowTranspiler),
            'galaxy': ('.xml', 'Galaxy', GalaxyTranspiler),
        }
        for name, (ext, display, cls) in expected.items():
            with self.subTest(name=name):
                descriptor = self.registry.get(name)
                self.assertEqual((descriptor.extension, descriptor.display), (ext, display))
                self.assertIsInstance(descriptor.factory(), cls)

    def test_lookup_is_case_insensitive(self):
        self.assertEqual(self.registry.get('PYTHON').name, 'python')
        self.assertEqual(self.registry.get(' NextFlow ').name, 'nextflow')
        self.assertIn('Galaxy', self.registry)

    def test_unsupported_language(self):
        with self.assertRaises(UnsupportedLanguageError) as cm:
            self.registry.get('cobol')
        self.assertEqual(str(cm.exception), "unsupported language 'cobol'")
        self.assertIsInstance(cm.exception, LookupError)
        self.assertNotIn('cobol', self.registry)

    def test_register_replaces_existing_name(self):
        self.registry.register(TranspilerDescriptor('Python', '.py3', 'Python 3', PythonTranspiler))
        self.assertEqual(self.registry.get('python').extension, '.py3')
        self.assertEqual(len(self.registry.names()), 5)


class TestEveryBackend(unittest.TestCase):

    FALLBACK_MARKERS = {
        'bash': 'No implementation defined for this workflow',
        'python': 'raise NotImplementedError("No implementation defined for this function")',
        'r': 'stop("No implementation defined for this function")',
        'nextflow': 'error "No implementation defined for this workflow"',
        'galaxy': "No implementation defined for this tool",
    }

    def setUp(self):
        self.registry = build_registry()

    def backends(self):
        for name in self.registry.names():
            yield name, self.registry.get(name).factory

    def test_every_builtin_type_has_a_validator(self):
        for name, factory in self.backends():
            with self.subTest(backend=name):
                self.assertTrue(set(BUILTIN_TYPES) <= set(factory().type_validators))

    def test_run_docker_handler_is_registered(self):
        for name, factory in self.backends():
            with self.subTest(backend=name):
                self.assertIn('run_docker', factory().impl_handlers)

    def test_output_is_deterministic(self):
        for source in (MINIMAL_SOURCE, ALIGN_SOURCE):
            program = parse_program(source)
            for name, factory in self.backends():
                with self.subTest(backend=name):
                    transpiler = factory()
                    first = transpiler.transpile(program)
                    self.assertEqual(first, transpiler.transpile(program))
                    self.assertEqual(first, factory().transpile(program))

    def test_missing_image(self):
        program = parse_program(NO_IMAGE_SOURCE)
        for name, factory in self.backends():
            with self.subTest(backend=name):
                with self.assertRaises(ImplementationError) as cm:
                    factory().transpile(program)
                self.assertIn("Docker image not specified", str(cm.exception))

    def test_zero_implementations(self):
        program = parse_program(NO_IMPLEMENTATION_SOURCE)
        for name, factory in self.backends():
            with self.subTest(backend=name):
                self.assertIn(self.FALLBACK_MARKERS[name], factory().transpile(program))

    def test_enum_without_values_is_rejected(self):
        program = Program('p', parameters=[Parameter('mode', 'enum')], implementations=[docker('img')])
        for name, factory in self.backends():
            with self.subTest(backend=name):
                with self.assertRaises(TypeValidationError) as cm:
                    factory().transpile(program)
                self.assertIn("enum type requires constraints", str(cm.exception))


class TestReservedNames(unittest.TestCase):

    CASES = {
        'python': ['lambda', 'from', 'volumes', 'docker_args', 'main_mount_dir', 'str'],
        'r': ['if', 'function', 'TRUE', 'main_mount_dir'],
        'bash': ['docker_args', 'cmd_args', 'PATH'],
        'nextflow': ['def', 'in', 'params', 'workflow'],
    }

    def setUp(self):
        self.registry = build_registry()

    def test_reserved_parameter_names_are_rejected(self):
        for lang, names in self.CASES.items():
            for name in names:
                with self.subTest(lang=lang, name=name):
                    program = parse_program(f'(bala p (({name} string) (run_docker (image "a"))))')
                    with self.assertRaises(TranspileError) as cm:
                        self.registry.get(lang).factory().transpile(program)
                    self.assertIn(f"name '{name}' is reserved", str(cm.exception))

    def test_program_names_are_checked_where_they_become_functions(self):
        program = parse_program('(bala class ((x string) (run_docker (image "a"))))')
        with self.assertRaises(TranspileError):
            PythonTranspiler().transpile(program)
        program = parse_program('(bala function ((x string) (run_docker (image "a"))))')
        with self.assertRaises(TranspileError):
            RTranspiler().transpile(program)

    def test_ordinary_names_pass(self):
        program = parse_program('(bala align ((input_file file) (lambda_value number) (run_docker (image "a"))))')
        for name in self.registry.names():
            with self.subTest(lang=name):
                self.registry.get(name).factory().transpile(program)


if __name__ == '__main__':
    unittest.main()
