#!/usr/bin/env python3
"""
Unit tests for the Python backend.
"""

import unittest

from baryon.parser import parse_program
from baryon.transpilers import PythonTranspiler

from samples import ALIGN_SOURCE, NO_IMPLEMENTATION_SOURCE


class TestPythonTranspiler(unittest.TestCase):

    def setUp(self):
        self.code = PythonTranspiler().transpile(parse_program(ALIGN_SOURCE))

    def test_generated_module_compiles(self):
        compile(self.code, 'align.py', 'exec')

    def test_signature(self):
        self.assertIn('def align(*, reads: str, threads: int = 4, mode: str, verbose: bool) -> Result:', self.code)
        self.assertIn('    mode: Mode (allowed values: fast, slow)', self.code)

    def test_type_validation(self):
        self.assertIn('  if not isinstance(reads, str):', self.code)
        self.assertIn('  reads_path = validate_path(reads)', self.code)
        self.assertIn('  mode_valid_values = ["fast", "slow"]', self.code)
        self.assertIn('  if not isinstance(verbose, bool):', self.code)
        self.assertNotIn('threads must be an integer', self.code)

    def test_file_guard(self):
        self.assertIn('  if not is_running_in_docker():', self.code)
        self.assertIn('    if not os.path.isfile(reads_path):', self.code)
        self.assertIn('raise FileNotFoundError(f"File {reads_path} does not exist")', self.code)

    def test_docker_call(self):
        for line in [
            'reads_filename = os.path.basename(reads_path)',
            'main_mount_dir = reads_dir',
            'volumes[main_mount_dir] = "/data"',
            'env_vars["THREADS"] = str(threads)',
            'docker_args.extend(["bwa", "mem"])',
            'docker_args.append(reads_filename)',
            'if verbose:',
            'docker_args.append("--verbose")',
            'docker_args.append(str(mode))',
            'docker_args.append("out.sam")',
            'run_docker("biocontainers/bwa:latest", volumes, env_vars, docker_args)',
        ]:
            with self.subTest(line=line):
                self.assertIn(line, self.code)

    def test_outputs_and_entry_point(self):
        self.assertIn('outputs["aligned"] = os.path.normpath(os.path.join(main_mount_dir, "./aligned.sam"))', self.code)
        self.assertIn('if __name__ == "__main__":', self.code)
        self.assertIn('parser.add_argument("--threads", type=int, default=4', self.code)
        self.assertIn('parser.add_argument("--mode", choices=["fast", "slow"], required=True', self.code)
        self.assertIn('parser.add_argument("--verbose", action=argparse.BooleanOptionalAction, default=False', self.code)

    def test_no_implementation(self):
        code = PythonTranspiler().transpile(parse_program(NO_IMPLEMENTATION_SOURCE))
        compile(code, 'noop.py', 'exec')
        self.assertIn('raise NotImplementedError("No implementation defined for this function")', code)
        self.assertNotIn('return Result(status="success"', code)

    def test_program_without_parameters(self):
        code = PythonTranspiler().transpile(parse_program('(bala hello ((run_docker (image "alpine"))))'))
        compile(code, 'hello.py', 'exec')
        self.assertIn('def hello() -> Result:', code)
        self.assertIn('main_mount_dir = os.path.abspath(os.getcwd())', code)

    def test_volume_sources_follow_the_parameter_type(self):
        code = PythonTranspiler().transpile(parse_program('''
(bala mount (
  (reads file)
  (label string)
  (run_docker (image "alpine") (volumes (reads /reads) (label /label) (cache /cache)))))'''))
        compile(code, 'mount.py', 'exec')
        self.assertIn('volumes[reads_dir] = "/reads"', code)
        self.assertIn('volumes[str(label)] = "/label"', code)
        self.assertIn('volumes["cache"] = "/cache"', code)


if __name__ == '__main__':
    unittest.main()
