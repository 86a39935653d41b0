#!/usr/bin/env python3
"""
Unit tests for the NextFlow backend.
"""

import unittest

from baryon.parser import parse_program
from baryon.transpilers import NextflowTranspiler

from samples import ALIGN_SOURCE


class TestNextflowTranspiler(unittest.TestCase):

    def setUp(self):
        self.code = NextflowTranspiler().transpile(parse_program(ALIGN_SOURCE))

    def test_header(self):
        self.assertTrue(self.code.startswith('#!/usr/bin/env nextflow\n// Nextflow Workflow: align\n'))
        self.assertIn('nextflow.enable.dsl = 2', self.code)

    def test_params(self):
        for line in ['params.reads = null', 'params.threads = 4', 'params.mode = null', 'params.verbose = false']:
            with self.subTest(line=line):
                self.assertIn(f"{line}\n", self.code)
        self.assertIn('// Allowed values: fast, slow', self.code)

    def test_validation(self):
        self.assertIn('if (params.reads == null) {\n  error "Missing required parameter: --reads"\n}', self.code)
        self.assertIn("if (!(['fast', 'slow'].contains(params.mode))) {", self.code)
        self.assertIn('if (!(params.verbose instanceof Boolean)) {', self.code)
        self.assertNotIn('threads must be an integer', self.code)
        self.assertIn('if (params.reads != null && !file(params.reads).isFile()) {', self.code)

    def test_process(self):
        for line in [
            'process run_docker {',
            "  container 'biocontainers/bwa:latest'",
            '  containerOptions "-v ${workflow.launchDir}:/data -e THREADS=${params.threads}"',
            '  input:\n  path reads\n  val threads\n  val mode\n  val verbose\n',
            "  output:\n  path './aligned.sam', emit: aligned\n",
            "  script:\n  \"\"\"\n  bwa mem ${reads} ${verbose ? '--verbose' : ''} ${mode} out.sam\n  \"\"\"\n",
        ]:
            with self.subTest(line=line):
                self.assertIn(line, self.code)

    def test_workflow(self):
        self.assertIn('workflow {\n  run_docker(file(params.reads), params.threads, params.mode, params.verbose)\n}\n',
                      self.code)

    def test_several_blocks_get_distinct_processes(self):
        code = NextflowTranspiler().transpile(parse_program(
            '(bala p ((run_docker (image "a")) (run_docker (image "a"))))'))
        self.assertIn('process run_docker_1 {', code)
        self.assertIn('process run_docker_2 {', code)
        self.assertIn("  output:\n  path 'results/'\n", code)
        self.assertIn('  run_docker_1()\n  run_docker_2()\n', code)

    def test_dollar_in_command_is_escaped(self):
        code = NextflowTranspiler().transpile(parse_program(
            '(bala p ((run_docker (image "a") (command "echo $HOME"))))'))
        self.assertIn('echo \\$HOME', code)


if __name__ == '__main__':
    unittest.main()
