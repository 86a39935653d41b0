#!/usr/bin/env python3
"""
Unit tests for the Galaxy backend and the Galaxy tool model.
"""

import unittest
import xml.etree.ElementTree as ET

from baryon.galaxy import GalaxyValidationError, Param, Tool
from baryon.parser import parse_program
from baryon.transpilers import GalaxyTranspiler, ImplementationError, TypeValidationError

from samples import ALIGN_SOURCE

DATA_TABLE_SOURCE = '''
(bala bwa_index (
  (desc "Index lookup")
  (ref_genome file (galaxy_data_table "fasta_indexes") (desc "Reference genome"))
  (run_docker
    (image "biocontainers/bwa:latest")
    (command "bwa index")
    (arguments ref_genome))
))
'''


class TestGalaxyTranspiler(unittest.TestCase):

    def setUp(self):
        self.xml = GalaxyTranspiler().transpile(parse_program(ALIGN_SOURCE))

    def test_output_is_well_formed(self):
        root = ET.fromstring(self.xml)
        self.assertEqual(root.tag, 'tool')
        self.assertEqual(root.get('id'), 'align')
        self.assertEqual(root.findtext('description'), 'Align reads')

    def test_tool_attributes(self):
        self.assertTrue(self.xml.startswith('<tool id="align" name="align" version="0.1.0" profile="22.05">'))
        self.assertIn('<container type="docker">biocontainers/bwa:latest</container>', self.xml)

    def test_params(self):
        for line in [
            '<param name="reads" type="data" label="Input reads" help="Input reads" optional="false"></param>',
            '<param name="threads" type="integer" value="4" label="threads"></param>',
            '<param name="mode" type="select" label="Mode" help="Mode" optional="false">',
            '<option value="fast">fast</option>',
            '<param name="verbose" type="boolean" label="verbose" truevalue="--verbose" falsevalue=""></param>',
        ]:
            with self.subTest(line=line):
                self.assertIn(line, self.xml)

    def test_command_and_environment(self):
        self.assertIn('<command detect_errors="exit_code">bwa mem \'$reads\' $verbose \'$mode\' out.sam</command>', self.xml)
        self.assertIn('<environment_variable name="THREADS">$threads</environment_variable>', self.xml)

    def test_outputs(self):
        self.assertIn('<data name="aligned" format="sam" label="./aligned.sam"></data>', self.xml)

    def test_data_table(self):
        xml = GalaxyTranspiler().transpile(parse_program(DATA_TABLE_SOURCE))
        self.assertIn('<param name="ref_genome" type="select" label="Reference genome"', xml)
        self.assertIn('<options from_data_table="fasta_indexes">', xml)
        self.assertIn('<column name="path" index="2"></column>', xml)
        self.assertIn("bwa index '$ref_genome.fields.path'", xml)

    def test_string_params_get_an_empty_field_validator(self):
        xml = GalaxyTranspiler().transpile(parse_program('(bala p ((name string) (run_docker (image "a"))))'))
        self.assertIn('<validator type="empty_field" message="name is required"></validator>', xml)

    def test_unknown_types_are_rejected(self):
        with self.assertRaises(TypeValidationError) as cm:
            GalaxyTranspiler().transpile(parse_program('(bala p ((reads fastq) (run_docker (image "a"))))'))
        self.assertIn("no validator registered for type 'fastq'", str(cm.exception))

    def test_commands_of_several_blocks_are_chained(self):
        xml = GalaxyTranspiler().transpile(parse_program(
            '(bala p ((run_docker (image "a") (command "one")) (run_docker (image "a") (command "two"))))'))
        self.assertIn('>one &amp;&amp; two</command>', xml)
        self.assertEqual(xml.count('<container '), 1)

    def test_blocks_with_different_images_are_rejected(self):
        with self.assertRaises(ImplementationError) as cm:
            GalaxyTranspiler().transpile(parse_program(
                '(bala p ((run_docker (image "a") (command "one")) (run_docker (image "b") (command "two"))))'))
        self.assertIn("Galaxy tools run one container", str(cm.exception))
        self.assertIn("'a' and 'b'", str(cm.exception))


class TestGalaxyModel(unittest.TestCase):

    def test_select_without_options_is_invalid(self):
        with self.assertRaises(GalaxyValidationError):
            Param('select', 'mode').validate()

    def test_unknown_param_type_is_invalid(self):
        with self.assertRaises(GalaxyValidationError):
            Param('fastq', 'reads').validate()

    def test_from_xml_reads_nested_params(self):
        tool = Tool.from_xml(b'''<tool id="t" name="T">
          <inputs>
            <conditional name="c">
              <param name="kind" type="select"><option value="a">A</option></param>
            </conditional>
            <param argument="--min-length" type="integer" value="5"/>
          </inputs>
        </tool>''')
        self.assertEqual([p.name for p in tool.inputs], ['kind', 'min-length'])
        self.assertEqual(tool.param('kind').options[0].text, 'A')

    def test_from_xml_requires_a_tool(self):
        with self.assertRaises(GalaxyValidationError):
            Tool.from_xml(b'<macros/>')


if __name__ == '__main__':
    unittest.main()
