"""
Baryon Galaxy Model - A subset of the Galaxy tool XML schema
https://docs.galaxyproject.org/en/latest/dev/schema.html
"""

import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

PARAM_TYPES = (
    'text', 'integer', 'float', 'boolean', 'genomebuild', 'select', 'color',
    'data_column', 'hidden', 'hidden_data', 'baseurl', 'file', 'ftpfile',
    'data', 'data_collection', 'drill_down',
)
CONTAINER_TYPES = ('docker', 'singularity')


class GalaxyValidationError(ValueError):
    pass


def _attrs(elem: ET.Element, **attrs):
    for key, value in attrs.items():
        if value is not None and value != '':
            elem.set(key, str(value))


def _bool(text: Optional[str]) -> Optional[bool]:
    if text is None:
        return None
    return text.strip().lower() in ('true', 'yes', '1')


@dataclass
class Option:
    value: str
    text: str = ''

    def to_element(self) -> ET.Element:
        elem = ET.Element('option')
        elem.set('value', self.value)
        elem.text = self.text or self.value
        return elem


@dataclass
class Validator:
    """<validator type=...>; the expression or regex goes in text"""
    type: str
    message: str = ''
    text: str = ''

    def to_element(self) -> ET.Element:
        elem = ET.Element('validator')
        _attrs(elem, type=self.type, message=self.message)
        if self.text:
            elem.text = self.text
        return elem


@dataclass
class Param:
    type: str
    name: str
    value: str = ''
    label: str = ''
    help: str = ''
    argument: str = ''
    format: str = ''
    optional: Optional[bool] = None
    checked: Optional[bool] = None
    truevalue: Optional[str] = None
    falsevalue: Optional[str] = None
    options: List[Option] = field(default_factory=list)
    validators: List[Validator] = field(default_factory=list)
    data_table: str = ''

    def validate(self):
        if self.type not in PARAM_TYPES:
            raise GalaxyValidationError(f'type "{self.type}" is not an allowed param type')
        if not self.name:
            raise GalaxyValidationError('param has no name')
        if self.type == 'select' and not self.options and not self.data_table:
            raise GalaxyValidationError(f'select param "{self.name}" has no options')

    def to_element(self) -> ET.Element:
        elem = ET.Element('param')
        _attrs(elem, name=self.name, type=self.type, value=self.value, label=self.label,
               help=self.help, argument=self.argument, format=self.format)
        if self.optional is not None:
            elem.set('optional', 'true' if self.optional else 'false')
        if self.checked is not None:
            elem.set('checked', 'true' if self.checked else 'false')
        if self.truevalue is not None:
            elem.set('truevalue', self.truevalue)
        if self.falsevalue is not None:
            elem.set('falsevalue', self.falsevalue)
        if self.data_table:
            options = ET.SubElement(elem, 'options')
            options.set('from_data_table', self.data_table)
            column = ET.SubElement(options, 'column')
            column.set('name', 'path')
            column.set('index', '2')
        for option in self.options:
            elem.append(option.to_element())
        for validator in self.validators:
            elem.append(validator.to_element())
        return elem

    @classmethod
    def from_element(cls, elem: ET.Element) -> 'Param':
        options_elem = elem.find('options')
        return cls(
            type=elem.get('type', ''),
            name=elem.get('name', '') or elem.get('argument', '').lstrip('-'),
            value=elem.get('value', ''),
            label=elem.get('label', ''),
            help=elem.get('help', '') or (elem.findtext('help') or '').strip(),
            argument=elem.get('argument', ''),
            format=elem.get('format', ''),
            optional=_bool(elem.get('optional')),
            checked=_bool(elem.get('checked')),
            truevalue=elem.get('truevalue'),
            falsevalue=elem.get('falsevalue'),
            options=[Option(o.get('value', ''), (o.text or '').strip()) for o in elem.findall('option')],
            validators=[Validator(v.get('type', ''), v.get('message', ''), (v.text or '').strip())
                        for v in elem.findall('validator')],
            data_table=options_elem.get('from_data_table', '') if options_elem is not None else '',
        )


@dataclass
class Data:
    name: str
    format: str
    label: str = ''

    def validate(self):
        if not self.name:
            raise GalaxyValidationError('output has no name')
        if not self.format:
            raise GalaxyValidationError(f'output "{self.name}" has no format')

    def to_element(self) -> ET.Element:
        elem = ET.Element('data')
        _attrs(elem, name=self.name, format=self.format, label=self.label)
        return elem


@dataclass
class Container:
    value: str
    type: str = 'docker'

    def validate(self):
        if self.type not in CONTAINER_TYPES:
            raise GalaxyValidationError(f'type "{self.type}" is not an allowed container type')


@dataclass
class Tool:
    id: str
    name: str
    version: str = ''
    profile: str = ''
    description: str = ''
    containers: List[Container] = field(default_factory=list)
    environment: List[Tuple[str, str]] = field(default_factory=list)
    command: str = ''
    inputs: List[Param] = field(default_factory=list)
    outputs: List[Data] = field(default_factory=list)

    def param(self, name: str) -> Optional[Param]:
        for param in self.inputs:
            if param.name == name:
                return param
        return None

    def validate(self):
        for container in self.containers:
            container.validate()
        for param in self.inputs:
            param.validate()
        for data in self.outputs:
            data.validate()

    def to_element(self) -> ET.Element:
        root = ET.Element('tool')
        _attrs(root, id=self.id, name=self.name, version=self.version, profile=self.profile)
        ET.SubElement(root, 'description').text = self.description

        requirements = ET.SubElement(root, 'requirements')
        for container in self.containers:
            elem = ET.SubElement(requirements, 'container')
            elem.set('type', container.type)
            elem.text = container.value

        if self.environment:
            env = ET.SubElement(root, 'environment_variables')
            for key, value in self.environment:
                elem = ET.SubElement(env, 'environment_variable')
                elem.set('name', key)
                elem.text = value

        command = ET.SubElement(root, 'command')
        command.set('detect_errors', 'exit_code')
        command.text = self.command

        inputs = ET.SubElement(root, 'inputs')
        for param in self.inputs:
            inputs.append(param.to_element())

        outputs = ET.SubElement(root, 'outputs')
        for data in self.outputs:
            outputs.append(data.to_element())
        return root

    def to_xml(self) -> str:
        root = self.to_element()
        ET.indent(root, space='  ')
        return ET.tostring(root, encoding='unicode', short_empty_elements=False) + '\n'

    @classmethod
    def from_element(cls, root: ET.Element) -> 'Tool':
        if root.tag != 'tool':
            raise GalaxyValidationError(f"expected a <tool> document, got <{root.tag}>")
        inputs = root.find('inputs')
        outputs = root.find('outputs')
        env = root.find('environment_variables')
        return cls(
            id=root.get('id', ''),
            name=root.get('name', ''),
            version=root.get('version', ''),
            profile=root.get('profile', ''),
            description=(root.findtext('description') or '').strip(),
            containers=[Container((c.text or '').strip(), c.get('type', 'docker'))
                        for c in root.findall('requirements/container')],
            environment=[(e.get('name', ''), (e.text or '').strip())
                         for e in env.findall('environment_variable')] if env is not None else [],
            command=(root.findtext('command') or '').strip(),
            # Params nested in conditionals and sections are flattened
            inputs=[Param.from_element(p) for p in inputs.iter('param')] if inputs is not None else [],
            outputs=[Data(d.get('name', ''), d.get('format', ''), d.get('label', ''))
                     for d in outputs.findall('data')] if outputs is not None else [],
        )

    @classmethod
    def from_xml(cls, content: bytes) -> 'Tool':
        return cls.from_element(ET.fromstring(content))
