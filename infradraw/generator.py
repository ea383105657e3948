"""Terraform code generation from a block graph.

Produces ``provider.tf``, ``main.tf``, ``variables.tf`` and ``outputs.tf``.
Connections are written as a reference on the target block when the target
has a property that can point at the source (``vpc_id``, ``role``,
``rest_api_id`` and so on) and as ``depends_on`` otherwise.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .hcl import HclSyntaxError, parse_value
from .parser import MODULE_TYPE, format_resource_name
from .references import expression_text
from .resource_types import ResourceType
from .schema import SchemaCatalog, is_policy_field
from .types import Block, Connection, PropertyDefinition, PropertyKind
from .variables import VariableRecord, VariableType

logger = logging.getLogger(__name__)

PROVIDER_FILE = "provider.tf"
MAIN_FILE = "main.tf"
VARIABLES_FILE = "variables.tf"
OUTPUTS_FILE = "outputs.tf"

REGION_VARIABLE = VariableRecord(
    name="aws_region",
    type=VariableType.STRING,
    description="The AWS region to deploy resources into",
    default="us-west-2",
)

# Property names on a target that can hold a reference to a source of this type.
REFERENCE_PROPERTIES: Dict[ResourceType, Tuple[str, ...]] = {
    ResourceType.VPC: ("vpc_id",),
    ResourceType.SUBNET: ("subnet_id", "subnet_ids"),
    ResourceType.SECURITY_GROUP: ("security_group_id", "security_group_ids", "vpc_security_group_ids"),
    ResourceType.IAM_ROLE: ("role", "role_arn", "iam_role_arn", "execution_role_arn"),
    ResourceType.IAM_POLICY: ("policy_arn",),
    ResourceType.S3_BUCKET: ("bucket", "s3_bucket", "bucket_name"),
    ResourceType.LAMBDA_FUNCTION: ("function_name", "lambda_function_name", "function_arn"),
    ResourceType.API_GATEWAY: ("rest_api_id", "api_id"),
    ResourceType.API_GATEWAY_RESOURCE: ("resource_id",),
    ResourceType.API_GATEWAY_DEPLOYMENT: ("deployment_id",),
    ResourceType.DYNAMODB_TABLE: ("table_name", "dynamodb_table_name"),
    ResourceType.KMS_KEY: ("kms_key_id", "kms_key_arn", "kms_master_key_id"),
    ResourceType.SQS_QUEUE: ("queue_url", "queue_arn"),
    ResourceType.SNS_TOPIC: ("topic_arn",),
}

_LIST_SUFFIXES = ("_ids", "_arns")

OUTPUTS: Dict[ResourceType, Tuple[str, str, str]] = {
    ResourceType.EC2_INSTANCE: ("public_ip", "public_ip", "Public IP address of the EC2 instance"),
    ResourceType.RDS_INSTANCE: ("endpoint", "endpoint", "Endpoint of the RDS instance"),
    ResourceType.LAMBDA_FUNCTION: ("function_name", "function_name", "Name of the Lambda function"),
    ResourceType.API_GATEWAY: ("execution_arn", "execution_arn", "Execution ARN of the API Gateway"),
    ResourceType.S3_BUCKET: ("bucket_arn", "arn", "ARN of the S3 bucket"),
    ResourceType.DYNAMODB_TABLE: ("table_arn", "arn", "ARN of the DynamoDB table"),
    ResourceType.SQS_QUEUE: ("queue_url", "url", "URL of the SQS queue"),
}

_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")


def _source_attribute(property_name: str) -> str:
    name = property_name.lower()
    if name.endswith(("_arn", "_arns")) or name == "role":
        return "arn"
    if name.endswith("function_name"):
        return "function_name"
    if name.endswith("_name"):
        return "name"
    if name in ("bucket", "s3_bucket"):
        return "bucket"
    if name == "queue_url":
        return "url"
    return "id"


def find_reference_property(
    definitions: Sequence[PropertyDefinition],
    source_type: ResourceType,
) -> Optional[str]:
    """Name of the first target property that can refer to a ``source_type`` resource."""
    candidates = REFERENCE_PROPERTIES.get(source_type, ())
    names = [definition.name for definition in definitions]
    for candidate in candidates:
        if candidate in names:
            return candidate
    for name in names:
        if any(name.endswith(f"_{candidate}") for candidate in candidates):
            return name
    return None


def _quote(value: str) -> str:
    return json.dumps(value, ensure_ascii=False)


def _indent(text: str, prefix: str) -> str:
    lines = text.splitlines()
    return "\n".join(lines[:1] + [prefix + line for line in lines[1:]])


def render_value(name: str, value: str, definition: Optional[PropertyDefinition] = None) -> str:
    """Render one property string as a configuration expression."""
    text = value.strip()
    inner = expression_text(text)
    if inner is not None:
        return inner

    kind = definition.kind if definition is not None else None
    if kind is PropertyKind.JSON or (kind is None and is_policy_field(name)):
        try:
            decoded = json.loads(text)
        except ValueError:
            decoded = None
        if isinstance(decoded, (dict, list)):
            return f"jsonencode({json.dumps(decoded, indent=2)})"

    if kind in (None, PropertyKind.BOOLEAN) and text in ("true", "false"):
        return text
    if kind in (None, PropertyKind.NUMBER) and _NUMBER.match(text):
        return text
    if text.startswith(("[", "{")):
        try:
            parse_value(text)
        except HclSyntaxError:
            pass
        else:
            return text
    if "\n" in value:
        body = value if value.endswith("\n") else value + "\n"
        return f"<<-EOT\n{body}EOT"
    return _quote(value)


class TerraformGenerator:
    """Turns blocks, connections and variables into configuration files."""

    def __init__(self, catalog: Optional[SchemaCatalog] = None):
        self._catalog = catalog if catalog is not None else SchemaCatalog()

    # --- Names --------------------------------------------------------------
    @staticmethod
    def resource_names(blocks: Iterable[Block]) -> Dict[str, str]:
        """Unique local name per block id, from the block name or its label."""
        names: Dict[str, str] = {}
        used = set()
        for block in blocks:
            base = format_resource_name(block.name or block.label)
            candidate = base
            suffix = 2
            while (block.type_name, candidate) in used:
                candidate = f"{base}_{suffix}"
                suffix += 1
            used.add((block.type_name, candidate))
            names[block.id] = candidate
        return names

    # --- Connections --------------------------------------------------------
    def _apply_connections(
        self,
        blocks: Dict[str, Block],
        connections: Iterable[Connection],
        names: Dict[str, str],
    ) -> Tuple[Dict[str, Dict[str, str]], Dict[str, List[str]]]:
        properties = {block_id: dict(block.properties) for block_id, block in blocks.items()}
        depends_on: Dict[str, List[str]] = {block_id: [] for block_id in blocks}

        for connection in connections:
            source = blocks.get(connection.source_block_id)
            target = blocks.get(connection.target_block_id)
            if source is None or target is None:
                continue
            source_address = f"{source.type_name}.{names[source.id]}"
            if source.type_name == MODULE_TYPE:
                source_address = f"module.{names[source.id]}"

            prop = find_reference_property(self._catalog.properties_for_block(target), source.resource_type)
            if prop is not None and source.type_name != MODULE_TYPE:
                reference = f"{source_address}.{_source_attribute(prop)}"
                if prop.endswith(_LIST_SUFFIXES):
                    properties[target.id][prop] = f'["${{{reference}}}"]'
                else:
                    properties[target.id][prop] = f"${{{reference}}}"
                logger.debug("Connected %s to %s via %s", source_address, target.label, prop)
            elif source_address not in depends_on[target.id]:
                depends_on[target.id].append(source_address)
        return properties, depends_on

    # --- Rendering ----------------------------------------------------------
    @staticmethod
    def provider_block() -> str:
        return 'provider "aws" {\n  region = var.aws_region\n}\n'

    def resource_block(
        self,
        block: Block,
        name: str,
        properties: Dict[str, str],
        depends_on: Sequence[str],
    ) -> str:
        lines: List[str] = []
        for prop_name, value in properties.items():
            if not value.strip():
                continue
            definition = self._catalog.property_definition(block.resource_type, prop_name)
            if "." in prop_name:
                # Nested policy attribute such as "inline_policy.policy"
                nested, attribute = prop_name.split(".", 1)
                rendered = render_value(attribute, value, definition)
                lines.append(f"  {nested} {{\n    {attribute} = {_indent(rendered, '    ')}\n  }}")
                continue
            lines.append(f"  {prop_name} = {_indent(render_value(prop_name, value, definition), '  ')}")
        if depends_on:
            lines.append(f"  depends_on = [{', '.join(depends_on)}]")

        if block.type_name == MODULE_TYPE:
            header = f'module "{name}" {{'
        else:
            header = f'resource "{block.type_name}" "{name}" {{'
        return "\n".join([header, *lines, "}"]) + "\n"

    @staticmethod
    def variable_block(variable: VariableRecord) -> str:
        type_expression = variable.type_expression or {
            VariableType.STRING: "string",
            VariableType.NUMBER: "number",
            VariableType.BOOL: "bool",
            VariableType.LIST: "list(string)",
            VariableType.MAP: "map(string)",
        }[variable.type]
        lines = [
            f'variable "{variable.name}" {{',
            f"  description = {_quote(variable.description)}",
            f"  type        = {type_expression}",
        ]
        if variable.default is not None:
            if variable.type is VariableType.STRING:
                default = _quote(variable.default)
            elif variable.type is VariableType.LIST and not variable.default.startswith("["):
                default = f"[{variable.default}]"
            elif variable.type is VariableType.MAP and not variable.default.startswith("{"):
                default = f"{{ {variable.default} }}"
            else:
                default = variable.default
            lines.append(f"  default     = {default}")
        if variable.sensitive:
            lines.append("  sensitive   = true")
        lines.append("}")
        return "\n".join(lines) + "\n"

    @staticmethod
    def output_blocks(blocks: Iterable[Block], names: Dict[str, str]) -> List[str]:
        outputs = []
        for block in blocks:
            known = OUTPUTS.get(block.resource_type)
            if known is None:
                continue
            suffix, attribute, description = known
            name = names[block.id]
            outputs.append(
                f'output "{name}_{suffix}" {{\n'
                f"  description = {_quote(f'{description} {block.label}')}\n"
                f"  value       = {block.type_name}.{name}.{attribute}\n"
                "}\n"
            )
        return outputs

    def generate(
        self,
        blocks: Sequence[Block],
        connections: Iterable[Connection] = (),
        variables: Iterable[VariableRecord] = (),
    ) -> Dict[str, str]:
        by_id = {block.id: block for block in blocks}
        names = self.resource_names(blocks)
        properties, depends_on = self._apply_connections(by_id, connections, names)

        resources = [
            self.resource_block(block, names[block.id], properties[block.id], depends_on[block.id])
            for block in blocks
        ]
        declared = [variable for variable in variables if variable.name != REGION_VARIABLE.name]
        variable_blocks = [self.variable_block(variable) for variable in [REGION_VARIABLE, *declared]]

        return {
            PROVIDER_FILE: self.provider_block(),
            MAIN_FILE: "\n".join(resources),
            VARIABLES_FILE: "\n".join(variable_blocks),
            OUTPUTS_FILE: "\n".join(self.output_blocks(blocks, names)),
        }


def generate_configuration(
    blocks: Sequence[Block],
    connections: Iterable[Connection] = (),
    variables: Iterable[VariableRecord] = (),
    catalog: Optional[SchemaCatalog] = None,
) -> Dict[str, str]:
    """Map of file name to Terraform text for the given graph."""
    return TerraformGenerator(catalog).generate(blocks, connections, variables)


def write_configuration(
    output_dir: Union[str, Path],
    blocks: Sequence[Block],
    connections: Iterable[Connection] = (),
    variables: Iterable[VariableRecord] = (),
    catalog: Optional[SchemaCatalog] = None,
) -> List[Path]:
    """Generate and write the configuration files; returns the written paths."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    written = []
    for file_name, text in generate_configuration(blocks, connections, variables, catalog).items():
        path = directory / file_name
        path.write_text(text, encoding="utf-8")
        written.append(path)
    logger.info("Wrote %d files to %s", len(written), directory)
    return written
