"""Tests for the configuration parser and block conversion."""

import json
import logging

import pytest

from infradraw.constants import NO_RESOURCE_DESCRIPTION
from infradraw.layout import grid_position
from infradraw.parser import (
    ConfigurationParser,
    Dependency,
    ResourceRecord,
    coerce_value,
    find_dependencies,
    format_resource_name,
    format_value,
    hcl_literal,
)
from infradraw.resource_types import ResourceType
from infradraw.schema import SchemaCatalog
from infradraw.sources import LocalDirectorySource
from infradraw.types import BlockCategory, Point, PropertyDefinition, PropertyKind
from infradraw.variables import VariableType


@pytest.fixture(scope="module")
def catalog():
    catalog = SchemaCatalog()
    catalog.reload("5.92.0")
    return catalog


@pytest.fixture
def parser(catalog):
    return ConfigurationParser(catalog)


@pytest.fixture
def lambda_api(parser, lambda_api_dir):
    texts = LocalDirectorySource(lambda_api_dir).load_files()
    result = parser.parse_files(texts)
    blocks, connections = parser.convert(result)
    return result, blocks, connections


class TestParse:
    def test_records_in_declaration_order(self, lambda_api):
        result, _, _ = lambda_api
        assert [record.address for record in result.resources] == [
            "aws_iam_role.lambda",
            "aws_lambda_function.this",
            "aws_api_gateway_rest_api.this",
            "aws_api_gateway_resource.proxy",
            "aws_lambda_permission.api",
            "aws_s3_bucket.uploads",
        ]

    def test_data_sources_are_skipped(self, lambda_api):
        result, _, _ = lambda_api
        assert all(record.type != "aws_caller_identity" for record in result.resources)

    def test_dependencies(self, lambda_api):
        result, _, _ = lambda_api
        assert result.dependencies == [
            Dependency("aws_lambda_function.this", "aws_iam_role.lambda"),
            Dependency("aws_api_gateway_resource.proxy", "aws_api_gateway_rest_api.this"),
            Dependency("aws_lambda_permission.api", "aws_lambda_function.this"),
            Dependency("aws_lambda_permission.api", "aws_api_gateway_rest_api.this"),
            Dependency("aws_s3_bucket.uploads", "aws_lambda_function.this"),
        ]

    def test_variables(self, lambda_api):
        result, _, _ = lambda_api
        variables = {record.name: record for record in result.variables}
        assert list(variables) == ["function_name", "environment", "function_env_vars", "api_key"]

        function_name = variables["function_name"]
        assert function_name.type is VariableType.STRING
        assert function_name.default == "uploader"
        assert function_name.description == "Name of the Lambda function"
        assert function_name.type_expression == "string"

        env_vars = variables["function_env_vars"]
        assert env_vars.type is VariableType.MAP
        assert env_vars.type_expression == "map(string)"
        assert env_vars.default == "{}"

        api_key = variables["api_key"]
        assert api_key.sensitive
        assert api_key.default is None

    def test_untyped_variable_infers_from_default(self, parser):
        result = parser.parse(
            'variable "zones" {\n  default = ["a", "b"]\n}\n'
            'variable "count_value" {\n  default = 3\n}\n'
            'variable "flag" {\n  default = false\n}\n'
        )
        assert [(record.type, record.default) for record in result.variables] == [
            (VariableType.LIST, '["a", "b"]'),
            (VariableType.NUMBER, "3"),
            (VariableType.BOOL, "false"),
        ]

    def test_malformed_text_gives_empty_result(self, parser, caplog):
        with caplog.at_level(logging.WARNING, logger="infradraw.parser"):
            result = parser.parse('resource "aws_s3_bucket" "b" {\n  bucket = "x\n}\n', source="broken.tf")
        assert result.is_empty()
        assert result.dependencies == []
        assert "broken.tf" in caplog.text

    def test_malformed_file_does_not_hide_other_files(self, parser):
        result = parser.parse_files(['resource "aws_vpc" "main" {}\n', "resource {{{\n"])
        assert [record.address for record in result.resources] == ["aws_vpc.main"]

    def test_references_across_files(self, parser):
        result = parser.parse_files(
            [
                'resource "aws_subnet" "a" {\n  vpc_id = aws_vpc.main.id\n}\n',
                'resource "aws_vpc" "main" {\n  cidr_block = "10.0.0.0/16"\n}\n',
            ]
        )
        assert result.dependencies == [Dependency("aws_subnet.a", "aws_vpc.main")]

    def test_undeclared_and_self_references_are_ignored(self, parser):
        result = parser.parse(
            'resource "aws_security_group" "sg" {\n'
            "  name   = aws_security_group.sg.id\n"
            "  vpc_id = aws_vpc.elsewhere.id\n"
            "}\n"
        )
        assert result.dependencies == []

    def test_module_blocks(self, parser):
        result = parser.parse(
            'module "network" {\n  source = "./network"\n}\n'
            'resource "aws_instance" "web" {\n  subnet_id = module.network.subnet_id\n}\n'
        )
        assert [record.address for record in result.resources] == ["module.network", "aws_instance.web"]
        assert result.dependencies == [Dependency("aws_instance.web", "module.network")]

    def test_template_directive_references(self, parser):
        result = parser.parse(
            'resource "aws_subnet" "private" {\n  cidr_block = "10.0.1.0/24"\n}\n'
            'resource "aws_instance" "web" {\n'
            "  user_data = <<EOT\n"
            "%{ for s in aws_subnet.private ~}\n"
            "echo subnet\n"
            "%{ endfor ~}\n"
            "EOT\n"
            "}\n"
        )
        assert result.dependencies == [Dependency("aws_instance.web", "aws_subnet.private")]

    def test_resource_with_missing_labels_is_skipped(self, parser):
        result = parser.parse('resource "aws_s3_bucket" {\n}\nresource "aws_vpc" "main" {}\n')
        assert [record.address for record in result.resources] == ["aws_vpc.main"]

    def test_find_dependencies_deduplicates(self):
        records = [
            ResourceRecord("aws_vpc", "main"),
            ResourceRecord(
                "aws_subnet",
                "a",
                {"vpc_id": "${aws_vpc.main.id}", "tags": {"Vpc": "${aws_vpc.main.arn}"}},
            ),
        ]
        assert find_dependencies(records) == [Dependency("aws_subnet.a", "aws_vpc.main")]


class TestConvert:
    def test_grid_positions(self, lambda_api):
        _, blocks, _ = lambda_api
        assert [(block.x, block.y) for block in blocks] == [
            (50.0, 50.0),
            (250.0, 50.0),
            (450.0, 50.0),
            (50.0, 150.0),
            (250.0, 150.0),
            (450.0, 150.0),
        ]

    def test_labels_and_categories(self, lambda_api):
        _, blocks, _ = lambda_api
        assert [block.label for block in blocks] == [
            "IAM Role: lambda",
            "Lambda Function: this",
            "API Gateway: this",
            "API Gateway Resource: proxy",
            "Lambda Permission: api",
            "S3 Bucket: uploads",
        ]
        assert [block.category for block in blocks] == [
            BlockCategory.SECURITY,
            BlockCategory.COMPUTE,
            BlockCategory.INTEGRATION,
            BlockCategory.INTEGRATION,
            BlockCategory.COMPUTE,
            BlockCategory.STORAGE,
        ]

    def test_block_identity(self, lambda_api):
        _, blocks, _ = lambda_api
        assert blocks[1].resource_type is ResourceType.LAMBDA_FUNCTION
        assert blocks[1].name == "this"
        assert blocks[1].address == "aws_lambda_function.this"
        assert blocks[1].description == "Provides a Lambda Function resource."
        assert len({block.id for block in blocks}) == len(blocks)

    def test_typed_properties(self, lambda_api):
        _, blocks, _ = lambda_api
        function = blocks[1].properties
        assert function["function_name"] == "${var.function_name}"
        assert function["role"] == "${aws_iam_role.lambda.arn}"
        assert function["runtime"] == "python3.12"
        assert function["memory_size"] == "256"
        assert function["publish"] == "true"
        assert function["environment"] == '{variables = "${var.function_env_vars}"}'

    def test_jsonencode_policy_is_decoded(self, lambda_api):
        _, blocks, _ = lambda_api
        policy = blocks[0].properties["assume_role_policy"]
        assert json.loads(policy) == {
            "Version": "2012-10-17",
            "Statement": [
                {
                    "Action": "sts:AssumeRole",
                    "Effect": "Allow",
                    "Principal": {"Service": "lambda.amazonaws.com"},
                }
            ],
        }
        assert policy.startswith("{\n  ")
        assert blocks[0].properties["name"] == "${var.function_name}-role"

    def test_maps_and_nested_blocks(self, lambda_api):
        _, blocks, _ = lambda_api
        bucket = blocks[5].properties
        assert bucket["bucket"] == "my-uploads-bucket"
        assert bucket["tags"] == '{Name = "uploads", Environment = "${var.environment}"}'
        assert bucket["versioning"] == "{enabled = true}"
        assert "depends_on" not in bucket

    def test_connections(self, lambda_api):
        _, blocks, connections = lambda_api
        ids = {block.id: block.name + ":" + block.type_name for block in blocks}
        pairs = [(ids[c.source_block_id], ids[c.target_block_id]) for c in connections]
        assert pairs == [
            ("lambda:aws_iam_role", "this:aws_lambda_function"),
            ("this:aws_api_gateway_rest_api", "proxy:aws_api_gateway_resource"),
            ("this:aws_lambda_function", "api:aws_lambda_permission"),
            ("this:aws_api_gateway_rest_api", "api:aws_lambda_permission"),
            ("this:aws_lambda_function", "uploads:aws_s3_bucket"),
        ]
        assert len({c.id for c in connections}) == len(connections)

    def test_module_block(self, parser):
        result = parser.parse('module "network" {\n  source = "./network"\n  cidr = "10.0.0.0/16"\n}\n')
        block = parser.convert_to_blocks(result.resources)[0]
        assert block.resource_type is ResourceType.UNKNOWN
        assert block.type_name == "module"
        assert block.label == "Module: network"
        assert block.properties == {"source": "./network", "cidr": "10.0.0.0/16"}

    def test_unknown_type_keeps_source_type(self, parser):
        result = parser.parse('resource "aws_appmesh_mesh" "m" {\n  name = "mesh"\n}\n')
        block = parser.convert_to_blocks(result.resources)[0]
        assert block.resource_type is ResourceType.UNKNOWN
        assert block.source_type == "aws_appmesh_mesh"
        assert block.address == "aws_appmesh_mesh.m"
        assert block.label == "aws_appmesh_mesh: m"
        assert block.category is BlockCategory.INTEGRATION
        assert block.properties == {"name": "mesh"}

    def test_explicit_positions_are_kept(self, parser):
        records = [ResourceRecord("aws_vpc", "a", position=Point(5.0, 6.0)), ResourceRecord("aws_vpc", "b")]
        blocks = parser.convert_to_blocks(records)
        assert (blocks[0].x, blocks[0].y) == (5.0, 6.0)
        assert (blocks[1].x, blocks[1].y) == (grid_position(1).x, grid_position(1).y)

    def test_fallback_defaults_fill_missing_properties(self):
        parser = ConfigurationParser()
        result = parser.parse('resource "aws_lambda_function" "f" {\n  function_name = "f"\n  timeout = 10\n}\n')
        block = parser.convert_to_blocks(result.resources)[0]
        assert block.properties["function_name"] == "f"
        assert block.properties["timeout"] == "10"
        assert block.properties["runtime"] == "nodejs18.x"
        assert block.properties["memory_size"] == "128"

    def test_null_attributes_are_dropped(self, parser):
        result = parser.parse('resource "aws_vpc" "main" {\n  cidr_block = null\n}\n')
        assert parser.convert_to_blocks(result.resources)[0].properties == {}

    def test_duplicate_dependencies_make_one_connection(self, parser):
        records = [ResourceRecord("aws_vpc", "main"), ResourceRecord("aws_subnet", "a")]
        blocks = parser.convert_to_blocks(records)
        dependency = Dependency("aws_subnet.a", "aws_vpc.main")
        connections = parser.build_connections(records, blocks, [dependency, dependency])
        assert len(connections) == 1
        assert connections[0].source_block_id == blocks[0].id
        assert connections[0].target_block_id == blocks[1].id

    def test_pinned_catalog_survives_reload_between_conversions(self):
        catalog = SchemaCatalog()
        parser = ConfigurationParser(catalog.pinned())
        records = [ResourceRecord("aws_iam_role", "first"), ResourceRecord("aws_iam_role", "second")]
        first = parser.convert_to_blocks(records[:1])[0]
        catalog.reload("5.92.0")
        second = parser.convert_to_blocks(records[1:])[0]
        assert first.description == second.description == NO_RESOURCE_DESCRIPTION
        assert ConfigurationParser(catalog).convert_to_blocks(records[1:])[0].description == "Provides an IAM role."


class TestValueFormatting:
    def test_format_scalars(self):
        assert format_value(None) == ""
        assert format_value(True) == "true"
        assert format_value(3.0) == "3"
        assert format_value(2.5) == "2.5"
        assert format_value("text") == "text"

    def test_hcl_literal(self):
        assert hcl_literal({"a-b": [1, None], "with space": False}) == '{a-b = [1, null], "with space" = false}'
        assert hcl_literal("say \"hi\"") == '"say \\"hi\\""'

    def test_policy_maps_become_json(self):
        value = {"Statement": [{"Effect": "Allow"}]}
        assert format_value(value) == json.dumps(value, indent=2)

    def test_coerce_by_kind(self):
        number = PropertyDefinition("size", PropertyKind.NUMBER)
        boolean = PropertyDefinition("flag", PropertyKind.BOOLEAN)
        document = PropertyDefinition("policy", PropertyKind.JSON)

        assert coerce_value(None, number) is None
        assert coerce_value("5", number) == "5"
        assert coerce_value("5.50", number) == "5.5"
        assert coerce_value("${var.size}", number) == "${var.size}"
        assert coerce_value("TRUE", boolean) == "true"
        assert coerce_value('{"a":1}', document) == '{\n  "a": 1\n}'
        assert coerce_value("not json {", document) == "not json {"
        assert coerce_value("${aws_iam_policy_document.p.json}", document) == "${aws_iam_policy_document.p.json}"
        assert coerce_value(["x"], None) == '["x"]'

    def test_format_resource_name(self):
        assert format_resource_name("My API!") == "my_api"
        assert format_resource_name("S3 Bucket: uploads") == "s3_bucket_uploads"
        assert format_resource_name("!!!") == "resource"
