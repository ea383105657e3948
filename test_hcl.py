"""Tests for reading configuration text into blocks and values."""

import pytest

from infradraw.hcl import HclSyntaxError, parse_argument, parse_hcl, parse_value


class TestBlocks:
    def test_resource_block(self):
        body = parse_hcl(
            'resource "aws_s3_bucket" "uploads" {\n'
            '  bucket = "my-uploads"\n'
            "}\n"
        )
        assert body.attributes == {}
        assert len(body.blocks) == 1
        block = body.blocks[0]
        assert block.type == "resource"
        assert block.labels == ["aws_s3_bucket", "uploads"]
        assert block.body.attributes == {"bucket": "my-uploads"}
        assert block.line == 1

    def test_blocks_follow_file_order(self):
        body = parse_hcl(
            'variable "a" {}\n'
            'resource "aws_vpc" "main" {}\n'
            "\n"
            "# comment\n"
            'variable "b" {}\n'
        )
        assert [(block.type, block.labels) for block in body.blocks] == [
            ("variable", ["a"]),
            ("resource", ["aws_vpc", "main"]),
            ("variable", ["b"]),
        ]
        assert [block.line for block in body.blocks] == [1, 2, 5]

    def test_unlabelled_blocks(self):
        body = parse_hcl("locals {\n  a = 1\n}\nterraform {}\n")
        assert [(block.type, block.labels) for block in body.blocks] == [("locals", []), ("terraform", [])]
        assert body.blocks[0].body.attributes == {"a": 1}

    def test_unknown_block_type_keeps_labels(self):
        body = parse_hcl('check "health" {\n  a = 1\n}\n')
        assert [(block.type, block.labels) for block in body.blocks] == [("check", ["health"])]

    def test_resource_with_one_label(self):
        body = parse_hcl('resource "aws_s3_bucket" {\n  tags = { a = "b" }\n}\n')
        assert [block.labels for block in body.blocks] == [["aws_s3_bucket"]]

    def test_nested_blocks_flatten(self):
        body = parse_hcl(
            'resource "aws_lambda_function" "this" {\n'
            "  environment {\n"
            "    variables = {\n"
            '      STAGE = "dev"\n'
            "    }\n"
            "  }\n"
            "  ingress {\n"
            "    from_port = 80\n"
            "  }\n"
            "  ingress {\n"
            "    from_port = 443\n"
            "  }\n"
            "}\n"
        )
        value = body.blocks[0].body.to_value()
        assert value["environment"] == {"variables": {"STAGE": "dev"}}
        assert value["ingress"] == [{"from_port": 80}, {"from_port": 443}]

    def test_labelled_nested_block(self):
        body = parse_hcl(
            'resource "aws_security_group" "sg" {\n'
            '  dynamic "ingress" {\n'
            "    for_each = var.ports\n"
            "  }\n"
            "}\n"
        )
        nested = body.blocks[0].body.blocks
        assert [(block.type, block.labels) for block in nested] == [("dynamic", ["ingress"])]
        assert nested[0].body.attributes == {"for_each": "${var.ports}"}

    def test_meta_keys_are_dropped(self):
        body = parse_hcl('resource "aws_vpc" "main" {\n  cidr_block = "10.0.0.0/16"\n}\n')
        value = body.blocks[0].body.to_value()
        assert value == {"cidr_block": "10.0.0.0/16"}

    def test_comments_are_ignored(self):
        body = parse_hcl(
            "# hash comment\n"
            "// slash comment\n"
            "/* block\n   comment */\n"
            "a = 1\n"
            "b = 2\n"
        )
        assert body.attributes == {"a": 1, "b": 2}

    def test_empty_file(self):
        body = parse_hcl("")
        assert body.attributes == {}
        assert body.blocks == []

    def test_windows_line_endings(self):
        body = parse_hcl('variable "a" {\r\n  default = 1\r\n}\r\n')
        assert body.blocks[0].body.attributes == {"default": 1}


class TestValues:
    @pytest.mark.parametrize(
        "source,expected",
        [
            ('"text"', "text"),
            ("42", 42),
            ("2.5", 2.5),
            ("true", True),
            ("false", False),
            ("null", None),
            ("[]", []),
            ('[1, "two", true]', [1, "two", True]),
            ("{}", {}),
        ],
    )
    def test_literals(self, source, expected):
        assert parse_value(source) == expected

    def test_hcl_object(self):
        value = parse_value('{\n  Name = "uploads"\n  Count = 2\n}')
        assert value == {"Name": "uploads", "Count": 2}

    def test_call_arguments_in_python_literal_form(self):
        value = parse_argument("{'Version': '2012-10-17', 'Statement': [{'Effect': 'Allow'}]}")
        assert value == {"Version": "2012-10-17", "Statement": [{"Effect": "Allow"}]}

    def test_call_arguments_in_hcl_form(self):
        assert parse_argument('{\n  Version = "2012-10-17"\n}') == {"Version": "2012-10-17"}

    def test_python_literal_is_not_hcl(self):
        with pytest.raises(HclSyntaxError):
            parse_value("{'a': 1}")

    def test_references_are_wrapped(self):
        assert parse_value("aws_iam_role.lambda.arn") == "${aws_iam_role.lambda.arn}"
        assert parse_value("var.tags") == "${var.tags}"

    def test_templates_kept(self):
        assert parse_value('"${var.name}-role"') == "${var.name}-role"

    def test_references_inside_collections(self):
        assert parse_value("[aws_subnet.a.id, aws_subnet.b.id]") == ["${aws_subnet.a.id}", "${aws_subnet.b.id}"]
        assert parse_value("{ Environment = var.environment }") == {"Environment": "${var.environment}"}

    def test_function_call_is_wrapped(self):
        attributes = parse_hcl('policy = jsonencode({\n  Version = "2012-10-17"\n})\n').attributes
        assert attributes["policy"].startswith("${jsonencode(")
        assert attributes["policy"].endswith(")}")
        assert "2012-10-17" in attributes["policy"]

    def test_heredoc(self):
        attributes = parse_hcl('policy = <<EOT\n{\n  "a": 1\n}\nEOT\nafter = 1\n').attributes
        assert '"a": 1' in attributes["policy"]
        assert "EOT" not in attributes["policy"]
        assert attributes["after"] == 1


class TestErrors:
    def test_unclosed_block(self):
        with pytest.raises(HclSyntaxError):
            parse_hcl('resource "aws_s3_bucket" "b" {\n  bucket = "x"\n')

    def test_unexpected_character_has_position(self):
        with pytest.raises(HclSyntaxError) as exc_info:
            parse_hcl("a = 1\nb = @\n")
        assert exc_info.value.line == 2
        assert exc_info.value.column > 0

    def test_duplicate_attribute(self):
        with pytest.raises(HclSyntaxError):
            parse_hcl("a = 1\na = 2\n")

    def test_empty_expression(self):
        with pytest.raises(HclSyntaxError, match="Expected expression"):
            parse_value("")

    def test_path_template_is_not_an_object(self):
        with pytest.raises(HclSyntaxError):
            parse_value("{proxy+}")

    def test_is_value_error(self):
        assert issubclass(HclSyntaxError, ValueError)
