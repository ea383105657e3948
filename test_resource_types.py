"""Tests for the resource type registry and category classification."""

import pytest

from infradraw.resource_types import (
    ResourceType,
    by_canonical_name,
    by_display_name,
    canonical_name_of,
    categorize,
    known_resource_types,
)
from infradraw.types import BlockCategory


class TestLookups:
    @pytest.mark.parametrize("resource_type", known_resource_types(), ids=lambda t: t.name)
    def test_canonical_name_round_trip(self, resource_type):
        assert by_canonical_name(canonical_name_of(resource_type)) is resource_type

    @pytest.mark.parametrize("resource_type", known_resource_types(), ids=lambda t: t.name)
    def test_display_name_round_trip(self, resource_type):
        assert by_display_name(resource_type.display_name) is resource_type

    @pytest.mark.parametrize("name", ["", "aws_not_a_thing", "AWS_LAMBDA_FUNCTION", "lambda", "unknown"])
    def test_unrecognised_names_resolve_to_unknown(self, name):
        assert by_canonical_name(name) is ResourceType.UNKNOWN

    def test_display_lookup_falls_back_to_unknown(self):
        assert by_display_name("S3 Bucket") is ResourceType.S3_BUCKET
        assert by_display_name("Not A Resource") is ResourceType.UNKNOWN

    def test_unknown_has_sentinel_canonical_name(self):
        assert canonical_name_of(ResourceType.UNKNOWN) == "unknown"

    def test_canonical_names_are_unique(self):
        names = [member.canonical_name for member in ResourceType]
        assert len(names) == len(set(names))

    def test_known_types_exclude_unknown(self):
        types = known_resource_types()
        assert ResourceType.UNKNOWN not in types
        assert ResourceType.LAMBDA_FUNCTION in types

    def test_member_attributes(self):
        assert ResourceType.LAMBDA_FUNCTION.display_name == "Lambda Function"
        assert ResourceType.LAMBDA_FUNCTION.canonical_name == "aws_lambda_function"
        assert ResourceType.RDS_INSTANCE.canonical_name == "aws_db_instance"


class TestCategorize:
    @pytest.mark.parametrize(
        "name,category",
        [
            ("aws_lambda_function", BlockCategory.COMPUTE),
            ("aws_instance", BlockCategory.COMPUTE),
            ("aws_db_instance", BlockCategory.DATABASE),
            ("aws_dynamodb_table", BlockCategory.DATABASE),
            ("aws_s3_bucket", BlockCategory.STORAGE),
            ("aws_vpc", BlockCategory.NETWORKING),
            ("aws_subnet", BlockCategory.NETWORKING),
            ("aws_iam_role", BlockCategory.SECURITY),
            ("aws_security_group", BlockCategory.SECURITY),
            ("aws_sqs_queue", BlockCategory.INTEGRATION),
            ("aws_api_gateway_rest_api", BlockCategory.INTEGRATION),
            ("aws_cloudwatch_log_group", BlockCategory.MONITORING),
            ("aws_cloudwatch_metric_alarm", BlockCategory.MONITORING),
        ],
    )
    def test_raw_names(self, name, category):
        assert categorize(name) is category

    def test_members(self):
        assert categorize(ResourceType.KMS_KEY) is BlockCategory.SECURITY
        assert categorize(ResourceType.S3_BUCKET) is BlockCategory.STORAGE

    def test_tokens_match_whole_words(self):
        # "db" must not match inside "dbx"
        assert categorize("aws_dbx_thing") is BlockCategory.INTEGRATION

    def test_unknown_falls_back_to_integration(self):
        assert categorize(ResourceType.UNKNOWN) is BlockCategory.INTEGRATION
        assert categorize("aws_appmesh_mesh") is BlockCategory.INTEGRATION
