"""Hand-written property table used when no schema document is available."""

from typing import Dict, List

from .resource_types import ResourceType
from .types import PropertyDefinition, PropertyKind

STRING = PropertyKind.STRING
NUMBER = PropertyKind.NUMBER
BOOLEAN = PropertyKind.BOOLEAN
ENUM = PropertyKind.ENUM
JSON = PropertyKind.JSON


FALLBACK_PROPERTIES: Dict[ResourceType, List[PropertyDefinition]] = {
    ResourceType.LAMBDA_FUNCTION: [
        PropertyDefinition("function_name", STRING, required=True, description="Unique name for the Lambda function"),
        PropertyDefinition(
            "runtime",
            ENUM,
            default="nodejs18.x",
            description="Runtime environment for the function",
            options=("nodejs18.x", "nodejs16.x", "python3.9", "python3.8", "java11", "go1.x", "ruby2.7"),
        ),
        PropertyDefinition("handler", STRING, default="index.handler", description="Function entrypoint"),
        PropertyDefinition("role", STRING, required=True, description="ARN of the execution role"),
        PropertyDefinition("memory_size", NUMBER, default="128", description="Amount of memory in MB"),
        PropertyDefinition("timeout", NUMBER, default="3", description="Timeout in seconds"),
        PropertyDefinition("publish", BOOLEAN, default="false", description="Publish creation as new version"),
    ],
    ResourceType.EC2_INSTANCE: [
        PropertyDefinition("instance_type", STRING, default="t2.micro", required=True, description="Instance type"),
        PropertyDefinition("ami", STRING, required=True, description="AMI to use for the instance"),
        PropertyDefinition("key_name", STRING, description="Key name of the key pair"),
        PropertyDefinition("subnet_id", STRING, description="VPC subnet ID to launch in"),
        PropertyDefinition("monitoring", BOOLEAN, default="false", description="Enable detailed monitoring"),
    ],
    ResourceType.DYNAMODB_TABLE: [
        PropertyDefinition("name", STRING, required=True, description="Name of the table"),
        PropertyDefinition(
            "billing_mode",
            ENUM,
            default="PROVISIONED",
            description="Controls how you are charged for read and write throughput",
            options=("PROVISIONED", "PAY_PER_REQUEST"),
        ),
        PropertyDefinition("hash_key", STRING, required=True, description="Partition key attribute"),
        PropertyDefinition("read_capacity", NUMBER, default="5", description="Read capacity units"),
        PropertyDefinition("write_capacity", NUMBER, default="5", description="Write capacity units"),
    ],
    ResourceType.RDS_INSTANCE: [
        PropertyDefinition("allocated_storage", NUMBER, default="10", description="Allocated storage in GiB"),
        PropertyDefinition(
            "engine",
            ENUM,
            default="mysql",
            required=True,
            description="Database engine",
            options=("mysql", "postgres", "mariadb", "oracle-ee", "sqlserver-ee"),
        ),
        PropertyDefinition("instance_class", STRING, default="db.t3.micro", required=True, description="Instance type"),
        PropertyDefinition("db_name", STRING, description="Name of the database to create"),
        PropertyDefinition("username", STRING, description="Username for the master user"),
        PropertyDefinition("password", STRING, description="Password for the master user"),
        PropertyDefinition("skip_final_snapshot", BOOLEAN, default="true", description="Skip the final snapshot"),
    ],
    ResourceType.S3_BUCKET: [
        PropertyDefinition("bucket", STRING, description="Name of the bucket"),
        PropertyDefinition(
            "acl",
            ENUM,
            default="private",
            description="Canned ACL to apply",
            options=("private", "public-read", "public-read-write", "authenticated-read"),
        ),
        PropertyDefinition("force_destroy", BOOLEAN, default="false", description="Delete all objects on destroy"),
        PropertyDefinition("policy", JSON, description="Bucket policy JSON document"),
    ],
    ResourceType.VPC: [
        PropertyDefinition("cidr_block", STRING, default="10.0.0.0/16", required=True, description="CIDR block"),
        PropertyDefinition("enable_dns_support", BOOLEAN, default="true", description="Enable DNS support"),
        PropertyDefinition("enable_dns_hostnames", BOOLEAN, default="false", description="Enable DNS hostnames"),
    ],
    ResourceType.SUBNET: [
        PropertyDefinition("vpc_id", STRING, required=True, description="VPC ID"),
        PropertyDefinition("cidr_block", STRING, description="IPv4 CIDR block for the subnet"),
        PropertyDefinition("availability_zone", STRING, description="Availability zone"),
    ],
    ResourceType.SECURITY_GROUP: [
        PropertyDefinition("name", STRING, description="Name of the security group"),
        PropertyDefinition("description", STRING, default="Managed by Terraform", description="Group description"),
        PropertyDefinition("vpc_id", STRING, description="VPC ID"),
    ],
    ResourceType.IAM_ROLE: [
        PropertyDefinition("name", STRING, description="Name of the role"),
        PropertyDefinition("description", STRING, description="Description of the role"),
        PropertyDefinition("assume_role_policy", JSON, required=True, description="Trust relationship policy document"),
    ],
    ResourceType.IAM_POLICY: [
        PropertyDefinition("name", STRING, description="Name of the policy"),
        PropertyDefinition("policy", JSON, required=True, description="Policy document"),
    ],
    ResourceType.KMS_KEY: [
        PropertyDefinition("description", STRING, description="Description of the key"),
        PropertyDefinition("deletion_window_in_days", NUMBER, default="10", description="Waiting period in days"),
        PropertyDefinition("enable_key_rotation", BOOLEAN, default="false", description="Enable key rotation"),
    ],
    ResourceType.API_GATEWAY: [
        PropertyDefinition("name", STRING, required=True, description="Name of the REST API"),
        PropertyDefinition("description", STRING, description="Description of the REST API"),
        PropertyDefinition(
            "endpoint_configuration",
            ENUM,
            default="EDGE",
            description="Endpoint type",
            options=("EDGE", "REGIONAL", "PRIVATE"),
        ),
        PropertyDefinition("policy", JSON, description="Resource policy document"),
    ],
    ResourceType.API_GATEWAY_RESOURCE: [
        PropertyDefinition("rest_api_id", STRING, required=True, description="ID of the associated REST API"),
        PropertyDefinition("parent_id", STRING, required=True, description="ID of the parent API resource"),
        PropertyDefinition("path_part", STRING, required=True, description="Last path segment of this API resource"),
    ],
    ResourceType.SQS_QUEUE: [
        PropertyDefinition("name", STRING, description="Name of the queue"),
        PropertyDefinition("delay_seconds", NUMBER, default="0", description="Delivery delay in seconds"),
        PropertyDefinition("max_message_size", NUMBER, default="262144", description="Maximum message size in bytes"),
        PropertyDefinition(
            "message_retention_seconds", NUMBER, default="345600", description="Message retention in seconds"
        ),
    ],
    ResourceType.CLOUDWATCH_LOG_GROUP: [
        PropertyDefinition("name", STRING, description="Name of the log group"),
        PropertyDefinition("retention_in_days", NUMBER, default="30", description="Days to retain log events"),
    ],
    ResourceType.CLOUDWATCH_ALARM: [
        PropertyDefinition("alarm_name", STRING, required=True, description="Descriptive name for the alarm"),
        PropertyDefinition(
            "comparison_operator",
            ENUM,
            default="GreaterThanOrEqualToThreshold",
            required=True,
            description="Arithmetic operation used when comparing statistic and threshold",
            options=(
                "GreaterThanOrEqualToThreshold",
                "GreaterThanThreshold",
                "LessThanThreshold",
                "LessThanOrEqualToThreshold",
            ),
        ),
        PropertyDefinition("evaluation_periods", NUMBER, default="1", required=True, description="Evaluation periods"),
        PropertyDefinition("threshold", NUMBER, required=True, description="Value to compare against"),
    ],
}
