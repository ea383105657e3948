"""Closed vocabulary of the AWS resource kinds infradraw understands.

Members pair a human display name with the provider's canonical resource
type string.  The member list is maintained with
``generate_resource_types.py`` from a provider schema document.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Union

from .types import BlockCategory


class ResourceType(Enum):
    """Supported resource kinds."""

    # Compute
    LAMBDA_FUNCTION = ("Lambda Function", "aws_lambda_function")
    LAMBDA_PERMISSION = ("Lambda Permission", "aws_lambda_permission")
    LAMBDA_LAYER_VERSION = ("Lambda Layer Version", "aws_lambda_layer_version")
    EC2_INSTANCE = ("EC2 Instance", "aws_instance")
    LAUNCH_TEMPLATE = ("Launch Template", "aws_launch_template")
    AUTOSCALING_GROUP = ("Auto Scaling Group", "aws_autoscaling_group")
    ECS_CLUSTER = ("ECS Cluster", "aws_ecs_cluster")
    ECS_SERVICE = ("ECS Service", "aws_ecs_service")
    ECS_TASK_DEFINITION = ("ECS Task Definition", "aws_ecs_task_definition")
    EKS_CLUSTER = ("EKS Cluster", "aws_eks_cluster")

    # Database
    DYNAMODB_TABLE = ("DynamoDB Table", "aws_dynamodb_table")
    RDS_INSTANCE = ("RDS Instance", "aws_db_instance")
    RDS_CLUSTER = ("RDS Cluster", "aws_rds_cluster")
    DB_SUBNET_GROUP = ("DB Subnet Group", "aws_db_subnet_group")
    ELASTICACHE_CLUSTER = ("ElastiCache Cluster", "aws_elasticache_cluster")

    # Storage
    S3_BUCKET = ("S3 Bucket", "aws_s3_bucket")
    S3_BUCKET_POLICY = ("S3 Bucket Policy", "aws_s3_bucket_policy")
    S3_BUCKET_VERSIONING = ("S3 Bucket Versioning", "aws_s3_bucket_versioning")
    S3_OBJECT = ("S3 Object", "aws_s3_object")
    EFS_FILE_SYSTEM = ("EFS File System", "aws_efs_file_system")
    EBS_VOLUME = ("EBS Volume", "aws_ebs_volume")

    # Networking
    VPC = ("VPC", "aws_vpc")
    SUBNET = ("Subnet", "aws_subnet")
    ROUTE_TABLE = ("Route Table", "aws_route_table")
    ROUTE_TABLE_ASSOCIATION = ("Route Table Association", "aws_route_table_association")
    INTERNET_GATEWAY = ("Internet Gateway", "aws_internet_gateway")
    NAT_GATEWAY = ("NAT Gateway", "aws_nat_gateway")
    ELASTIC_IP = ("Elastic IP", "aws_eip")
    LOAD_BALANCER = ("Load Balancer", "aws_lb")
    LB_TARGET_GROUP = ("Target Group", "aws_lb_target_group")
    LB_LISTENER = ("Load Balancer Listener", "aws_lb_listener")
    ROUTE53_ZONE = ("Route 53 Zone", "aws_route53_zone")
    ROUTE53_RECORD = ("Route 53 Record", "aws_route53_record")
    CLOUDFRONT_DISTRIBUTION = ("CloudFront Distribution", "aws_cloudfront_distribution")

    # Security
    SECURITY_GROUP = ("Security Group", "aws_security_group")
    IAM_ROLE = ("IAM Role", "aws_iam_role")
    IAM_POLICY = ("IAM Policy", "aws_iam_policy")
    IAM_ROLE_POLICY = ("IAM Role Policy", "aws_iam_role_policy")
    IAM_ROLE_POLICY_ATTACHMENT = ("IAM Role Policy Attachment", "aws_iam_role_policy_attachment")
    KMS_KEY = ("KMS Key", "aws_kms_key")
    SECRETS_MANAGER_SECRET = ("Secrets Manager Secret", "aws_secretsmanager_secret")
    ACM_CERTIFICATE = ("ACM Certificate", "aws_acm_certificate")
    WAF_WEB_ACL = ("WAF Web ACL", "aws_wafv2_web_acl")

    # Integration
    API_GATEWAY = ("API Gateway", "aws_api_gateway_rest_api")
    API_GATEWAY_RESOURCE = ("API Gateway Resource", "aws_api_gateway_resource")
    API_GATEWAY_METHOD = ("API Gateway Method", "aws_api_gateway_method")
    API_GATEWAY_INTEGRATION = ("API Gateway Integration", "aws_api_gateway_integration")
    API_GATEWAY_DEPLOYMENT = ("API Gateway Deployment", "aws_api_gateway_deployment")
    API_GATEWAY_STAGE = ("API Gateway Stage", "aws_api_gateway_stage")
    API_GATEWAY_DOMAIN_NAME = ("API Gateway Domain Name", "aws_api_gateway_domain_name")
    API_GATEWAY_BASE_PATH_MAPPING = ("API Gateway Base Path Mapping", "aws_api_gateway_base_path_mapping")
    SQS_QUEUE = ("SQS Queue", "aws_sqs_queue")
    SNS_TOPIC = ("SNS Topic", "aws_sns_topic")
    SNS_TOPIC_SUBSCRIPTION = ("SNS Topic Subscription", "aws_sns_topic_subscription")
    EVENTBRIDGE_RULE = ("EventBridge Rule", "aws_cloudwatch_event_rule")
    EVENTBRIDGE_TARGET = ("EventBridge Target", "aws_cloudwatch_event_target")
    KINESIS_STREAM = ("Kinesis Stream", "aws_kinesis_stream")
    STEP_FUNCTION = ("Step Functions State Machine", "aws_sfn_state_machine")

    # Monitoring
    CLOUDWATCH_LOG_GROUP = ("CloudWatch Log Group", "aws_cloudwatch_log_group")
    CLOUDWATCH_ALARM = ("CloudWatch Alarm", "aws_cloudwatch_metric_alarm")
    CLOUDWATCH_DASHBOARD = ("CloudWatch Dashboard", "aws_cloudwatch_dashboard")
    XRAY_SAMPLING_RULE = ("X-Ray Sampling Rule", "aws_xray_sampling_rule")

    UNKNOWN = ("Unknown Resource", "unknown")

    def __init__(self, display_name: str, canonical_name: str):
        self.display_name = display_name
        self.canonical_name = canonical_name


UNKNOWN_CANONICAL_NAME = ResourceType.UNKNOWN.canonical_name

_BY_CANONICAL_NAME: Dict[str, ResourceType] = {
    member.canonical_name: member for member in ResourceType if member is not ResourceType.UNKNOWN
}
_BY_DISPLAY_NAME: Dict[str, ResourceType] = {
    member.display_name: member for member in ResourceType if member is not ResourceType.UNKNOWN
}


def by_canonical_name(name: str) -> ResourceType:
    """Resolve a provider type string such as ``aws_vpc``; never raises."""
    return _BY_CANONICAL_NAME.get(name, ResourceType.UNKNOWN)


def by_display_name(name: str) -> ResourceType:
    """Resolve a display name such as ``"S3 Bucket"``; never raises."""
    return _BY_DISPLAY_NAME.get(name, ResourceType.UNKNOWN)


def canonical_name_of(resource_type: ResourceType) -> str:
    return resource_type.canonical_name


def known_resource_types() -> List[ResourceType]:
    return [member for member in ResourceType if member is not ResourceType.UNKNOWN]


# Checked in order; the first category with a matching token wins.
CATEGORY_PATTERNS = (
    (BlockCategory.SECURITY, ("iam", "kms", "security_group", "secretsmanager", "acm", "wafv2", "waf")),
    (BlockCategory.DATABASE, ("dynamodb", "db", "rds", "elasticache", "redshift", "docdb")),
    (BlockCategory.STORAGE, ("s3", "efs", "ebs", "glacier", "backup")),
    (BlockCategory.INTEGRATION, ("api_gateway", "apigatewayv2", "sqs", "sns", "cloudwatch_event", "kinesis", "sfn", "mq")),
    (BlockCategory.MONITORING, ("cloudwatch", "xray", "log_group")),
    (
        BlockCategory.NETWORKING,
        (
            "vpc", "subnet", "route_table", "route53", "lb", "alb", "elb", "cloudfront",
            "nat_gateway", "internet_gateway", "eip", "network_interface", "vpn",
        ),
    ),
    (BlockCategory.COMPUTE, ("lambda", "instance", "ecs", "eks", "launch_template", "autoscaling", "batch")),
)


def categorize(resource_type: Union[ResourceType, str]) -> BlockCategory:
    """Classify a resource type (member or raw type string) into a category.

    Patterns match whole underscore-separated tokens, so ``db`` matches
    ``aws_db_instance`` but not ``aws_dbx``.  Anything unmatched is treated
    as an integration resource.
    """
    if isinstance(resource_type, ResourceType):
        if resource_type is ResourceType.UNKNOWN:
            return BlockCategory.INTEGRATION
        name = resource_type.canonical_name
    else:
        name = resource_type

    padded = f"_{name.lower()}_"
    for category, tokens in CATEGORY_PATTERNS:
        for token in tokens:
            if f"_{token}_" in padded:
                return category
    return BlockCategory.INTEGRATION
