"""Static service → dashboard template catalog."""

from __future__ import annotations

from provisioner.dashboards.types import DashboardTemplate


def _t(filename: str, title: str, namespace: str, dimension_key: str, variable_name: str) -> DashboardTemplate:
    return DashboardTemplate(
        filename=filename,
        title=title,
        namespace=namespace,
        dimension_key=dimension_key,
        variable_name=variable_name,
    )


# Keys match the service names used in alert rules; "aurora" is RDS split out.
DASHBOARD_SERVICE_MAP: dict[str, DashboardTemplate] = {
    "alb": _t("alb-cloudwatch-dashboard.json", "ALB Dashboard",
              "AWS/ApplicationELB", "LoadBalancer", "load_balancer"),
    # NLB reuses the ALB layout
    "nlb": _t("alb-cloudwatch-dashboard.json", "NLB Dashboard",
              "AWS/NetworkELB", "LoadBalancer", "load_balancer"),
    "rds": _t("rds-cloudwatch-dashboard.json", "RDS Dashboard",
              "AWS/RDS", "DBInstanceIdentifier", "db_instance"),
    "aurora": _t("aurora-cloudwatch-dashboard.json", "Aurora Dashboard",
                 "AWS/RDS", "DBClusterIdentifier", "db_cluster"),
    "lambda": _t("lambda-cloudwatch-dashboard.json", "Lambda Dashboard",
                 "AWS/Lambda", "FunctionName", "function_name"),
    "ec2": _t("ec2-cloudwatch-dashboard.json", "EC2 Dashboard",
              "AWS/EC2", "InstanceId", "instance_id"),
    "ecs": _t("ecs-cloudwatch-dashboard.json", "ECS Dashboard",
              "AWS/ECS", "ClusterName", "cluster_name"),
    "eks": _t("eks-cloudwatch-dashboard.json", "EKS Dashboard",
              "AWS/EKS", "ClusterName", "cluster_name"),
    "elasticache": _t("elasticache-cloudwatch-dashboard.json", "ElastiCache Dashboard",
                      "AWS/ElastiCache", "CacheClusterId", "cache_cluster"),
    "apigateway": _t("apigateway-cloudwatch-dashboard.json", "API Gateway Dashboard",
                     "AWS/ApiGateway", "ApiName", "api_name"),
    "apigateway-websocket": _t("apigateway-websocket-cloudwatch-dashboard.json",
                               "API Gateway WebSocket Dashboard",
                               "AWS/ApiGateway", "ApiId", "api_id"),
    "s3": _t("s3-cloudwatch-dashboard.json", "S3 Dashboard",
             "AWS/S3", "BucketName", "bucket_name"),
    "sqs": _t("sqs-cloudwatch-dashboard.json", "SQS Dashboard",
              "AWS/SQS", "QueueName", "queue_name"),
    "sns": _t("sns-cloudwatch-dashboard.json", "SNS Dashboard",
              "AWS/SNS", "TopicName", "topic_name"),
    "dynamodb": _t("dynamodb-cloudwatch-dashboard.json", "DynamoDB Dashboard",
                   "AWS/DynamoDB", "TableName", "table_name"),
    "cloudfront": _t("cloudfront-cloudwatch-dashboard.json", "CloudFront Dashboard",
                     "AWS/CloudFront", "DistributionId", "distribution_id"),
    "efs": _t("efs-cloudwatch-dashboard.json", "EFS Dashboard",
              "AWS/EFS", "FileSystemId", "file_system_id"),
    "natgateway": _t("natgateway-cloudwatch-dashboard.json", "NAT Gateway Dashboard",
                     "AWS/NATGateway", "NatGatewayId", "nat_gateway_id"),
    "redshift": _t("redshift-cloudwatch-dashboard.json", "Redshift Dashboard",
                   "AWS/Redshift", "ClusterIdentifier", "cluster_id"),
}


def get_dashboard_template(service: str) -> DashboardTemplate | None:
    """Template for *service* (case-insensitive), or None if there is none."""
    return DASHBOARD_SERVICE_MAP.get(service.lower())


def all_dashboard_templates() -> list[tuple[str, DashboardTemplate]]:
    return list(DASHBOARD_SERVICE_MAP.items())
