#!/usr/bin/env python3
"""Print ResourceType enum members for every resource in a provider schema.

Usage:
  terraform providers schema -json > schema.json
  python generate_resource_types.py schema.json
  python generate_resource_types.py infradraw/schemas/5_92_0/schema.json --only-missing
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Dict, Iterable, List

from infradraw.constants import PROVIDER_SOURCE
from infradraw.resource_types import by_canonical_name, ResourceType

# Words kept upper case in display names.
ACRONYMS = {
    "acm", "alb", "api", "arn", "db", "dns", "ebs", "ec2", "ecr", "ecs", "efs", "eip", "eks",
    "elb", "iam", "kms", "lb", "mq", "nat", "rds", "s3", "sns", "sqs", "ssm", "vpc", "vpn", "waf",
}


def display_name(canonical_name: str) -> str:
    """``aws_iam_role_policy`` -> ``IAM Role Policy``."""
    words = canonical_name.split("_")
    if words and words[0] == "aws":
        words = words[1:]
    return " ".join(word.upper() if word in ACRONYMS else word.capitalize() for word in words)


def member_name(canonical_name: str) -> str:
    """``aws_iam_role_policy`` -> ``IAM_ROLE_POLICY``."""
    name = canonical_name[4:] if canonical_name.startswith("aws_") else canonical_name
    return name.upper()


def resource_names(document: Dict, provider: str = PROVIDER_SOURCE) -> List[str]:
    schemas = document["provider_schemas"][provider]["resource_schemas"]
    return sorted(schemas)


def enum_lines(names: Iterable[str], only_missing: bool = False) -> List[str]:
    lines = []
    for name in names:
        if only_missing and by_canonical_name(name) is not ResourceType.UNKNOWN:
            continue
        lines.append(f'    {member_name(name)} = ("{display_name(name)}", "{name}")')
    return lines


def main() -> int:
    parser = argparse.ArgumentParser(description="Generate ResourceType members from a provider schema.")
    parser.add_argument("schema", type=Path, help="Path to a provider schema JSON document.")
    parser.add_argument("--provider", default=PROVIDER_SOURCE, help=f"Provider source (default: {PROVIDER_SOURCE}).")
    parser.add_argument(
        "--only-missing",
        action="store_true",
        help="Only print resources not already in ResourceType.",
    )
    args = parser.parse_args()

    try:
        document = json.loads(args.schema.read_text(encoding="utf-8"))
        names = resource_names(document, args.provider)
    except (OSError, ValueError, KeyError, TypeError) as exc:
        print(f"Could not read resource schemas from {args.schema}: {exc}", file=sys.stderr)
        return 1

    lines = enum_lines(names, only_missing=args.only_missing)
    for line in lines:
        print(line)
    print(f"# {len(lines)} of {len(names)} resource types", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
