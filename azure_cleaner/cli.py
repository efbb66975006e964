# Unless explicitly stated otherwise all files in this repository are licensed under the Apache-2 License.

# This product includes software developed at Datadog (https://www.datadoghq.com/) Copyright 2025 Datadog, Inc.

# usage: azure-cleaner [-h] -p PULL_REQUEST_ID [-s SUBSCRIPTION] [--remote REMOTE_URL] [--project PROJECT_URL]
#                      [-t TOKEN] [-d]
#
# Cleanup tool for Azure resources based on Azure DevOps PRs

# stdlib
import argparse
from asyncio import run
from collections.abc import Sequence

# project
from azure_cleaner.cleaner import cleaner_main
from azure_cleaner.project_url import AzdoProjectUrl, InvalidProjectUrlError


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="azure-cleaner", description="Cleanup tool for Azure resources based on Azure DevOps PRs"
    )
    parser.add_argument(
        "-p",
        "--pr",
        "--pull-request",
        "--pull-request-id",
        dest="pull_request_ids",
        type=int,
        action="append",
        required=True,
        help="Identifier of the pull request. Can be repeated",
    )
    parser.add_argument(
        "-s",
        "--subscription",
        dest="subscriptions",
        type=str,
        action="append",
        help="Name or ID of subscriptions allowed. If none are provided, all subscriptions are checked",
    )
    parser.add_argument("--remote", "--remote-url", dest="remote_url", help="Remote URL of the Azure DevOps repository")
    parser.add_argument(
        "--project", "--project-url", dest="project_url", help="Project URL. Overrides the remote URL when provided"
    )
    parser.add_argument(
        "-t",
        "--token",
        help="Azure DevOps token for the project or remote URL, used instead of the configured projects",
    )
    parser.add_argument(
        "-d",
        "--dry-run",
        action="store_true",
        help="Run in dry-run mode. Matching resources are logged, nothing is deleted",
    )
    args = parser.parse_args(argv)

    args.projects = None
    if args.token:
        raw_url = args.project_url or args.remote_url
        if not raw_url:
            parser.error("--token requires --project or --remote")
        try:
            args.projects = {AzdoProjectUrl.parse(raw_url): args.token}
        except InvalidProjectUrlError as e:
            parser.error(str(e))

    return args


def main(argv: Sequence[str] | None = None) -> None:
    args = parse_args(argv)
    run(
        cleaner_main(
            args.pull_request_ids,
            remote_url=args.remote_url,
            project_url=args.project_url,
            subscriptions=args.subscriptions,
            projects=args.projects,
            dry_run=args.dry_run,
        )
    )
