"""
Command line entry point: restart every database deployment in a cluster.

Usage:
    db-redeploy [--context NAME] [--kubeconfig PATH] [--output json]

Examples:
    # Restart deployments matching "database" using the current context
    db-redeploy

    # Explicit context, only count pods owned by each deployment
    db-redeploy --context prod-eu --verify-ownership
"""
import argparse
import json
import logging
import logging.config
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db_redeploy.config import Settings
from db_redeploy.kube_client import KubeClient
from db_redeploy.kube_types import RedeployReport
from db_redeploy.logging_config import get_logging_config
from db_redeploy.redeploy import RedeployError, redeploy_database_deployments

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-redeploy",
        description="Trigger a rolling restart of database deployments across all namespaces",
    )
    parser.add_argument("--kubeconfig", help="Path to the kubeconfig file (default: ~/.kube/config)")
    parser.add_argument("--context", help="Kubeconfig context to use (default: current-context)")
    parser.add_argument(
        "--in-cluster",
        action="store_true",
        default=None,
        help="Use the in-cluster service account instead of a kubeconfig",
    )
    parser.add_argument("--name-filter", help="Deployment name substring to match (default: database)")
    parser.add_argument("--annotation", help="Pod template annotation to set (default: restarted_at)")
    parser.add_argument(
        "--verify-ownership",
        action="store_true",
        default=None,
        help="Only report pods whose ReplicaSet is owned by the deployment",
    )
    parser.add_argument("--workers", type=int, help="Deployments processed concurrently (default: 1)")
    parser.add_argument("--log-level", choices=["debug", "info", "warning", "error"], help="Log level")
    parser.add_argument("--output", choices=["text", "json"], default="text", help="Report format")
    return parser


def _overrides(args: argparse.Namespace) -> Dict[str, Any]:
    mapping = {
        "KUBECONFIG": args.kubeconfig,
        "K8S_CONTEXT": args.context,
        "K8S_IN_CLUSTER": args.in_cluster,
        "NAME_FILTER": args.name_filter,
        "RESTART_ANNOTATION": args.annotation,
        "VERIFY_OWNERSHIP": args.verify_ownership,
        "MAX_WORKERS": args.workers,
        "LOG_LEVEL": args.log_level,
    }
    return {k: v for k, v in mapping.items() if v is not None}


def report_text(report: RedeployReport) -> None:
    """Log every patched deployment and the pods it had at patch time."""
    for result in report.results.values():
        logger.info(
            f"successfully patched deployment {result.namespace}/{result.deployment_name} "
            f"(restarted_at={result.restarted_at})"
        )
        for pod in result.pods:
            logger.info(f"successfully redeployed pod {pod.namespace}/{pod.pod_name} (restarted_on={pod.restarted_at})")
    logger.info(f"🚀 Redeployed {len(report)} deployments, {len(report.pods)} pods")


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = Settings(**_overrides(args))
    except ValidationError as e:
        print(f"Error: invalid configuration: {e}", file=sys.stderr)
        return 1

    stream = "ext://sys.stderr" if args.output == "json" else "ext://sys.stdout"
    logging.config.dictConfig(get_logging_config(settings.LOG_LEVEL, stream=stream, app_name=settings.APP_NAME))
    logger.info(f"{settings.APP_NAME} restarting deployments matching '{settings.NAME_FILTER}'")

    try:
        client = KubeClient(
            in_cluster=settings.K8S_IN_CLUSTER,
            context=settings.K8S_CONTEXT,
            config_file=settings.KUBECONFIG,
        )
    except Exception:
        # KubeClient has already logged the failure
        return 1

    try:
        report = redeploy_database_deployments(
            client,
            name_filter=settings.NAME_FILTER,
            annotation=settings.RESTART_ANNOTATION,
            verify_ownership=settings.VERIFY_OWNERSHIP,
            max_workers=settings.MAX_WORKERS,
        )
    except RedeployError as e:
        logger.error(f"❌ failed to redeploy pods: {e}")
        return 1

    if args.output == "json":
        print(json.dumps(report.to_dict(), indent=2))
    else:
        report_text(report)
    return 0


if __name__ == "__main__":
    sys.exit(main())
