"""
Rolling restart of database deployments.

Deployments whose name contains the filter substring are discovered across all
namespaces, their pod template is patched with a fresh ``restarted_at``
annotation so the deployment controller rolls out new pods, and the pods
observed at patch time are reported per deployment.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, List, Optional

from db_redeploy.kube_client import ClusterAPI
from db_redeploy.kube_types import (
    MatchedDeployment,
    Pod,
    PodOutcome,
    RedeployReport,
    RedeployResult,
)
from db_redeploy.selectors import SelectorError, format_label_selector

logger = logging.getLogger(__name__)

DEFAULT_NAME_FILTER = "database"
DEFAULT_ANNOTATION = "restarted_at"

Clock = Callable[[], datetime]


class RedeployError(Exception):
    """Base error for a failed redeploy run."""

    def __init__(self, message: str, deployment: Optional[str] = None, pod: Optional[str] = None):
        super().__init__(message)
        self.deployment = deployment
        self.pod = pod


class DiscoveryFailure(RedeployError):
    """Deployments could not be listed or resolved; nothing was patched."""


class PodResolutionFailure(RedeployError):
    """Pods of a matched deployment could not be resolved."""


class PatchFailure(RedeployError):
    """A deployment patch call failed."""


_clock_lock = threading.Lock()
_last_now: Optional[datetime] = None


def _utc_now() -> datetime:
    """Current UTC time, strictly increasing within the process."""
    global _last_now
    with _clock_lock:
        now = datetime.now(timezone.utc)
        if _last_now is not None and now <= _last_now:
            now = _last_now + timedelta(microseconds=1)
        _last_now = now
        return now


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an RFC3339 UTC timestamp with microseconds."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds").replace("+00:00", "Z")


def build_restart_patch(timestamp: str, annotation: str = DEFAULT_ANNOTATION) -> Dict[str, Any]:
    """Merge patch that sets only the restart annotation on the pod template."""
    return {
        "spec": {
            "template": {
                "metadata": {
                    "annotations": {
                        annotation: timestamp
                    }
                }
            }
        }
    }


def discover_deployments(client: ClusterAPI, name_filter: str = DEFAULT_NAME_FILTER) -> List[MatchedDeployment]:
    """
    Find deployments in every namespace whose name contains ``name_filter``.

    The match is a case-sensitive substring test. Each match carries its
    namespace and its selector rendered as a label selector query string.

    Raises:
        DiscoveryFailure: If listing deployments fails or a matched
            deployment's selector cannot be resolved
    """
    try:
        deployments = client.list_deployments()
    except Exception as e:
        raise DiscoveryFailure(f"failed to list deployments: {e}") from e

    matched: List[MatchedDeployment] = []
    for d in deployments:
        if name_filter not in d.name:
            continue
        try:
            selector = format_label_selector(d.selector)
        except SelectorError as e:
            raise DiscoveryFailure(
                f"failed to resolve selector of deployment {d.namespace}/{d.name}: {e}",
                deployment=d.name,
            ) from e
        matched.append(MatchedDeployment(name=d.name, namespace=d.namespace, pod_selector=selector, uid=d.uid))

    logger.info(f"Matched {len(matched)} of {len(deployments)} deployments on '{name_filter}'")
    return matched


def _owned_by(client: ClusterAPI, pod: Pod, deployment: MatchedDeployment, cache: Dict[str, bool]) -> bool:
    """Check that the pod's ReplicaSet is owned by the deployment."""
    if pod.namespace != deployment.namespace:
        return False

    for ref in pod.owner_references:
        if ref.kind != "ReplicaSet":
            continue
        if ref.name not in cache:
            try:
                rs = client.get_replica_set(pod.namespace, ref.name)
            except Exception as e:
                raise PodResolutionFailure(
                    f"failed to get replica set {ref.name} of pod {pod.name} "
                    f"for deployment {deployment.name}: {e}",
                    deployment=deployment.name,
                    pod=pod.name,
                ) from e
            cache[ref.name] = any(
                owner.kind == "Deployment"
                and (owner.uid == deployment.uid if deployment.uid and owner.uid else owner.name == deployment.name)
                for owner in rs.owner_references
            )
        if cache[ref.name]:
            return True
    return False


def redeploy_deployment(
    client: ClusterAPI,
    deployment: MatchedDeployment,
    clock: Optional[Clock] = None,
    annotation: str = DEFAULT_ANNOTATION,
    verify_ownership: bool = False,
) -> RedeployResult:
    """
    Restart one deployment and report the pods it had at patch time.

    Pods are found by label selector across all namespaces. One timestamp is
    captured and the patch is applied once, in the deployment's own namespace.

    Raises:
        PodResolutionFailure: If the pods of the deployment cannot be listed
        PatchFailure: If the patch call fails
    """
    try:
        pods = client.list_pods(deployment.pod_selector)
    except Exception as e:
        raise PodResolutionFailure(
            f"failed to list pods for deployment {deployment.name}: {e}",
            deployment=deployment.name,
        ) from e

    if verify_ownership:
        cache: Dict[str, bool] = {}
        owned = [p for p in pods if _owned_by(client, p, deployment, cache)]
        if len(owned) != len(pods):
            logger.warning(
                f"Ignoring {len(pods) - len(owned)} pods matching {deployment.pod_selector} "
                f"not owned by {deployment.key}"
            )
        pods = owned

    timestamp = format_timestamp((clock or _utc_now)())
    body = build_restart_patch(timestamp, annotation)

    try:
        client.patch_deployment(deployment.namespace, deployment.name, body)
    except Exception as e:
        pod_names = ", ".join(p.name for p in pods) or "<none>"
        raise PatchFailure(
            f"failed to patch deployment {deployment.name} for pods {pod_names}: {e}",
            deployment=deployment.name,
            pod=pods[0].name if pods else None,
        ) from e

    result = RedeployResult(deployment_name=deployment.name, namespace=deployment.namespace, restarted_at=timestamp)
    for pod in pods:
        result.pods.append(PodOutcome(pod_name=pod.name, namespace=pod.namespace, restarted_at=timestamp))
    return result


def redeploy_database_deployments(
    client: ClusterAPI,
    name_filter: str = DEFAULT_NAME_FILTER,
    annotation: str = DEFAULT_ANNOTATION,
    verify_ownership: bool = False,
    max_workers: int = 1,
    clock: Optional[Clock] = None,
) -> RedeployReport:
    """
    Discover matching deployments, restart each one and aggregate the results.

    With ``max_workers`` of 1 deployments are processed in discovery order and
    the first failure aborts the run. With more workers every deployment is
    attempted and the first failure in discovery order is raised once all of
    them finish. Patches already applied are never undone.

    Raises:
        RedeployError: On any discovery, pod resolution or patch failure
    """
    if max_workers < 1:
        raise ValueError("max_workers must be at least 1")

    matched = discover_deployments(client, name_filter)
    report = RedeployReport()

    def run(deployment: MatchedDeployment) -> RedeployResult:
        return redeploy_deployment(
            client,
            deployment,
            clock=clock,
            annotation=annotation,
            verify_ownership=verify_ownership,
        )

    if max_workers == 1 or len(matched) <= 1:
        for deployment in matched:
            report.add(run(deployment))
        return report

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = [pool.submit(run, d) for d in matched]

    failures = [f.exception() for f in futures if f.exception() is not None]
    if failures:
        if len(failures) > 1:
            logger.error(f"{len(failures)} of {len(matched)} deployments failed to redeploy")
        raise failures[0]

    for future in futures:
        report.add(future.result())
    return report
