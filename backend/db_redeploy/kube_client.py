"""
Kubernetes client for redeploy operations.
"""
import logging
from typing import List, Optional, Dict, Any, Protocol
from kubernetes import client, config
from kubernetes.client.rest import ApiException
from db_redeploy.kube_types import (
    Deployment,
    LabelSelector,
    LabelSelectorRequirement,
    OwnerReference,
    Pod,
    ReplicaSet,
)

logger = logging.getLogger(__name__)


class ClusterAPI(Protocol):
    """Cluster operations the redeploy logic depends on."""

    def list_deployments(self) -> List[Deployment]:
        ...

    def list_pods(self, label_selector: str) -> List[Pod]:
        ...

    def patch_deployment(self, namespace: str, name: str, body: Dict[str, Any]) -> None:
        ...

    def get_replica_set(self, namespace: str, name: str) -> ReplicaSet:
        ...


def _owner_references(metadata) -> List[OwnerReference]:
    refs = getattr(metadata, "owner_references", None) or []
    return [OwnerReference(kind=r.kind, name=r.name, uid=getattr(r, "uid", None)) for r in refs]


def _label_selector(selector) -> Optional[LabelSelector]:
    if selector is None:
        return None
    expressions = [
        LabelSelectorRequirement(key=e.key, operator=e.operator, values=list(e.values or []))
        for e in (selector.match_expressions or [])
    ]
    return LabelSelector(
        match_labels=dict(selector.match_labels or {}),
        match_expressions=expressions,
    )


class KubeClient:
    """Kubernetes client for redeploy operations."""

    def __init__(
        self,
        in_cluster: bool = False,
        context: str | None = None,
        config_file: str | None = None,
    ):
        """
        Initialize Kubernetes client.

        Args:
            in_cluster: Whether running inside cluster (default: False)
            context: Kubernetes context name (optional, defaults to current-context)
            config_file: Path to kubeconfig (optional, defaults to ~/.kube/config)
        """
        self.in_cluster = in_cluster
        self.context = context

        try:
            if in_cluster:
                config.load_incluster_config()
            else:
                if context:
                    contexts, _ = config.list_kube_config_contexts(config_file=config_file)
                    names = {c["name"] for c in contexts or []}
                    if context not in names:
                        raise ValueError(f"kube context '{context}' does not exist in the kubeconfig")
                    config.load_kube_config(config_file=config_file, context=context)
                else:
                    config.load_kube_config(config_file=config_file)

            self.v1 = client.CoreV1Api()
            self.apps_v1 = client.AppsV1Api()
            logger.info(f"✅ Kubernetes client initialized (context: {context or 'current'})")

        except Exception as e:
            logger.error(f"❌ Failed to initialize Kubernetes client: {e}")
            raise

    def list_deployments(self) -> List[Deployment]:
        """
        Get deployments in every namespace.

        Returns:
            List of Deployment objects
        """
        try:
            deployments = self.apps_v1.list_deployment_for_all_namespaces()

            deployment_list = []
            for d in deployments.items:
                deployment_list.append(Deployment(
                    name=d.metadata.name,
                    namespace=d.metadata.namespace,
                    selector=_label_selector(d.spec.selector) if d.spec else None,
                    uid=d.metadata.uid,
                ))

            logger.info(f"Retrieved {len(deployment_list)} deployments across all namespaces")
            return deployment_list

        except ApiException as e:
            logger.error(f"Failed to list deployments: {e}")
            raise

    def list_pods(self, label_selector: str) -> List[Pod]:
        """
        Get pods in every namespace matching a label selector.

        Args:
            label_selector: Label selector query string

        Returns:
            List of Pod objects
        """
        try:
            pods = self.v1.list_pod_for_all_namespaces(label_selector=label_selector)

            pod_list = []
            for pod in pods.items:
                pod_list.append(Pod(
                    name=pod.metadata.name,
                    namespace=pod.metadata.namespace,
                    labels=pod.metadata.labels or {},
                    owner_references=_owner_references(pod.metadata),
                ))

            logger.debug(f"Retrieved {len(pod_list)} pods for selector {label_selector}")
            return pod_list

        except ApiException as e:
            logger.error(f"Failed to get pods for selector {label_selector}: {e}")
            raise

    def patch_deployment(self, namespace: str, name: str, body: Dict[str, Any]) -> None:
        """
        Apply a strategic merge patch to a deployment.

        Args:
            namespace: Namespace of the deployment
            name: Deployment name
            body: Patch document
        """
        try:
            self.apps_v1.patch_namespaced_deployment(
                name=name,
                namespace=namespace,
                body=body
            )
            logger.info(f"✅ Patched deployment {namespace}/{name}")

        except ApiException as e:
            logger.error(f"Failed to patch deployment {namespace}/{name}: {e}")
            raise

    def get_replica_set(self, namespace: str, name: str) -> ReplicaSet:
        """
        Get a replica set.

        Args:
            namespace: Namespace of the replica set
            name: ReplicaSet name

        Returns:
            ReplicaSet object
        """
        try:
            rs = self.apps_v1.read_namespaced_replica_set(name=name, namespace=namespace)
            return ReplicaSet(
                name=rs.metadata.name,
                namespace=rs.metadata.namespace,
                owner_references=_owner_references(rs.metadata),
            )

        except ApiException as e:
            logger.error(f"Failed to get replica set {namespace}/{name}: {e}")
            raise
