"""
Type definitions for Kubernetes objects and redeploy outcomes.
"""
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional


@dataclass(frozen=True)
class OwnerReference:
    """Owner reference attached to a Kubernetes object."""
    kind: str
    name: str
    uid: Optional[str] = None


@dataclass(frozen=True)
class LabelSelectorRequirement:
    """Set-based selector requirement (In, NotIn, Exists, DoesNotExist)."""
    key: str
    operator: str
    values: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class LabelSelector:
    """Structured label selector of a Deployment."""
    match_labels: Dict[str, str] = field(default_factory=dict)
    match_expressions: List[LabelSelectorRequirement] = field(default_factory=list)


@dataclass
class Pod:
    """Kubernetes Pod representation."""
    name: str
    namespace: str
    labels: Dict[str, str]
    owner_references: List[OwnerReference] = field(default_factory=list)


@dataclass
class Deployment:
    """Kubernetes Deployment representation."""
    name: str
    namespace: str
    selector: Optional[LabelSelector] = None
    uid: Optional[str] = None


@dataclass
class ReplicaSet:
    """Kubernetes ReplicaSet representation."""
    name: str
    namespace: str
    owner_references: List[OwnerReference] = field(default_factory=list)


@dataclass(frozen=True)
class MatchedDeployment:
    """Deployment selected for redeploy, with its resolved pod selector."""
    name: str
    namespace: str
    pod_selector: str
    uid: Optional[str] = None

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class PodOutcome:
    """A pod observed when its deployment was patched."""
    pod_name: str
    namespace: str
    restarted_at: str  # RFC3339, shared by every pod of one deployment


@dataclass
class RedeployResult:
    """Outcome of redeploying a single deployment."""
    deployment_name: str
    namespace: str
    restarted_at: str
    pods: List[PodOutcome] = field(default_factory=list)

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.deployment_name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployment": self.deployment_name,
            "namespace": self.namespace,
            "restarted_at": self.restarted_at,
            "pods": [
                {"name": p.pod_name, "namespace": p.namespace, "restarted_on": p.restarted_at}
                for p in self.pods
            ],
        }


@dataclass
class RedeployReport:
    """Redeploy results grouped by deployment key (namespace/name)."""
    results: Dict[str, RedeployResult] = field(default_factory=dict)

    def add(self, result: RedeployResult) -> None:
        self.results[result.key] = result

    @property
    def deployment_names(self) -> List[str]:
        return [r.deployment_name for r in self.results.values()]

    @property
    def pods(self) -> List[PodOutcome]:
        """All pod outcomes, in processing order."""
        return [p for r in self.results.values() for p in r.pods]

    def __len__(self) -> int:
        return len(self.results)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "deployments": [r.to_dict() for r in self.results.values()],
            "total_deployments": len(self.results),
            "total_pods": len(self.pods),
        }
