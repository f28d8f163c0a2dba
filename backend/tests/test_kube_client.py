"""Tests for KubeClient."""

from types import SimpleNamespace
from unittest.mock import patch

import pytest
from kubernetes.client import ApiException

from db_redeploy.kube_client import KubeClient
from db_redeploy.kube_types import LabelSelector, LabelSelectorRequirement, OwnerReference


@pytest.fixture
def k8s():
    with patch("db_redeploy.kube_client.config") as mock_config, \
            patch("db_redeploy.kube_client.client") as mock_client:
        mock_config.list_kube_config_contexts.return_value = (
            [{"name": "prod"}, {"name": "staging"}],
            {"name": "staging"},
        )
        yield SimpleNamespace(
            config=mock_config,
            client=mock_client,
            core=mock_client.CoreV1Api.return_value,
            apps=mock_client.AppsV1Api.return_value,
        )


def owner(kind, name, uid=None):
    return SimpleNamespace(kind=kind, name=name, uid=uid)


class TestInit:
    def test_in_cluster(self, k8s):
        KubeClient(in_cluster=True)

        k8s.config.load_incluster_config.assert_called_once()
        k8s.config.load_kube_config.assert_not_called()

    def test_explicit_context(self, k8s):
        KubeClient(context="prod", config_file="/tmp/kubeconfig")

        k8s.config.list_kube_config_contexts.assert_called_once_with(config_file="/tmp/kubeconfig")
        k8s.config.load_kube_config.assert_called_once_with(config_file="/tmp/kubeconfig", context="prod")

    def test_unknown_context_rejected(self, k8s):
        with pytest.raises(ValueError, match="missing"):
            KubeClient(context="missing")

        k8s.config.load_kube_config.assert_not_called()

    def test_current_context(self, k8s):
        KubeClient()

        k8s.config.list_kube_config_contexts.assert_not_called()
        k8s.config.load_kube_config.assert_called_once_with(config_file=None)

    def test_config_load_failure_propagates(self, k8s):
        k8s.config.load_kube_config.side_effect = OSError("no kubeconfig")

        with pytest.raises(OSError):
            KubeClient()


class TestListDeployments:
    def test_converts_deployments(self, k8s):
        k8s.apps.list_deployment_for_all_namespaces.return_value = SimpleNamespace(items=[
            SimpleNamespace(
                metadata=SimpleNamespace(name="database-primary", namespace="data", labels={"app": "db"}, uid="u-1"),
                spec=SimpleNamespace(
                    replicas=3,
                    selector=SimpleNamespace(
                        match_labels={"app": "db"},
                        match_expressions=[SimpleNamespace(key="tier", operator="In", values=["primary"])],
                    ),
                ),
                status=SimpleNamespace(ready_replicas=None),
            ),
        ])

        deployments = KubeClient().list_deployments()

        assert len(deployments) == 1
        d = deployments[0]
        assert (d.name, d.namespace, d.uid) == ("database-primary", "data", "u-1")
        assert d.selector == LabelSelector(
            match_labels={"app": "db"},
            match_expressions=[LabelSelectorRequirement(key="tier", operator="In", values=["primary"])],
        )

    def test_api_error_propagates(self, k8s):
        k8s.apps.list_deployment_for_all_namespaces.side_effect = ApiException(status=403, reason="Forbidden")

        with pytest.raises(ApiException):
            KubeClient().list_deployments()


class TestListPods:
    def test_passes_selector_and_converts(self, k8s):
        k8s.core.list_pod_for_all_namespaces.return_value = SimpleNamespace(items=[
            SimpleNamespace(
                metadata=SimpleNamespace(
                    name="db-0",
                    namespace="data",
                    labels={"app": "db"},
                    creation_timestamp=None,
                    owner_references=[owner("ReplicaSet", "db-abc", "rs-1")],
                ),
                status=SimpleNamespace(phase="Running"),
            ),
        ])

        pods = KubeClient().list_pods("app=db")

        k8s.core.list_pod_for_all_namespaces.assert_called_once_with(label_selector="app=db")
        assert [(p.name, p.namespace, p.labels) for p in pods] == [("db-0", "data", {"app": "db"})]
        assert pods[0].owner_references == [OwnerReference(kind="ReplicaSet", name="db-abc", uid="rs-1")]

    def test_api_error_propagates(self, k8s):
        k8s.core.list_pod_for_all_namespaces.side_effect = ApiException(status=500, reason="Internal Server Error")

        with pytest.raises(ApiException):
            KubeClient().list_pods("app=db")


class TestPatchDeployment:
    def test_patches_namespaced_deployment(self, k8s):
        body = {"spec": {"template": {"metadata": {"annotations": {"restarted_at": "2024-05-01T12:00:00Z"}}}}}

        KubeClient().patch_deployment("data", "database-primary", body)

        k8s.apps.patch_namespaced_deployment.assert_called_once_with(
            name="database-primary", namespace="data", body=body
        )

    def test_api_error_propagates(self, k8s):
        k8s.apps.patch_namespaced_deployment.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(ApiException):
            KubeClient().patch_deployment("data", "database-primary", {})


class TestGetReplicaSet:
    def test_converts_owner_references(self, k8s):
        k8s.apps.read_namespaced_replica_set.return_value = SimpleNamespace(
            metadata=SimpleNamespace(
                name="db-abc",
                namespace="data",
                owner_references=[owner("Deployment", "database-primary", "u-1")],
            )
        )

        rs = KubeClient().get_replica_set("data", "db-abc")

        k8s.apps.read_namespaced_replica_set.assert_called_once_with(name="db-abc", namespace="data")
        assert rs.owner_references == [OwnerReference(kind="Deployment", name="database-primary", uid="u-1")]
