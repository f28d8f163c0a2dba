"""Rolling restart of database deployments across a Kubernetes cluster."""

__version__ = "1.0.0"
