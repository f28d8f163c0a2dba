"""
Configuration settings for the database redeployer.
"""
from pydantic_settings import BaseSettings
from pydantic import Field
from typing import Literal, Optional


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Application
    APP_NAME: str = Field(default="database-redeployer", description="Application name")

    # Kubernetes Configuration
    K8S_CONTEXT: Optional[str] = Field(default=None, description="Kubernetes context")
    KUBECONFIG: Optional[str] = Field(default=None, description="Path to kubeconfig file")
    K8S_IN_CLUSTER: bool = Field(default=False, description="Running in cluster")

    # Redeploy Configuration
    NAME_FILTER: str = Field(default="database", min_length=1, description="Deployment name substring")
    RESTART_ANNOTATION: str = Field(default="restarted_at", min_length=1, description="Pod template annotation key")
    VERIFY_OWNERSHIP: bool = Field(default=False, description="Count only pods owned by the deployment")
    MAX_WORKERS: int = Field(default=1, ge=1, description="Deployments processed concurrently")

    # Service Configuration
    LOG_LEVEL: Literal["debug", "info", "warning", "error"] = Field(default="info", description="Log level: debug|info|warning|error")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
