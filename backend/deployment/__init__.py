"""Deployment sink for assembled bundles."""

from deployment.preview import DeploymentWriteError, PreviewDeployment

__all__ = ["DeploymentWriteError", "PreviewDeployment"]
