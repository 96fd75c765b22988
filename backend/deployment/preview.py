"""Preview deployment: write bundles to the staging area.

Each deployment gets its own directory ``<staging_dir>/app-<deployment_id>/``
and files are written verbatim at their bundle-relative paths. Serving the
staging area is left to whatever fronts it (a static file server or proxy).

Usage:
    >>> deployment = PreviewDeployment("./data/staging")
    >>> url = await deployment.deploy(bundle, "a1b2c3d4")
"""

import asyncio
import re
import shutil
from collections.abc import Mapping
from pathlib import Path, PurePosixPath

import structlog

from artifacts.assembler import Bundle

logger = structlog.get_logger(__name__)

DEPLOYMENT_PREFIX = "app-"

_DEPLOYMENT_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,63}$")


class DeploymentWriteError(Exception):
    """Raised when a bundle cannot be written to the staging area."""


class PreviewDeployment:
    """Writes bundles under a staging directory and builds preview URLs.

    Attributes:
        staging_dir: Root directory of all deployments
        staging_domain: Domain used for subdomain-style URLs
        use_path_based: Build ``<preview_base_url>/<id>`` URLs instead of subdomains
        preview_base_url: Base URL of path-based previews
    """

    def __init__(
        self,
        staging_dir: str,
        staging_domain: str = "staging.localhost",
        use_path_based: bool = True,
        preview_base_url: str = "http://localhost/preview",
    ) -> None:
        self.staging_dir = Path(staging_dir)
        self.staging_domain = staging_domain
        self.use_path_based = use_path_based
        self.preview_base_url = preview_base_url.rstrip("/")

    def deployment_path(self, deployment_id: str) -> Path:
        """Directory owned by one deployment.

        Raises:
            DeploymentWriteError: If the id is not a safe directory name.
        """
        if not _DEPLOYMENT_ID.match(deployment_id):
            raise DeploymentWriteError(f"Invalid deployment id: {deployment_id!r}")
        return self.staging_dir / f"{DEPLOYMENT_PREFIX}{deployment_id}"

    def preview_url(self, deployment_id: str) -> str:
        if self.use_path_based:
            return f"{self.preview_base_url}/{deployment_id}"
        return f"http://{DEPLOYMENT_PREFIX}{deployment_id}.{self.staging_domain}"

    async def deploy(self, bundle: Bundle, deployment_id: str) -> str:
        """Write a bundle and return its preview URL.

        Args:
            bundle: The assembled bundle
            deployment_id: Opaque id naming the deployment

        Returns:
            The preview URL of the deployment.

        Raises:
            DeploymentWriteError: If a path escapes the deployment directory
                or the filesystem write fails.
        """
        target = self.deployment_path(deployment_id)
        await asyncio.to_thread(self._write_files, target, bundle.files)

        url = self.preview_url(deployment_id)
        logger.info(
            "preview_deployed",
            deployment_id=deployment_id,
            file_count=len(bundle.files),
            preview_url=url,
        )
        return url

    def _write_files(self, target: Path, files: Mapping[str, str]) -> None:
        # Validate every path before writing anything.
        resolved: list[tuple[Path, str]] = []
        for relative, content in files.items():
            pure = PurePosixPath(relative)
            if pure.is_absolute() or ".." in pure.parts or not pure.parts:
                raise DeploymentWriteError(f"Refusing to write outside deployment: {relative!r}")
            resolved.append((target.joinpath(*pure.parts), content))

        try:
            for path, content in resolved:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise DeploymentWriteError(f"Failed to write deployment {target.name}: {e}") from e

    async def cleanup(self, deployment_id: str) -> bool:
        """Remove a deployment directory.

        Returns:
            True if a directory was removed, False if none existed or removal failed.
        """
        target = self.deployment_path(deployment_id)
        if not target.exists():
            return False

        try:
            await asyncio.to_thread(shutil.rmtree, target)
        except OSError as e:
            logger.error("preview_cleanup_failed", deployment_id=deployment_id, error=str(e))
            return False

        logger.info("preview_cleaned_up", deployment_id=deployment_id)
        return True

    async def list_deployments(self) -> list[str]:
        """Names of the deployment directories in the staging area, sorted."""
        if not self.staging_dir.exists():
            return []
        return sorted(
            entry.name
            for entry in self.staging_dir.iterdir()
            if entry.is_dir() and entry.name.startswith(DEPLOYMENT_PREFIX)
        )
