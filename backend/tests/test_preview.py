"""Tests for deployment/preview.py -- writing bundles to the staging area."""

from pathlib import Path

import pytest

from artifacts.assembler import Bundle, build_bundle
from deployment.preview import DeploymentWriteError, PreviewDeployment
from tests.conftest import TODO_APP_REPLY


@pytest.fixture()
def deployment(tmp_path: Path) -> PreviewDeployment:
    return PreviewDeployment(str(tmp_path / "staging"), preview_base_url="http://localhost/preview/")


class TestPreviewUrls:
    def test_path_based_url(self, deployment: PreviewDeployment) -> None:
        assert deployment.preview_url("a1b2c3d4") == "http://localhost/preview/a1b2c3d4"

    def test_subdomain_url(self, tmp_path: Path) -> None:
        deployment = PreviewDeployment(
            str(tmp_path), staging_domain="staging.example.com", use_path_based=False
        )
        assert deployment.preview_url("a1b2c3d4") == "http://app-a1b2c3d4.staging.example.com"

    @pytest.mark.parametrize("deployment_id", ["", "../escape", "a/b", "-leading"])
    def test_invalid_ids_are_rejected(
        self, deployment: PreviewDeployment, deployment_id: str
    ) -> None:
        with pytest.raises(DeploymentWriteError):
            deployment.deployment_path(deployment_id)


class TestDeploy:
    @pytest.mark.asyncio
    async def test_writes_bundle_verbatim(self, deployment: PreviewDeployment) -> None:
        bundle = build_bundle(TODO_APP_REPLY)
        url = await deployment.deploy(bundle, "a1b2c3d4")

        target = deployment.staging_dir / "app-a1b2c3d4"
        assert url == "http://localhost/preview/a1b2c3d4"
        assert sorted(p.name for p in target.iterdir()) == ["App.tsx", "index.html", "package.json"]
        for path, content in bundle.files.items():
            assert (target / path).read_text(encoding="utf-8") == content

    @pytest.mark.asyncio
    async def test_nested_paths_are_created(self, deployment: PreviewDeployment) -> None:
        bundle = Bundle(files={"index.html": "<html></html>", "assets/css/site.css": "body {}"})
        await deployment.deploy(bundle, "nested")

        written = deployment.staging_dir / "app-nested" / "assets" / "css" / "site.css"
        assert written.read_text(encoding="utf-8") == "body {}"

    @pytest.mark.asyncio
    async def test_escaping_path_writes_nothing(self, deployment: PreviewDeployment) -> None:
        bundle = Bundle(files={"index.html": "<html></html>", "../outside.txt": "nope"})

        with pytest.raises(DeploymentWriteError):
            await deployment.deploy(bundle, "escape")
        assert not (deployment.staging_dir / "app-escape").exists()
        assert not (deployment.staging_dir / "outside.txt").exists()

    @pytest.mark.asyncio
    async def test_absolute_path_is_rejected(self, deployment: PreviewDeployment) -> None:
        bundle = Bundle(files={"/etc/passwd": "nope"})
        with pytest.raises(DeploymentWriteError):
            await deployment.deploy(bundle, "absolute")

    @pytest.mark.asyncio
    async def test_filesystem_failure_is_wrapped(self, tmp_path: Path) -> None:
        blocker = tmp_path / "staging"
        blocker.write_text("not a directory", encoding="utf-8")
        deployment = PreviewDeployment(str(blocker))

        with pytest.raises(DeploymentWriteError):
            await deployment.deploy(Bundle(files={"index.html": "x"}), "blocked")


class TestCleanupAndList:
    @pytest.mark.asyncio
    async def test_list_and_cleanup(self, deployment: PreviewDeployment) -> None:
        bundle = Bundle(files={"index.html": "x"})
        await deployment.deploy(bundle, "bbb")
        await deployment.deploy(bundle, "aaa")
        (deployment.staging_dir / "unrelated").mkdir()

        assert await deployment.list_deployments() == ["app-aaa", "app-bbb"]
        assert await deployment.cleanup("aaa") is True
        assert await deployment.cleanup("aaa") is False
        assert await deployment.list_deployments() == ["app-bbb"]

    @pytest.mark.asyncio
    async def test_list_without_staging_dir(self, tmp_path: Path) -> None:
        deployment = PreviewDeployment(str(tmp_path / "missing"))
        assert await deployment.list_deployments() == []
