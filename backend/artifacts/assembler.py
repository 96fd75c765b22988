"""Bundle assembly: turn an artifact set into a complete runnable file set."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

import structlog

from artifacts.extractor import extract
from artifacts.templates import (
    APP_MODULE_PATH,
    ENTRY_DOCUMENT_PATH,
    GLOBAL_COMPONENT_NAME,
    MANIFEST_PATH,
    render_default_manifest,
    render_entry_document,
    render_plain_document,
)

logger = structlog.get_logger(__name__)

DEFAULT_TITLE = "Generated App"
DEFAULT_PACKAGE_NAME = "generated-app"

# Markers an existing entry document must carry to boot the application module.
_RUNTIME_MARKERS = ("react-dom", "babel", APP_MODULE_PATH, f"window.{GLOBAL_COMPONENT_NAME}")


@dataclass(frozen=True)
class Bundle:
    """Immutable mapping of relative path to file content.

    A bundle always contains ``index.html``. When it contains ``App.tsx``
    it also contains ``package.json``.
    """

    files: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "files", MappingProxyType(dict(self.files)))

    @property
    def paths(self) -> list[str]:
        return list(self.files)

    @property
    def entry_document(self) -> str:
        return self.files[ENTRY_DOCUMENT_PATH]

    @property
    def app_module(self) -> str | None:
        return self.files.get(APP_MODULE_PATH)

    def to_dict(self) -> dict[str, str]:
        return dict(self.files)


def boots_app_module(document: str) -> bool:
    """True if an entry document loads the runtime and mounts ``window.App``."""
    lowered = document.lower()
    return all(marker.lower() in lowered for marker in _RUNTIME_MARKERS)


def _stylesheets(files: Mapping[str, str]) -> list[str]:
    return [path for path in files if path.endswith(".css")]


def assemble(
    artifacts: Mapping[str, str],
    raw_text: str = "",
    title: str = DEFAULT_TITLE,
    package_name: str = DEFAULT_PACKAGE_NAME,
) -> Bundle:
    """Complete an artifact set into a runnable bundle.

    Rules, applied in order:

    1. An application module without a manifest gets the default manifest.
    2. With an application module, the entry document is replaced unless it
       already boots the module.
    3. Without any entry document, the raw text is wrapped as a plain page.

    Args:
        artifacts: Extracted path-to-content mapping
        raw_text: Original reply, used when nothing runnable was extracted
        title: Title of generated documents
        package_name: Name written into a synthesized manifest

    Returns:
        The completed Bundle.
    """
    files = dict(artifacts)

    if APP_MODULE_PATH in files:
        if MANIFEST_PATH not in files:
            files[MANIFEST_PATH] = render_default_manifest(package_name)
            logger.debug("bundle_manifest_synthesized")

        existing = files.get(ENTRY_DOCUMENT_PATH)
        if existing is None or not boots_app_module(existing):
            files[ENTRY_DOCUMENT_PATH] = render_entry_document(
                title=title,
                stylesheets=_stylesheets(files),
            )
            logger.debug(
                "bundle_entry_document_rendered",
                replaced=existing is not None,
            )

    if ENTRY_DOCUMENT_PATH not in files:
        files[ENTRY_DOCUMENT_PATH] = render_plain_document(raw_text, title=title)
        logger.debug("bundle_plain_document_rendered", raw_chars=len(raw_text))

    logger.info("bundle_assembled", paths=list(files))
    return Bundle(files=files)


def build_bundle(raw_text: str, title: str = DEFAULT_TITLE) -> Bundle:
    """Extract artifacts from a reply and assemble them into a bundle."""
    return assemble(extract(raw_text), raw_text=raw_text, title=title)
