"""Split raw model output into a keyed set of file artifacts.

Fenced blocks are detected in order. Each block is named by a filename
annotation when one is present, otherwise it is classified by content with
an ordered list of rules. All view modules are merged into the single
application module, so inferred module names only matter for logging.
"""

import re
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from pathlib import PurePosixPath

import structlog

from artifacts.templates import (
    APP_MODULE_PATH,
    DEFAULT_STYLESHEET_PATH,
    ENTRY_DOCUMENT_PATH,
    MANIFEST_PATH,
)
from artifacts.transform import AppModule, transform_for_browser

logger = structlog.get_logger(__name__)

# Info string, then the body up to a closing fence or the end of a truncated reply.
FENCE_PATTERN = re.compile(r"```[ \t]*([^\n`]*)\n(.*?)(?:```|\Z)", re.DOTALL)

KNOWN_EXTENSIONS = (
    "tsx", "jsx", "ts", "js", "mjs", "cjs", "html", "htm",
    "css", "scss", "sass", "less", "json", "md", "svg", "txt", "vue",
)
_FILENAME = r"([\w@./-]*\.(?:" + "|".join(KNOWN_EXTENSIONS) + r"))(?![\w-])"
_FILE_LABEL = r"(?:file(?:name)?\s*:\s*)?"

ANNOTATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"^\s*//\s*" + _FILE_LABEL + _FILENAME, re.IGNORECASE),
    re.compile(r"^\s*/\*+\s*" + _FILE_LABEL + _FILENAME, re.IGNORECASE),
    re.compile(r"^\s*<!--\s*" + _FILE_LABEL + _FILENAME, re.IGNORECASE),
    re.compile(r"^\s*#+\s*" + _FILE_LABEL + r"`?" + _FILENAME + r"`?\s*$", re.IGNORECASE),
)

MODULE_EXTENSIONS = frozenset({".tsx", ".jsx", ".ts", ".js", ".mjs"})
STYLESHEET_EXTENSIONS = frozenset({".css", ".scss", ".sass", ".less"})
DOCUMENT_EXTENSIONS = frozenset({".html", ".htm"})
_CONFIG_FILE = re.compile(r"\.config\.(?:js|ts|cjs|mjs)$")


class UnclassifiableBlockError(ValueError):
    """Raised when no classification rule matches a code block."""


class BlockKind(StrEnum):
    """Role of a detected block within the bundle."""

    MANIFEST = "manifest"
    ENTRY_DOCUMENT = "entry_document"
    MODULE = "module"
    STYLESHEET = "stylesheet"
    ASSET = "asset"
    BOOTSTRAP = "bootstrap"


@dataclass(frozen=True)
class CodeBlock:
    """One fenced (or implicit) block of the raw output.

    Attributes:
        index: Position of the block in the output, from 0
        language: Fence info-string language tag, possibly empty
        content: Block body with surrounding whitespace trimmed
        lead_in: Text between the previous block and this one
    """

    index: int
    language: str
    content: str
    lead_in: str = ""


@dataclass(frozen=True)
class ClassifiedBlock:
    """A block with its kind, target path and the rule that decided it."""

    block: CodeBlock
    kind: BlockKind
    path: str
    rule: str


# ---------------------------------------------------------------------------
# Content classification
# ---------------------------------------------------------------------------

_VIEW_IMPORT = re.compile(r"""from\s+['"]react(?:-dom(?:/client)?)?['"]|\bReact\.""")
_MOUNT_CALL = re.compile(r"\b(?:ReactDOM\s*\.\s*render|createRoot|hydrateRoot)\s*\(")
_MARKUP = re.compile(r"<[A-Za-z][\w.]*[\s/>]")
_STYLE_DECLARATION = re.compile(r"^\s*[-\w]+\s*:\s*[^;{}]+;", re.MULTILINE)
_STYLE_RULE = re.compile(r"[^{}]+\{[^{}]*\}")
_FUNCTION_SYNTAX = re.compile(r"\bfunction\b|=>|\breturn\b|\bconst\s|\blet\s")
_DECLARATION = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?"
    r"(?:async\s+)?(?:function|const|let|var|class|interface|type)\s+[\w$]",
    re.MULTILINE,
)
_COMPONENT_DECLARATION = re.compile(
    r"^\s*(?:export\s+)?(?:default\s+)?(?:async\s+)?"
    r"(?:function\s+[A-Z]|class\s+[A-Z]|(?:const|let|var)\s+[A-Z][\w$]*\s*=)",
    re.MULTILINE,
)


def _is_manifest(content: str) -> bool:
    if not content.lstrip().startswith("{"):
        return False
    return '"dependencies"' in content or ('"name"' in content and '"version"' in content)


def _is_entry_document(content: str) -> bool:
    head = content.lstrip()[:100].lower()
    return head.startswith("<!doctype html") or head.startswith("<html")


def _is_bootstrap(content: str) -> bool:
    """A file that only imports and mounts; files that also declare components are modules."""
    return bool(
        _VIEW_IMPORT.search(content)
        and _MOUNT_CALL.search(content)
        and not _COMPONENT_DECLARATION.search(content)
    )


def _is_view_module(content: str) -> bool:
    return bool(_VIEW_IMPORT.search(content) or (
        _DECLARATION.search(content) and _MARKUP.search(content)
    ))


def _is_stylesheet(content: str) -> bool:
    # Interface members look like style declarations ("id: number;").
    if _FUNCTION_SYNTAX.search(content) or _DECLARATION.search(content):
        return False
    return bool(_STYLE_RULE.search(content) and _STYLE_DECLARATION.search(content))


def _has_declarations(content: str) -> bool:
    return bool(_DECLARATION.search(content))


@dataclass(frozen=True)
class ClassificationRule:
    """Predicate mapping block content to a kind, tried in list order."""

    name: str
    kind: BlockKind
    matches: Callable[[str], bool]


CLASSIFICATION_RULES: tuple[ClassificationRule, ...] = (
    ClassificationRule("manifest", BlockKind.MANIFEST, _is_manifest),
    ClassificationRule("entry_document", BlockKind.ENTRY_DOCUMENT, _is_entry_document),
    ClassificationRule("bootstrap", BlockKind.BOOTSTRAP, _is_bootstrap),
    ClassificationRule("view_module", BlockKind.MODULE, _is_view_module),
    ClassificationRule("stylesheet", BlockKind.STYLESHEET, _is_stylesheet),
    ClassificationRule("declarations", BlockKind.MODULE, _has_declarations),
)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def detect_blocks(raw_text: str) -> list[CodeBlock]:
    """Find fenced blocks in order; unfenced text is one implicit block."""
    blocks: list[CodeBlock] = []
    previous_end = 0
    for match in FENCE_PATTERN.finditer(raw_text):
        info = match.group(1).strip()
        blocks.append(
            CodeBlock(
                index=len(blocks),
                language=info.split()[0].lower() if info else "",
                content=match.group(2).strip(),
                lead_in=raw_text[previous_end:match.start()],
            )
        )
        previous_end = match.end()

    if not blocks and raw_text.strip():
        blocks.append(CodeBlock(index=0, language="", content=raw_text.strip()))
    return blocks


def normalize_relative_path(path: str) -> str | None:
    """Normalize an annotated path; None if it is absolute-only or escapes the root."""
    candidate = path.strip().replace("\\", "/").lstrip("/")
    parts = [part for part in PurePosixPath(candidate).parts if part != "."]
    if not parts or ".." in parts:
        return None
    return "/".join(parts)


def annotated_path(block: CodeBlock) -> str | None:
    """Filename from the line just above the block or from its first line."""
    lead_lines = [line for line in block.lead_in.splitlines() if line.strip()]
    first_line = block.content.split("\n", 1)[0]
    candidates = ([lead_lines[-1]] if lead_lines else []) + [first_line]

    for line in candidates:
        for pattern in ANNOTATION_PATTERNS:
            match = pattern.match(line)
            if match is None:
                continue
            path = normalize_relative_path(match.group(1))
            if path is not None:
                return path
    return None


def _kind_for_path(path: str, content: str) -> BlockKind:
    name = PurePosixPath(path).name.lower()
    suffix = PurePosixPath(path).suffix.lower()

    if name == MANIFEST_PATH:
        return BlockKind.MANIFEST
    if suffix in DOCUMENT_EXTENSIONS:
        return BlockKind.ENTRY_DOCUMENT if name.startswith("index.") else BlockKind.ASSET
    if _CONFIG_FILE.search(name):
        return BlockKind.ASSET
    if suffix in MODULE_EXTENSIONS:
        return BlockKind.BOOTSTRAP if _is_bootstrap(content) else BlockKind.MODULE
    if suffix in STYLESHEET_EXTENSIONS:
        return BlockKind.STYLESHEET
    return BlockKind.ASSET


def classify_content(block: CodeBlock) -> ClassificationRule:
    """First rule whose predicate accepts the block content.

    Raises:
        UnclassifiableBlockError: If no rule matches.
    """
    for rule in CLASSIFICATION_RULES:
        if rule.matches(block.content):
            return rule
    raise UnclassifiableBlockError(f"block {block.index} matches no classification rule")


class _InferredNames:
    """Deterministic names for blocks without an annotation."""

    def __init__(self) -> None:
        self.modules = 0

    def path_for(self, kind: BlockKind) -> str:
        if kind == BlockKind.MANIFEST:
            return MANIFEST_PATH
        if kind == BlockKind.ENTRY_DOCUMENT:
            return ENTRY_DOCUMENT_PATH
        if kind == BlockKind.STYLESHEET:
            return DEFAULT_STYLESHEET_PATH
        self.modules += 1
        return APP_MODULE_PATH if self.modules == 1 else f"Component{self.modules}.tsx"


def classify_blocks(raw_text: str) -> list[ClassifiedBlock]:
    """Detect and classify every block; unclassifiable blocks are dropped."""
    names = _InferredNames()
    classified: list[ClassifiedBlock] = []

    for block in detect_blocks(raw_text):
        if not block.content:
            continue

        path = annotated_path(block)
        if path is not None:
            kind = _kind_for_path(path, block.content)
            if kind == BlockKind.ENTRY_DOCUMENT:
                path = ENTRY_DOCUMENT_PATH
            classified.append(ClassifiedBlock(block, kind, path, rule="annotation"))
            continue

        try:
            rule = classify_content(block)
        except UnclassifiableBlockError as e:
            logger.debug("artifact_block_skipped", error=str(e), language=block.language)
            continue

        classified.append(
            ClassifiedBlock(block, rule.kind, names.path_for(rule.kind), rule=rule.name)
        )

    return classified


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _unique_path(files: dict[str, str], path: str) -> str:
    if path not in files:
        return path
    pure = PurePosixPath(path)
    counter = 2
    while True:
        candidate = str(pure.with_name(f"{pure.stem}-{counter}{pure.suffix}"))
        if candidate not in files:
            return candidate
        counter += 1


def merge_modules(sources: list[str]) -> AppModule:
    """Concatenate view modules in order and rewrite them for the browser."""
    return transform_for_browser("\n\n".join(source.strip() for source in sources))


def extract(raw_text: str) -> dict[str, str]:
    """Turn raw model output into a path-to-content artifact set.

    Entry documents and manifests keep their content unmodified, all view
    modules become the single ``App.tsx`` module, and blocks that add
    nothing to a runnable bundle (standalone bootstraps, unclassifiable
    text) are dropped.

    Args:
        raw_text: The winning submission's reply

    Returns:
        Artifact set keyed by relative path, in discovery order.
    """
    files: dict[str, str] = {}
    module_sources: list[str] = []

    for item in classify_blocks(raw_text):
        content = item.block.content

        if item.kind == BlockKind.BOOTSTRAP:
            logger.debug("artifact_bootstrap_dropped", block=item.block.index)
            continue

        if item.kind == BlockKind.MODULE:
            module_sources.append(content)
            continue

        if item.kind in (BlockKind.ENTRY_DOCUMENT, BlockKind.MANIFEST) and item.path in files:
            logger.debug("artifact_duplicate_dropped", path=item.path)
            continue

        if (
            item.kind == BlockKind.STYLESHEET
            and item.rule != "annotation"
            and item.path in files
        ):
            files[item.path] = f"{files[item.path]}\n\n{content}"
            continue

        files[_unique_path(files, item.path)] = content

    if module_sources:
        module = merge_modules(module_sources)
        files[APP_MODULE_PATH] = module.code
        logger.debug(
            "artifact_modules_merged",
            module_count=len(module_sources),
            component=module.component,
            placeholder=module.placeholder,
        )

    logger.info("artifacts_extracted", paths=list(files))
    return files
