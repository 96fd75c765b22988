"""Artifact extraction and bundle assembly for generated applications."""

from artifacts.assembler import Bundle, assemble, build_bundle
from artifacts.extractor import BlockKind, classify_blocks, detect_blocks, extract
from artifacts.transform import AppModule, transform_for_browser

__all__ = [
    "AppModule",
    "BlockKind",
    "Bundle",
    "assemble",
    "build_bundle",
    "classify_blocks",
    "detect_blocks",
    "extract",
    "transform_for_browser",
]
