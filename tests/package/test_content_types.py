"""Tests for the [Content_Types].xml declaration."""

from __future__ import annotations

import xml.etree.ElementTree as ET

from vsixgen.models import InMemoryFile, LocalFile
from vsixgen.package.content_types import (
    DEFAULT_CONTENT_TYPE,
    content_type_for,
    content_types_for_files,
)

NS = {"ct": "http://schemas.openxmlformats.org/package/2006/content-types"}


def test_distinct_extensions_are_mapped_once() -> None:
    files = [
        LocalFile(path="extension/package.json", local_path="/p/package.json"),
        LocalFile(path="extension/out/a.js", local_path="/p/out/a.js"),
        LocalFile(path="extension/out/b.JS", local_path="/p/out/b.JS"),
        LocalFile(path="extension/README.md", local_path="/p/README.md"),
    ]

    content_types = content_types_for_files(files)

    assert content_types.as_dict() == {
        ".js": "application/javascript",
        ".json": "application/json",
        ".md": "text/markdown",
        ".vsixmanifest": "text/xml",
    }


def test_unknown_extensions_fall_back_to_binary() -> None:
    assert content_type_for(".weird") == DEFAULT_CONTENT_TYPE
    assert content_type_for(".PNG") == "image/png"


def test_files_without_extension_add_nothing() -> None:
    files = [LocalFile(path="extension/LICENSE", local_path="/p/LICENSE")]

    assert [extension for extension, _ in content_types_for_files(files).types] == [".vsixmanifest"]


def test_rendered_document_lists_every_type() -> None:
    files = [
        InMemoryFile(path="extension/data.bin", contents=b"\x00"),
        LocalFile(path="extension/icon.png", local_path="/p/icon.png"),
    ]

    content_types = content_types_for_files(files)
    root = ET.fromstring(content_types.xml.encode("utf-8"))

    declared = {
        element.get("Extension"): element.get("ContentType")
        for element in root.findall("ct:Default", NS)
    }
    assert declared == {
        ".bin": DEFAULT_CONTENT_TYPE,
        ".png": "image/png",
        ".vsixmanifest": "text/xml",
    }


def test_output_is_deterministic() -> None:
    files = [
        LocalFile(path="extension/b.css", local_path="/p/b.css"),
        LocalFile(path="extension/a.html", local_path="/p/a.html"),
    ]

    assert content_types_for_files(files).xml == content_types_for_files(list(reversed(files))).xml
