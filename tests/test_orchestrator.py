"""End-to-end packaging tests for the orchestrator."""

from __future__ import annotations

import os
import subprocess
import zipfile
from pathlib import Path

import pytest

from vsixgen.manifest import ManifestReadError
from vsixgen.models import InMemoryFile, LocalFile
from vsixgen.orchestrator import (
    INVALID_TARGET,
    MANIFEST_EXCLUDED,
    MISSING_PACKAGE_MANAGER,
    PREPUBLISH_FAILED,
    WRITE_ERROR,
    Orchestrator,
    PackageCollisionError,
    PackageOptions,
    append_document,
    default_package_name,
)
from vsixgen.pm import PREPUBLISH_SCRIPT
from vsixgen.validators import DiagnosticKind


def _standard_project(project_builder) -> None:
    project_builder.write_manifest(
        main="./out/extension.js",
        activationEvents=["onStartupFinished"],
        icon="images/icon.png",
        keywords=["demo"],
    )
    project_builder.write(
        {
            "README.md": "# Demo\n",
            "CHANGELOG.md": "## 1.0.0\n",
            "LICENSE": "MIT\n",
            "out/extension.js": "exports.activate = () => {};\n",
            "images/icon.png": "png",
            ".gitignore": "node_modules/\n",
            "node_modules/left-pad/index.js": "",
        }
    )


def test_create_vsix_writes_archive(project_builder) -> None:
    _standard_project(project_builder)

    result = Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert result.ok, result.errors
    assert result.written is True
    assert result.vsix_path == project_builder.path().resolve() / "demo-1.0.0.vsix"
    with zipfile.ZipFile(result.vsix_path) as archive:
        names = archive.namelist()
        manifest_xml = archive.read("extension.vsixmanifest").decode("utf-8")
        content_types = archive.read("[Content_Types].xml").decode("utf-8")

    assert names[-2:] == ["extension.vsixmanifest", "[Content_Types].xml"]
    assert "extension/LICENSE.txt" in names
    assert not any(name.startswith("extension/node_modules/") for name in names)
    assert "<License>extension/LICENSE.txt</License>" in manifest_xml
    assert "<Icon>extension/images/icon.png</Icon>" in manifest_xml
    assert "<Tags>demo</Tags>" in manifest_xml
    assert 'Extension=".txt"' in content_types
    assert 'Extension=".vsixmanifest"' in content_types


def test_synthesized_documents_are_in_memory_and_follow_collected_files(project_builder) -> None:
    _standard_project(project_builder)

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert result.ok
    assert result.written is False
    assert not result.vsix_path.exists()
    collected, documents = result.files[:-2], result.files[-2:]
    assert all(isinstance(file, LocalFile) for file in collected)
    assert all(file.path.startswith("extension/") for file in collected)
    assert [(type(file), file.path) for file in documents] == [
        (InMemoryFile, "extension.vsixmanifest"),
        (InMemoryFile, "[Content_Types].xml"),
    ]


def test_diagnostics_block_synthesis(project_builder) -> None:
    project_builder.write_manifest(publisher="Acme Corp")

    result = Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert not result.ok
    assert [error.type for error in result.errors] == [DiagnosticKind.INVALID_PUBLISHER_NAME.value]
    assert result.files == []
    assert result.vsix_path is None


def test_missing_manifest_is_a_hard_failure(project_builder) -> None:
    with pytest.raises(ManifestReadError):
        Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))


def test_invalid_target_is_reported(project_builder) -> None:
    project_builder.write_manifest()

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), target="amiga-m68k", write=False)
    )

    assert [error.type for error in result.errors] == [INVALID_TARGET]


def test_target_and_pre_release_reach_the_manifest(project_builder) -> None:
    project_builder.write_manifest()

    result = Orchestrator().create_vsix(
        PackageOptions(
            cwd=str(project_builder.path()),
            target="linux-x64",
            pre_release=True,
            write=False,
        )
    )

    assert result.ok
    assert result.vsix_path.name == "demo-linux-x64-1.0.0.vsix"
    document = result.files[-2].contents.decode("utf-8")
    assert 'TargetPlatform="linux-x64"' in document
    assert 'Id="Microsoft.VisualStudio.Code.PreRelease" Value="true"' in document


def test_existing_archive_requires_force(project_builder) -> None:
    project_builder.write_manifest()
    existing = project_builder.path() / "demo-1.0.0.vsix"
    existing.write_bytes(b"old")
    orchestrator = Orchestrator()

    result = orchestrator.create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert [error.type for error in result.errors] == [WRITE_ERROR]
    assert "use the force option" in result.errors[0].message
    assert existing.read_bytes() == b"old"

    forced = orchestrator.create_vsix(
        PackageOptions(cwd=str(project_builder.path()), force_write=True)
    )
    assert forced.ok
    assert zipfile.is_zipfile(existing)


def test_files_with_epoch_mtime_are_packaged(project_builder) -> None:
    _standard_project(project_builder)
    os.utime(project_builder.path() / "out" / "extension.js", (0, 0))

    result = Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert result.ok, result.errors
    with zipfile.ZipFile(result.vsix_path) as archive:
        assert archive.testzip() is None
        assert "extension/out/extension.js" in archive.namelist()


def test_archive_errors_are_reported_and_leave_no_file(project_builder, monkeypatch) -> None:
    project_builder.write_manifest()

    def failing_write(files, package_path, *, force=False):
        raise ValueError("ZIP does not support timestamps before 1980")

    monkeypatch.setattr("vsixgen.orchestrator.write_vsix", failing_write)

    result = Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert [error.type for error in result.errors] == [WRITE_ERROR]
    assert "1980" in result.errors[0].message
    assert result.written is False
    assert not result.vsix_path.exists()


def test_excluded_manifest_is_reported(project_builder) -> None:
    project_builder.write_manifest()
    project_builder.write({".vscodeignore": "package.json\n", "src/extension.js": ""})

    result = Orchestrator().create_vsix(PackageOptions(cwd=str(project_builder.path())))

    assert [error.type for error in result.errors] == [MANIFEST_EXCLUDED]
    assert result.files == []
    assert not result.vsix_path.exists()


def test_previous_archives_are_not_repackaged(project_builder) -> None:
    project_builder.write_manifest()
    project_builder.write({"demo-0.9.0.vsix": "old"})

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert "extension/demo-0.9.0.vsix" not in [file.path for file in result.files]


def test_config_file_supplies_defaults(project_builder) -> None:
    project_builder.write_manifest()
    project_builder.write({".vsixgen.yml": "package_path: dist/custom.vsix\nreadme: docs/README.md\n"})
    project_builder.write({"docs/README.md": "# Docs\n"})

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert result.ok
    assert result.vsix_path == project_builder.path().resolve() / "dist" / "custom.vsix"
    document = result.files[-2].contents.decode("utf-8")
    assert 'Path="extension/docs/README.md"' in document


def test_invalid_config_falls_back_to_defaults(project_builder) -> None:
    project_builder.write_manifest()
    project_builder.write({".vsixgen.yml": "- not\n- a mapping\n"})

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert result.ok
    assert result.vsix_path.name == "demo-1.0.0.vsix"


def test_prepublish_runs_before_collection(project_builder, monkeypatch) -> None:
    project_builder.write_manifest(scripts={PREPUBLISH_SCRIPT: "tsc"})
    monkeypatch.setattr("vsixgen.orchestrator.is_available", lambda name: True)
    calls = []

    def runner(args, *, cwd, env=None) -> None:
        calls.append(list(args))
        (Path(cwd) / "out").mkdir()
        (Path(cwd) / "out" / "extension.js").write_text("", encoding="utf-8")

    result = Orchestrator(prepublish_runner=runner).create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert result.ok
    assert calls == [["npm", "run", PREPUBLISH_SCRIPT]]
    assert "extension/out/extension.js" in [file.path for file in result.files]


def test_skip_scripts_does_not_run_prepublish(project_builder) -> None:
    project_builder.write_manifest(scripts={PREPUBLISH_SCRIPT: "tsc"})

    def runner(args, *, cwd, env=None) -> None:  # pragma: no cover - must not run
        raise AssertionError("prepublish should be skipped")

    result = Orchestrator(prepublish_runner=runner).create_vsix(
        PackageOptions(cwd=str(project_builder.path()), skip_scripts=True, write=False)
    )

    assert result.ok


def test_missing_package_manager_is_reported(project_builder, monkeypatch) -> None:
    project_builder.write_manifest(scripts={PREPUBLISH_SCRIPT: "tsc"})
    monkeypatch.setattr("vsixgen.orchestrator.is_available", lambda name: False)

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert [error.type for error in result.errors] == [MISSING_PACKAGE_MANAGER]


def test_failed_prepublish_is_reported(project_builder, monkeypatch) -> None:
    project_builder.write_manifest(scripts={PREPUBLISH_SCRIPT: "tsc"})
    monkeypatch.setattr("vsixgen.orchestrator.is_available", lambda name: True)

    def runner(args, *, cwd, env=None) -> None:
        raise subprocess.CalledProcessError(1, list(args))

    result = Orchestrator(prepublish_runner=runner).create_vsix(
        PackageOptions(cwd=str(project_builder.path()), write=False)
    )

    assert [error.type for error in result.errors] == [PREPUBLISH_FAILED]


def test_dependencies_are_merged(project_builder) -> None:
    project_builder.write_manifest(dependencies={"left-pad": "^1.0.0"})

    result = Orchestrator().create_vsix(
        PackageOptions(cwd=str(project_builder.path()), dependencies=["extra"], write=False)
    )

    assert result.dependencies == ["extra", "left-pad"]


def test_list_files_matches_collection(project_builder) -> None:
    _standard_project(project_builder)

    files = Orchestrator().list_files(PackageOptions(cwd=str(project_builder.path())))

    assert [file.path for file in files] == [
        "extension/.gitignore",
        "extension/CHANGELOG.md",
        "extension/LICENSE",
        "extension/README.md",
        "extension/images/icon.png",
        "extension/out/extension.js",
        "extension/package.json",
    ]


def test_append_document_refuses_collisions() -> None:
    files = [InMemoryFile(path="extension.vsixmanifest", contents=b"")]

    with pytest.raises(PackageCollisionError):
        append_document(files, "extension.vsixmanifest", "<x/>")


def test_default_package_name() -> None:
    manifest = {"name": "demo", "version": "2.0.0"}
    assert default_package_name(manifest) == "demo-2.0.0.vsix"
    assert default_package_name(manifest, "web") == "demo-web-2.0.0.vsix"


def test_config_is_not_read_for_a_file_path(project_builder) -> None:
    project_builder.write_manifest()
    project_builder.write({".vsixgen.yml": "package_path: dist/custom.vsix\n"})
    manifest_path = project_builder.path() / "package.json"

    config = Orchestrator()._load_config(manifest_path.resolve())

    assert config.package_path is None
    with pytest.raises(ManifestReadError):
        Orchestrator().create_vsix(PackageOptions(cwd=str(manifest_path)))
    assert Orchestrator().list_files(PackageOptions(cwd=str(manifest_path))) == []
