"""Tests for the artifact update engine: gating, diffing and error classification."""

import asyncio
import os
import shutil
import time

import pytest

from artifacts.engine import update_artifacts
from artifacts.models import (
    ArtifactError,
    DependentFile,
    FileAddition,
    UpdateArtifact,
    UpdateArtifactsConfig,
    UpdateArtifactsResult,
    Upgrade,
)
from artifacts.snapshot import diff_snapshots, has_any_content
from artifacts.toolchain import Toolchain
from common.errors import ExecError, LockFileMissingError, TemporaryError
from common.exec import ExecOptions

from conftest import RecordingExecutor, read_file, write_file

UPGRADE = Upgrade("Newtonsoft.Json", ["https://nuget.example.org/v3/index.json"])


class FakeToolchain(Toolchain):
    """Minimal toolchain: one manifest with a sibling ``app.lock``."""

    name = "fake"

    def __init__(self, files, dependents=None):
        super().__init__(files)
        self.dependents = dependents
        self.config_roots = []

    def is_applicable(self, package_file_name):
        return package_file_name.endswith(".proj")

    async def get_dependent_files(self, package_file_name):
        return self.dependents or [DependentFile(package_file_name, True)]

    def lock_file_names(self, dependents):
        return [os.path.splitext(d.name)[0] + ".lock" for d in dependents]

    async def build_config_artifact(self, request, cache_root):
        self.config_roots.append(cache_root)
        path = os.path.join(cache_root, "fake.config")
        with open(path, "w", encoding="utf-8") as f:
            f.write("config")
        return path

    def build_commands(self, request, leaf_files, config_file):
        return [["fake", "restore", name, "--config", config_file] for name in leaf_files]

    async def build_exec_options(self, request, cache_root, config_file):
        return ExecOptions()


def _request(deps=None, maintenance=False, content="new manifest"):
    return UpdateArtifact(
        package_file_name="app.proj",
        new_package_file_content=content,
        updated_deps=[UPGRADE] if deps is None else deps,
        config=UpdateArtifactsConfig(is_lock_file_maintenance=maintenance),
    )


def _run(request, toolchain, files, executor, cache):
    return asyncio.run(
        update_artifacts(request, toolchain, files=files, executor=executor, cache=cache)
    )


class TestGating:
    """No-op paths return None without side effects."""

    def test_not_applicable_manifest(self, workspace, files, cache):
        executor = RecordingExecutor()
        request = UpdateArtifact("app.txt", "x", [UPGRADE])
        assert _run(request, FakeToolchain(files), files, executor, cache) is None
        assert executor.calls == []

    def test_no_existing_lock_file(self, workspace, files, cache):
        write_file(workspace, "app.proj", "old manifest")
        executor = RecordingExecutor()
        assert _run(_request(), FakeToolchain(files), files, executor, cache) is None
        assert executor.calls == []
        assert read_file(workspace, "app.proj") == "old manifest"

    def test_no_upgrades_and_no_maintenance(self, workspace, files, cache):
        write_file(workspace, "app.proj", "old manifest")
        write_file(workspace, "app.lock", "lock v1")
        executor = RecordingExecutor()
        assert _run(_request(deps=[]), FakeToolchain(files), files, executor, cache) is None
        assert executor.calls == []
        assert read_file(workspace, "app.proj") == "old manifest"

    def test_maintenance_runs_without_upgrades(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            write_file(workspace, "app.lock", "lock v2")

        executor = RecordingExecutor(on_run)
        res = _run(_request(deps=[], maintenance=True), FakeToolchain(files), files, executor, cache)
        assert len(executor.calls) == 1
        assert res[0].file.contents == "lock v2"


class TestDiff:
    """Changes are reported as full-content additions."""

    def test_unchanged_lock_file_returns_none(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")
        executor = RecordingExecutor()
        assert _run(_request(), FakeToolchain(files), files, executor, cache) is None
        assert read_file(workspace, "app.proj") == "new manifest"

    def test_changed_lock_file(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            write_file(workspace, "app.lock", "lock v2")

        res = _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)
        assert res == [UpdateArtifactsResult(file=FileAddition(path="app.lock", contents="lock v2"))]
        assert res[0].to_dict() == {
            "file": {"type": "addition", "path": "app.lock", "contents": "lock v2"}
        }

    def test_only_changed_files_are_reported(self, workspace, files, cache):
        dependents = [
            DependentFile("Directory.Packages.proj", False),
            DependentFile("a/a.proj", True),
            DependentFile("b/b.proj", True),
        ]
        write_file(workspace, "a/a.lock", "a v1")
        write_file(workspace, "b/b.lock", "b v1")

        def on_run(cmds, options):
            write_file(workspace, "b/b.lock", "b v2")

        executor = RecordingExecutor(on_run)
        request = UpdateArtifact("Directory.Packages.proj", "new", [UPGRADE])
        res = _run(request, FakeToolchain(files, dependents), files, executor, cache)
        assert [r.file.path for r in res] == ["b/b.lock"]
        # only leaves are restored
        cmds, _ = executor.calls[0]
        assert [cmd[2] for cmd in cmds] == ["a/a.proj", "b/b.proj"]

    def test_removed_lock_file_is_an_artifact_error(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            os.unlink(os.path.join(str(workspace), "app.lock"))

        res = _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)
        assert len(res) == 1
        assert res[0].file is None
        assert res[0].artifact_error.lock_file == "app.lock"
        assert "removed" in res[0].artifact_error.stderr


class TestErrorClassification:
    """Temporary errors propagate, everything else becomes an ArtifactError."""

    def test_temporary_error_is_raised(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            raise TemporaryError("dotnet not found")

        with pytest.raises(TemporaryError):
            _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)

    def test_error_with_temporary_message_is_raised(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            raise RuntimeError("temporary-error")

        with pytest.raises(RuntimeError, match="temporary-error"):
            _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)

    def test_exec_error_uses_captured_output(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            raise ExecError(cmds[0], 1, stdout="", stderr="restore failed")

        res = _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)
        assert res == [
            UpdateArtifactsResult(
                artifact_error=ArtifactError(lock_file="app.lock", stderr="restore failed")
            )
        ]
        assert res[0].to_dict() == {
            "artifactError": {"lockFile": "app.lock", "stderr": "restore failed"}
        }

    def test_error_without_output_uses_message(self, workspace, files, cache):
        write_file(workspace, "a/a.lock", "a v1")
        dependents = [DependentFile("a/a.proj", True), DependentFile("b/b.proj", True)]

        def on_run(cmds, options):
            raise ValueError("boom")

        request = UpdateArtifact("a/a.proj", "new", [UPGRADE])
        res = _run(request, FakeToolchain(files, dependents), files, RecordingExecutor(on_run), cache)
        assert res[0].artifact_error == ArtifactError(lock_file="a/a.lock, b/b.lock", stderr="boom")

    def test_no_additions_reported_on_failure(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")

        def on_run(cmds, options):
            write_file(workspace, "app.lock", "lock v2")
            raise ExecError(cmds[0], 1, stderr="late failure")

        res = _run(_request(), FakeToolchain(files), files, RecordingExecutor(on_run), cache)
        assert len(res) == 1
        assert res[0].file is None


class TestCacheRoot:
    """Every request gets its own cache root, removed afterwards."""

    def test_cache_roots_are_unique_and_released(self, workspace, files, cache):
        write_file(workspace, "app.lock", "lock v1")
        toolchain = FakeToolchain(files)
        executor = RecordingExecutor()
        _run(_request(), toolchain, files, executor, cache)
        _run(_request(), toolchain, files, executor, cache)
        first, second = toolchain.config_roots
        assert first != second
        assert not os.path.exists(first)
        assert not os.path.exists(second)

    def test_concurrent_requests_use_distinct_config_files(self, tmp_path, cache):
        from common.fs import LocalFileStore

        stores = []
        for name in ("one", "two"):
            root = tmp_path / name
            root.mkdir()
            write_file(root, "app.lock", "lock v1")
            stores.append(LocalFileStore(str(root)))
        toolchains = [FakeToolchain(store) for store in stores]
        executor = RecordingExecutor()

        async def _both():
            return await asyncio.gather(*(
                update_artifacts(_request(), tc, files=tc.files, executor=executor, cache=cache)
                for tc in toolchains
            ))

        asyncio.run(_both())
        config_files = [cmds[0][4] for cmds, _ in executor.calls]
        assert len(set(config_files)) == 2

    def test_cache_removal_does_not_block_the_event_loop(self, tmp_path, cache, monkeypatch):
        real_rmtree = shutil.rmtree

        def slow_rmtree(path, *args, **kwargs):
            time.sleep(0.5)
            real_rmtree(path, *args, **kwargs)

        monkeypatch.setattr(shutil, "rmtree", slow_rmtree)

        from common.fs import LocalFileStore

        toolchains = []
        for name in ("one", "two"):
            root = tmp_path / name
            root.mkdir()
            write_file(root, "app.lock", "lock v1")
            toolchains.append(FakeToolchain(LocalFileStore(str(root))))
        executor = RecordingExecutor()

        async def _with_heartbeat():
            gaps = []
            done = asyncio.Event()

            async def heartbeat():
                last = time.perf_counter()
                while not done.is_set():
                    await asyncio.sleep(0.02)
                    now = time.perf_counter()
                    gaps.append(now - last)
                    last = now

            beat = asyncio.create_task(heartbeat())
            await asyncio.gather(*(
                update_artifacts(_request(), tc, files=tc.files, executor=executor, cache=cache)
                for tc in toolchains
            ))
            done.set()
            await beat
            return max(gaps)

        assert asyncio.run(_with_heartbeat()) < 0.3
        assert len(executor.calls) == 2


class TestSnapshotHelpers:
    """Tests for snapshot helpers."""

    def test_has_any_content(self):
        assert not has_any_content({"a": None, "b": None})
        assert not has_any_content({})
        assert has_any_content({"a": None, "b": "x"})

    def test_diff_ignores_files_missing_on_both_sides(self):
        assert diff_snapshots(["a", "b"], {"a": "1", "b": None}, {"a": "1", "b": None}) is None

    def test_diff_reports_newly_created_file(self):
        res = diff_snapshots(["a", "b"], {"a": "1", "b": None}, {"a": "1", "b": "new"})
        assert [r.file.path for r in res] == ["b"]

    def test_diff_raises_for_removed_file(self):
        with pytest.raises(LockFileMissingError):
            diff_snapshots(["a"], {"a": "1"}, {"a": None})


class TestResultModel:
    """Tests for UpdateArtifactsResult.to_dict()."""

    def test_empty_result_is_rejected(self):
        with pytest.raises(ValueError):
            UpdateArtifactsResult().to_dict()
