"""Unit tests for single-module fetch and parse (zeroinit.modules.loader).

Tests cover:
- module_cache_path uniqueness
- Source classification helpers
- fetch_module: local copy, git clone, archive download, retries, failures
- Archive safety: members outside the cache, empty archives
- parse_module_config error handling
"""

from __future__ import annotations

import io
import shutil
import tarfile
import zipfile
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from zeroinit.errors import ModuleFetchError, ModuleParseError
from zeroinit.modules.loader import (
    DESCRIPTOR_FILENAME,
    _git_url,
    _is_archive_url,
    _run_git,
    _split_ref,
    fetch_module,
    module_cache_path,
    parse_module_config,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _clone_side_effect(proc, descriptor: str = "name: cloned\n"):
    """create_subprocess_exec replacement that materialises the clone target."""
    calls: list[tuple[str, ...]] = []

    async def _exec(*cmd, **kwargs):
        calls.append(cmd)
        if proc.returncode == 0:
            target = Path(cmd[-1])
            target.mkdir(parents=True)
            (target / DESCRIPTOR_FILENAME).write_text(descriptor)
        return proc

    return _exec, calls


def _tar_gz(files: dict[str, str]) -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for name, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(name)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def _mock_async_client(*, content: bytes = b"", error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.get = AsyncMock(side_effect=error)
    else:
        client.get = AsyncMock(return_value=MagicMock(content=content))
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=client)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory


# ---------------------------------------------------------------------------
# Cache paths / classification
# ---------------------------------------------------------------------------

class TestModuleCachePath:
    @pytest.mark.unit
    def test_is_under_cache_dir(self, tmp_path: Path):
        path = module_cache_path("github.com/commitdev/zero-deployable-backend", tmp_path)
        assert path.parent == tmp_path
        assert path.name.startswith("github-com-commitdev-zero-deployable-backend-")

    @pytest.mark.unit
    def test_deterministic(self, tmp_path: Path):
        assert module_cache_path("a/b", tmp_path) == module_cache_path("a/b", tmp_path)

    @pytest.mark.unit
    def test_distinct_sources_never_collide(self, tmp_path: Path):
        # Both sanitise to "a-b"; the digest keeps them apart.
        assert module_cache_path("a/b", tmp_path) != module_cache_path("a.b", tmp_path)

    @pytest.mark.unit
    def test_symbol_only_source(self, tmp_path: Path):
        assert module_cache_path("///", tmp_path).name.startswith("module-")


class TestSourceHelpers:
    @pytest.mark.unit
    def test_split_ref(self):
        assert _split_ref("github.com/org/repo?ref=v1.2") == ("github.com/org/repo", "v1.2")
        assert _split_ref("github.com/org/repo") == ("github.com/org/repo", None)
        assert _split_ref("github.com/org/repo?depth=1") == ("github.com/org/repo", None)

    @pytest.mark.unit
    def test_is_archive_url(self):
        assert _is_archive_url("https://example.com/m.tar.gz")
        assert _is_archive_url("https://example.com/m.zip?token=1")
        assert not _is_archive_url("https://github.com/org/repo")
        assert not _is_archive_url("example.com/m.tar.gz")

    @pytest.mark.unit
    def test_git_url(self):
        assert _git_url("github.com/org/repo") == "https://github.com/org/repo"
        assert _git_url("git@github.com:org/repo.git") == "git@github.com:org/repo.git"
        assert _git_url("https://gitlab.com/org/repo") == "https://gitlab.com/org/repo"


# ---------------------------------------------------------------------------
# _run_git
# ---------------------------------------------------------------------------

class TestRunGit:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_success(self, mock_subprocess):
        proc = mock_subprocess(stdout="ok\n")
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            stdout, _ = await _run_git("status")
        assert stdout == "ok"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_non_zero_exit(self, mock_subprocess):
        proc = mock_subprocess(stderr="fatal: repository not found", returncode=128)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            with pytest.raises(ModuleFetchError, match="exit 128"):
                await _run_git("clone", "x")

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_git_missing(self):
        with patch("asyncio.create_subprocess_exec", AsyncMock(side_effect=FileNotFoundError("git"))):
            with pytest.raises(ModuleFetchError, match="not found"):
                await _run_git("status")


# ---------------------------------------------------------------------------
# fetch_module
# ---------------------------------------------------------------------------

class TestFetchLocal:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_copies_directory(self, module_source, tmp_path: Path):
        source = module_source("backend")
        cache = tmp_path / "cache"

        result = await fetch_module(source, cache)

        assert result.ok
        assert result.attempts == 1
        assert result.path == module_cache_path(source, cache)
        assert (result.path / DESCRIPTOR_FILENAME).is_file()
        assert (result.path / "README.md").read_text() == "# backend\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_refetch_replaces_cache(self, module_source, tmp_path: Path):
        source = module_source("backend")
        cache = tmp_path / "cache"
        first = await fetch_module(source, cache)
        (first.path / "stale.txt").write_text("old")

        second = await fetch_module(source, cache)

        assert second.ok
        assert not (second.path / "stale.txt").exists()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_no_staging_left_behind(self, module_source, tmp_path: Path):
        cache = tmp_path / "cache"
        result = await fetch_module(module_source("backend"), cache)
        assert list(cache.iterdir()) == [result.path]


class TestFetchGit:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_shallow_clone(self, mock_subprocess, tmp_path: Path):
        exec_mock, calls = _clone_side_effect(mock_subprocess())
        with patch("asyncio.create_subprocess_exec", side_effect=exec_mock):
            result = await fetch_module("github.com/commitdev/zero-aws-eks-stack", tmp_path)

        assert result.ok
        cmd = calls[0]
        assert cmd[:5] == ("git", "clone", "--depth", "1", "--quiet")
        assert "https://github.com/commitdev/zero-aws-eks-stack" in cmd
        assert (result.path / DESCRIPTOR_FILENAME).read_text() == "name: cloned\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clone_with_ref(self, mock_subprocess, tmp_path: Path):
        exec_mock, calls = _clone_side_effect(mock_subprocess())
        with patch("asyncio.create_subprocess_exec", side_effect=exec_mock):
            await fetch_module("github.com/org/repo?ref=v0.1.0", tmp_path)

        cmd = calls[0]
        assert cmd[cmd.index("--branch") + 1] == "v0.1.0"
        assert "https://github.com/org/repo" in cmd

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_is_returned_not_raised(self, mock_subprocess, tmp_path: Path):
        proc = mock_subprocess(stderr="fatal: not found", returncode=128)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await fetch_module("github.com/org/missing", tmp_path)

        assert not result.ok
        assert isinstance(result.error, ModuleFetchError)
        assert "fatal: not found" in str(result.error)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_failure_keeps_existing_cache(self, mock_subprocess, tmp_path: Path):
        source = "github.com/org/repo"
        existing = module_cache_path(source, tmp_path)
        existing.mkdir(parents=True)
        (existing / DESCRIPTOR_FILENAME).write_text("name: cached\n")

        proc = mock_subprocess(returncode=1)
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=proc)):
            result = await fetch_module(source, tmp_path)

        assert not result.ok
        assert (existing / DESCRIPTOR_FILENAME).read_text() == "name: cached\n"
        assert list(tmp_path.iterdir()) == [existing]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, mock_subprocess, tmp_path: Path):
        failing = mock_subprocess(returncode=1)
        ok_exec, _ = _clone_side_effect(mock_subprocess())
        attempts = 0

        async def _exec(*cmd, **kwargs):
            nonlocal attempts
            attempts += 1
            if attempts == 1:
                return failing
            return await ok_exec(*cmd, **kwargs)

        with patch("asyncio.create_subprocess_exec", side_effect=_exec):
            result = await fetch_module("github.com/org/flaky", tmp_path, retries=2, retry_delay=0)

        assert result.ok
        assert result.attempts == 2

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_retries_exhausted(self, mock_subprocess, tmp_path: Path):
        proc = mock_subprocess(returncode=1)
        exec_mock = AsyncMock(return_value=proc)
        with patch("asyncio.create_subprocess_exec", exec_mock):
            result = await fetch_module("github.com/org/down", tmp_path, retries=2, retry_delay=0)

        assert not result.ok
        assert result.attempts == 3
        assert exec_mock.await_count == 3

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_clone_without_output_is_a_failure(self, mock_subprocess, tmp_path: Path):
        with patch("asyncio.create_subprocess_exec", AsyncMock(return_value=mock_subprocess())):
            result = await fetch_module("github.com/org/hollow", tmp_path)

        assert not result.ok
        assert "produced no files" in str(result.error)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_cache_swap_error_is_returned(self, mock_subprocess, tmp_path: Path):
        source = "github.com/org/locked"
        existing = module_cache_path(source, tmp_path)
        existing.mkdir(parents=True)
        real_rmtree = shutil.rmtree

        def _rmtree(path, *args, **kwargs):
            if Path(path) == existing:
                raise PermissionError("permission denied")
            return real_rmtree(path, *args, **kwargs)

        exec_mock, _ = _clone_side_effect(mock_subprocess())
        with patch("asyncio.create_subprocess_exec", side_effect=exec_mock), \
                patch("zeroinit.modules.loader.shutil.rmtree", side_effect=_rmtree):
            result = await fetch_module(source, tmp_path)

        assert not result.ok
        assert "permission denied" in str(result.error)
        assert existing.is_dir()


class TestFetchArchive:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_single_top_level_dir_is_unwrapped(self, tmp_path: Path):
        data = _tar_gz({
            "repo-main/zero-module.yml": "name: archived\n",
            "repo-main/templates/main.tf": "# tf\n",
        })
        client = _mock_async_client(content=data)
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/repo.tar.gz", tmp_path / "cache")

        assert result.ok
        assert (result.path / DESCRIPTOR_FILENAME).read_text() == "name: archived\n"
        assert (result.path / "templates" / "main.tf").is_file()

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_flat_archive(self, tmp_path: Path):
        data = _tar_gz({"zero-module.yml": "name: flat\n", "README.md": "hi\n"})
        client = _mock_async_client(content=data)
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/flat.tgz", tmp_path / "cache")

        assert result.ok
        assert (result.path / DESCRIPTOR_FILENAME).read_text() == "name: flat\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_http_error(self, tmp_path: Path):
        client = _mock_async_client(error=httpx.ConnectError("connection refused"))
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/repo.zip", tmp_path / "cache")

        assert not result.ok
        assert "connection refused" in str(result.error)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_corrupt_archive(self, tmp_path: Path):
        client = _mock_async_client(content=b"not a tarball")
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/repo.tar.gz", tmp_path / "cache")

        assert not result.ok
        assert "Could not unpack" in str(result.error)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_zip_archive(self, tmp_path: Path):
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w") as bundle:
            bundle.writestr("repo-main/zero-module.yml", "name: zipped\n")
        client = _mock_async_client(content=buffer.getvalue())
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/repo.zip", tmp_path / "cache")

        assert result.ok
        assert (result.path / DESCRIPTOR_FILENAME).read_text() == "name: zipped\n"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_member_escaping_cache_is_refused(self, tmp_path: Path):
        data = _tar_gz({
            "zero-module.yml": "name: sneaky\n",
            "../../../escaped.txt": "gotcha\n",
        })
        client = _mock_async_client(content=data)
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/sneaky.tar.gz", tmp_path / "a" / "cache")

        assert not result.ok
        assert "Could not unpack" in str(result.error)
        assert list(tmp_path.rglob("escaped.txt")) == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_empty_archive(self, tmp_path: Path):
        client = _mock_async_client(content=_tar_gz({}))
        with patch("zeroinit.modules.loader.httpx.AsyncClient", client):
            result = await fetch_module("https://example.com/blank.tar.gz", tmp_path / "cache")

        assert not result.ok
        assert "empty" in str(result.error)
        assert list((tmp_path / "cache").iterdir()) == []


# ---------------------------------------------------------------------------
# parse_module_config
# ---------------------------------------------------------------------------

class TestParseModuleConfig:
    @staticmethod
    def _cached(tmp_path: Path, source: str, text: str | None) -> Path:
        path = module_cache_path(source, tmp_path)
        path.mkdir(parents=True)
        if text is not None:
            (path / DESCRIPTOR_FILENAME).write_text(text)
        return path

    @pytest.mark.unit
    def test_parses_descriptor(self, tmp_path: Path):
        self._cached(tmp_path, "src", "name: backend\nrequiredCredentials: [github]\n")
        module = parse_module_config("src", tmp_path)
        assert module.name == "backend"
        assert module.required_credentials == ["github"]

    @pytest.mark.unit
    def test_not_fetched(self, tmp_path: Path):
        with pytest.raises(ModuleParseError, match="not found"):
            parse_module_config("never-fetched", tmp_path)

    @pytest.mark.unit
    def test_missing_descriptor(self, tmp_path: Path):
        self._cached(tmp_path, "src", None)
        with pytest.raises(ModuleParseError, match=f"{DESCRIPTOR_FILENAME} not found"):
            parse_module_config("src", tmp_path)

    @pytest.mark.unit
    def test_malformed_yaml(self, tmp_path: Path):
        self._cached(tmp_path, "src", "name: [oops\n")
        with pytest.raises(ModuleParseError, match="malformed"):
            parse_module_config("src", tmp_path)

    @pytest.mark.unit
    def test_schema_violation(self, tmp_path: Path):
        self._cached(tmp_path, "src", "description: no name here\n")
        with pytest.raises(ModuleParseError, match="invalid") as exc_info:
            parse_module_config("src", tmp_path)
        assert exc_info.value.source == "src"
