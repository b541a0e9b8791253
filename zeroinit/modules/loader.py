"""Fetching and parsing of individual modules.

A module source is fetched into its own directory under the module cache
and then parsed from the ``zero-module.yml`` descriptor at its root.  The two
steps are separate so that many fetches can run concurrently while parsing
happens only once every fetch has settled.

Supported source forms:

* an existing local directory (copied into the cache),
* an ``http(s)://`` archive URL (``.tar.gz``, ``.tgz``, ``.tar``, ``.zip``),
* anything else is treated as a git repository reference such as
  ``github.com/commitdev/zero-aws-eks-stack``, optionally suffixed with
  ``?ref=<branch-or-tag>``.
"""

from __future__ import annotations

import asyncio
import hashlib
import shutil
import tarfile
import tempfile
import zipfile
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import parse_qs, urlsplit

import httpx
import yaml
from pydantic import ValidationError

from zeroinit.errors import ModuleFetchError, ModuleParseError
from zeroinit.models import ModuleConfig
from zeroinit.utils import load_yaml, print_warning, sanitize_name

DESCRIPTOR_FILENAME = "zero-module.yml"

_ARCHIVE_SUFFIXES = (".tar.gz", ".tgz", ".tar", ".zip")
_URL_PREFIXES = ("http://", "https://", "ssh://", "git://", "file://", "git@")


@dataclass
class FetchResult:
    """Outcome of fetching a single module source."""

    source: str
    path: Path
    error: ModuleFetchError | None = None
    attempts: int = 1

    @property
    def ok(self) -> bool:
        return self.error is None


def module_cache_path(source: str, cache_dir: str | Path) -> Path:
    """Return the cache directory for *source*.

    The sanitised source keeps the directory recognisable; the digest keeps
    two sources that sanitise to the same string apart.
    """
    digest = hashlib.sha1(source.encode("utf-8")).hexdigest()[:8]
    slug = sanitize_name(source) or "module"
    return Path(cache_dir) / f"{slug}-{digest}"


# ---------------------------------------------------------------------------
# Source classification
# ---------------------------------------------------------------------------

def _split_ref(source: str) -> tuple[str, str | None]:
    """Split ``location?ref=v1`` into ``("location", "v1")``."""
    if "?" not in source:
        return source, None
    location, _, query = source.partition("?")
    refs = parse_qs(query).get("ref")
    return location, refs[0] if refs else None


def _is_archive_url(source: str) -> bool:
    if not source.startswith(("http://", "https://")):
        return False
    path = urlsplit(source).path.lower()
    return path.endswith(_ARCHIVE_SUFFIXES)


def _git_url(location: str) -> str:
    if location.startswith(_URL_PREFIXES):
        return location
    return f"https://{location}"


def _archive_suffix(url: str) -> str:
    path = urlsplit(url).path.lower()
    for suffix in _ARCHIVE_SUFFIXES:
        if path.endswith(suffix):
            return suffix
    return ""


# ---------------------------------------------------------------------------
# Fetch strategies
# ---------------------------------------------------------------------------

async def _run_git(
    *args: str,
    cwd: str | Path | None = None,
    timeout: float | None = None,
) -> tuple[str, str]:
    """Run a git command asynchronously and return (stdout, stderr).

    Raises ModuleFetchError if git is missing, times out or exits non-zero.
    """
    cmd = ["git"] + list(args)
    cmd_str = " ".join(cmd)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
        )
    except FileNotFoundError as exc:
        raise ModuleFetchError(f"git executable not found: {exc}") from exc

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        raise ModuleFetchError(f"Git command timed out after {timeout}s: {cmd_str}")

    stdout = stdout_bytes.decode("utf-8", errors="replace").strip()
    stderr = stderr_bytes.decode("utf-8", errors="replace").strip()

    if process.returncode != 0:
        raise ModuleFetchError(
            f"Git command failed (exit {process.returncode}): {cmd_str}\n{stderr}"
        )

    return stdout, stderr


async def _clone(location: str, ref: str | None, target: Path, timeout: float | None) -> None:
    args = ["clone", "--depth", "1", "--quiet"]
    if ref:
        args += ["--branch", ref]
    args += [_git_url(location), str(target)]
    await _run_git(*args, timeout=timeout)


async def _download_archive(url: str, target: Path, timeout: float | None) -> None:
    """Download an archive and unpack it into *target*.

    Archives produced by GitHub & co. wrap everything in a single top-level
    directory; that directory becomes *target* itself.
    """
    staging = target.parent
    archive_path = staging / f"download{_archive_suffix(url)}"
    unpacked = staging / "unpacked"

    try:
        async with httpx.AsyncClient(
            follow_redirects=True, timeout=httpx.Timeout(timeout)
        ) as client:
            response = await client.get(url)
            response.raise_for_status()
    except httpx.HTTPError as exc:
        raise ModuleFetchError(f"Download of {url} failed: {exc}") from exc

    try:
        await asyncio.to_thread(archive_path.write_bytes, response.content)
        await asyncio.to_thread(_extract, archive_path, unpacked)
    except (tarfile.TarError, zipfile.BadZipFile, ValueError, OSError) as exc:
        raise ModuleFetchError(f"Could not unpack {url}: {exc}") from exc

    entries = list(unpacked.iterdir()) if unpacked.is_dir() else []
    if not entries:
        raise ModuleFetchError(f"Archive {url} is empty")
    try:
        if len(entries) == 1 and entries[0].is_dir():
            entries[0].rename(target)
        else:
            unpacked.rename(target)
    except OSError as exc:
        raise ModuleFetchError(f"Could not unpack {url}: {exc}") from exc


def _extract(archive: Path, destination: Path) -> None:
    """Unpack *archive*; members that would land outside *destination* are refused."""
    if archive.suffix == ".zip":
        with zipfile.ZipFile(archive) as bundle:
            bundle.extractall(destination)
    else:
        with tarfile.open(archive) as bundle:
            bundle.extractall(destination, filter="data")


async def _copy_local(path: Path, target: Path) -> None:
    try:
        await asyncio.to_thread(
            shutil.copytree, path, target, ignore=shutil.ignore_patterns(".git")
        )
    except (OSError, shutil.Error) as exc:
        raise ModuleFetchError(f"Could not copy {path}: {exc}") from exc


async def _fetch_into(source: str, target: Path, timeout: float | None) -> None:
    local = Path(source).expanduser()
    if local.is_dir():
        await _copy_local(local, target)
    elif _is_archive_url(source):
        await _download_archive(source, target, timeout)
    else:
        location, ref = _split_ref(source)
        await _clone(location, ref, target, timeout)


async def _swap_into_place(source: str, target: Path, dest: Path) -> None:
    try:
        if dest.exists():
            await asyncio.to_thread(shutil.rmtree, dest)
        target.rename(dest)
    except OSError as exc:
        raise ModuleFetchError(f"Could not store {source} in the module cache: {exc}") from exc


async def fetch_module(
    source: str,
    cache_dir: str | Path,
    *,
    timeout: float | None = None,
    retries: int = 0,
    retry_delay: float = 1.0,
) -> FetchResult:
    """Download *source* into its cache directory.

    Content is written to a temporary sibling directory and swapped into
    place only once complete, so a failed attempt never clobbers what is
    already cached.  Failures are returned, not raised.

    Args:
        source: Module source identifier.
        cache_dir: Root of the module cache.
        timeout: Per-attempt timeout in seconds; ``None`` waits forever.
        retries: Extra attempts after the first failure.
        retry_delay: Base back-off; attempt *n* waits ``n * retry_delay``.

    Returns:
        A ``FetchResult`` whose ``error`` is set if every attempt failed.
    """
    cache_root = Path(cache_dir)
    cache_root.mkdir(parents=True, exist_ok=True)
    dest = module_cache_path(source, cache_root)

    last_error: ModuleFetchError | None = None
    attempts = retries + 1
    for attempt in range(1, attempts + 1):
        staging = Path(tempfile.mkdtemp(prefix=f".{dest.name}-", dir=cache_root))
        target = staging / "module"
        try:
            await _fetch_into(source, target, timeout)
            if not target.is_dir():
                raise ModuleFetchError(f"Fetching {source} produced no files")
            await _swap_into_place(source, target, dest)
            return FetchResult(source=source, path=dest, attempts=attempt)
        except ModuleFetchError as exc:
            last_error = exc
            if attempt < attempts:
                print_warning(
                    f"  Fetch of {source} failed (attempt {attempt}/{attempts}), retrying..."
                )
                await asyncio.sleep(retry_delay * attempt)
        finally:
            await asyncio.to_thread(shutil.rmtree, staging, True)

    return FetchResult(source=source, path=dest, error=last_error, attempts=attempts)


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------

def parse_module_config(source: str, cache_dir: str | Path) -> ModuleConfig:
    """Read and validate the descriptor of an already-fetched module.

    Raises:
        ModuleParseError: If the module directory or descriptor is missing,
            the YAML is malformed, or it does not match the schema.
    """
    module_dir = module_cache_path(source, cache_dir)
    descriptor = module_dir / DESCRIPTOR_FILENAME

    if not module_dir.is_dir():
        raise ModuleParseError(source, f"module directory {module_dir} not found")
    if not descriptor.is_file():
        raise ModuleParseError(source, f"{DESCRIPTOR_FILENAME} not found in {module_dir}")

    try:
        data = load_yaml(descriptor)
    except (yaml.YAMLError, ValueError) as exc:
        raise ModuleParseError(source, f"malformed {DESCRIPTOR_FILENAME}: {exc}") from exc

    try:
        return ModuleConfig.model_validate(data)
    except ValidationError as exc:
        raise ModuleParseError(source, f"invalid {DESCRIPTOR_FILENAME}: {exc}") from exc
