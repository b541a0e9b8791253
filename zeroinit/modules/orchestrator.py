"""Concurrent fetch and sequential parse of every module in a stack."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence

from zeroinit.config import Config
from zeroinit.errors import DuplicateModuleError, ModuleFetchError
from zeroinit.models import ModuleConfig
from zeroinit.modules.loader import FetchResult, fetch_module, parse_module_config
from zeroinit.utils import console, create_progress, format_duration, print_warning


async def fetch_all_modules(sources: Sequence[str], config: Config) -> list[FetchResult]:
    """Fetch every distinct source concurrently and wait for all of them.

    At most ``config.fetch.max_parallel`` downloads run at once.  A source
    listed twice is fetched once since both would target the same cache
    directory.
    """
    unique_sources = list(dict.fromkeys(sources))
    cache_dir = config.modules_cache_path
    semaphore = asyncio.Semaphore(config.fetch.max_parallel)

    with create_progress() as progress:
        async def _fetch(source: str) -> FetchResult:
            async with semaphore:
                task_id = progress.add_task(f"Fetching {source}", total=None)
                result = await fetch_module(
                    source,
                    cache_dir,
                    timeout=config.fetch.timeout,
                    retries=config.fetch.retries,
                    retry_delay=config.fetch.retry_delay,
                )
                status = "[green]done[/green]" if result.ok else "[red]failed[/red]"
                progress.update(task_id, description=f"Fetching {source} {status}")
                progress.stop_task(task_id)
                return result

        return list(await asyncio.gather(*(_fetch(s) for s in unique_sources)))


async def load_all_modules(
    sources: Sequence[str], config: Config
) -> dict[str, ModuleConfig]:
    """Download every module in *sources* and parse its descriptor.

    Fetches run concurrently; parsing only starts once all of them have
    finished and none failed.  Parsing then follows the order of *sources*,
    so the returned mapping (keyed by each module's declared name) iterates
    in stack order.

    Raises:
        ModuleFetchError: If any source could not be fetched.  Every failed
            source is listed.
        ModuleParseError: If a descriptor is missing or malformed.
        DuplicateModuleError: If two sources declare the same module name
            and ``config.allow_duplicate_modules`` is off.
    """
    if not sources:
        return {}

    started = time.monotonic()
    results = await fetch_all_modules(sources, config)

    failed = [r for r in results if not r.ok]
    if failed:
        details = "\n".join(f"  - {r.source}: {r.error}" for r in failed)
        raise ModuleFetchError(
            f"Unable to fetch {len(failed)} module(s):\n{details}",
            sources=[r.source for r in failed],
        )

    console.print(
        f"  Fetched {len(results)} module source(s) in "
        f"{format_duration(time.monotonic() - started)}"
    )

    modules: dict[str, ModuleConfig] = {}
    origin: dict[str, str] = {}
    for source in sources:
        module = parse_module_config(source, config.modules_cache_path)
        if module.name in modules:
            if not config.allow_duplicate_modules:
                raise DuplicateModuleError(source, module.name, origin[module.name])
            print_warning(
                f"  Module '{module.name}' from {source} replaces the one from "
                f"{origin[module.name]}"
            )
            # Re-insert so the winner also takes the later position.
            del modules[module.name]
        modules[module.name] = module
        origin[module.name] = source
        console.print(f"  [green]+[/green] Loaded module [bold]{module.name}[/bold] ({source})")

    return modules
