"""zero-init pipeline orchestrator.

Implements the interactive ``init`` flow:

Step 1: PROJECT         -- Ask for the project name, create its directory.
Step 2: STACK           -- Pick a cloud provider and a stack of modules.
Step 3: MODULES         -- Fetch every module concurrently, parse descriptors.
Step 4: PROJECT PROMPTS -- Repository push settings.
Step 5: CREDENTIALS     -- Vendor secrets, pre-filled from ~/.zero.
Step 6: PARAMETERS      -- Module parameters, fanned out per module.
Step 7: WRITE           -- Verify AWS identity, write zero-project.yml.

Usage::

    python -m zeroinit.pipeline init
    python -m zeroinit.pipeline init --output ./projects
    python -m zeroinit.pipeline create my-project
"""

from __future__ import annotations

import asyncio
import sys
import time
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from rich.panel import Panel

from zeroinit.config import Config
from zeroinit.credentials import (
    CredentialStore,
    ProjectCredential,
    fill_credentials,
    get_credential_prompts,
    required_vendors,
)
from zeroinit.errors import CredentialVerificationError, ZeroError
from zeroinit.models import (
    AWSInfrastructure,
    ModuleConfig,
    ModuleFiles,
    Parameter,
    ProjectModule,
    ZeroProjectConfig,
)
from zeroinit.modules import load_all_modules
from zeroinit.parameters import assign_module_parameters, prompt_all_modules
from zeroinit.prompts import (
    KeyMatchCondition,
    NoCondition,
    NonEmptyValidation,
    NoValidation,
    PromptHandler,
    Prompter,
    RichPrompter,
    SpecificValueValidation,
    resolve_all,
)
from zeroinit.providers import choose_cloud_provider, fill_provider_details
from zeroinit.registry import StackRegistry, default_registry, load_registry
from zeroinit.scaffolder import ProjectGenerator, create_project_dir
from zeroinit.utils import (
    STEP_NAMES,
    console,
    format_duration,
    mask_secret,
    print_error,
    print_step_header,
    print_success,
    print_summary_table,
    print_warning,
)

PROJECT_NAME_FIELD = "projectName"
SHOULD_PUSH_FIELD = "ShouldPushRepositories"
GITHUB_ORG_FIELD = "GithubRootOrg"

_PROJECT_FIELDS = (PROJECT_NAME_FIELD, SHOULD_PUSH_FIELD, GITHUB_ORG_FIELD)


# ---------------------------------------------------------------------------
# Project-level prompts
# ---------------------------------------------------------------------------

def project_name_prompt() -> PromptHandler:
    """Asked on its own, first: later defaults are derived from the name."""
    return PromptHandler(
        Parameter(field=PROJECT_NAME_FIELD, label="Project Name", default=""),
        NoCondition,
        NonEmptyValidation,
    )


def project_prompts() -> list[PromptHandler]:
    """Repository push settings, in the order they must be asked."""
    return [
        PromptHandler(
            Parameter(
                field=SHOULD_PUSH_FIELD,
                label="Should the created projects be checked into github automatically? (y/n)",
                default="y",
            ),
            NoCondition,
            SpecificValueValidation("y", "n"),
        ),
        PromptHandler(
            Parameter(
                field=GITHUB_ORG_FIELD,
                label="What's the root of the github org to create repositories in?",
                default="github.com/",
            ),
            KeyMatchCondition(SHOULD_PUSH_FIELD, "y"),
            NoValidation,
        ),
    ]


def module_repo_prompts(modules: Mapping[str, ModuleConfig]) -> list[PromptHandler]:
    """One "what do you want to call it" question per module."""
    return [
        PromptHandler(
            Parameter(
                field=name,
                label=f"What do you want to call the {name} project?",
                default=module.output_dir,
            ),
            NoCondition,
            NoValidation,
        )
        for name, module in modules.items()
    ]


def repository_url(org: Optional[str], repo_name: str) -> str:
    """``<org>/<repo>``, or empty when there is no org to push to."""
    if not org:
        return ""
    return f"{org.rstrip('/')}/{repo_name}"


# ---------------------------------------------------------------------------
# Pipeline Orchestrator
# ---------------------------------------------------------------------------

class InitPipeline:
    """Drives the interactive init flow.

    Attributes:
        config: Global configuration.
        answers: Every answer given so far, keyed by field.  Later prompt
            conditions read from it, so it is only ever written in order.
        project: The project configuration being assembled.
        modules: Loaded module descriptors, keyed by module name.
    """

    def __init__(
        self,
        config: Config,
        prompter: Prompter | None = None,
        registry: StackRegistry | None = None,
        store: CredentialStore | None = None,
    ) -> None:
        self.config = config
        self.prompter = prompter or RichPrompter()
        if registry is not None:
            self.registry = registry
        elif config.registry_path is not None:
            self.registry = load_registry(config.registry_path)
        else:
            self.registry = default_registry()
        self.store = store or CredentialStore(config.credentials_path)

        self.answers: dict[str, str] = {}
        self.project = ZeroProjectConfig()
        self.modules: dict[str, ModuleConfig] = {}
        self.sources: list[str] = []
        self.credential: ProjectCredential | None = None
        self.root: Path | None = None

    _STEP_METHODS: dict[int, str] = {
        1: "step1_project",
        2: "step2_stack",
        3: "step3_modules",
        4: "step4_project_prompts",
        5: "step5_credentials",
        6: "step6_parameters",
        7: "step7_write",
    }

    async def run(self) -> ZeroProjectConfig:
        """Execute every step in order.

        Any ``ZeroError`` aborts the run immediately; nothing asked so far is
        kept except what was already written to disk.
        """
        started = time.monotonic()
        console.print(
            Panel(
                f"[bold bright_cyan]zero-init[/bold bright_cyan]\n"
                f"Output  : {self.config.output_dir.resolve()}\n"
                f"Modules : {self.config.modules_cache_path}",
                title="[bold]Initializing project[/bold]",
                border_style="bright_cyan",
            )
        )

        for step, method_name in self._STEP_METHODS.items():
            print_step_header(step, STEP_NAMES[step])
            await getattr(self, method_name)()

        print_success(
            f"Project {self.project.name} initialized in "
            f"{format_duration(time.monotonic() - started)}"
        )
        return self.project

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def step1_project(self) -> None:
        name = project_name_prompt().resolve(self.answers, self.prompter)
        self.project.name = name or ""
        self.root = create_project_dir(self.project.name, self.config.output_dir)
        console.print(f"  [green]+[/green] Created {self.root}")

    async def step2_stack(self) -> None:
        choose_cloud_provider(self.prompter)
        _, label = self.prompter.select(
            "Pick a stack you'd like to use", self.registry.labels()
        )
        self.sources = self.registry.sources(label)
        console.print(f"  Stack [bold]{label}[/bold]: {len(self.sources)} module(s)")

    async def step3_modules(self) -> None:
        self.config.ensure_directories()
        self.modules = await load_all_modules(self.sources, self.config)

    async def step4_project_prompts(self) -> None:
        resolve_all(project_prompts(), self.answers, self.prompter)
        self.project.should_push_repositories = self.answers.get(SHOULD_PUSH_FIELD) != "n"

    async def step5_credentials(self) -> None:
        stored = self.store.load(self.project.name)
        prompts = get_credential_prompts(stored, self.modules.values(), self.registry)
        if not prompts:
            console.print("  No credentials required by the selected modules.")
        self.credential = fill_credentials(
            prompts, stored, self.answers, self.prompter, self.registry
        )
        path = self.store.save(self.credential)
        console.print(f"  [green]+[/green] Credentials saved to {path}")

    async def step6_parameters(self) -> None:
        prompt_all_modules(self.modules, self.answers, self.prompter)
        repo_names = resolve_all(module_repo_prompts(self.modules), self.answers, self.prompter)

        org = self.answers.get(GITHUB_ORG_FIELD) if self.project.should_push_repositories else None
        assigned = assign_module_parameters(self.modules, self.answers)
        for name in self.modules:
            repo_name = repo_names[name] or self.modules[name].output_dir
            self.project.modules[name] = ProjectModule(
                parameters=assigned[name],
                files=ModuleFiles(directory=repo_name, repository=repository_url(org, repo_name)),
            )

    async def step7_write(self) -> None:
        if self.root is None:
            raise ZeroError("Project directory has not been created yet (step 1)")

        self.project.parameters = {
            field: self.answers[field] for field in _PROJECT_FIELDS if field in self.answers
        }

        if "aws" in required_vendors(self.modules.values()):
            self.project.infrastructure.aws = AWSInfrastructure(
                region=self.answers.get("region") or self.config.aws_region
            )
            if self.config.verify_identity and self.credential is not None:
                try:
                    account = await asyncio.to_thread(
                        fill_provider_details, self.project, self.credential
                    )
                    console.print(f"  [green]+[/green] AWS account {account}")
                except CredentialVerificationError as exc:
                    print_warning(f"  {exc}")

        written = await ProjectGenerator(self.project).write_boilerplate(self.root)
        self._print_summary(written)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def _print_summary(self, written: list[Path]) -> None:
        summary = {
            "Project": self.project.name,
            "Directory": str(self.root),
            "Push to GitHub": "yes" if self.project.should_push_repositories else "no",
            "Modules": ", ".join(self.project.modules) or "none",
        }
        if self.project.infrastructure.aws is not None:
            summary["AWS region"] = self.project.infrastructure.aws.region
            summary["AWS account"] = self.project.infrastructure.aws.account_id or "unverified"
        if self.credential is not None and self.credential.aws.access_key_id:
            summary["AWS access key"] = mask_secret(self.credential.aws.access_key_id)
        for path in written:
            summary[f"Wrote {path.name}"] = str(path)
        print_summary_table(summary, title="Project Summary")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for ``zero-init`` / ``python -m zeroinit.pipeline``."""
    import argparse

    parser = argparse.ArgumentParser(
        prog="zero-init",
        description="zero-init -- assemble a project from a stack of template modules",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  zero-init init\n"
            "  zero-init init -o ./projects --registry ./my-stacks.yml\n"
            "  zero-init create my-project\n"
        ),
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    init_parser = subparsers.add_parser("init", help="Interactively initialize a new project")
    init_parser.add_argument("--output", "-o", default=None, help="Parent directory (default: .)")
    init_parser.add_argument("--registry", default=None, help="Stack registry YAML to use")
    init_parser.add_argument(
        "--no-verify", action="store_true", help="Skip the AWS identity check"
    )

    create_parser = subparsers.add_parser("create", help="Create an empty project skeleton")
    create_parser.add_argument("name", help="Project name")
    create_parser.add_argument("--output", "-o", default=None, help="Parent directory (default: .)")

    args = parser.parse_args(argv)

    try:
        config = Config.from_env()
    except ValueError as exc:
        print_error(f"Error: invalid ZERO_* environment setting: {exc}")
        sys.exit(1)
    if args.output:
        config.output_dir = Path(args.output)

    try:
        if args.command == "init":
            if args.registry:
                config.registry_path = Path(args.registry)
            if args.no_verify:
                config.verify_identity = False
            asyncio.run(InitPipeline(config).run())
        else:
            generator = ProjectGenerator(ZeroProjectConfig(name=args.name))
            root = asyncio.run(generator.create(config.output_dir))
            print_success(f"Created project {args.name} in {root}")
    except ZeroError as exc:
        print_error(f"Error: {exc}")
        sys.exit(1)


if __name__ == "__main__":
    main()
