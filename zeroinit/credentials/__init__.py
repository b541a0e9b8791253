"""Project credentials: persistence and vendor prompt resolution."""

from zeroinit.credentials.store import (
    AWSResourceConfig,
    CircleCiResourceConfig,
    CredentialStore,
    GithubResourceConfig,
    ProjectCredential,
)
from zeroinit.credentials.vendors import (
    fill_credentials,
    get_credential_prompts,
    prompts_for_vendor,
    required_vendors,
)

__all__ = [
    "AWSResourceConfig",
    "CircleCiResourceConfig",
    "CredentialStore",
    "GithubResourceConfig",
    "ProjectCredential",
    "fill_credentials",
    "get_credential_prompts",
    "prompts_for_vendor",
    "required_vendors",
]
