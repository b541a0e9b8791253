"""Cloud provider selection and AWS identity verification."""

from __future__ import annotations

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from zeroinit.credentials.store import ProjectCredential
from zeroinit.errors import CredentialVerificationError, UnsupportedProviderError
from zeroinit.models import ZeroProjectConfig
from zeroinit.prompts.handler import Prompter

CLOUD_PROVIDERS: tuple[str, ...] = ("Amazon AWS", "Google GCP", "Microsoft Azure")
SUPPORTED_PROVIDER = "Amazon AWS"


def choose_cloud_provider(prompter: Prompter) -> str:
    """Ask which cloud to deploy to.

    Raises:
        UnsupportedProviderError: For anything but AWS.
    """
    _, provider = prompter.select("Select Cloud Provider", list(CLOUD_PROVIDERS))
    if provider != SUPPORTED_PROVIDER:
        raise UnsupportedProviderError(provider)
    return provider


def fill_provider_details(
    project_config: ZeroProjectConfig, credential: ProjectCredential
) -> str | None:
    """Look up the AWS account the credentials belong to.

    Stores the account id on ``project_config.infrastructure.aws`` and
    returns it.  Does nothing (and returns ``None``) when the project has no
    AWS infrastructure.

    Raises:
        CredentialVerificationError: If STS rejects the credentials or
            cannot be reached.
    """
    aws = project_config.infrastructure.aws
    if aws is None:
        return None

    try:
        sts = boto3.client(
            "sts",
            region_name=aws.region,
            aws_access_key_id=credential.aws.access_key_id,
            aws_secret_access_key=credential.aws.secret_access_key,
        )
        identity = sts.get_caller_identity()
    except ClientError as exc:
        code = exc.response.get("Error", {}).get("Code", "")
        # No code gets special treatment yet.
        raise CredentialVerificationError(
            f"AWS identity check failed ({code or 'unknown'}): {exc}", code=code
        ) from exc
    except BotoCoreError as exc:
        raise CredentialVerificationError(f"AWS identity check failed: {exc}") from exc

    account = identity.get("Account")
    if account:
        aws.account_id = account
    return account
