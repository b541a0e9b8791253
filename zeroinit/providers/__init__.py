"""Cloud provider integrations (AWS only for now)."""

from zeroinit.providers.aws import (
    CLOUD_PROVIDERS,
    choose_cloud_provider,
    fill_provider_details,
)

__all__ = ["CLOUD_PROVIDERS", "choose_cloud_provider", "fill_provider_details"]
