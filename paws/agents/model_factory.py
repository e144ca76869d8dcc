"""Helpers for building provider-specific model specs."""

from __future__ import annotations

from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.azure import AzureProvider
from pydantic_ai.providers.openai import OpenAIProvider

from paws.config import LLMSettings


def build_model(model_name: str, llm_settings: LLMSettings) -> OpenAIChatModel:
    provider_key = llm_settings.provider.lower()
    if provider_key in {"azure", "azure_openai"}:
        api_key = llm_settings.azure.api_key or llm_settings.api_key
        base_url = llm_settings.azure.base_url or llm_settings.base_url
        api_version = llm_settings.azure.api_version
        if not (api_key and base_url and api_version):
            raise ValueError(
                "Azure OpenAI requires PAWS_LLM__AZURE__API_KEY, PAWS_LLM__AZURE__BASE_URL, "
                "and PAWS_LLM__AZURE__API_VERSION."
            )
        azure_provider = AzureProvider(
            azure_endpoint=str(base_url),
            api_version=api_version,
            api_key=api_key.get_secret_value(),
        )
        return OpenAIChatModel(model_name, provider=azure_provider)

    if provider_key == "custom" and llm_settings.base_url is None:
        raise ValueError("Custom provider requires PAWS_LLM__BASE_URL.")
    if llm_settings.api_key is None:
        raise ValueError("LLM provider requires PAWS_LLM__API_KEY.")

    openai_provider = OpenAIProvider(
        api_key=llm_settings.api_key.get_secret_value(),
        base_url=str(llm_settings.base_url) if llm_settings.base_url else None,
    )
    return OpenAIChatModel(model_name, provider=openai_provider)


__all__ = ["build_model"]
