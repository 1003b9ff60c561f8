"""Provider registry — one adapter per configured host, chosen by ProviderKind."""

from __future__ import annotations

from typing import Callable, Iterable, Mapping

import httpx

from repo_tree_reader.domain.entities import ProviderConfig, ProviderKind
from repo_tree_reader.domain.ports.provider_api import ProviderApi
from repo_tree_reader.infrastructure.bitbucket_cloud_adapter import BitbucketCloudAdapter
from repo_tree_reader.infrastructure.bitbucket_server_adapter import BitbucketServerAdapter
from repo_tree_reader.infrastructure.http_client import ProviderHttpClient

_ADAPTERS: dict[ProviderKind, Callable[[ProviderHttpClient, ProviderConfig], ProviderApi]] = {
    ProviderKind.CLOUD: BitbucketCloudAdapter,
    ProviderKind.SERVER: BitbucketServerAdapter,
}


def build_providers(
    configs: Iterable[ProviderConfig], client: httpx.AsyncClient
) -> Mapping[str, ProviderApi]:
    """Map each configured host to its adapter, sharing one HTTP client."""
    providers: dict[str, ProviderApi] = {}
    for config in configs:
        if config.host in providers:
            raise ValueError(f"Provider host '{config.host}' is configured twice.")
        adapter = _ADAPTERS[config.kind]
        providers[config.host] = adapter(ProviderHttpClient(client, config), config)
    return providers
