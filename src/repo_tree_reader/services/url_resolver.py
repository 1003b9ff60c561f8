"""URL resolution — pick the provider for a URL and parse it with that provider's grammar."""

from __future__ import annotations

from typing import Mapping

from repo_tree_reader.domain.entities import LocationDescriptor
from repo_tree_reader.domain.exceptions import UnknownLocationError
from repo_tree_reader.domain.ports.provider_api import ProviderApi
from repo_tree_reader.domain.value_objects import SourceUrl


def resolve_location(
    url: str, providers: Mapping[str, ProviderApi]
) -> tuple[ProviderApi, LocationDescriptor]:
    """Return the provider owning *url* and the location it points at.

    Hosts are compared exactly (case and port included).
    """
    source = SourceUrl.from_string(url)
    provider = providers.get(source.host)
    if provider is None:
        raise UnknownLocationError(
            f"Incorrect URL: '{source.raw}'. No provider is configured for host "
            f"'{source.host}'.",
            host=source.host,
            source_url=source.raw,
        )
    return provider, provider.parse_location(source)
