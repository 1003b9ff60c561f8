"""Version resolution — turn a symbolic ref into the commit used as etag."""

from __future__ import annotations

import logging

from repo_tree_reader.domain.entities import LocationDescriptor, RefType, ResolvedVersion
from repo_tree_reader.domain.ports.provider_api import ProviderApi
from repo_tree_reader.domain.value_objects import short_commit

logger = logging.getLogger(__name__)


async def resolve_ref(provider: ProviderApi, location: LocationDescriptor) -> str:
    """Return the explicit ref, or the default branch when the URL named none."""
    if location.ref_type is RefType.DEFAULT or not location.ref:
        branch = await provider.fetch_default_branch(location)
        logger.debug(
            "Default branch of %s/%s is %s",
            location.organization,
            location.repository,
            branch,
        )
        return branch
    return location.ref


async def resolve_version(
    provider: ProviderApi, location: LocationDescriptor
) -> ResolvedVersion:
    """Resolve *location* to a concrete commit.

    Commit refs are taken as-is; branches (including the default branch)
    cost one commits lookup limited to a single result.
    """
    if location.ref_type is RefType.COMMIT and location.ref:
        return ResolvedVersion(commit_id=short_commit(location.ref))

    branch = await resolve_ref(provider, location)
    commit = await provider.fetch_latest_commit(location, branch)
    return ResolvedVersion(commit_id=short_commit(commit))
