"""Narrow resource clients built on the shared transport.

Each client depends only on the HttpTransport contract. Resources are
plain JSON mappings; callers decode them into their own types if needed.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Final

from .http import HttpTransport
from .list_iterator import Filter, ListEnvelope, ListIterator, Pagination

API_PATH_PREFIX: Final = "/api/v1"
CLUSTER_HEADER_NAME: Final = "X-API7-Cloud-Cluster-ID"

# Values of the "active" field of an application.
ACTIVE_STATUS: Final = 0
INACTIVE_STATUS: Final = 1

Resource = dict[str, Any]


def _path(*parts: object) -> str:
    return "/".join([API_PATH_PREFIX, *(str(part).strip("/") for part in parts)])


def _as_resource(payload: Any) -> Resource:
    if not isinstance(payload, Mapping):
        raise TypeError(f"expected JSON object, got {type(payload).__name__}")
    return dict(payload)


def _decode_resource_list(payload: Any) -> list[Resource]:
    return [_as_resource(item) for item in ListEnvelope.from_payload(payload).items]


@dataclass(frozen=True)
class ResourceScope:
    """Cluster a call is narrowed to, sent as a scope header.

    Passed explicitly to every call that needs it; there is no ambient
    "current cluster".
    """

    cluster_id: int | str | None = None

    def headers(self) -> dict[str, str]:
        if self.cluster_id is None or str(self.cluster_id) in ("", "0"):
            return {}
        return {CLUSTER_HEADER_NAME: str(self.cluster_id)}


def _scope_headers(scope: ResourceScope | None) -> dict[str, str]:
    return scope.headers() if scope is not None else {}


@dataclass(frozen=True)
class ListOptions:
    """Paging, filter and scope for a list call."""

    pagination: Pagination | None = None
    filter: Filter | None = None
    scope: ResourceScope | None = field(default=None)


class UserClient:
    """Current user information."""

    def __init__(self, client: HttpTransport) -> None:
        self._client = client

    async def me(self) -> Resource:
        """Return the user owning the access token."""
        return await self._client.send_get_request(
            _path("user", "me"), decoder=_as_resource
        )


class ApplicationClient:
    """Applications of a control plane."""

    def __init__(self, client: HttpTransport) -> None:
        self._client = client

    async def create_application(
        self,
        control_plane_id: int | str,
        app: Mapping[str, Any],
        *,
        scope: ResourceScope | None = None,
    ) -> Resource:
        """Create an application; returns it with management fields filled."""
        return await self._client.send_post_request(
            _path("controlplanes", control_plane_id, "apps"),
            dict(app),
            decoder=_as_resource,
            headers=_scope_headers(scope),
        )

    async def update_application(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        app: Mapping[str, Any],
        *,
        scope: ResourceScope | None = None,
    ) -> Resource:
        return await self._client.send_put_request(
            _path("controlplanes", control_plane_id, "apps", app_id),
            dict(app),
            decoder=_as_resource,
            headers=_scope_headers(scope),
        )

    async def get_application(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        *,
        scope: ResourceScope | None = None,
    ) -> Resource:
        return await self._client.send_get_request(
            _path("controlplanes", control_plane_id, "apps", app_id),
            decoder=_as_resource,
            headers=_scope_headers(scope),
        )

    async def delete_application(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        *,
        scope: ResourceScope | None = None,
    ) -> None:
        await self._client.send_delete_request(
            _path("controlplanes", control_plane_id, "apps", app_id),
            headers=_scope_headers(scope),
        )

    async def publish_application(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        *,
        scope: ResourceScope | None = None,
    ) -> Resource:
        """Mark the application active so gateway instances see it."""
        return await self._set_active(control_plane_id, app_id, ACTIVE_STATUS, scope)

    async def unpublish_application(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        *,
        scope: ResourceScope | None = None,
    ) -> Resource:
        """Mark the application inactive."""
        return await self._set_active(control_plane_id, app_id, INACTIVE_STATUS, scope)

    async def _set_active(
        self,
        control_plane_id: int | str,
        app_id: int | str,
        active: int,
        scope: ResourceScope | None,
    ) -> Resource:
        return await self._client.send_patch_request(
            _path("controlplanes", control_plane_id, "apps", app_id),
            {"active": active},
            decoder=_as_resource,
            headers=_scope_headers(scope),
        )

    def list_applications(
        self, control_plane_id: int | str, options: ListOptions | None = None
    ) -> ListIterator[Resource]:
        options = options or ListOptions()
        return ListIterator(
            self._client,
            _path("controlplanes", control_plane_id, "apps"),
            pagination=options.pagination,
            filter=options.filter,
            headers=_scope_headers(options.scope),
            decoder=_as_resource,
            resource="applications",
        )


class ClusterClient:
    """Clusters of an organization."""

    def __init__(self, client: HttpTransport) -> None:
        self._client = client

    async def get_cluster(self, org_id: int | str, cluster_id: int | str) -> Resource:
        return await self._client.send_get_request(
            _path("orgs", org_id, "clusters", cluster_id), decoder=_as_resource
        )

    async def update_cluster_settings(
        self, org_id: int | str, cluster_id: int | str, settings: Mapping[str, Any]
    ) -> None:
        await self._client.send_patch_request(
            _path("orgs", org_id, "clusters", cluster_id, "config"), dict(settings)
        )

    def list_clusters(
        self, org_id: int | str, options: ListOptions | None = None
    ) -> ListIterator[Resource]:
        options = options or ListOptions()
        return ListIterator(
            self._client,
            _path("orgs", org_id, "clusters"),
            pagination=options.pagination,
            filter=options.filter,
            headers=_scope_headers(options.scope),
            decoder=_as_resource,
            resource="clusters",
        )

    async def list_all_gateway_instances(self, cluster_id: int | str) -> list[Resource]:
        """Return every gateway instance of a cluster in one call (not paged)."""
        return await self._client.send_get_request(
            _path("clusters", cluster_id, "instances"),
            decoder=_decode_resource_list,
            headers=ResourceScope(cluster_id).headers(),
        )
