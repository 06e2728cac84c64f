"""Tests for resource clients against a hand-written transport double."""

from __future__ import annotations

import pytest

from api7_cloud.errors import CloudDecodeError
from api7_cloud.list_iterator import Filter, Pagination
from api7_cloud.resources import (
    CLUSTER_HEADER_NAME,
    ApplicationClient,
    ClusterClient,
    ListOptions,
    ResourceScope,
    UserClient,
)

from .conftest import FakeTransport


class TestResourceScope:
    """Tests for the explicit cluster scope."""

    def test_headers(self) -> None:
        assert ResourceScope(7).headers() == {CLUSTER_HEADER_NAME: "7"}

    @pytest.mark.parametrize("cluster_id", [None, 0, ""])
    def test_unset_scope_has_no_header(self, cluster_id: int | str | None) -> None:
        assert ResourceScope(cluster_id).headers() == {}

    def test_scope_is_immutable(self) -> None:
        scope = ResourceScope(1)
        with pytest.raises(AttributeError):
            scope.cluster_id = 2  # type: ignore[misc]


class TestUserClient:
    async def test_me(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "u1", "org_ids": ["1"]})

        me = await UserClient(fake_transport).me()

        assert me["id"] == "u1"
        assert fake_transport.calls[0].path == "/api/v1/user/me"


class TestApplicationClient:
    """Tests for application operations."""

    async def test_create(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "123", "name": "first app"})
        client = ApplicationClient(fake_transport)

        app = await client.create_application(123, {"name": "first app"})

        call = fake_transport.calls[0]
        assert app == {"id": "123", "name": "first app"}
        assert (call.method, call.path) == ("POST", "/api/v1/controlplanes/123/apps")
        assert call.body == {"name": "first app"}
        assert call.headers == {}

    async def test_update_with_scope(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "5"})
        client = ApplicationClient(fake_transport)

        await client.update_application(1, 5, {"name": "x"}, scope=ResourceScope(9))

        call = fake_transport.calls[0]
        assert (call.method, call.path) == ("PUT", "/api/v1/controlplanes/1/apps/5")
        assert call.headers == {CLUSTER_HEADER_NAME: "9"}

    async def test_get_and_delete(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "5"})
        fake_transport.respond()
        client = ApplicationClient(fake_transport)

        assert (await client.get_application(1, 5))["id"] == "5"
        assert await client.delete_application(1, 5) is None

        assert [(c.method, c.path) for c in fake_transport.calls] == [
            ("GET", "/api/v1/controlplanes/1/apps/5"),
            ("DELETE", "/api/v1/controlplanes/1/apps/5"),
        ]

    async def test_publish_and_unpublish(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "5", "active": 0})
        fake_transport.respond({"id": "5", "active": 1})
        client = ApplicationClient(fake_transport)

        published = await client.publish_application(1, 5)
        unpublished = await client.unpublish_application(1, 5)

        assert published["active"] == 0
        assert unpublished["active"] == 1
        assert [c.body for c in fake_transport.calls] == [{"active": 0}, {"active": 1}]
        assert {c.method for c in fake_transport.calls} == {"PATCH"}

    async def test_non_object_payload_rejected(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond(["not", "an", "app"])
        client = ApplicationClient(fake_transport)

        with pytest.raises(CloudDecodeError):
            await client.get_application(1, 5)

    async def test_list(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond_page([{"id": "1"}, {"id": "2"}])
        fake_transport.respond_page([])
        client = ApplicationClient(fake_transport)

        iterator = client.list_applications(
            1,
            ListOptions(
                pagination=Pagination(page=1, page_size=100),
                filter=Filter(search="app"),
                scope=ResourceScope(3),
            ),
        )
        apps = [app async for app in iterator]

        assert apps == [{"id": "1"}, {"id": "2"}]
        first = fake_transport.calls[0]
        assert first.path == "/api/v1/controlplanes/1/apps"
        assert first.query == {"page": 1, "page_size": 100, "search": "app"}
        assert first.headers == {CLUSTER_HEADER_NAME: "3"}


class TestClusterClient:
    """Tests for cluster operations."""

    async def test_get_cluster(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond({"id": "2", "name": "default"})

        cluster = await ClusterClient(fake_transport).get_cluster(1, 2)

        assert cluster["name"] == "default"
        assert fake_transport.calls[0].path == "/api/v1/orgs/1/clusters/2"

    async def test_update_settings(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond()

        await ClusterClient(fake_transport).update_cluster_settings(
            1, 2, {"client_settings": {"max_body_size": 1024}}
        )

        call = fake_transport.calls[0]
        assert (call.method, call.path) == ("PATCH", "/api/v1/orgs/1/clusters/2/config")
        assert call.body == {"client_settings": {"max_body_size": 1024}}
        assert not call.headers

    async def test_list_clusters_defaults(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond_page([{"id": "2"}])
        fake_transport.respond_page([])

        clusters = [c async for c in ClusterClient(fake_transport).list_clusters(1)]

        assert clusters == [{"id": "2"}]
        assert fake_transport.calls[0].query == {"page": 1, "page_size": 10}

    async def test_list_all_gateway_instances(self, fake_transport: FakeTransport) -> None:
        fake_transport.respond_page([{"id": "gw1"}, {"id": "gw2"}])

        instances = await ClusterClient(fake_transport).list_all_gateway_instances(2)

        assert [gw["id"] for gw in instances] == ["gw1", "gw2"]
        call = fake_transport.calls[0]
        assert call.path == "/api/v1/clusters/2/instances"
        assert call.headers == {CLUSTER_HEADER_NAME: "2"}
