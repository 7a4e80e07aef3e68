"""Tests for local port allocation and host probing."""

import pytest

from conftest import FakeInspector
from devcli.common.exceptions import DuplicateLocalPort
from devcli.config.models import Bastion, Connection, ProxyProfile, Workload
from devcli.ports.registry import PortRegistry, allocate_ports


def _profile(workload_ports, connection_ports):
    return ProxyProfile(
        environment="dev",
        bastion=Bastion(
            name="bastion",
            connections=[
                Connection(local_port=port, remote_host=f"10.0.0.{i}", remote_port=5432)
                for i, port in enumerate(connection_ports)
            ],
        ),
        workloads=[
            Workload(namespace="ns", app=f"app{i}", local_port=port, remote_port=80)
            for i, port in enumerate(workload_ports)
        ],
    )


class TestAllocatePorts:
    def test_distinct_ports(self, profile):
        allocation = allocate_ports(profile)

        assert allocation.ports == frozenset({8080, 8081, 5435, 6378})
        assert list(allocation) == [8080, 8081, 5435, 6378]
        assert allocation.owner(8080).app == "api"
        assert allocation.owner(6378).remote_host == "10.0.0.6"
        assert 5435 in allocation
        assert len(allocation) == 4

    def test_workload_and_connection_share_port(self):
        profile = _profile([8080], [8080])

        with pytest.raises(DuplicateLocalPort) as exc_info:
            allocate_ports(profile)
        assert exc_info.value.port == 8080

    def test_duplicate_between_workloads(self):
        with pytest.raises(DuplicateLocalPort) as exc_info:
            allocate_ports(_profile([3000, 3000], []))
        assert exc_info.value.port == 3000

    def test_duplicate_between_connections(self):
        with pytest.raises(DuplicateLocalPort) as exc_info:
            allocate_ports(_profile([], [5432, 5433, 5432]))
        assert exc_info.value.port == 5432

    def test_first_duplicate_in_declaration_order_is_reported(self):
        # 9000 repeats among the workloads, 7000 only once a connection is reached
        profile = _profile([7000, 9000, 9000], [7000])

        with pytest.raises(DuplicateLocalPort) as exc_info:
            allocate_ports(profile)
        assert exc_info.value.port == 9000

    def test_workloads_scanned_before_connections(self):
        profile = _profile([1111, 2222], [2222, 1111])

        with pytest.raises(DuplicateLocalPort) as exc_info:
            allocate_ports(profile)
        assert exc_info.value.port == 2222

    def test_profile_without_bastion(self):
        profile = ProxyProfile(
            environment="dev",
            workloads=[Workload(namespace="ns", app="a", local_port=8000, remote_port=80)],
        )
        assert allocate_ports(profile).ports == frozenset({8000})

    def test_allocation_is_read_only(self, profile):
        allocation = allocate_ports(profile)
        with pytest.raises(TypeError):
            allocation._owners[1] = None


class TestPortRegistry:
    def test_register_fails_whole_profile_on_duplicate(self):
        registry = PortRegistry(FakeInspector())
        with pytest.raises(DuplicateLocalPort):
            registry.register(_profile([8080, 8081], [8080]))

    def test_is_port_free(self):
        registry = PortRegistry(FakeInspector(busy={8080: [42]}))
        assert registry.is_port_free(8081)
        assert not registry.is_port_free(8080)

    def test_occupied_ports_in_declaration_order(self, profile):
        registry = PortRegistry(FakeInspector(busy={6378: [1], 8081: [2]}))
        allocation = registry.register(profile)

        assert registry.occupied_ports(allocation) == [8081, 6378]
