"""
Unit tests for the entity registry.

Tests incremental discovery, pid stability and partition bookkeeping.
"""

import asyncio

import pytest

from joe_metrics.core.registry import EntityRegistry, PartitionSource, RegistryPartition, normalize_address
from conftest import run


class ListSource(PartitionSource):
    """Append-only remote list held in memory, counting remote calls."""

    def __init__(self, addresses):
        self.addresses = list(addresses)
        self.length_calls = 0
        self.fetched = []

    async def fetch_length(self):
        self.length_calls += 1
        await asyncio.sleep(0)
        return len(self.addresses)

    async def fetch_record(self, index):
        self.fetched.append(index)
        await asyncio.sleep(0)
        return {"address": self.addresses[index], "alloc_point": index * 10}


def address(n: int) -> str:
    return "0x" + format(n, "040x")


@pytest.fixture
def source():
    return ListSource([address(1), address(2), address(3)])


@pytest.fixture
def registry(source):
    registry = EntityRegistry()
    registry.register_partition("farm_v2", source)
    return registry


class TestDiscovery:
    """Tests for discover()."""

    @pytest.mark.unit
    @pytest.mark.registry
    def test_first_discovery_fetches_every_index(self, registry, source):
        assert run(registry.discover("farm_v2")) == 3
        assert sorted(source.fetched) == [0, 1, 2]
        assert registry.known_length("farm_v2") == 3

    @pytest.mark.unit
    @pytest.mark.registry
    @pytest.mark.smoke
    def test_repeat_discovery_is_one_length_call(self, registry, source):
        run(registry.discover("farm_v2"))
        fetched_before = len(source.fetched)

        assert run(registry.discover("farm_v2")) == 0
        assert len(source.fetched) == fetched_before
        assert source.length_calls == 2

    @pytest.mark.unit
    @pytest.mark.registry
    def test_only_new_indices_are_fetched(self, registry, source):
        run(registry.discover("farm_v2"))
        source.addresses += [address(4), address(5)]
        source.fetched.clear()

        assert run(registry.discover("farm_v2")) == 2
        assert sorted(source.fetched) == [3, 4]
        assert registry.known_length("farm_v2") == 5

    @pytest.mark.unit
    @pytest.mark.registry
    def test_pids_are_stable(self, registry, source):
        run(registry.discover("farm_v2"))
        pids = {entity.address: entity.pid for entity in registry.entities("farm_v2")}

        source.addresses.append(address(4))
        run(registry.discover("farm_v2"))
        run(registry.discover("farm_v2"))

        for entity in registry.entities("farm_v2")[:3]:
            assert pids[entity.address] == entity.pid
        assert registry.get("farm_v2", address(4)).pid == 3

    @pytest.mark.unit
    @pytest.mark.registry
    def test_static_fields_are_kept(self, registry):
        run(registry.discover("farm_v2"))
        entity = registry.get("farm_v2", address(2))
        assert entity.partition == "farm_v2"
        assert entity.static == {"alloc_point": 10}

    @pytest.mark.unit
    @pytest.mark.registry
    def test_overlapping_discoveries_do_not_double_append(self, registry, source):
        async def scenario():
            return await asyncio.gather(registry.discover("farm_v2"), registry.discover("farm_v2"))

        added = run(scenario())
        assert sum(added) == 3
        assert registry.known_length("farm_v2") == 3
        assert [entity.pid for entity in registry.entities("farm_v2")] == [0, 1, 2]

    @pytest.mark.unit
    @pytest.mark.registry
    def test_discover_all_covers_every_partition(self, registry):
        other = ListSource([address(7)])
        registry.register_partition("farm_v3", other)
        assert run(registry.discover_all()) == 4
        assert registry.known_length("farm_v3") == 1


class TestLookup:
    """Tests for membership and lookups."""

    @pytest.mark.unit
    @pytest.mark.registry
    def test_lookup_requires_discovery(self, registry):
        assert not registry.is_known("farm_v2", address(1))
        run(registry.discover("farm_v2"))
        assert registry.is_known("farm_v2", address(1))

    @pytest.mark.unit
    @pytest.mark.registry
    def test_addresses_are_normalized(self, registry):
        run(registry.discover("farm_v2"))
        mixed = "0x" + "0" * 39 + "A"
        registry.partition("farm_v2").source.addresses.append(mixed)
        run(registry.discover("farm_v2"))
        assert registry.is_known("farm_v2", mixed.lower())
        assert registry.get("farm_v2", mixed).address == normalize_address(mixed)

    @pytest.mark.unit
    @pytest.mark.registry
    def test_find_searches_partitions_in_order(self, registry):
        registry.register_partition("farm_v3", ListSource([address(9), address(1)]))
        run(registry.discover_all())

        assert registry.find(address(1)).partition == "farm_v2"
        assert registry.find(address(9)).partition == "farm_v3"
        assert registry.find(address(1), ["farm_v3"]).pid == 1
        assert registry.find(address(99)) is None

    @pytest.mark.unit
    @pytest.mark.registry
    def test_unknown_partition(self, registry):
        with pytest.raises(KeyError):
            registry.partition("lending")
        with pytest.raises(KeyError):
            run(registry.discover("lending"))

    @pytest.mark.unit
    @pytest.mark.registry
    def test_duplicate_partition_rejected(self, registry, source):
        with pytest.raises(ValueError):
            registry.register_partition("farm_v2", source)


class TestPartition:
    """Tests for RegistryPartition.append."""

    @pytest.mark.unit
    @pytest.mark.registry
    def test_append_rejects_gaps(self, source):
        partition = RegistryPartition("farm_v2", source)
        with pytest.raises(ValueError):
            partition.append(1, {"address": address(1)})

    @pytest.mark.unit
    @pytest.mark.registry
    def test_append_ignores_known_index(self, source):
        partition = RegistryPartition("farm_v2", source)
        assert partition.append(0, {"address": address(1)})
        assert not partition.append(0, {"address": address(2)})
        assert partition.known_length == 1

    @pytest.mark.unit
    @pytest.mark.registry
    def test_duplicate_address_keeps_first_pid(self, source):
        partition = RegistryPartition("farm_v2", source)
        partition.append(0, {"address": address(1)})
        partition.append(1, {"address": address(1)})
        assert partition.known_length == 2
        assert partition.get(address(1)).pid == 0
