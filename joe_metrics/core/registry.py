"""
Entity Registry - Tracks lending markets and farm pools discovered on-chain.

Each partition mirrors one append-only on-chain list (the Joetroller market
list, a MasterChef pool list). Discovery only fetches indices that are not
known yet, so repeated calls are cheap: one length check when nothing changed.
Static fields of a discovered entity are never re-fetched.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)


def normalize_address(address: str) -> str:
    """Registry keys are lower-cased hex addresses."""
    return address.strip().lower()


@dataclass
class Entity:
    """A tracked market or pool."""
    address: str
    pid: int
    partition: str
    static: Dict[str, Any] = field(default_factory=dict)


class PartitionSource:
    """
    Remote list backing a registry partition.

    Subclasses return the current remote length and the static record stored
    at an index. A record must contain an "address" key.
    """

    async def fetch_length(self) -> int:
        raise NotImplementedError

    async def fetch_record(self, index: int) -> Dict[str, Any]:
        raise NotImplementedError


class RegistryPartition:
    """Ordered, append-only sequence of entities plus an address index."""

    def __init__(self, name: str, source: PartitionSource):
        self.name = name
        self.source = source
        self._entities: List[Entity] = []
        self._index: Dict[str, int] = {}

    @property
    def known_length(self) -> int:
        return len(self._entities)

    def __contains__(self, address: str) -> bool:
        return normalize_address(address) in self._index

    def get(self, address: str) -> Optional[Entity]:
        pid = self._index.get(normalize_address(address))
        return self._entities[pid] if pid is not None else None

    def entities(self) -> List[Entity]:
        return list(self._entities)

    def append(self, pid: int, record: Dict[str, Any]) -> bool:
        """
        Append the record for `pid` if it is the next expected index.

        Returns:
            True if appended, False if the index was already known
        """
        if pid < self.known_length:
            return False
        if pid != self.known_length:
            raise ValueError(f"{self.name}: expected index {self.known_length}, got {pid}")

        address = normalize_address(record["address"])
        static = {key: value for key, value in record.items() if key != "address"}
        self._entities.append(Entity(address=address, pid=pid, partition=self.name, static=static))
        # Duplicate addresses keep their first pid
        self._index.setdefault(address, pid)
        return True


class EntityRegistry:
    """
    Registry of all partitions owned by one metrics context.

    Callers must run discover() before checking membership; lookups never
    trigger discovery on their own.
    """

    def __init__(self):
        self._partitions: Dict[str, RegistryPartition] = {}

    def register_partition(self, name: str, source: PartitionSource) -> RegistryPartition:
        """
        Add a partition backed by `source`.

        Args:
            name: Partition name (e.g., 'lending', 'farm_v2')
            source: Remote list to discover entities from

        Returns:
            The new partition
        """
        if name in self._partitions:
            raise ValueError(f"Partition already registered: {name}")
        partition = RegistryPartition(name, source)
        self._partitions[name] = partition
        return partition

    def partition(self, name: str) -> RegistryPartition:
        try:
            return self._partitions[name]
        except KeyError:
            raise KeyError(f"Unknown registry partition: {name}") from None

    @property
    def partition_names(self) -> List[str]:
        return list(self._partitions)

    async def discover(self, name: str) -> int:
        """
        Fetch entities appended remotely since the last discovery.

        Args:
            name: Partition name

        Returns:
            Number of newly discovered entities
        """
        partition = self.partition(name)
        remote_length = int(await partition.source.fetch_length())
        start = partition.known_length
        if remote_length <= start:
            return 0

        indices = range(start, remote_length)
        records = await asyncio.gather(*(partition.source.fetch_record(i) for i in indices))

        added = 0
        for pid, record in zip(indices, records):
            if partition.append(pid, record):
                added += 1

        if added:
            logger.info("Discovered %d new entities in %s (known: %d)", added, name, partition.known_length)
        return added

    async def discover_all(self, names: Iterable[str] = None) -> int:
        """Discover every named partition (all partitions by default), in order."""
        added = 0
        for name in (names if names is not None else self.partition_names):
            added += await self.discover(name)
        return added

    def is_known(self, name: str, address: str) -> bool:
        return address in self.partition(name)

    def get(self, name: str, address: str) -> Optional[Entity]:
        return self.partition(name).get(address)

    def find(self, address: str, names: Iterable[str] = None) -> Optional[Entity]:
        """Return the entity for `address` from the first partition that knows it."""
        for name in (names if names is not None else self.partition_names):
            entity = self.get(name, address)
            if entity is not None:
                return entity
        return None

    def entities(self, name: str) -> List[Entity]:
        return self.partition(name).entities()

    def known_length(self, name: str) -> int:
        return self.partition(name).known_length
