"""
Test the network aggregate and its retained chain.
"""

import pytest

from evm_crawler.core.exceptions import ForkDetectedError, ValidationError
from evm_crawler.framework.aggregate import EMPTY_BLOCK_HEIGHT, handler_name
from evm_crawler.network import Network
from evm_crawler.network.blockchain import Blockchain, LightBlock
from evm_crawler.network.events import NetworkBlocksAddedEvent, NetworkReorganizedEvent

from fakes import FakeBlockchainProvider, make_block, make_chain, make_fork


def initialized_network(start_height: int = -1, max_size: int = 100) -> Network:
    network = Network(max_size=max_size)
    network.init("req-init", start_height)
    return network


def test_handler_name():
    """Test event class names map to snake case handlers."""
    assert handler_name("BlockAddedEvent") == "on_block_added_event"
    assert handler_name("NetworkInitializedEvent") == "on_network_initialized_event"


def test_new_network_has_no_height():
    """Test a never initialized network reports no height."""
    network = Network()

    assert network.current_block_height is None
    assert network.last_block_height == EMPTY_BLOCK_HEIGHT
    assert network.version == 0


def test_init_sets_height():
    """Test initialization records the last indexed height."""
    network = initialized_network(start_height=9)

    assert network.current_block_height == 9
    assert network.version == 1
    assert len(network.get_uncommitted_events()) == 1


def test_add_blocks_advances_height_and_version():
    """Test a contiguous batch moves the head by its length."""
    network = initialized_network()

    network.add_blocks("req-1", make_chain(0, 2))

    assert network.last_block_height == 2
    assert network.version == 2
    assert network.chain.last_block.hash == make_block(2)["hash"]

    event = network.get_uncommitted_events()[-1]
    assert isinstance(event, NetworkBlocksAddedEvent)
    assert event.block_height == 2
    assert [b["blockNumber"] for b in event.payload["blocks"]] == [0, 1, 2]
    assert event.payload["blocks"][0] == {
        "blockNumber": 0, "hash": make_block(0)["hash"], "parentHash": make_block(0)["parentHash"]
    }


def test_add_blocks_after_start_height_without_chain():
    """Test the first batch after init only needs the right height."""
    network = initialized_network(start_height=41)

    network.add_blocks("req-1", [make_block(42)])

    assert network.last_block_height == 42


@pytest.mark.parametrize("batch", [
    [make_block(2)],                      # height gap
    [make_block(1, fork="b")],            # parent does not match head
    [make_block(1), make_block(3)],       # gap inside the batch
    [make_block(1), make_block(2, "b")],  # broken linkage inside the batch
])
def test_add_blocks_rejects_non_continuing_batch(batch):
    """Test a batch that does not chain from the head is refused without side effects."""
    network = initialized_network()
    network.add_blocks("req-1", [make_block(0)])
    version = network.version
    uncommitted = len(network.get_uncommitted_events())

    with pytest.raises(ForkDetectedError):
        network.add_blocks("req-2", batch)

    assert network.version == version
    assert network.last_block_height == 0
    assert len(network.get_uncommitted_events()) == uncommitted


def test_add_blocks_rejects_empty_batch():
    """Test an empty batch is a validation error, not a fork."""
    network = initialized_network()

    with pytest.raises(ValidationError):
        network.add_blocks("req-1", [])


def test_add_blocks_rejects_malformed_block():
    """Test a block without a hash is refused."""
    network = initialized_network()

    with pytest.raises(ValidationError):
        network.add_blocks("req-1", [{"blockNumber": 0, "parentHash": "0x0"}])


@pytest.mark.asyncio
async def test_reorganisation_walks_back_to_common_block():
    """Test the walk drops every local block that differs from the canonical chain."""
    network = initialized_network()
    network.add_blocks("req-1", make_chain(0, 5))
    provider = FakeBlockchainProvider(make_chain(0, 2) + make_fork(3, 6))

    await network.reorganisation(network.last_block_height, "req-2", provider)

    assert network.last_block_height == 2
    assert network.chain.last_block.height == 2

    event = network.get_uncommitted_events()[-1]
    assert isinstance(event, NetworkReorganizedEvent)
    assert event.block_height == 2
    assert [b["height"] for b in event.payload["blocks"]] == [5, 4, 3]


@pytest.mark.asyncio
async def test_reorganisation_at_matching_head_keeps_height():
    """Test a matching head produces a reorganisation to the same height."""
    network = initialized_network()
    network.add_blocks("req-1", make_chain(0, 3))
    provider = FakeBlockchainProvider(make_chain(0, 3))

    await network.reorganisation(3, "req-2", provider)

    assert network.last_block_height == 3
    event = network.get_uncommitted_events()[-1]
    assert isinstance(event, NetworkReorganizedEvent)
    assert event.payload["blocks"] == []


@pytest.mark.asyncio
async def test_reorganisation_stops_at_retained_chain_edge():
    """Test the walk never goes below the oldest retained block."""
    network = initialized_network(max_size=3)
    network.add_blocks("req-1", make_chain(0, 5))
    assert len(network.chain) == 3

    provider = FakeBlockchainProvider(make_fork(0, 6, base_fork="z"))

    await network.reorganisation(5, "req-2", provider)

    # Blocks 5, 4 and 3 were retained and all differ
    assert network.last_block_height == 2
    assert provider.calls == [5, 4, 3]


@pytest.mark.asyncio
async def test_reorganisation_of_missing_canonical_block():
    """Test a height the provider does not know counts as a mismatch."""
    network = initialized_network()
    network.add_blocks("req-1", make_chain(0, 2))
    provider = FakeBlockchainProvider(make_chain(0, 1))

    await network.reorganisation(2, "req-2", provider)

    assert network.last_block_height == 1


def test_rehydration_rebuilds_chain():
    """Test replaying committed events restores height, version and chain."""
    network = initialized_network()
    network.add_blocks("req-1", make_chain(0, 1))
    network.add_blocks("req-2", make_chain(2, 3))
    events = network.commit()

    restored = Network()
    restored.load_from_history(events)

    assert restored.version == network.version == 3
    assert restored.current_block_height == 3
    assert restored.chain.to_list() == network.chain.to_list()
    assert restored.get_uncommitted_events() == []


def test_clear_chain_resets_network():
    """Test clearing forgets the chain and the initialization."""
    network = initialized_network()
    network.add_blocks("req-1", make_chain(0, 1))

    network.clear_chain("req-2")

    assert network.current_block_height is None
    assert len(network.chain) == 0


def test_blockchain_truncate_returns_removed_blocks():
    """Test truncation removes blocks above the height, highest first."""
    chain = Blockchain(max_size=10)
    chain.add_blocks([LightBlock.from_block(block) for block in make_chain(0, 4)])

    removed = chain.truncate_to_height(2)

    assert [block.height for block in removed] == [4, 3]
    assert chain.last_block_height == 2
    assert chain.find_block_by_height(3) is None
    assert chain.find_block_by_height(1).hash == make_block(1)["hash"]
