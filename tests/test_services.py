"""
Test the JSON-RPC provider and the console prompt.
"""

import io

import pytest
from rich.console import Console

from evm_crawler.core.exceptions import BlockchainProviderError
from evm_crawler.services.blockchain_provider import BlockchainProviderService, normalize_block
from evm_crawler.services.console_prompt import ConsolePromptService


RAW_BLOCK = {
    "number": "0x1b4",
    "hash": "0xabc",
    "parentHash": "0xdef",
    "size": "0x220",
    "transactions": [{"hash": "0x01"}],
}


def provider_with_responses(settings, responses):
    """Provider whose RPC calls answer from a method -> result map."""
    provider = BlockchainProviderService(settings)
    calls = []

    async def fake_call(method, params):
        calls.append((method, params))
        result = responses[method]
        return result(params) if callable(result) else result

    provider._call = fake_call
    provider.calls = calls
    return provider


def test_normalize_block():
    """Test hex fields become integers."""
    block = normalize_block(RAW_BLOCK)

    assert block["blockNumber"] == 436
    assert block["size"] == 544
    assert block["hash"] == "0xabc"
    assert block["parentHash"] == "0xdef"
    assert len(block["transactions"]) == 1


@pytest.mark.asyncio
async def test_current_block_height(settings):
    """Test the tip is parsed from hex."""
    provider = provider_with_responses(settings, {"eth_blockNumber": "0x10"})

    assert await provider.get_current_block_height() == 16


@pytest.mark.asyncio
async def test_invalid_block_number(settings):
    """Test garbage from the node is a provider error."""
    provider = provider_with_responses(settings, {"eth_blockNumber": None})

    with pytest.raises(BlockchainProviderError):
        await provider.get_current_block_height()


@pytest.mark.asyncio
async def test_get_one_block_by_height(settings):
    """Test blocks are requested by hex height with transactions."""
    provider = provider_with_responses(settings, {"eth_getBlockByNumber": RAW_BLOCK})

    block = await provider.get_one_block_by_height(436)

    assert block["blockNumber"] == 436
    assert provider.calls == [("eth_getBlockByNumber", ["0x1b4", True])]


@pytest.mark.asyncio
async def test_get_many_blocks_fails_on_missing(settings):
    """Test a gap in the node's answer is an error, not a short batch."""
    def block_or_none(params):
        return RAW_BLOCK if params[0] == "0x1b4" else None

    provider = provider_with_responses(settings, {"eth_getBlockByNumber": block_or_none})

    with pytest.raises(BlockchainProviderError) as exc_info:
        await provider.get_many_blocks_by_heights([436, 437])

    assert exc_info.value.details == {"heights": [437]}


@pytest.mark.asyncio
async def test_close_without_session(settings):
    """Test closing a provider that never connected."""
    async with BlockchainProviderService(settings) as provider:
        pass

    assert provider._session is None


@pytest.mark.parametrize("answer", [True, False])
def test_data_reset_confirmation(monkeypatch, answer):
    """Test the reset warning is shown and the answer returned."""
    output = io.StringIO()
    prompt = ConsolePromptService(console=Console(file=output, width=100))
    asked = []

    def fake_ask(message, console=None):
        asked.append(message)
        return answer

    monkeypatch.setattr("evm_crawler.services.console_prompt.Confirm.ask", fake_ask)

    assert prompt.ask_data_reset_confirmation(12, 10) is answer
    assert "Configured start block: 12" in output.getvalue()
    assert "Current database block: 10" in output.getvalue()
    assert asked == ["Do you want to proceed with data reset?"]
