"""Integration tests for the feedbase oracle with a mocked chain client."""
from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from urnwatch.chains.evm.abi import selector
from urnwatch.errors import DataUnavailable, MalformedKey, PriceUnavailable
from urnwatch.oracles.feedbase import FeedbaseOracle
from urnwatch.protocols.rico.parser import encode_key
from urnwatch.units import RAY

from helpers import CHAINLINK, FEEDBASE, T0, address_word, word


@pytest.fixture()
def mock_chain_client() -> AsyncMock:
    return AsyncMock()


@pytest.fixture()
def oracle(mock_chain_client: AsyncMock) -> FeedbaseOracle:
    return FeedbaseOracle(mock_chain_client, FEEDBASE)


class TestPull:
    @pytest.mark.asyncio
    async def test_value_and_ttl(
        self, oracle: FeedbaseOracle, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.eth_call.return_value = word(2_400 * RAY) + word(T0 + 60)
        quote = await oracle.pull(CHAINLINK, encode_key("xau:usd"))

        assert quote.value == 2_400 * RAY
        assert quote.ttl == T0 + 60
        assert quote.src == CHAINLINK
        assert quote.tag == encode_key("xau:usd")

    @pytest.mark.asyncio
    async def test_call_encoding(
        self, oracle: FeedbaseOracle, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.eth_call.return_value = word(RAY) + word(0)
        await oracle.pull(CHAINLINK, encode_key("xau:usd"))

        to, data = mock_chain_client.eth_call.call_args[0]
        assert to == FEEDBASE
        assert data == (
            selector("pull(address,bytes32)") + address_word(CHAINLINK) + encode_key("xau:usd")
        )

    @pytest.mark.asyncio
    async def test_rpc_failure_becomes_price_unavailable(
        self, oracle: FeedbaseOracle, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.eth_call.side_effect = DataUnavailable("All RPC endpoints failed")
        with pytest.raises(PriceUnavailable, match="xau:usd"):
            await oracle.pull(CHAINLINK, encode_key("xau:usd"))

    @pytest.mark.asyncio
    async def test_short_return_becomes_price_unavailable(
        self, oracle: FeedbaseOracle, mock_chain_client: AsyncMock
    ) -> None:
        mock_chain_client.eth_call.return_value = word(RAY)
        with pytest.raises(PriceUnavailable):
            await oracle.pull(CHAINLINK, encode_key("xau:usd"))

    @pytest.mark.asyncio
    async def test_malformed_source_is_malformed_key(
        self, oracle: FeedbaseOracle, mock_chain_client: AsyncMock
    ) -> None:
        with pytest.raises(MalformedKey):
            await oracle.pull("0xnothex", encode_key("xau:usd"))
        mock_chain_client.eth_call.assert_not_called()
