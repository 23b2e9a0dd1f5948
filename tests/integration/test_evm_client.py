"""Integration tests for the EVM client — RPC fallback and error handling."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from urnwatch.chains.evm.client import EvmClient
from urnwatch.config import ChainConfig
from urnwatch.errors import DataUnavailable

SESSION = "urnwatch.chains.evm.client.aiohttp.ClientSession"
CONNECTOR = "urnwatch.chains.evm.client.aiohttp.TCPConnector"


@pytest.fixture()
def client() -> EvmClient:
    return EvmClient(
        ChainConfig(
            rpc_endpoints=(
                "https://rpc1.example.com",
                "https://rpc2.example.com",
                "https://rpc3.example.com",
            ),
            rpc_timeout=5,
        )
    )


def _mock_session(response_data: dict | None = None, error: Exception | None = None):
    """Create a mock aiohttp session that returns given data or raises error."""
    mock_response = AsyncMock()
    if error:
        mock_response.json = AsyncMock(side_effect=error)
    else:
        mock_response.json = AsyncMock(return_value=response_data or {})
    mock_response.__aenter__ = AsyncMock(return_value=mock_response)
    mock_response.__aexit__ = AsyncMock(return_value=None)

    mock_session = AsyncMock()
    if error:
        mock_session.post = MagicMock(side_effect=error)
    else:
        mock_session.post = MagicMock(return_value=mock_response)
    mock_session.__aenter__ = AsyncMock(return_value=mock_session)
    mock_session.__aexit__ = AsyncMock(return_value=None)

    return mock_session


def _result(value) -> dict:
    return {"jsonrpc": "2.0", "id": 1, "result": value}


class TestRpcCall:
    @pytest.mark.asyncio
    async def test_successful_call(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result({"data": "ok"}))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                result = await client.rpc_call("test_method", [])

        assert result == {"data": "ok"}

    @pytest.mark.asyncio
    async def test_sends_timeout(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result("0x1"))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                await client.rpc_call("eth_blockNumber", [])

        _, kwargs = mock_session.post.call_args
        assert kwargs["timeout"].total == 5
        assert kwargs["json"]["method"] == "eth_blockNumber"

    @pytest.mark.asyncio
    async def test_rpc_error_raises(self, client: EvmClient) -> None:
        mock_session = _mock_session(
            {"jsonrpc": "2.0", "error": {"code": -32000, "message": "bad"}}
        )

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(DataUnavailable, match="All RPC endpoints failed"):
                    await client.rpc_call("test_method", [])

    @pytest.mark.asyncio
    async def test_fallback_on_connection_error(self, client: EvmClient) -> None:
        """When first endpoint fails, should try the next one."""
        call_count = 0

        success_response = AsyncMock()
        success_response.json = AsyncMock(return_value=_result({"ok": True}))
        success_response.__aenter__ = AsyncMock(return_value=success_response)
        success_response.__aexit__ = AsyncMock(return_value=None)

        def side_effect(*args, **kwargs):
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                raise ConnectionError("first endpoint down")
            return success_response

        mock_session = AsyncMock()
        mock_session.post = MagicMock(side_effect=side_effect)
        mock_session.__aenter__ = AsyncMock(return_value=mock_session)
        mock_session.__aexit__ = AsyncMock(return_value=None)

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                result = await client.rpc_call("test_method", [])

        assert result == {"ok": True}
        assert client.current_rpc_index == 1

    @pytest.mark.asyncio
    async def test_all_endpoints_fail(self, client: EvmClient) -> None:
        mock_session = _mock_session(error=ConnectionError("down"))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(DataUnavailable, match="All RPC endpoints failed"):
                    await client.rpc_call("test_method", [])

        assert mock_session.post.call_count == 3


class TestEthCall:
    @pytest.mark.asyncio
    async def test_returns_bytes(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result("0x" + "00" * 31 + "2a"))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                data = await client.eth_call("0xabc", bytes.fromhex("313ce567"))

        assert int.from_bytes(data, "big") == 42
        _, kwargs = mock_session.post.call_args
        assert kwargs["json"]["params"] == [{"to": "0xabc", "data": "0x313ce567"}, "latest"]

    @pytest.mark.asyncio
    async def test_malformed_result(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result(None))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(DataUnavailable, match="Malformed eth_call"):
                    await client.eth_call("0xabc", b"")


class TestBlocks:
    @pytest.mark.asyncio
    async def test_block_number(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result("0x10"))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                assert await client.block_number() == 16

    @pytest.mark.asyncio
    async def test_missing_block(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result(None))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                with pytest.raises(DataUnavailable, match="not found"):
                    await client.get_block(5)

    @pytest.mark.asyncio
    async def test_get_logs_params(self, client: EvmClient) -> None:
        mock_session = _mock_session(_result([{"data": "0x"}]))

        with patch(SESSION, return_value=mock_session):
            with patch(CONNECTOR):
                logs = await client.get_logs("0xabc", ["0x01", None], 10, 255)

        assert logs == [{"data": "0x"}]
        _, kwargs = mock_session.post.call_args
        assert kwargs["json"]["params"] == [
            {"address": "0xabc", "topics": ["0x01", None], "fromBlock": "0xa", "toBlock": "0xff"}
        ]
