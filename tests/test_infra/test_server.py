"""End-to-end tests: RpcClient talking to RpcServer over a Unix socket."""

import pytest

from agentsidecar.config import SidecarConfig
from agentsidecar.infra.rpc.client import RpcClient
from agentsidecar.infra.rpc.errors import RemoteError
from agentsidecar.infra.rpc.server import RpcServer


@pytest.fixture
def socket_path(tmp_path):
    return str(tmp_path / "sidecar.sock")


class TestRpcServer:
    @pytest.mark.asyncio
    async def test_ping_and_errors(self, socket_path):
        server = RpcServer(SidecarConfig(), socket_path)
        await server.start()
        client = RpcClient(socket_path, timeout=5.0)
        try:
            await client.connect()
            assert await client.call("server.ping") == "pong"

            with pytest.raises(RemoteError) as exc:
                await client.call("nope")
            assert exc.value.code == -32601

            with pytest.raises(RemoteError) as exc:
                await client.call("query", id="s1", agentType="claude", prompt="hi", options={})
            assert exc.value.code == -32000
        finally:
            await client.close()
            await server.stop()

    @pytest.mark.asyncio
    async def test_cancel_of_idle_session_is_noop(self, socket_path):
        server = RpcServer(SidecarConfig(), socket_path)
        await server.start()
        client = RpcClient(socket_path, timeout=5.0)
        errors = []

        async def on_error(params):
            errors.append(params)

        client.on("queryError", on_error)
        try:
            await client.connect()
            result = await client.call("cancel", id="s1", agentType="codex")
            assert result == {"id": "s1", "type": "cancel_output", "agentType": "codex", "cancelled": False}
            assert errors == []
        finally:
            await client.close()
            await server.stop()

    @pytest.mark.asyncio
    async def test_stop_removes_socket(self, socket_path, tmp_path):
        server = RpcServer(SidecarConfig(), socket_path)
        await server.start()
        assert (tmp_path / "sidecar.sock").exists()
        await server.stop()
        assert not (tmp_path / "sidecar.sock").exists()
