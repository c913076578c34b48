"""
Command-line entry point: exit codes and the report written at shutdown.
"""

import io

import pytest
from aiohttp import test_utils

from latency_receiver.__main__ import main, run
from latency_receiver.config import ReceiverConfig
from latency_receiver.protocol import IdType, Transfer

from tests.fakes import make_peer, payload


async def start_peer(transfers, frames):
    server = test_utils.TestServer(make_peer(transfers, frames))
    await server.start_server()
    return server


class TestRun:
    @pytest.mark.asyncio
    async def test_final_report_with_latency(self):
        frames = []
        server = await start_peer(
            [Transfer(delivery_id=0, payload=payload(0)), Transfer(delivery_id=1, payload=payload(1))],
            frames,
        )
        out = io.StringIO()
        try:
            config = ReceiverConfig(host_address=f"127.0.0.1:{server.port}", message_count=2, latency=True)
            status = await run(config, out)
        finally:
            await server.close()

        assert status == 0
        assert "2 msgs received" in out.getvalue()

    @pytest.mark.asyncio
    async def test_no_report_without_latency(self):
        frames = []
        server = await start_peer([Transfer(delivery_id=0, payload=payload(0))], frames)
        out = io.StringIO()
        try:
            status = await run(ReceiverConfig(host_address=f"127.0.0.1:{server.port}"), out)
        finally:
            await server.close()

        assert status == 0
        assert out.getvalue() == ""

    @pytest.mark.asyncio
    async def test_bad_sequence_type_reports_then_exits_one(self):
        frames = []
        server = await start_peer(
            [
                Transfer(delivery_id=0, payload=payload(0)),
                Transfer(delivery_id=1, payload=payload(1, IdType.UINT)),
            ],
            frames,
        )
        out = io.StringIO()
        try:
            config = ReceiverConfig(host_address=f"127.0.0.1:{server.port}", message_count=5, latency=True)
            status = await run(config, out)
        finally:
            await server.close()

        assert status == 1
        assert "1 msgs received" in out.getvalue()

    @pytest.mark.asyncio
    async def test_connection_failure_exits_one(self):
        out = io.StringIO()

        status = await run(ReceiverConfig(host_address="127.0.0.1:1", latency=True), out)

        assert status == 1
        assert out.getvalue() == ""


class TestMain:
    def test_config_error_exits_one(self):
        with pytest.raises(SystemExit) as exc:
            main(["-i", "5"])
        assert exc.value.code == 1

    def test_zero_window_exits_one(self):
        with pytest.raises(SystemExit) as exc:
            main(["-p", "0"])
        assert exc.value.code == 1
