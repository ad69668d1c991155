"""listen() against real sockets, once per installed engine."""

import socket

import anyio
import httpx


def free_port() -> int:
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def port_is_free(port: int) -> bool:
    with socket.socket() as sock:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        try:
            sock.bind(("127.0.0.1", port))
        except OSError:
            return False
        return True


class TestListen:
    async def test_ready_serve_and_cancel(self, adapter) -> None:
        adapter.get("/ping", lambda req, res: {"pong": True})
        port = free_port()
        ready = anyio.Event()

        with anyio.fail_after(15):
            async with anyio.create_task_group() as tg:
                tg.start_soon(adapter.listen, port, ready.set)
                await ready.wait()
                async with httpx.AsyncClient() as client:
                    response = await client.get(f"http://127.0.0.1:{port}/ping")
                    missing = await client.get(f"http://127.0.0.1:{port}/nowhere")
                tg.cancel_scope.cancel()

        assert response.status_code == 200
        assert response.json() == {"pong": True}
        assert missing.status_code == 404
        assert missing.json() == {"message": "Route not found"}
        assert port_is_free(port)

    async def test_async_ready_callback(self, adapter) -> None:
        adapter.get("/", lambda req, res: "up")
        port = free_port()
        calls: list[int] = []

        async def on_ready() -> None:
            calls.append(port)
            tg.cancel_scope.cancel()

        with anyio.fail_after(15):
            async with anyio.create_task_group() as tg:
                tg.start_soon(adapter.listen, port, on_ready)

        assert calls == [port]
