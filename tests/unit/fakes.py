import asyncio


class FakeSocket:
    """Stands in for a WebSocket on the send side."""

    def __init__(self, *, delay: float = 0.0, fail: bool = False):
        self.delay = delay
        self.fail = fail
        self.sent: list = []
        self.closed_with: int | None = None

    async def send_json(self, data):
        if self.fail:
            raise ConnectionResetError("peer went away")
        if self.delay:
            await asyncio.sleep(self.delay)
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.closed_with = code
