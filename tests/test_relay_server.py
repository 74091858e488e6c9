import asyncio
import json
import unittest

from websockets.asyncio.client import connect

from relay_server import PairRelay
from tests.test_websocket_server import CONFIG


class TestPairRelay(unittest.IsolatedAsyncioTestCase):

    async def test_serves_until_shutdown(self):
        relay = PairRelay(CONFIG)
        task = asyncio.create_task(relay.begin())
        for _ in range(100):
            if relay.port:
                break
            await asyncio.sleep(0.01)
        self.assertIsNotNone(relay.port)

        async with connect(f"ws://127.0.0.1:{relay.port}") as websocket:
            await websocket.send(json.dumps({"type": "join", "code": "777777", "role": "client"}))
            reply = json.loads(await asyncio.wait_for(websocket.recv(), timeout=2))
            self.assertEqual(reply["type"], "joined")
            self.assertIn("777777", relay.sessions)

            relay.shutdown()
            await asyncio.wait_for(task, timeout=5)
            await asyncio.wait_for(websocket.wait_closed(), timeout=2)

        self.assertNotIn("777777", relay.sessions)


if __name__ == '__main__':
    unittest.main()
