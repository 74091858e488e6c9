"""
PairRelay
Copyright (C) 2024 thiccaxe

This program is free software: you can redistribute it and/or modify
it under the terms of the GNU Affero General Public License as published
by the Free Software Foundation, either version 3 of the License, or
(at your option) any later version.

This program is distributed in the hope that it will be useful,
but WITHOUT ANY WARRANTY; without even the implied warranty of
MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
GNU Affero General Public License for more details.

You should have received a copy of the GNU Affero General Public License
along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""

import asyncio
import logging
import os
import signal

from config import Config, ConfigurationLoadError
from logger import setup_logging
from mdns_registration import PairRelayZeroconf
from relay_manager import RelayManager
from server_data import ServerData
from websocket_server import WebsocketServer


class PairRelay:

    def __init__(self, config):
        self._config = config
        self._data = ServerData()
        self._manager = RelayManager(self._data)
        self._websocket_server = WebsocketServer(self._config, self._manager)
        self._mdns = PairRelayZeroconf(self._config)

    @property
    def port(self):
        return self._websocket_server.port

    @property
    def sessions(self):
        return self._data.sessions

    def shutdown(self):
        self._data.shutdown_event.set()

    async def begin(self):
        logging.info("Starting PairRelay Websocket Server")
        async with self._websocket_server:
            self._mdns.set_port(self._websocket_server.port)
            async with self._mdns:
                try:
                    logging.info("Ctrl^C to quit")
                    await self._data.shutdown_event.wait()
                except asyncio.CancelledError:
                    logging.info("Cancelled ...")
                finally:
                    logging.info("Stopping Server ...")


async def main():
    logging.info("Starting pair relay ...")

    config = Config(os.environ.get("PAIR_RELAY_CONFIG", "./config.toml"))

    try:
        await config.initialize()
    except ConfigurationLoadError:
        logging.error("Could not load configuration. Exiting")
        return

    relay = PairRelay(config.config)
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, relay.shutdown)
        except NotImplementedError:  # windows
            pass
    await relay.begin()


def run():
    setup_logging()
    asyncio.run(main())


if __name__ == "__main__":
    run()
