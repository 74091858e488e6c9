import unittest
from unittest import mock

from config import DEFAULT_CONFIG
from mdns_registration import PairRelayZeroconf, SERVICE_TYPE


def make_config(enabled: bool, address: str = "192.168.1.35") -> dict:
    return {
        "server": dict(DEFAULT_CONFIG["server"]),
        "mdns": {"enabled": enabled, "address": address},
    }


class TestPairRelayZeroconf(unittest.IsolatedAsyncioTestCase):

    async def test_disabled_registers_nothing(self):
        mdns = PairRelayZeroconf(make_config(False))
        async with mdns:
            self.assertIsNone(mdns._manager)

    def test_service_info_uses_bound_port(self):
        mdns = PairRelayZeroconf(make_config(True))
        mdns.set_port(4321)
        info = mdns.service_info()
        self.assertEqual(info.type, SERVICE_TYPE)
        self.assertEqual(info.name, f"PairRelay.{SERVICE_TYPE}")
        self.assertEqual(info.port, 4321)
        self.assertEqual(info.parsed_addresses(), ["192.168.1.35"])

    def test_service_info_falls_back_to_configured_port(self):
        info = PairRelayZeroconf(make_config(True)).service_info()
        self.assertEqual(info.port, 4000)

    async def test_configured_address_skips_lookup(self):
        with mock.patch("mdns_registration.socket.gethostbyname") as gethostbyname:
            address = await PairRelayZeroconf(make_config(True)).resolve_address()
        self.assertEqual(address, "192.168.1.35")
        gethostbyname.assert_not_called()

    async def test_host_address_is_looked_up_off_the_loop(self):
        with mock.patch("mdns_registration.socket.gethostname", return_value="relay-box"), \
                mock.patch("mdns_registration.socket.gethostbyname", return_value="10.0.0.7") as gethostbyname:
            address = await PairRelayZeroconf(make_config(True, address="")).resolve_address()
        self.assertEqual(address, "10.0.0.7")
        gethostbyname.assert_called_once_with("relay-box")
        info = PairRelayZeroconf(make_config(True, address="")).service_info(address)
        self.assertEqual(info.parsed_addresses(), ["10.0.0.7"])


if __name__ == '__main__':
    unittest.main()
