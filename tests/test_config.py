import os
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from config import Config, ConfigurationLoadError, DEFAULT_CONFIG


class TestConfig(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)
        self._env = mock.patch.dict(os.environ)
        self._env.start()
        os.environ.pop("WS_PORT", None)

    async def asyncTearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def write(self, text: str) -> Path:
        path = self.directory / "config.toml"
        path.write_text(text)
        return path

    async def load(self, path: Path) -> dict:
        config = Config(path)
        await config.initialize()
        return config.config

    async def test_missing_file_uses_defaults(self):
        config = await self.load(self.directory / "nope.toml")
        self.assertEqual(config, DEFAULT_CONFIG)
        self.assertEqual(config["server"]["websocket_port"], 4000)

    async def test_file_overrides_defaults(self):
        path = self.write('[server]\nwebsocket_port = 8765\nhost = "0.0.0.0"\n\n[mdns]\nenabled = true\n')
        config = await self.load(path)
        self.assertEqual(config["server"]["websocket_port"], 8765)
        self.assertEqual(config["server"]["host"], "0.0.0.0")
        self.assertEqual(config["server"]["close_timeout"], 2)
        self.assertTrue(config["mdns"]["enabled"])

    async def test_ws_port_environment_variable_wins(self):
        os.environ["WS_PORT"] = "5005"
        config = await self.load(self.write('[server]\nwebsocket_port = 8765\n'))
        self.assertEqual(config["server"]["websocket_port"], 5005)

    async def test_bad_ws_port_environment_variable(self):
        os.environ["WS_PORT"] = "four thousand"
        with self.assertRaises(ConfigurationLoadError):
            await self.load(self.directory / "nope.toml")

    async def test_invalid_toml(self):
        with self.assertRaises(ConfigurationLoadError):
            await self.load(self.write('[server\nwebsocket_port = '))

    async def test_schema_violations(self):
        for text in (
            '[server]\nwebsocket_port = 70000\n',
            '[server]\nwebsocket_port = "4000"\n',
            '[server]\nname = ""\n',
            '[server]\nping_interval = -1\n',
            '[mdns]\naddress = "not-an-ip"\n',
            '[pairings]\nfoo = 1\n',
        ):
            with self.subTest(text=text):
                with self.assertRaises(ConfigurationLoadError):
                    await self.load(self.write(text))

    async def test_example_config_is_valid(self):
        example = Path(__file__).resolve().parent.parent / ".example" / "config.toml"
        config = await self.load(example)
        self.assertEqual(config["server"]["websocket_port"], 4000)


if __name__ == '__main__':
    unittest.main()
