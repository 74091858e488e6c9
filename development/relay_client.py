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

"""
Stand-in for the controller / client apps while working on the relay.

    python development/relay_client.py control            # random code, type commands
    python development/relay_client.py client 123456      # prints what the controller sends
"""

import argparse
import asyncio
import json
import random
import shlex
import sys
from typing import Optional

import websockets
from websockets.asyncio.client import connect, ClientConnection
from rich import print

from media import extract_youtube_video_id

NO_ARGUMENT_COMMANDS = ("pause", "resume", "stop", "next", "previous")


def generate_code() -> str:
    return str(random.randint(100000, 999999))


def parse_command(line: str) -> Optional[dict]:
    """Turn a typed line like 'speed 1.5' into the packet the controller app would send."""
    try:
        words = shlex.split(line)
    except ValueError:
        return None
    if not words:
        return None
    command, args = words[0].lower(), words[1:]

    if command in NO_ARGUMENT_COMMANDS and not args:
        return {"type": command}
    if command == "play" and len(args) == 1:
        return {"type": "play", "url": args[0]}
    if command in ("speed", "seek") and len(args) == 1:
        try:
            value = float(args[0])
        except ValueError:
            return None
        return {"type": command, "speed" if command == "speed" else "seconds": value}
    return None


async def print_incoming(websocket: ClientConnection):
    async for message in websocket:
        packet = json.loads(message)
        if packet.get("type") == "play":
            video_id = extract_youtube_video_id(packet.get("url", ""))
            print(f"[green]play[/green] {packet.get('url')} (video id: {video_id})")
        else:
            print(packet)


async def read_commands(websocket: ClientConnection):
    loop = asyncio.get_running_loop()
    while True:
        line = await loop.run_in_executor(None, sys.stdin.readline)
        if not line:
            return
        packet = parse_command(line)
        if packet is None:
            print(f"[red]unknown command[/red] {line.strip()!r}")
            continue
        await websocket.send(json.dumps(packet))


async def main():
    parser = argparse.ArgumentParser(description="Development peer for the pair relay")
    parser.add_argument("role", choices=("control", "client"))
    parser.add_argument("code", nargs="?", default=None)
    parser.add_argument("--url", default="ws://localhost:4000")
    args = parser.parse_args()

    code = args.code or generate_code()
    print(f"Joining [bold]{code}[/bold] as {args.role}")

    try:
        async with connect(args.url) as websocket:
            await websocket.send(json.dumps({"type": "join", "role": args.role, "code": code}))
            tasks = [asyncio.create_task(print_incoming(websocket))]
            if args.role == "control":
                tasks.append(asyncio.create_task(read_commands(websocket)))
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            for task in pending:
                task.cancel()
            for task in done:
                task.result()
    except websockets.exceptions.ConnectionClosed:
        print("Connection closed")
    except OSError as e:
        print(f"[red]Could not connect to {args.url}[/red]: {e}")


if __name__ == "__main__":
    asyncio.run(main())
