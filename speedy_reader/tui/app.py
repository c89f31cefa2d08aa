"""
Interactive loop: poll, draw, act.

Each pass applies finished background work, redraws the screen and waits at
most POLL_INTERVAL for a key so timers and the spinner keep moving.
"""

import logging
import sqlite3

from rich.console import Console
from rich.live import Live

from ..exceptions import ReaderError
from ..keymap import map_key
from ..session import Session
from .terminal import KeyReader
from .ui import render

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1


async def run_interactive(session: Session, console: Console | None = None):
    """Run the reader until the user quits."""
    console = console or Console()
    session.load()
    session.start_refresh()

    try:
        with KeyReader() as keys, Live(
            render(session, console.size.height),
            console=console,
            auto_refresh=False,
            screen=True,
            vertical_overflow="crop",
        ) as live:
            while True:
                try:
                    session.tick()
                except (ReaderError, sqlite3.Error, OSError) as e:
                    logger.error(f"Background update failed: {e}")
                    session.status_message = f"Error: {e}"

                live.update(render(session, console.size.height), refresh=True)

                key = await keys.next_key(POLL_INTERVAL)
                if key is None:
                    continue

                action = map_key(session.mode, key)
                if action is None:
                    continue

                try:
                    if session.handle_action(action):
                        break
                except (ReaderError, sqlite3.Error, OSError) as e:
                    # Local failures end the triggering action only
                    logger.error(f"Action {action.kind.value} failed: {e}")
                    session.status_message = f"Error: {e}"
    finally:
        await session.shutdown()
