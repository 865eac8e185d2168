"""
Publish wallet session snapshots to WebSocket clients via Channels.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Set

from channels.layers import get_channel_layer

from .session import Session

logger = logging.getLogger(__name__)

SESSION_GROUP = 'wallet.session'


def channel_layer_publisher(group: str = SESSION_GROUP) -> Callable[[Session], None]:
    """Build a :meth:`SessionManager.subscribe` callback that fans out to ``group``."""
    channel_layer = get_channel_layer()
    pending: Set[asyncio.Task] = set()

    def publish(session: Session) -> None:
        if channel_layer is None:
            return
        message = {'type': 'session.update', 'session': session.as_dict()}
        task = asyncio.get_running_loop().create_task(channel_layer.group_send(group, message))
        pending.add(task)
        task.add_done_callback(_finished)

    def _finished(task: asyncio.Task) -> None:
        pending.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.warning('session broadcast failed: %s', task.exception())

    return publish
