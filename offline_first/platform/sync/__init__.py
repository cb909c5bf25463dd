"""Offline mutation queue and replay."""

from offline_first.platform.sync.pending_queue import PendingOperationQueue
from offline_first.platform.sync.replayer import QueueReplayer, ReplayerState, ReplayReport

__all__ = ["PendingOperationQueue", "QueueReplayer", "ReplayerState", "ReplayReport"]
