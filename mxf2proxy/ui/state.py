import threading
from collections import deque
from pathlib import Path
from typing import List, Optional

class UIState:
    """Thread-safe snapshot of pipeline progress for display."""

    def __init__(self, activity_feed_max_items: int = 5):
        self._lock = threading.RLock()

        # Counters
        self.outstanding_clips = 0
        self.completed_count = 0
        self.failed_count = 0
        self.skipped_count = 0

        # Jobs
        self.queued_sources: List[Path] = []
        self.active_source: Optional[Path] = None
        self.active_destination: Optional[Path] = None
        self.current_clip: Optional[Path] = None
        self.recent_activity = deque(maxlen=activity_feed_max_items)

        self.status_text = ""
        self.batches_finished = 0

    def add_activity(self, line: str):
        with self._lock:
            self.recent_activity.appendleft(line)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "outstanding_clips": self.outstanding_clips,
                "completed": self.completed_count,
                "failed": self.failed_count,
                "skipped": self.skipped_count,
                "queued": list(self.queued_sources),
                "active": self.active_source,
                "status": self.status_text,
            }
