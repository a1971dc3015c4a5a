"""Shared test helpers."""

import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path

import orjson
from PySide6.QtCore import QCoreApplication

PROJECT_PATH = "/home/wiz/projects/myapp"
ENCODED_PROJECT = "-home-wiz-projects-myapp"


def write_jsonl(path: Path, records: list) -> Path:
    """Write records as JSONL; str items are written verbatim as raw lines."""
    lines = [r if isinstance(r, str) else orjson.dumps(r).decode() for r in records]
    path.write_text("\n".join(lines) + "\n")
    return path


def make_record(session_id: str, timestamp: str, content: str = "Hello", msg_type: str = "user", **extra) -> dict:
    role = msg_type if msg_type in ("user", "assistant", "system") else "assistant"
    record = {
        "type": msg_type,
        "message": {"role": role, "content": content},
        "timestamp": timestamp,
        "sessionId": session_id,
    }
    record.update(extra)
    return record


def process_events_until(predicate, timeout: float = 3.0, step: float = 0.02) -> bool:
    """Pump the Qt event loop until ``predicate()`` is true or time runs out."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        QCoreApplication.processEvents()
        if predicate():
            return True
        time.sleep(step)
    QCoreApplication.processEvents()
    return predicate()


@contextmanager
def stalled_fifo(path: Path, first_line: str, stall: float = 2.0):
    """A FIFO whose writer sends one line, then holds the pipe open for ``stall`` seconds."""
    os.mkfifo(path)

    def write():
        try:
            with open(path, "w") as f:
                f.write(first_line + "\n")
                f.flush()
                time.sleep(stall)
        except BrokenPipeError:
            pass

    writer = threading.Thread(target=write, daemon=True)
    writer.start()
    try:
        yield path
    finally:
        if writer.is_alive():
            # A writer still blocked in open() waits for any reader
            fd = os.open(path, os.O_RDONLY | os.O_NONBLOCK)
            os.close(fd)
        writer.join(timeout=stall + 1)
