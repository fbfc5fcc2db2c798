#!/usr/bin/env python3
"""
Wait for a background process to publish its status file.

A child process writes ``status.json`` some time after it starts. Until the file
exists there is nothing to read (retryable); once it exists the ``state`` key may
still be ``"starting"``. A file with invalid JSON is a terminal failure.

Run:
    python examples/wait_for_file.py
"""

import json
import subprocess
import sys
import tempfile
from pathlib import Path

from deferred.config import configure_logging
from deferred.core import (
    EventuallyAssertionError,
    ExponentialBackoff,
    RetryPolicy,
    assert_eventually,
    deferred_from,
    equal_to,
)

WRITER = """
import json, os, sys, time
path = sys.argv[1]

def publish(state):
    with open(path + ".tmp", "w") as f:
        json.dump({"state": state}, f)
    os.replace(path + ".tmp", path)

time.sleep(0.3)
publish("starting")
time.sleep(0.3)
publish("ready")
"""


def read_status(path: Path) -> dict:
    with open(path) as f:
        return json.load(f)


def main() -> None:
    configure_logging("DEBUG")
    with tempfile.TemporaryDirectory() as tmp:
        status_file = Path(tmp) / "status.json"
        child = subprocess.Popen([sys.executable, "-c", WRITER, str(status_file)])

        status = deferred_from(lambda: read_status(status_file), dict, retry_on=(FileNotFoundError,))
        policy = RetryPolicy(max_wait=5.0, poll_interval=ExponentialBackoff(initial=0.05, max_interval=0.5))

        try:
            state = assert_eventually(status.attribute("state", str), equal_to("ready"), policy)
            print(f"process is {state}")
        except EventuallyAssertionError as e:
            print(e)
        finally:
            child.wait()


if __name__ == "__main__":
    main()
