"""Hold an advisory lock on a file from a separate process.

Used by the integration tests to check that storage operations fail fast
when another process owns a lock.

Usage:
    python scripts/lock_holder.py PATH [shared|exclusive] [SECONDS]

Prints "acquired" once the lock is held, then keeps it until SECONDS have
passed or stdin is closed, whichever comes first.
"""

import fcntl
import select
import sys
import time

path = sys.argv[1]
mode = sys.argv[2] if len(sys.argv) > 2 else "exclusive"
seconds = float(sys.argv[3]) if len(sys.argv) > 3 else 10.0

flag = fcntl.LOCK_SH if mode == "shared" else fcntl.LOCK_EX
with open(path, "rb" if mode == "shared" else "r+b") as fh:
    fcntl.flock(fh.fileno(), flag | fcntl.LOCK_NB)
    print("acquired", flush=True)
    deadline = time.monotonic() + seconds
    while time.monotonic() < deadline:
        ready, _, _ = select.select([sys.stdin], [], [], 0.1)
        if ready and not sys.stdin.read(1):
            break
    print("releasing", flush=True)
