#!/usr/bin/env python3
"""Reclaim Notifications - running cleanup after an object is collected.

This example registers callbacks on a few objects, drops them, and shows
the callbacks firing on worker threads. It also shows cancellation,
replacement, a custom pool, and awaiting reclamation through a future.

Run: python examples/01_basics/01_reclaim_notification.py
"""
import gc
import threading
from concurrent.futures import ThreadPoolExecutor

from disposal import DisposalService
from disposal.logging import configure_logging


class Connection:
    def __init__(self, name: str):
        self.name = name


def announce(label: str, done: threading.Event):
    def callback():
        print(f"  {label} reclaimed on {threading.current_thread().name}")
        done.set()

    return callback


def main():
    configure_logging(level="WARNING", json_format=False)

    print("=" * 60)
    print("Reclaim Notifications")
    print("=" * 60)

    with DisposalService() as service:
        # === 1. Basic notification ===
        print("\n[1] Basic notification")
        done = threading.Event()
        conn = Connection("primary")
        service.decorate(conn, announce("primary", done))
        del conn
        gc.collect()
        done.wait(5)

        # === 2. Cancellation ===
        print("\n[2] Cancelled before reclamation")
        cancelled = threading.Event()
        conn = Connection("cancelled")
        service.decorate(conn, announce("cancelled", cancelled))
        service.undecorate(conn)
        del conn
        gc.collect()
        print(f"  fired: {cancelled.wait(0.5)}")

        # === 3. Replacement ===
        print("\n[3] Re-decorating replaces the callback")
        first, second = threading.Event(), threading.Event()
        conn = Connection("replaced")
        service.decorate(conn, announce("first callback", first))
        service.decorate(conn, announce("second callback", second))
        del conn
        gc.collect()
        second.wait(5)
        print(f"  first fired: {first.wait(0.5)}")

        # === 4. Custom pool ===
        print("\n[4] Custom single-thread pool")
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="cleanup") as pool:
            done = threading.Event()
            conn = Connection("pooled")
            service.decorate(conn, announce("pooled", done), pool)
            del conn
            gc.collect()
            done.wait(5)

        # === 5. Future ===
        print("\n[5] Waiting on a future")
        conn = Connection("awaited")
        future = service.decorate_future(conn)
        del conn
        gc.collect()
        future.result(timeout=5)
        print("  future resolved")

        print(f"\n  stats: {service.stats()}")


if __name__ == "__main__":
    main()
