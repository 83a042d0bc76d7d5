"""
Seed script — submits a burst of sample builds for demo purposes.

Usage:
    python -m scripts.seed_jobs

This creates:
- 1 URL build that starts immediately (if a slot is free)
- 2 normal builds that queue behind it
- 1 admin build (set ADMIN_IDS=9001 on the server) that jumps ahead of them
- 1 guaranteed-failure build (shows the failed counter moving)

Run this after starting the API to watch the queue drain on /queue/admin.
"""

import httpx

BASE_URL = "http://localhost:8000"


def seed():
    client = httpx.Client(base_url=BASE_URL, timeout=10.0)

    builds = [
        {
            "identity": "1001",
            "display_name": "Alice",
            "kind": "url",
            "payload": {"app_name": "Alice Shop", "duration": 5.0, "steps": 5},
        },
        {
            "identity": "1002",
            "display_name": "Bob",
            "kind": "zip",
            "payload": {"app_name": "Bob Notes", "duration": 4.0, "steps": 4},
        },
        {
            "identity": "1003",
            "display_name": "Carol",
            "kind": "url",
            "payload": {"app_name": "Carol Blog", "duration": 3.0},
        },
        {
            "identity": "9001",
            "display_name": "Admin",
            "kind": "url",
            "payload": {"app_name": "Admin Portal", "duration": 2.0},
        },
        {
            "identity": "1004",
            "display_name": "Dave",
            "kind": "zip",
            "payload": {"app_name": "Broken App", "duration": 0.1, "fail_probability": 1.0},
        },
    ]

    print(f"Submitting {len(builds)} builds to {BASE_URL}...\n")

    for build in builds:
        resp = client.post("/builds/", json=build)
        resp.raise_for_status()
        data = resp.json()
        where = "running" if data["immediate"] else f"queued #{data['position']}"
        marker = " (priority)" if data["is_priority"] else ""
        print(f"  [{where}] {build['display_name']} - {build['payload']['app_name']}{marker}")

    print("\nDone! Builds are now flowing through the queue.")
    print("Queue:   curl http://localhost:8000/queue/")
    print("Stats:   curl http://localhost:8000/queue/stats")


if __name__ == "__main__":
    seed()
