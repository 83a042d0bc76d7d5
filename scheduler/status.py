"""
Status text for chat front-ends.

Both functions return Telegram-flavoured HTML (<b>, <i>), with every
user-supplied string escaped. They only read from the queue, through one
get_status_snapshot() call each, so a message never mixes two queue states.
"""

import html

from models.enums import ServerState
from models.job import Identity
from scheduler.engine import BuildQueue

_STATE_LABELS = {
    ServerState.READY: "🟢 Ready",
    ServerState.ACTIVE: "🟡 Active",
    ServerState.FULL: "🔴 Full",
}

_ADMIN_QUEUE_LIMIT = 10


def _minutes_seconds(seconds: int) -> str:
    return f"{seconds // 60}m {seconds % 60}s"


def format_queue_status(queue: BuildQueue, identity: Identity) -> str:
    """Queue status as seen by one submitter: server load, stats, own place."""
    snapshot = queue.get_status_snapshot(identity)
    info = snapshot["info"]
    stats = snapshot["stats"]

    lines = [
        "📋 <b>Queue Status</b>",
        "",
        f"<b>Server:</b> {_STATE_LABELS[snapshot['state']]}",
        f"<b>Slots:</b> {info['processing']}/{info['max_concurrent']} in use",
    ]
    if info["waiting"] > 0:
        lines.append(f"<b>Queue:</b> {info['waiting']} waiting")

    lines += [
        "",
        "<b>📈 Statistics:</b>",
        f"✅ {stats['success']} succeeded | ❌ {stats['failed']} failed",
        f"⏱ Average: {stats['avg_time']}s",
    ]

    own = next((job for job in snapshot["active"] if job["identity"] == identity), None)
    position = snapshot["position"]
    if own is not None:
        lines += ["", f"🔄 <b>Your build is running</b> ({_minutes_seconds(own['duration_seconds'])})"]
    elif position > 0:
        lines += [
            "",
            f"🎫 <b>Your position:</b> #{position} of {info['waiting']}",
            f"⏱ <b>Estimated wait:</b> ~{snapshot['estimated_wait_minutes']} min",
        ]

    return "\n".join(lines)


def format_admin_queue(queue: BuildQueue) -> str:
    """Operator view: every running build and the head of the queue."""
    snapshot = queue.get_status_snapshot()
    active = snapshot["active"]
    pending = snapshot["pending"]

    lines = [
        "👑 <b>Admin - Queue Manager</b>",
        "",
        f"<b>🔨 Running ({len(active)}/{snapshot['info']['max_concurrent']}):</b>",
    ]
    if not active:
        lines.append("<i>None</i>")
    for job in active:
        lines.append(
            f"• {html.escape(job['display_name'])} - {html.escape(job['project_name'])} "
            f"({_minutes_seconds(job['duration_seconds'])})"
        )

    lines += ["", f"<b>📋 Queue ({len(pending)}):</b>"]
    if not pending:
        lines.append("<i>Empty</i>")
    for item in pending[:_ADMIN_QUEUE_LIMIT]:
        marker = "👑 " if item["priority"] else ""
        lines.append(
            f"{item['position']}. {marker}{html.escape(item['display_name'])} - "
            f"{html.escape(item['project_name'])}"
        )
    if len(pending) > _ADMIN_QUEUE_LIMIT:
        lines.append(f"<i>...and {len(pending) - _ADMIN_QUEUE_LIMIT} more</i>")

    return "\n".join(lines)
