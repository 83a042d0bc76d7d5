"""
Shared enumerations used across the entire project.

Using Python enums (inheriting from str) means:
- They serialize to JSON automatically ("url", not "JobKind.URL")
- They round-trip through the persisted queue document unchanged
- They work as FastAPI request fields and query parameters
- Typos become immediate errors instead of silent bugs
"""

import enum


class JobKind(str, enum.Enum):
    URL = "url"    # build from a website URL
    ZIP = "zip"    # build from an uploaded project archive


class StuckReason(str, enum.Enum):
    TIMEOUT = "timeout"      # ran longer than the max build time
    INACTIVE = "inactive"    # no heartbeat within the inactivity budget


class ServerState(str, enum.Enum):
    READY = "ready"      # no active builds
    ACTIVE = "active"    # some slots in use
    FULL = "full"        # every slot in use
