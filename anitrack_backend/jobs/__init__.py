"""
Job driver: periodic and manual runs of the sync and dispatch engines.
"""

from anitrack_backend.jobs.runtime import Runtime, build_runtime
from anitrack_backend.jobs.scheduler import JobScheduler

__all__ = [
    "JobScheduler",
    "Runtime",
    "build_runtime",
]
