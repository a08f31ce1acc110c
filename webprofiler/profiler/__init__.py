"""Profile capture, storage and import/export."""

from webprofiler.profiler.models import Profile
from webprofiler.profiler.profiler import Profiler
from webprofiler.profiler.storage import (
    FileProfilerStorage,
    MemoryProfilerStorage,
    ProfilerStorage,
    create_storage,
)

__all__ = [
    "FileProfilerStorage",
    "MemoryProfilerStorage",
    "Profile",
    "Profiler",
    "ProfilerStorage",
    "create_storage",
]
