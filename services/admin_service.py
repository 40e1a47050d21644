import os
import platform
import sys
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

import anyio

# resource is Unix-only; peak memory is reported as None elsewhere
try:
    import resource
except ImportError:
    resource = None


LOG_TAIL_LINES = 100


def peak_memory_kb() -> Optional[int]:
    if resource is None:
        return None
    max_rss = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is kilobytes on Linux, bytes on macOS
    return max_rss // 1024 if sys.platform == "darwin" else max_rss


def get_system_info(started_at: float) -> Dict[str, Any]:
    max_rss_kb = peak_memory_kb()
    cpu = os.times()
    return {
        "uptime": int(time.monotonic() - started_at),
        "memory": {"maxRss": f"{round(max_rss_kb / 1024)} MB" if max_rss_kb is not None else None},
        "cpu": {"user": round(cpu.user, 2), "system": round(cpu.system, 2)},
        "pythonVersion": platform.python_version(),
        "platform": sys.platform,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def _read_log_tail(log_dir: Path) -> Dict[str, Any]:
    if not log_dir.is_dir():
        return {"logs": [], "message": "Logs directory not found or empty"}

    log_files = [path for path in log_dir.iterdir() if path.is_file() and path.suffix == ".log"]
    if not log_files:
        return {"logs": [], "message": "No log files found"}

    latest = max(log_files, key=lambda path: path.stat().st_mtime)
    with open(latest, "r", encoding="utf-8", errors="replace") as handle:
        lines = [line.rstrip("\n") for line in handle if line.strip()]
    tail = lines[-LOG_TAIL_LINES:]
    return {"logs": tail, "file": latest.name, "totalLines": len(tail)}


async def get_recent_logs(log_dir: str) -> Dict[str, Any]:
    return await anyio.to_thread.run_sync(_read_log_tail, Path(log_dir))
