"""
Run Metadata Log
================
JSON record of a CLI run: arguments, resolved paths, results and status.
The file is written at exit even if the run fails or is interrupted.
"""

import atexit
import json
import os
import time
import warnings
from datetime import datetime, timezone


def _utc_now_iso():
    return datetime.now(timezone.utc).isoformat(timespec="seconds").replace("+00:00", "Z")


def _jsonable(value):
    """Convert numpy scalars/arrays and paths into plain JSON values."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if hasattr(value, 'tolist'):
        return value.tolist()
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    return str(value)


class RunLog:
    """
    Metadata for one run, saved to <output_dir>/run_<name>_<stamp>.json.

    Usage:
        log = RunLog(output_dir, "spatial_cv", cli_args=vars(args))
        log["results"] = {...}
        log.finish()
    """

    def __init__(self, output_dir, name, cli_args=None):
        os.makedirs(output_dir, exist_ok=True)
        stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%SZ")
        self.path = os.path.join(output_dir, f"run_{name}_{stamp}.json")
        self._started = time.time()
        self.meta = {
            "run_started_at_utc": _utc_now_iso(),
            "cli_args": dict(cli_args or {}),
            "status": "running",
        }
        atexit.register(self._flush_on_exit)

    def __setitem__(self, key, value):
        self.meta[key] = value

    def __getitem__(self, key):
        return self.meta[key]

    def _stamp_end(self, status):
        self.meta["status"] = status
        self.meta["run_finished_at_utc"] = _utc_now_iso()
        self.meta["duration_seconds"] = round(time.time() - self._started, 3)

    def write(self):
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(_jsonable(self.meta), f, indent=2)

    def _flush_on_exit(self):
        # Persist metadata even if the run failed or was interrupted.
        if self.meta.get("status") != "running":
            return
        self._stamp_end("failed_or_interrupted")
        try:
            self.write()
        except OSError as exc:
            warnings.warn(f"Could not write run log {self.path}: {exc}")

    def finish(self):
        """Mark the run successful and write the log."""
        self._stamp_end("success")
        self.write()
        print(f"Run log saved: {self.path}")
        print(f"Total duration: {self.meta['duration_seconds']}s")
        return self.path
