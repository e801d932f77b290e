"""Pack job handle: output file and lock artifact lifecycle.

A ``JobHandle`` owns one output path for the duration of a job.  Opening
it creates an empty output file and ``<output>.lock``; closing it removes
the lock on every exit path.  The lock is advisory: a crashed process
leaves it behind and it must be removed by hand.

Usage:
    with JobHandle.open("dump.sql") as job:
        job.output_path.write_text(...)
    # lock removed here, success or failure
"""

import logging
from pathlib import Path

from pg_pack.exceptions import PackIOError

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".lock"


def lock_path_for(output_path: str | Path) -> Path:
    """Derive the lock artifact path for an output path."""
    output_path = Path(output_path)
    return output_path.with_name(output_path.name + LOCK_SUFFIX)


class JobHandle:
    """Process-local handle on a pack job's output path and lock."""

    def __init__(self, output_path: str | Path):
        self.output_path = Path(output_path)
        self.lock_path = lock_path_for(self.output_path)
        self._active = False

    @classmethod
    def open(cls, output_path: str | Path) -> "JobHandle":
        """Create the empty output file and the lock artifact.

        Raises:
            PackIOError: If either file cannot be written
        """
        job = cls(output_path)
        try:
            job.output_path.write_bytes(b"")
        except OSError as e:
            raise PackIOError(f"cannot write to output file: {e}") from e

        try:
            job.lock_path.write_bytes(b"")
        except OSError as e:
            raise PackIOError(f"cannot create lock file: {e}") from e

        job._active = True
        logger.debug("Acquired lock %s", job.lock_path)
        return job

    @property
    def active(self) -> bool:
        return self._active

    def release(self) -> None:
        """Remove the lock artifact.

        Raises:
            PackIOError: If the lock exists but cannot be removed
        """
        if not self._active:
            return
        self._active = False
        try:
            self.lock_path.unlink(missing_ok=True)
        except OSError as e:
            raise PackIOError(f"cannot remove lock file: {e}") from e
        logger.debug("Released lock %s", self.lock_path)

    def __enter__(self) -> "JobHandle":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        try:
            self.release()
        except PackIOError:
            # Don't mask the error that ended the job
            if exc_type is None:
                raise
            logger.warning("Could not remove lock file %s", self.lock_path)
