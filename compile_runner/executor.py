#!/usr/bin/env python3
"""
Execution of the compiled program and cleanup of the binary.

:class:`ArtifactCleaner` is a scoped guard over the compiled binary: it is
registered before anything can create the file and releases it on normal
exit, on fatal errors and on SIGINT/SIGTERM.
"""

from __future__ import annotations

import atexit
import os
import signal
from pathlib import Path
from types import FrameType
from typing import Any, Dict, Iterable, Optional, Sequence

from loguru import logger

from .core_types import PathLike
from .utils import FileManager, ProcessManager

HANDLED_SIGNALS: tuple[int, ...] = (signal.SIGINT, signal.SIGTERM)


class ArtifactCleaner:
    """
    Removes the tracked binary on every exit path unless it must be kept.

    Release is idempotent and succeeds when the file is already gone.
    """

    def __init__(
        self, keep_binary: bool = False, file_manager: Optional[FileManager] = None
    ) -> None:
        self.keep_binary = keep_binary
        self.file_manager = file_manager or FileManager()
        self._path: Optional[Path] = None
        self._registered = False
        self._previous_handlers: Dict[int, Any] = {}

    @property
    def path(self) -> Optional[Path]:
        return self._path

    @property
    def registered(self) -> bool:
        return self._registered

    def track(self, path: PathLike) -> None:
        """Set the binary this guard is responsible for."""
        self._path = Path(path)
        logger.debug(f"Tracking artifact {self._path}")

    def register(self, signals: Iterable[int] = HANDLED_SIGNALS) -> ArtifactCleaner:
        """Install the exit hook and signal handlers."""
        if self._registered:
            return self
        atexit.register(self.release)
        for signum in signals:
            self._previous_handlers[signum] = signal.signal(signum, self._handle_signal)
        self._registered = True
        return self

    def unregister(self) -> None:
        """Remove the exit hook and restore the previous signal handlers."""
        if not self._registered:
            return
        atexit.unregister(self.release)
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()
        self._registered = False

    def _handle_signal(self, signum: int, frame: Optional[FrameType]) -> None:
        logger.debug(f"Received signal {signum}, exiting")
        # SystemExit unwinds the pipeline; the exit hook then releases.
        raise SystemExit(128 + signum)

    def release(self) -> bool:
        """
        Remove the tracked binary.

        Returns:
            True if a file was removed
        """
        if self._path is None:
            return False
        if self.keep_binary:
            logger.debug(f"Keeping {self._path}")
            return False
        try:
            return self.file_manager.remove_file(self._path)
        except OSError as e:
            logger.warning(f"Could not remove {self._path}: {e}")
            return False

    def __enter__(self) -> ArtifactCleaner:
        return self.register()

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.release()
        self.unregister()
        return False


class ExecutionManager:
    """Runs a binary in the foreground and reports its exit status."""

    def __init__(self, process_manager: Optional[ProcessManager] = None) -> None:
        self.process_manager = process_manager or ProcessManager()

    def execute(self, binary: PathLike, program_args: Sequence[str] = ()) -> int:
        """
        Run ``binary`` with ``program_args`` and wait for it.

        Returns:
            The child's exit status (128 + N if it was killed by signal N)
        """
        command = [os.path.abspath(binary), *program_args]
        logger.info(f"Running: {' '.join(command)}")
        result = self.process_manager.run_foreground(command)
        if result.failed and result.stderr:
            # Only set when the program could not be launched at all.
            logger.error(result.stderr)
        logger.debug(
            f"Program exited with code {result.return_code} "
            f"after {result.execution_time:.2f}s"
        )
        return result.return_code
