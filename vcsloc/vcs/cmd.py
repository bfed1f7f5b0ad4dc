import functools
import logging
import shutil
import subprocess
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Union

from vcsloc.errors import CommandError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


@dataclass
class CommandResult:
    elapsed: float
    stdout: str
    stderr: str

    @property
    def lines(self):
        return self.stdout.splitlines()


@functools.lru_cache(maxsize=None)
def lookup_path(exe: str) -> str:
    """Find an executable on PATH once; some platforms are slow at this."""
    exe_path = shutil.which(exe)
    if exe_path is None:
        raise CommandError(exe, [])
    return exe_path


def run_external(exe: str, working_dir: Optional[PathLike], *params: str) -> CommandResult:
    """Run a short-lived external command and capture its output.

    Raises CommandError if the executable is missing or exits non-zero.
    """
    exe_path = lookup_path(exe)
    logger.debug("run: %s %s", exe, " ".join(params))

    start = time.perf_counter()
    try:
        proc = subprocess.run(
            [exe_path, *params],
            cwd=working_dir,
            capture_output=True,
            check=True,
            text=True,
            errors="replace",
        )
    except subprocess.CalledProcessError as e:
        raise CommandError(exe, params, e.returncode, e.stderr or "") from e
    except OSError as e:
        raise CommandError(exe, params, reason=str(e)) from e
    elapsed = time.perf_counter() - start

    return CommandResult(elapsed=elapsed, stdout=proc.stdout, stderr=proc.stderr)


def run_external_incremental(
    out_cb: Callable[[str], None],
    err_cb: Optional[Callable[[str], None]],
    exe: str,
    working_dir: Optional[PathLike],
    *params: str,
) -> float:
    """Run an external command, feeding its output to callbacks line by line.

    stdout is read on the calling thread and stderr on a worker thread; the
    worker is joined before the elapsed time is taken. Returns elapsed seconds.
    """
    exe_path = lookup_path(exe)
    logger.debug("run (incremental): %s %s", exe, " ".join(params))

    stderr_tail = []
    start = time.perf_counter()
    try:
        proc = subprocess.Popen(
            [exe_path, *params],
            cwd=working_dir,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
        )
    except OSError as e:
        raise CommandError(exe, params, reason=str(e)) from e

    with proc:

        def drain_stderr():
            for line in proc.stderr:
                line = line.rstrip("\n")
                stderr_tail.append(line)
                if err_cb is not None:
                    err_cb(line)

        worker = threading.Thread(target=drain_stderr, daemon=True)
        worker.start()

        for line in proc.stdout:
            out_cb(line.rstrip("\n"))

        worker.join()
        returncode = proc.wait()
    elapsed = time.perf_counter() - start

    if returncode != 0:
        raise CommandError(exe, params, returncode, "\n".join(stderr_tail))

    return elapsed
