import logging
import queue
import shlex
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional, Sequence
from vidmark.domain.errors import EncodeError

class ProcessRunner:
    """Runs an external command and captures stdout+stderr as one interleaved stream.

    Blocks the calling worker thread until the process exits. A non-zero exit, a launch
    failure, an expired timeout or a set cancel_event all raise EncodeError carrying
    whatever output was captured. There is no retry here; callers decide.
    """

    def __init__(self, poll_interval_s: float = 0.1, terminate_grace_s: float = 3.0):
        self.poll_interval_s = poll_interval_s
        self.terminate_grace_s = terminate_grace_s
        self.logger = logging.getLogger(__name__)

    def run(
        self,
        command_name: str,
        args: Sequence[str],
        source: Optional[Path] = None,
        timeout_s: Optional[float] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> str:
        cmd = [command_name, *args]
        source = Path(source) if source is not None else Path(command_name)
        self.logger.info(f"Executing: {shlex.join(cmd)}")

        try:
            process = subprocess.Popen(
                cmd,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                universal_newlines=True,
                errors="replace",
                bufsize=1
            )
        except OSError as e:
            raise EncodeError(source, f"cannot launch {command_name}: {e}") from e

        with process:
            output_queue: "queue.Queue[Optional[str]]" = queue.Queue()

            def _reader():
                if not process.stdout:
                    output_queue.put(None)
                    return
                for line in process.stdout:
                    output_queue.put(line)
                output_queue.put(None)

            reader_thread = threading.Thread(target=_reader, daemon=True)
            reader_thread.start()

            lines: List[str] = []
            deadline = time.monotonic() + timeout_s if timeout_s else None
            abort_reason = None

            while True:
                if cancel_event is not None and cancel_event.is_set():
                    abort_reason = "interrupted"
                    break
                if deadline is not None and time.monotonic() >= deadline:
                    abort_reason = f"timed out after {timeout_s:g}s"
                    break
                try:
                    line = output_queue.get(timeout=self.poll_interval_s)
                except queue.Empty:
                    if process.poll() is not None and not reader_thread.is_alive():
                        break
                    continue
                if line is None:
                    break
                lines.append(line)

            if abort_reason:
                self._terminate(process)
                reader_thread.join(timeout=1.0)
                lines.extend(self._drain(output_queue))
                self.logger.warning(f"{command_name} {abort_reason}: {source}")
                raise EncodeError(source, f"{command_name} {abort_reason}", "".join(lines))

            returncode = process.wait()
            reader_thread.join(timeout=1.0)
            lines.extend(self._drain(output_queue))
            output = "".join(lines)

            if returncode != 0:
                raise EncodeError(source, f"{command_name} exited with code {returncode}", output)
            return output

    def _terminate(self, process: subprocess.Popen) -> None:
        process.terminate()
        try:
            process.wait(timeout=self.terminate_grace_s)
        except subprocess.TimeoutExpired:
            process.kill()
            process.wait()

    @staticmethod
    def _drain(output_queue: "queue.Queue[Optional[str]]") -> List[str]:
        remaining = []
        while True:
            try:
                line = output_queue.get_nowait()
            except queue.Empty:
                return remaining
            if line is not None:
                remaining.append(line)
