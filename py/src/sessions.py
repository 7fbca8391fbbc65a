# Roll session logs.
# Every individual die rolled is kept as one CSV row in the session file that
# was current when it was rolled.
import csv
import logging
import os
import threading
import typing
from datetime import datetime, timezone

from dice_details import LogError, RollRecord

log = logging.getLogger(__name__)

SESSIONS_INDEX_FILENAME = "sessions.txt"
SESSION_FILENAME_FORMAT = "%Y-%m-%d_%H-%M-%S"
SESSION_EXTENSION = ".csv"
SESSION_HEADER = ["user_id", "result", "sides", "timestamp"]


# A buffered row and the session file it belongs to.
class PendingRow(typing.NamedTuple):
    filename: str
    row: list[str]


# Session log backed by CSV files in `directory`.
# `sessions.txt` lists session file names in creation order; the last one is current.
# Recording only buffers rows in memory so that rolling never waits on disk,
# and `flush` writes them out. `lock` guards the buffer and the current session
# and is never held during file writes; `write_lock` keeps flushes and session
# changes from interleaving. The bot shares a single instance through a sync manager.
class SessionLog:
    def __init__(self, directory: str) -> None:
        self.directory = directory
        self.current: str | None = None
        self.pending: list[PendingRow] = []
        self.lock = threading.Lock()
        self.write_lock = threading.Lock()

    def _path(self, filename: str) -> str:
        return os.path.join(self.directory, filename)

    # Resume the last listed session, or start the first one.
    def init(self) -> str:
        os.makedirs(self.directory, exist_ok=True)
        sessions = self.sessions()
        if len(sessions) == 0:
            return self.new_session()
        with self.lock:
            self.current = sessions[-1]
        log.info(f"Resumed roll session {self.current}")
        return self.current

    def sessions(self) -> list[str]:
        try:
            with open(self._path(SESSIONS_INDEX_FILENAME), encoding="utf-8") as index:
                return [line.strip() for line in index if line.strip()]
        except FileNotFoundError:
            return []

    def current_session(self) -> str | None:
        return self.current

    # Pick a file name for a session starting now.
    # Sessions started within the same second get a numbered suffix.
    def _new_filename(self) -> str:
        stem = datetime.now(timezone.utc).strftime(SESSION_FILENAME_FORMAT)
        filename = stem + SESSION_EXTENSION
        n = 1
        while filename == self.current or os.path.exists(self._path(filename)):
            n += 1
            filename = f"{stem}_{n}{SESSION_EXTENSION}"
        return filename

    # Close off the current session and start writing to a fresh file.
    # Rows already recorded keep their session, even if they can't be written yet.
    def new_session(self) -> str:
        with self.write_lock:
            self._flush()
            os.makedirs(self.directory, exist_ok=True)
            filename = self._new_filename()
            with open(self._path(filename), "w", newline="", encoding="utf-8") as session_file:
                csv.writer(session_file).writerow(SESSION_HEADER)
            with open(self._path(SESSIONS_INDEX_FILENAME), "a", encoding="utf-8") as index:
                index.write(filename + "\n")
            with self.lock:
                self.current = filename
        log.info(f"Started roll session {filename}")
        return filename

    def record(self, user_id, result: int, sides: int, timestamp: datetime) -> None:
        with self.lock:
            if self.current is None:
                raise LogError("No roll session is open.")
            self.pending.append(
                PendingRow(
                    self.current,
                    [str(user_id), str(result), str(sides), timestamp.isoformat()],
                )
            )

    # Write pending rows to their session files.
    # Returns True if there was an error; rows that failed stay pending.
    def flush(self) -> bool:
        with self.write_lock:
            return self._flush()

    def _flush(self) -> bool:
        with self.lock:
            batch, self.pending = self.pending, []
        if len(batch) == 0:
            return False

        by_file: dict[str, list[list[str]]] = {}
        for pending in batch:
            by_file.setdefault(pending.filename, []).append(pending.row)

        failed = []
        for filename, rows in by_file.items():
            try:
                self._write_rows(filename, rows)
                log.debug(f"Wrote {len(rows)} roll(s) to {filename}.")
            except OSError:
                log.error(f"Failed to write rolls to {filename}.", exc_info=True)
                failed.extend(PendingRow(filename, row) for row in rows)

        if len(failed) > 0:
            with self.lock:
                self.pending = failed + self.pending
            return True
        return False

    def _write_rows(self, filename: str, rows: list[list[str]]):
        with open(self._path(filename), "a", newline="", encoding="utf-8") as session_file:
            csv.writer(session_file).writerows(rows)

    def pending_count(self) -> int:
        return len(self.pending)

    # Read back every roll stored in a session file.
    def load_session(self, filename: str) -> list[RollRecord]:
        try:
            with open(self._path(filename), newline="", encoding="utf-8") as session_file:
                return [
                    RollRecord(
                        user_id=int(row["user_id"]),
                        result=int(row["result"]),
                        sides=int(row["sides"]),
                        timestamp=datetime.fromisoformat(row["timestamp"]),
                    )
                    for row in csv.DictReader(session_file)
                ]
        except (OSError, KeyError, ValueError) as err:
            raise LogError(f"Could not load session {filename}: {err}") from err


# Session log kept in memory, for tests and the command line.
class MemoryLog:
    def __init__(self) -> None:
        self.records: list[RollRecord] = []

    def record(self, user_id, result: int, sides: int, timestamp: datetime) -> None:
        self.records.append(RollRecord(user_id, result, sides, timestamp))
