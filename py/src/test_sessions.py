import csv
import os
import tempfile
import threading
import unittest
from datetime import datetime, timezone

import dice
import sessions
from dice_details import LogError, RollRecord


class SessionLogTest(unittest.TestCase):
    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.directory = os.path.join(self.tempdir.name, "rolls")
        self.log = sessions.SessionLog(self.directory)
        self.when = datetime(2024, 5, 1, 20, 30, 15, tzinfo=timezone.utc)

    def tearDown(self):
        self.tempdir.cleanup()

    def read_rows(self, filename):
        with open(os.path.join(self.directory, filename), newline="") as f:
            return list(csv.reader(f))

    def test_init_starts_first_session(self):
        current = self.log.init()
        self.assertEqual(self.log.current_session(), current)
        self.assertEqual(self.log.sessions(), [current])
        self.assertEqual(self.read_rows(current), [sessions.SESSION_HEADER])

    def test_init_resumes_last_session(self):
        os.makedirs(self.directory)
        with open(os.path.join(self.directory, sessions.SESSIONS_INDEX_FILENAME), "w") as f:
            f.write("old.csv\nlatest.csv\n")
        self.assertEqual(self.log.init(), "latest.csv")
        self.assertEqual(self.log.current_session(), "latest.csv")

    def test_record_is_buffered_until_flush(self):
        current = self.log.init()
        self.log.record(42, 5, 6, self.when)
        self.log.record(42, 1, 20, self.when)
        self.assertEqual(self.log.pending_count(), 2)
        self.assertEqual(len(self.read_rows(current)), 1)

        self.assertFalse(self.log.flush())
        self.assertEqual(self.log.pending_count(), 0)
        self.assertEqual(
            self.log.load_session(current),
            [RollRecord(42, 5, 6, self.when), RollRecord(42, 1, 20, self.when)],
        )

    def test_record_without_session(self):
        with self.assertRaises(LogError):
            self.log.record(1, 1, 6, self.when)

    def test_evaluation_records_through_session_log(self):
        current = self.log.init()
        result = dice.roll("3d8 - 2", 7, self.log)
        self.assertEqual(result.log_errors, [])
        self.log.flush()
        records = self.log.load_session(current)
        self.assertEqual(len(records), 3)
        self.assertEqual(sum(r.result for r in records) - 2, result.total)
        self.assertTrue(all(r.sides == 8 and r.user_id == 7 for r in records))

    def test_new_session_flushes_previous(self):
        os.makedirs(self.directory)
        with open(os.path.join(self.directory, "old.csv"), "w", newline="") as f:
            csv.writer(f).writerow(sessions.SESSION_HEADER)
        with open(os.path.join(self.directory, sessions.SESSIONS_INDEX_FILENAME), "w") as f:
            f.write("old.csv\n")
        self.log.init()
        self.log.record(1, 3, 4, self.when)

        second = self.log.new_session()
        self.assertNotEqual(second, "old.csv")
        self.assertEqual(self.log.load_session("old.csv"), [RollRecord(1, 3, 4, self.when)])
        self.assertEqual(self.log.current_session(), second)
        self.assertEqual(self.log.sessions(), ["old.csv", second])
        self.assertEqual(self.read_rows(second), [sessions.SESSION_HEADER])

    # Swap a session file for a directory so appending to it fails.
    def break_session_file(self, filename):
        path = os.path.join(self.directory, filename)
        os.remove(path)
        os.mkdir(path)

    def restore_session_file(self, filename):
        path = os.path.join(self.directory, filename)
        os.rmdir(path)
        with open(path, "w", newline="") as f:
            csv.writer(f).writerow(sessions.SESSION_HEADER)

    def test_failed_flush_keeps_rows(self):
        current = self.log.init()
        self.log.record(1, 3, 4, self.when)
        self.break_session_file(current)
        with self.assertLogs("sessions", level="ERROR"):
            self.assertTrue(self.log.flush())
        self.assertEqual(self.log.pending_count(), 1)

        self.restore_session_file(current)
        self.assertFalse(self.log.flush())
        self.assertEqual(self.log.load_session(current), [RollRecord(1, 3, 4, self.when)])

    def test_unwritten_rows_stay_in_their_session(self):
        first = self.log.init()
        self.log.record(1, 3, 4, self.when)
        self.break_session_file(first)
        with self.assertLogs("sessions", level="ERROR"):
            second = self.log.new_session()
        self.log.record(2, 6, 6, self.when)

        with self.assertLogs("sessions", level="ERROR"):
            self.assertTrue(self.log.flush())
        self.assertEqual(self.log.load_session(second), [RollRecord(2, 6, 6, self.when)])
        self.assertEqual(self.log.pending_count(), 1)

        self.restore_session_file(first)
        self.assertFalse(self.log.flush())
        self.assertEqual(self.log.load_session(first), [RollRecord(1, 3, 4, self.when)])
        self.assertEqual(self.log.load_session(second), [RollRecord(2, 6, 6, self.when)])

    def test_recording_is_not_blocked_by_writes(self):
        current = self.log.init()
        lock_free_during_write = []

        original_write_rows = self.log._write_rows

        def write_rows(filename, rows):
            acquired = self.log.lock.acquire(blocking=False)
            lock_free_during_write.append(acquired)
            if acquired:
                self.log.lock.release()
                self.log.record(9, 1, 2, self.when)
            original_write_rows(filename, rows)

        self.log._write_rows = write_rows
        self.log.record(1, 3, 4, self.when)
        self.assertFalse(self.log.flush())
        self.assertEqual(lock_free_during_write, [True])
        # the roll made while writing waits for the next flush
        self.assertEqual(self.log.pending_count(), 1)
        self.log._write_rows = original_write_rows
        self.log.flush()
        self.assertEqual(len(self.log.load_session(current)), 2)

    def test_sessions_in_the_same_second_are_distinct(self):
        first = self.log.init()
        second = self.log.new_session()
        third = self.log.new_session()
        self.assertEqual(len({first, second, third}), 3)
        self.assertEqual(self.log.sessions(), [first, second, third])
        self.assertEqual(self.log.current_session(), third)
        for filename in (first, second, third):
            self.assertEqual(self.read_rows(filename), [sessions.SESSION_HEADER])

    def test_load_missing_session(self):
        with self.assertRaises(LogError):
            self.log.load_session("nope.csv")

    def test_concurrent_records(self):
        current = self.log.init()

        def worker(user_id):
            for i in range(50):
                self.log.record(user_id, i % 6 + 1, 6, self.when)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        self.log.flush()
        self.assertEqual(len(self.log.load_session(current)), 400)


class MemoryLogTest(unittest.TestCase):
    def test_keeps_records(self):
        log = sessions.MemoryLog()
        when = datetime.now(timezone.utc)
        log.record(5, 2, 4, when)
        self.assertEqual(log.records, [RollRecord(5, 2, 4, when)])


if __name__ == "__main__":
    unittest.main()
