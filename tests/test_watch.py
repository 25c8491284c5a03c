"""Tests for stamp-based staleness detection."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from mockwatch.watch import MISSING_STAMP, ChangeDetector, WatchedDirectory, file_stamp


class FileStampTests(unittest.TestCase):
    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            self.assertEqual(file_stamp(Path(tmp) / "gone"), MISSING_STAMP)

    def test_existing_file_reports_size(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "a.go"
            path.write_text("package a\n", encoding="utf-8")

            state, _mtime, size = file_stamp(path)

            self.assertEqual(state, "ok")
            self.assertEqual(size, len("package a\n"))


class ChangeDetectorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.stamps: dict[Path, tuple[str, int, int]] = {}
        self.detector = ChangeDetector(stamp_for=lambda path: self.stamps.get(path, MISSING_STAMP))
        self.watched = WatchedDirectory(path=Path("/pkg"))
        self.source = Path("/pkg/display.go")

    def _process(self) -> None:
        control = self.detector.control_stamp(self.watched)
        stamp = self.detector.observe(control, [self.source])
        self.detector.mark_fresh(self.watched, stamp)

    def test_unprocessed_directory_is_stale(self) -> None:
        self.assertFalse(self.watched.observed)
        self.assertTrue(self.detector.is_stale(self.watched))

    def test_fresh_after_mark_until_control_changes(self) -> None:
        self.stamps[self.watched.control_path] = ("ok", 1, 10)
        self._process()

        self.assertFalse(self.detector.is_stale(self.watched))

        self.stamps[self.watched.control_path] = ("ok", 2, 10)
        self.assertTrue(self.detector.is_stale(self.watched))

    def test_source_edit_and_deletion_make_directory_stale(self) -> None:
        self.stamps[self.watched.control_path] = ("ok", 1, 10)
        self.stamps[self.source] = ("ok", 1, 5)
        self._process()

        self.stamps[self.source] = ("ok", 1, 6)
        self.assertTrue(self.detector.is_stale(self.watched))

        self._process()
        del self.stamps[self.source]
        self.assertTrue(self.detector.is_stale(self.watched))

    def test_control_file_creation_makes_directory_stale(self) -> None:
        self._process()
        self.assertFalse(self.detector.is_stale(self.watched))

        self.stamps[self.watched.control_path] = ("ok", 3, 1)
        self.assertTrue(self.detector.is_stale(self.watched))

    def test_changes_made_after_observe_are_not_lost(self) -> None:
        self.stamps[self.watched.control_path] = ("ok", 1, 10)
        self.stamps[self.source] = ("ok", 1, 5)
        control = self.detector.control_stamp(self.watched)
        stamp = self.detector.observe(control, [self.source])

        self.stamps[self.source] = ("ok", 2, 5)
        self.detector.mark_fresh(self.watched, stamp)

        self.assertTrue(self.detector.is_stale(self.watched))

    def test_real_files(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            watched = WatchedDirectory(path=Path(tmp))
            source = Path(tmp) / "display.go"
            source.write_text("package p\n", encoding="utf-8")
            watched.control_path.write_text("Display\n", encoding="utf-8")
            detector = ChangeDetector()

            detector.mark_fresh(watched, detector.observe(detector.control_stamp(watched), [source]))
            self.assertFalse(detector.is_stale(watched))

            source.write_text("package p\n\ntype Display interface{}\n", encoding="utf-8")
            self.assertTrue(detector.is_stale(watched))


if __name__ == "__main__":
    unittest.main()
