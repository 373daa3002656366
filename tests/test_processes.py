"""Tests for the process table scanner."""

import logging

import pytest

from camwatch.input.processes import DeviceReference, ProcessScanner, ScanError


@pytest.fixture
def scanner(proc_root, dev_dir):
    return ProcessScanner(proc_root=str(proc_root), device_dir=str(dev_dir))


class TestScan:
    def test_no_processes_is_closed(self, scanner):
        assert scanner.scan() is False

    def test_non_device_descriptors_are_closed(self, scanner, make_process, dev_dir):
        make_process(100, ["/dev/null", str(dev_dir / "null"), "socket:[1234]"])
        assert scanner.scan() is False

    def test_device_descriptor_is_open(self, scanner, make_process, dev_dir, caplog):
        make_process(100, ["/dev/null"])
        make_process(200, ["pipe:[5]", str(dev_dir / "video0")])
        with caplog.at_level(logging.INFO):
            assert scanner.scan() is True
        assert any(
            getattr(r, "device", None) == str(dev_dir / "video0") and r.pid == 200
            for r in caplog.records
        )

    def test_video_file_outside_device_dir_ignored(self, scanner, make_process, tmp_path):
        make_process(100, [str(tmp_path / "video0.mp4")])
        assert scanner.scan() is False

    def test_non_pid_entries_skipped(self, scanner, proc_root, dev_dir):
        (proc_root / "self" / "fd").mkdir(parents=True)
        (proc_root / "self" / "fd" / "0").symlink_to(dev_dir / "video0")
        (proc_root / "uptime").write_text("1.0 1.0\n")
        assert scanner.scan() is False

    def test_non_ascii_digit_entries_skipped(self, scanner, proc_root, make_process, dev_dir):
        (proc_root / "\u00b2" / "fd").mkdir(parents=True)
        (proc_root / "\u00b2" / "fd" / "0").symlink_to(dev_dir / "video0")
        fd_dir = make_process(100, ["/dev/null"])
        (fd_dir / "\u00b3").symlink_to(dev_dir / "video0")
        assert scanner.scan() is False

    def test_process_without_fd_table_skipped(self, scanner, proc_root, make_process, dev_dir):
        (proc_root / "100").mkdir()
        make_process(200, [str(dev_dir / "video0")])
        assert scanner.scan() is True

    def test_unreadable_process_table_raises(self, tmp_path, dev_dir):
        scanner = ProcessScanner(proc_root=str(tmp_path / "missing"), device_dir=str(dev_dir))
        with pytest.raises(ScanError):
            scanner.scan()


class TestIterReferences:
    def test_yields_every_reference(self, scanner, make_process, dev_dir):
        make_process(100, ["/dev/null", str(dev_dir / "video0")])
        make_process(200, [str(dev_dir / "video1")])
        refs = sorted(scanner.iter_references())
        assert refs == [
            DeviceReference(100, 1, str(dev_dir / "video0")),
            DeviceReference(200, 0, str(dev_dir / "video1")),
        ]

    def test_is_lazy(self, scanner, make_process, dev_dir):
        make_process(100, [str(dev_dir / "video0")])
        references = scanner.iter_references()
        assert next(references).pid == 100
