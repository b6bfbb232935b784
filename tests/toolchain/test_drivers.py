"""
Tests for native toolchain drivers.
"""

import shutil
from pathlib import Path
from unittest.mock import patch

import pytest

from nexekit.core.cancellation import CancellationToken
from nexekit.core.exceptions import BuildError, ExtractionError, OperationCancelled
from nexekit.core.platform import PlatformInfo
from nexekit.toolchain.drivers import PosixDriver, WindowsDriver, select_driver
from tests.fixtures.node_sources import make_source_archive
from tests.mocks.toolchain import FakeBuildRunner


class TestSelectDriver:
    """Test select_driver function."""

    def test_windows(self):
        driver = select_driver(PlatformInfo("windows", "amd64"))

        assert isinstance(driver, WindowsDriver)

    def test_linux_uses_make(self):
        driver = select_driver(PlatformInfo("linux", "x86_64"))

        assert driver == PosixDriver(make_tool="make")

    def test_bsd_uses_gmake(self):
        """Test GNU make is invoked as gmake on BSD systems."""
        driver = select_driver(PlatformInfo("freebsd", "amd64"))

        assert driver.make_tool == "gmake"

    def test_jobs_passed_to_posix_driver(self):
        driver = select_driver(PlatformInfo("linux", "x86_64"), jobs=8)

        assert driver.jobs == 8

    def test_detects_host_when_not_given(self):
        with patch(
            "nexekit.toolchain.drivers.detect_platform",
            return_value=PlatformInfo("windows", "amd64"),
        ):
            assert isinstance(select_driver(), WindowsDriver)


class TestWindowsDriver:
    """Test WindowsDriver."""

    def test_build_commands(self):
        assert WindowsDriver().build_commands() == [
            ["cmd", "/c", "vcbuild.bat", "nosign", "release", "x64"]
        ]

    def test_release_binary(self, tmp_path):
        assert WindowsDriver().release_binary(tmp_path) == tmp_path / "Release" / "node.exe"

    def test_extract_in_process(self, tmp_path):
        """Test extraction needs no external tar."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())

        WindowsDriver().extract(archive, tmp_path / "4.2.1")

        assert (tmp_path / "4.2.1" / "node-v4.2.1" / "node.gyp").is_file()

    def test_extract_honours_cancellation(self, tmp_path):
        """Test a cancelled build does not unpack the archive."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())
        token = CancellationToken()
        token.cancel("terminated")

        with pytest.raises(OperationCancelled):
            WindowsDriver().extract(archive, tmp_path / "4.2.1", cancel_token=token)

        assert not (tmp_path / "4.2.1" / "node-v4.2.1").exists()

    def test_extract_timeout(self, tmp_path):
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())

        with pytest.raises(ExtractionError, match="timed out"):
            WindowsDriver().extract(archive, tmp_path / "4.2.1", timeout=0)

    def test_build_runs_vcbuild_in_root(self, tmp_path):
        runner = FakeBuildRunner(release_binary_path="Release/node.exe")

        with patch("nexekit.toolchain.drivers.run_command", runner):
            WindowsDriver().build(tmp_path)

        assert runner.calls == [
            (["cmd", "/c", "vcbuild.bat", "nosign", "release", "x64"], tmp_path)
        ]


class TestPosixDriver:
    """Test PosixDriver."""

    def test_build_commands(self):
        assert PosixDriver().build_commands() == [["./configure"], ["make"]]

    def test_build_commands_with_jobs(self):
        assert PosixDriver(make_tool="gmake", jobs=4).build_commands() == [
            ["./configure"],
            ["gmake", "-j4"],
        ]

    def test_release_binary(self, tmp_path):
        assert PosixDriver().release_binary(tmp_path) == tmp_path / "out" / "Release" / "node"

    def test_build_runs_configure_then_make(self, tmp_path):
        """Test configure and make run in order in the source root."""
        runner = FakeBuildRunner()

        with patch("nexekit.toolchain.drivers.run_command", runner):
            PosixDriver().build(tmp_path)

        assert runner.calls == [(["./configure"], tmp_path), (["make"], tmp_path)]
        assert (tmp_path / "out" / "Release" / "node").is_file()

    def test_configure_failure_stops_build(self, tmp_path):
        """Test make never runs when configure fails."""
        runner = FakeBuildRunner(fail_on="configure")

        with patch("nexekit.toolchain.drivers.run_command", runner):
            with pytest.raises(BuildError, match="exit code 2"):
                PosixDriver().build(tmp_path)

        assert runner.commands == [["./configure"]]

    def test_extract_uses_tar(self, tmp_path):
        runner = FakeBuildRunner()
        archive = tmp_path / "node-4.2.1.tar.gz"

        with patch("nexekit.toolchain.drivers.run_command", runner):
            PosixDriver().extract(archive, tmp_path / "4.2.1")

        assert runner.commands == [
            ["tar", "-xf", str(archive), "-C", str(tmp_path / "4.2.1")]
        ]

    @pytest.mark.skipif(shutil.which("tar") is None, reason="tar not available")
    def test_extract_with_system_tar(self, tmp_path):
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(make_source_archive())

        PosixDriver().extract(archive, tmp_path / "4.2.1")

        assert (tmp_path / "4.2.1" / "node-v4.2.1" / "src" / "node.js").is_file()

    @pytest.mark.skipif(shutil.which("tar") is None, reason="tar not available")
    def test_extract_corrupt_archive(self, tmp_path):
        """Test a tar failure surfaces as ExtractionError."""
        archive = tmp_path / "node-4.2.1.tar.gz"
        archive.write_bytes(b"not an archive")

        with pytest.raises(ExtractionError):
            PosixDriver().extract(archive, Path(tmp_path / "4.2.1"))

    def test_drivers_compare_by_value(self):
        assert PosixDriver(jobs=2) == PosixDriver(jobs=2)
        assert PosixDriver(jobs=2) != PosixDriver(jobs=4)
