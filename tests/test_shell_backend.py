"""Tests for ShellBackend: command composition (recorded, no processes) and a local sh round trip."""
from __future__ import annotations

import base64
import shutil
import stat
import sys
from typing import List

import pytest

from sandbox_fs.application import FuzzyPatchEngine
from sandbox_fs.domain import BackendFailure, EditOperation, ResolvedPath
from sandbox_fs.infrastructure.backend import ShellBackend


class RecordingBackend(ShellBackend):
    """Captures composed commands instead of running them."""

    def __init__(self, *args, outputs=None, fail_on=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.commands: List[str] = []
        self.outputs = outputs or {}
        self.fail_on = fail_on

    async def exec_bytes(self, command: str) -> bytes:
        self.commands.append(command)
        if self.fail_on and self.fail_on in command:
            raise BackendFailure(command, "boom", 1)
        for prefix, out in self.outputs.items():
            if command.startswith(prefix):
                return out
        return b""


def test_argv_with_and_without_prefix():
    assert ShellBackend().argv("true") == ["sh", "-c", "true"]
    wsl = ShellBackend(["wsl", "-d", "Ubuntu", "--exec"], shell="bash")
    assert wsl.argv("true") == ["wsl", "-d", "Ubuntu", "--exec", "bash", "-c", "true"]


@pytest.mark.asyncio
async def test_paths_are_shell_quoted():
    b = RecordingBackend(outputs={"realpath": b"/data/app/it's here\n"})
    assert await b.realpath("/data/app/it's here") == "/data/app/it's here"
    assert b.commands == ["realpath -e -- '/data/app/it'\"'\"'s here'"]


@pytest.mark.asyncio
async def test_exists_tests_entry_or_link():
    b = RecordingBackend(outputs={"if [ -e": b"1\n"})
    assert await b.exists("/d/link") is True
    assert b.commands == ["if [ -e /d/link ] || [ -L /d/link ]; then echo 1; else echo 0; fi"]


@pytest.mark.asyncio
async def test_size_parses_wc_output():
    b = RecordingBackend(outputs={"wc -c": b"  1234\n"})
    assert await b.size("/f") == 1234
    assert b.commands == ["wc -c < /f"]


@pytest.mark.asyncio
async def test_size_with_garbage_output_is_backend_failure():
    b = RecordingBackend(outputs={"wc -c": b"nope"})
    with pytest.raises(BackendFailure):
        await b.size("/f")


@pytest.mark.asyncio
async def test_read_range_is_one_based_tail_then_head():
    b = RecordingBackend()
    await b.read_range("/f", 94_700, 300)
    assert b.commands == ["tail -c +94701 -- /f | head -c 300"]


@pytest.mark.asyncio
async def test_read_range_of_nothing_runs_nothing():
    b = RecordingBackend()
    assert await b.read_range("/f", 10, 0) == b""
    assert b.commands == []


@pytest.mark.asyncio
async def test_write_all_sends_base64_chunks_then_renames():
    data = b"x" * 10_000
    b = RecordingBackend(write_chunk_size=4096)
    await b.write_all("/data/app/f.txt", data)

    truncate, *appends, rename = b.commands
    assert truncate.startswith(": > /data/app/.f.txt.sandbox-fs-")
    tmp = truncate[len(": > "):]
    encoded = base64.b64encode(data).decode()
    assert len(appends) == -(-len(encoded) // 4096)
    sent = "".join(cmd.split(" ")[2] for cmd in appends)
    assert sent == encoded
    assert all(cmd.endswith(f"| base64 -d >> {tmp}") for cmd in appends)
    assert rename == (
        f"if [ -e /data/app/f.txt ]; then chmod --reference=/data/app/f.txt -- {tmp}; fi"
        f" && mv -f -- {tmp} /data/app/f.txt"
    )


@pytest.mark.asyncio
async def test_write_all_of_empty_content_truncates_and_renames():
    b = RecordingBackend()
    await b.write_all("/f", b"")
    assert len(b.commands) == 2
    assert "mv -f -- " in b.commands[1]


@pytest.mark.asyncio
async def test_failed_write_removes_temp_file_and_keeps_target():
    b = RecordingBackend(fail_on="base64 -d")
    with pytest.raises(BackendFailure):
        await b.write_all("/data/app/f.txt", b"new content")
    assert b.commands[-1].startswith("rm -f -- /data/app/.f.txt.sandbox-fs-")
    assert not any("mv -f" in cmd for cmd in b.commands)


@pytest.mark.asyncio
async def test_stat_parses_fields():
    b = RecordingBackend(outputs={"stat": b"42 0 1704067200 1704067200 644 regular file\n"})
    info = await b.stat("/f")
    assert info.size == 42
    assert info.is_file and not info.is_directory
    assert info.permissions == "644"
    assert info.modified.year == 2024


@pytest.mark.asyncio
async def test_list_dir_parses_find_output():
    b = RecordingBackend(outputs={"find": b"f\tb.txt\nd\ta dir\n"})
    entries = await b.list_dir("/d")
    assert [(e.name, e.is_directory) for e in entries] == [("a dir", True), ("b.txt", False)]


# ---------------------------------------------------------------------------
# Real local shell
# ---------------------------------------------------------------------------

needs_posix_sh = pytest.mark.skipif(
    sys.platform.startswith("win") or shutil.which("sh") is None or shutil.which("base64") is None,
    reason="needs a POSIX sh with coreutils",
)


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_round_trip(tmp_path):
    backend = ShellBackend(write_chunk_size=8)
    target = str(tmp_path / "out file.txt")
    data = "héllo\nwörld\n".encode("utf-8")

    await backend.write_all(target, data)
    assert (tmp_path / "out file.txt").read_bytes() == data
    assert [p.name for p in tmp_path.iterdir()] == ["out file.txt"]

    assert await backend.size(target) == len(data)
    assert await backend.read_all(target) == data
    assert await backend.read_range(target, 1, 2) == data[1:3]
    assert await backend.realpath(target) == str((tmp_path / "out file.txt").resolve())


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_realpath_of_missing_file_fails(tmp_path):
    with pytest.raises(BackendFailure) as exc:
        await ShellBackend().realpath(str(tmp_path / "missing"))
    assert exc.value.returncode != 0


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_move_refuses_existing_destination(tmp_path):
    (tmp_path / "a").write_text("a")
    (tmp_path / "b").write_text("b")
    with pytest.raises(BackendFailure, match="Destination already exists"):
        await ShellBackend().move(str(tmp_path / "a"), str(tmp_path / "b"))
    assert (tmp_path / "b").read_text() == "b"


@needs_posix_sh
@pytest.mark.asyncio
async def test_timeout_kills_hung_command():
    backend = ShellBackend(timeout_s=0.2)
    with pytest.raises(BackendFailure, match="timed out"):
        await backend.run("sleep 5")


def test_write_chunk_size_must_hold_whole_base64_quanta():
    with pytest.raises(ValueError):
        ShellBackend(write_chunk_size=4095)


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_rewrite_keeps_file_mode(tmp_path):
    script = tmp_path / "run.sh"
    script.write_text("#!/bin/sh\necho one\n")
    script.chmod(0o755)

    engine = FuzzyPatchEngine(ShellBackend())
    await engine.edit(ResolvedPath(str(script)), [EditOperation("echo one", "echo two")])

    assert script.read_text() == "#!/bin/sh\necho two\n"
    assert stat.S_IMODE(script.stat().st_mode) == 0o755


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_write_creates_missing_target(tmp_path):
    await ShellBackend().write_all(str(tmp_path / "new.txt"), b"x")
    assert (tmp_path / "new.txt").read_bytes() == b"x"


@needs_posix_sh
@pytest.mark.asyncio
async def test_local_exists_sees_dangling_link(tmp_path):
    (tmp_path / "dangling").symlink_to(tmp_path / "nowhere")
    backend = ShellBackend()
    assert await backend.exists(str(tmp_path / "dangling")) is True
    assert await backend.exists(str(tmp_path / "nowhere")) is False
