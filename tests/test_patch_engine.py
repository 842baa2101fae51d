"""Tests for FuzzyPatchEngine and diff formatting."""
from __future__ import annotations

import pytest

from fake_backend import InMemoryBackend
from sandbox_fs.application import FuzzyPatchEngine, fence_diff, unified_diff
from sandbox_fs.domain import BackendFailure, EditOperation, NoMatch, ResolvedPath

PATH = ResolvedPath("/data/app/notes.txt")


def _engine(content: "str | bytes"):
    backend = InMemoryBackend(files={PATH: content})
    return FuzzyPatchEngine(backend), backend


@pytest.mark.asyncio
async def test_exact_edit_rewrites_file_and_reports_diff():
    engine, backend = _engine("foo\nbar\nbaz\n")
    outcome = await engine.edit(PATH, [EditOperation("bar", "qux")])
    assert outcome.final_content == "foo\nqux\nbaz\n"
    assert outcome.applied
    assert backend.text(PATH) == "foo\nqux\nbaz\n"
    diff_lines = outcome.diff.splitlines()
    assert "-bar" in diff_lines
    assert "+qux" in diff_lines
    assert " foo" in diff_lines


@pytest.mark.asyncio
async def test_fuzzy_edit_keeps_block_indentation_in_file():
    engine, backend = _engine("def f():\n    if x:\n        return 1\n")
    await engine.edit(PATH, [EditOperation("if x:\n  return 1", "if y:\n  return 2")])
    assert backend.text(PATH).split("\n")[1] == "    if y:"


@pytest.mark.asyncio
async def test_sequential_edits_depend_on_each_other():
    engine, backend = _engine("alpha\n")
    edits = [EditOperation("alpha", "beta"), EditOperation("beta", "gamma")]
    await engine.edit(PATH, edits)
    assert backend.text(PATH) == "gamma\n"


@pytest.mark.asyncio
async def test_reversed_edits_fail_and_nothing_is_written():
    engine, backend = _engine("alpha\n")
    edits = [EditOperation("beta", "gamma"), EditOperation("alpha", "beta")]
    with pytest.raises(NoMatch) as exc:
        await engine.edit(PATH, edits)
    assert exc.value.old_text == "beta"
    assert backend.text(PATH) == "alpha\n"
    assert not any(c[0] == "write_all" for c in backend.calls)


@pytest.mark.asyncio
async def test_later_failure_discards_earlier_successful_edits():
    engine, backend = _engine("one\ntwo\n")
    with pytest.raises(NoMatch):
        await engine.edit(PATH, [EditOperation("one", "1"), EditOperation("three", "3")])
    assert backend.text(PATH) == "one\ntwo\n"


@pytest.mark.asyncio
async def test_dry_run_returns_diff_without_writing():
    engine, backend = _engine("foo\nbar\nbaz\n")
    outcome = await engine.edit(PATH, [EditOperation("bar", "qux")], dry_run=True)
    assert not outcome.applied
    assert "+qux" in outcome.diff
    assert backend.text(PATH) == "foo\nbar\nbaz\n"
    assert not any(c[0] == "write_all" for c in backend.calls)


@pytest.mark.asyncio
async def test_crlf_file_is_written_back_with_lf():
    engine, backend = _engine(b"a\r\nb\r\n")
    await engine.edit(PATH, [EditOperation("b", "c")])
    assert backend.files[PATH] == b"a\nc\n"


@pytest.mark.asyncio
async def test_non_utf8_file_is_refused():
    engine, backend = _engine(b"\xff\xfe\x00binary")
    with pytest.raises(ValueError, match="UTF-8"):
        await engine.edit(PATH, [EditOperation("binary", "text")])


@pytest.mark.asyncio
async def test_failed_write_propagates_backend_failure():
    engine, backend = _engine("foo\n")
    backend.fail_writes = True
    with pytest.raises(BackendFailure):
        await engine.edit(PATH, [EditOperation("foo", "bar")])
    assert backend.text(PATH) == "foo\n"


@pytest.mark.asyncio
async def test_apply_edits_returns_fenced_diff():
    engine, _ = _engine("foo\nbar\n")
    fenced = await engine.apply_edits(PATH, [EditOperation("bar", "qux")])
    assert fenced.startswith("```diff\n")
    assert fenced.endswith("```\n\n")


# ---------------------------------------------------------------------------
# Diff formatting
# ---------------------------------------------------------------------------

def test_unified_diff_headers():
    diff = unified_diff("a\n", "b\n", "/data/app/x.txt")
    lines = diff.splitlines()
    assert lines[0] == "Index: /data/app/x.txt"
    assert lines[1] == "=" * 67
    assert lines[2] == "--- /data/app/x.txt\toriginal"
    assert lines[3] == "+++ /data/app/x.txt\tmodified"
    assert lines[4].startswith("@@")


def test_unified_diff_without_changes_has_headers_only():
    diff = unified_diff("same\n", "same\n", "f")
    assert diff.splitlines() == ["Index: f", "=" * 67, "--- f\toriginal", "+++ f\tmodified"]


def test_unified_diff_marks_missing_final_newline():
    diff = unified_diff("a\nb", "a\nc", "f")
    assert "-b\n\\ No newline at end of file\n" in diff
    assert "+c\n\\ No newline at end of file\n" in diff


def test_fence_is_longer_than_backtick_runs_in_diff():
    diff = unified_diff("x\n", "````md\n", "f")
    fenced = fence_diff(diff)
    assert fenced.startswith("`````diff\n")
    assert fenced.endswith("\n`````\n\n")


def test_fence_minimum_is_three_backticks():
    assert fence_diff("plain\n").startswith("```diff\n")


def test_unified_diff_carries_four_lines_of_context():
    before = "".join(f"line {i}\n" for i in range(1, 11))
    after = before.replace("line 6\n", "line six\n")
    lines = unified_diff(before, after, "f").splitlines()
    assert lines[4] == "@@ -2,9 +2,9 @@"
    assert lines[5] == " line 2"
