from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import List

import pytest

from nextstarter.cache import CacheEntry, CacheStore
from nextstarter.errors import (
    CachePopulationError,
    CacheUnavailableError,
    CommandError,
    DependencyValidationError,
    SourceNotFoundError,
)
from nextstarter.registry import DependencyValidator
from nextstarter.utils import platform as platform_mod
from nextstarter.utils.filesystem import list_files
from nextstarter.utils.platform import LINUX, PlatformOps

from conftest import FakeRegistry, make_template

DAY = 24 * 60 * 60


class Clock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class BrokenCopyOps(PlatformOps):
    def copy_tree(self, src, dst) -> None:
        raise CommandError(["cp", "-R", str(src), str(dst)], 1, "disk full")


def make_store(tmp_path: Path, clock: Clock, registry: FakeRegistry | None = None, ops=LINUX) -> CacheStore:
    return CacheStore(
        tmp_path / "cache",
        DependencyValidator(registry or FakeRegistry()),
        ops=ops,
        clock=clock,
    )


def test_populate_then_get_cached_is_byte_identical(tmp_path: Path) -> None:
    source = make_template(tmp_path / "src")
    (source / ".git").mkdir()
    (source / ".git" / "HEAD").write_text("ref: refs/heads/main\n")
    store = make_store(tmp_path, Clock())

    entry = store.populate(source, {"clsx": "2.1.1"}, template_version="abc1234")
    cached = store.get_cached()

    assert cached == store.template_dir
    assert list_files(source, include_git=True) == list_files(cached, include_git=True)
    for rel in list_files(source, include_git=True):
        assert (source / rel).read_bytes() == (cached / rel).read_bytes()
    assert entry.template_version == "abc1234"


def test_metadata_file_shape(tmp_path: Path) -> None:
    clock = Clock(1_700_000_000.5)
    store = make_store(tmp_path, clock)
    store.populate(make_template(tmp_path / "src"), {"clsx": "2.1.1"})

    data = json.loads(store.metadata_path.read_text())
    assert data == {
        "lastUpdated": 1_700_000_000_500,
        "templateVersion": "1.0.0",
        "dependencies": {"clsx": "2.1.1"},
    }
    assert not (store.cache_dir / CacheStore.STAGING_DIR).exists()


def test_fresh_until_max_age_then_stale(tmp_path: Path) -> None:
    clock = Clock()
    store = make_store(tmp_path, clock)
    start = clock.now
    store.populate(make_template(tmp_path / "src"), {})

    clock.now = start + DAY - 1
    assert store.get_cached() is not None
    clock.now = start + DAY - 0.01
    assert store.get_cached() is not None
    clock.now = start + DAY
    assert store.get_cached() is None
    clock.now = start + DAY + 3600
    assert store.get_cached() is None


def test_repopulate_replaces_tree(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock())
    first = make_template(tmp_path / "first")
    (first / "only-in-first.txt").write_text("old")
    store.populate(first, {})

    second = make_template(tmp_path / "second", directories=("components",))
    store.populate(second, {"sonner": "1.5.0"})

    assert not (store.template_dir / "only-in-first.txt").exists()
    assert not (store.template_dir / "lib").exists()
    assert store.read_entry() == CacheEntry(
        last_updated=store.now_ms(), template_version="1.0.0", dependencies={"sonner": "1.5.0"}
    )


def test_missing_source_leaves_cache_untouched(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock())
    store.populate(make_template(tmp_path / "src"), {"clsx": "2.1.1"})
    before = store.metadata_path.read_text()

    with pytest.raises(SourceNotFoundError, match="Source template directory not found"):
        store.populate(tmp_path / "does-not-exist", {"clsx": "2.1.1"})

    assert store.metadata_path.read_text() == before
    assert store.get_cached() is not None


def test_invalid_dependencies_fail_before_any_write(tmp_path: Path) -> None:
    registry = FakeRegistry(missing={"left-pad"})
    store = make_store(tmp_path, Clock(), registry)

    with pytest.raises(DependencyValidationError) as exc_info:
        store.populate(make_template(tmp_path / "src"), {"clsx": "1.0.0", "left-pad": "9999.0.0"})

    assert exc_info.value.errors == ["Invalid dependency: left-pad@9999.0.0"]
    assert not store.metadata_path.exists()
    assert not store.template_dir.exists()


def test_failed_copy_keeps_previous_cache_and_metadata(tmp_path: Path) -> None:
    clock = Clock()
    good = make_store(tmp_path, clock)
    good.populate(make_template(tmp_path / "src"), {"clsx": "2.1.1"})
    before = good.metadata_path.read_text()

    broken = make_store(tmp_path, clock, ops=BrokenCopyOps(name="broken", fallback_copy_command=lambda s, d: []))
    with pytest.raises(CachePopulationError, match="disk full"):
        broken.populate(make_template(tmp_path / "newer"), {"sonner": "1.5.0"})

    assert good.metadata_path.read_text() == before
    assert good.get_cached() is not None
    assert not (good.cache_dir / CacheStore.STAGING_DIR).exists()


def test_first_populate_failure_reports_no_cache(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock(), ops=BrokenCopyOps(name="broken", fallback_copy_command=lambda s, d: []))
    with pytest.raises(CachePopulationError):
        store.populate(make_template(tmp_path / "src"), {})
    assert not store.metadata_path.exists()
    assert store.get_cached() is None


def test_native_copy_failure_falls_back_to_platform_command(monkeypatch, tmp_path: Path) -> None:
    calls: List[List[str]] = []
    real_copytree = shutil.copytree

    def failing_copytree(src, dst, dirs_exist_ok=False):
        raise OSError("sharing violation")

    def fake_run_command(cmd: List[str], cwd=None):
        calls.append(cmd)
        # stand-in for cp: copy "<src>/." into dst
        real_copytree(cmd[2][:-2], cmd[3], dirs_exist_ok=True)

    monkeypatch.setattr(platform_mod.shutil, "copytree", failing_copytree)
    monkeypatch.setattr(platform_mod, "run_command", fake_run_command)

    store = make_store(tmp_path, Clock())
    source = make_template(tmp_path / "src")
    store.populate(source, {})

    assert calls and calls[0][:2] == ["cp", "-R"]
    assert list_files(source) == list_files(store.template_dir)


@pytest.mark.parametrize(
    "content",
    ["{not json", "[]", '{"templateVersion": "1.0.0"}', '{"lastUpdated": "yesterday"}'],
)
def test_unreadable_metadata_is_a_miss(tmp_path: Path, content: str) -> None:
    store = make_store(tmp_path, Clock())
    store.populate(make_template(tmp_path / "src"), {})
    store.metadata_path.write_text(content)
    assert store.get_cached() is None


def test_missing_template_dir_is_a_miss(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock())
    store.populate(make_template(tmp_path / "src"), {})
    LINUX.remove_tree(store.template_dir)
    assert store.get_cached() is None


def test_no_cache_dir_is_a_miss(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock())
    assert store.get_cached() is None
    assert not store.cache_dir.exists()


def test_ensure_ready_reports_unusable_directory(tmp_path: Path) -> None:
    blocker = tmp_path / "cache"
    blocker.write_text("a file where the cache dir should be")
    store = make_store(tmp_path, Clock())
    with pytest.raises(CacheUnavailableError):
        store.ensure_ready()


def test_clear_removes_everything(tmp_path: Path) -> None:
    store = make_store(tmp_path, Clock())
    store.populate(make_template(tmp_path / "src"), {})
    store.clear()
    assert not store.metadata_path.exists()
    assert not store.template_dir.exists()
    assert store.get_cached() is None
