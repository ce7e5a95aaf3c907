"""
Tests for writing the file_sd output file.
"""
import json
import os
import stat

import pytest

from prometheus_hetzner_sd.config import ConfigError
from prometheus_hetzner_sd.target_file import TargetFile
from prometheus_hetzner_sd.target_group import TargetGroup

GROUPS = [
    TargetGroup(source="hetzner/p/1", targets=["10.0.0.1"], labels={"__meta_hetzner_name": "a"}),
    TargetGroup(source="hetzner/p/2", targets=["10.0.0.2"], labels={"__meta_hetzner_name": "b"}),
]


def num_files(directory) -> int:
    """Number of files, temporary files included, in directory"""
    return len(os.listdir(directory))


def test_prepare_creates_directory(tmp_path):
    """All missing parent directories are created"""
    target_file = TargetFile(str(tmp_path / "nested" / "sd" / "hetzner.json"))
    target_file.prepare()

    assert (tmp_path / "nested" / "sd").is_dir()
    assert num_files(tmp_path / "nested" / "sd") == 0


def test_prepare_fails_for_file_in_the_way(tmp_path):
    """A file where the directory should be is a configuration error"""
    (tmp_path / "sd").write_text("not a directory")

    with pytest.raises(ConfigError):
        TargetFile(str(tmp_path / "sd" / "hetzner.json")).prepare()


@pytest.mark.asyncio
async def test_write(tmp_path):
    """The file contains the groups in the file_sd format"""
    path = tmp_path / "hetzner.json"
    target_file = TargetFile(str(path))

    assert await target_file.write(GROUPS)

    assert json.loads(path.read_text()) == [
        {"targets": ["10.0.0.1"], "labels": {"__meta_hetzner_name": "a"}},
        {"targets": ["10.0.0.2"], "labels": {"__meta_hetzner_name": "b"}},
    ]
    assert num_files(tmp_path) == 1
    assert stat.S_IMODE(os.stat(path).st_mode) == 0o644


@pytest.mark.asyncio
async def test_write_empty(tmp_path):
    """Without any servers the file holds an empty list"""
    path = tmp_path / "hetzner.json"

    assert await TargetFile(str(path)).write([])
    assert json.loads(path.read_text()) == []


@pytest.mark.asyncio
async def test_unchanged_targets_are_not_rewritten(tmp_path):
    """Prometheus only needs to re-read the file if something changed"""
    path = tmp_path / "hetzner.json"
    target_file = TargetFile(str(path))

    assert await target_file.write(GROUPS)
    assert not await target_file.write(list(reversed(GROUPS)))
    assert await target_file.write(GROUPS[:1])

    assert len(json.loads(path.read_text())) == 1


@pytest.mark.asyncio
async def test_existing_file_is_replaced(tmp_path):
    """A file left over from a previous run is overwritten on the first write"""
    path = tmp_path / "hetzner.json"
    path.write_text(json.dumps([{"targets": ["old"], "labels": {}}]))

    assert await TargetFile(str(path)).write(GROUPS)
    assert len(json.loads(path.read_text())) == 2
    assert num_files(tmp_path) == 1


@pytest.mark.asyncio
async def test_failed_write_leaves_no_temporary_file(tmp_path):
    """Replacing a directory fails, the temporary file must be cleaned up"""
    path = tmp_path / "hetzner.json"
    path.mkdir()
    (path / "keep").write_text("")
    target_file = TargetFile(str(path))

    with pytest.raises(OSError):
        await target_file.write(GROUPS)

    assert sorted(os.listdir(tmp_path)) == ["hetzner.json"]

    # the failed content was not remembered as written
    path.joinpath("keep").unlink()
    path.rmdir()
    assert await target_file.write(GROUPS)
