"""Tests for backup filesystem helpers."""

import pytest
from datetime import datetime, timezone
from unittest.mock import patch

from kopfolio.backup.errors import BackupIOError
from kopfolio.backup.utils import (
    discard_path,
    generate_archive_name,
    prepare_workspace,
    remove_path,
    replace_tree,
)


def test_generate_archive_name():
    name = generate_archive_name(datetime(2024, 3, 7, 23, 59, tzinfo=timezone.utc))

    assert name == "kopfolio-backup-2024-03-07.tar.gz"


def test_generate_archive_name_defaults_to_today():
    today = datetime.now(timezone.utc).strftime("%Y-%m-%d")

    assert generate_archive_name() == f"kopfolio-backup-{today}.tar.gz"


def test_prepare_workspace_discards_stale_contents(tmp_path):
    workspace = tmp_path / "extract"
    (workspace / "uploads").mkdir(parents=True)
    (workspace / "database.sql").write_text("-- stale")

    prepare_workspace(workspace)

    assert workspace.is_dir()
    assert list(workspace.iterdir()) == []


def test_replace_tree_copies_source(tmp_path):
    source = tmp_path / "source"
    (source / "photos").mkdir(parents=True)
    (source / "photos" / "a.jpg").write_bytes(b"a")
    (source / "b.png").write_bytes(b"b")
    target = tmp_path / "uploads"
    target.mkdir()
    (target / "stale.jpg").write_bytes(b"stale")

    copied = replace_tree(target, source)

    assert copied == 2
    assert not (target / "stale.jpg").exists()
    assert (target / "photos" / "a.jpg").read_bytes() == b"a"
    assert (source / "b.png").exists()


def test_replace_tree_without_source_empties_target(tmp_path):
    target = tmp_path / "uploads"
    target.mkdir()
    (target / "stale.jpg").write_bytes(b"stale")

    copied = replace_tree(target, None)

    assert copied == 0
    assert target.is_dir()
    assert list(target.iterdir()) == []


def test_remove_path_handles_files_dirs_and_missing(tmp_path):
    file_path = tmp_path / "file.txt"
    file_path.write_text("x")
    dir_path = tmp_path / "dir"
    (dir_path / "nested").mkdir(parents=True)

    remove_path(file_path)
    remove_path(dir_path)
    remove_path(tmp_path / "missing")

    assert not file_path.exists()
    assert not dir_path.exists()


def test_remove_path_wraps_os_errors(tmp_path):
    dir_path = tmp_path / "dir"
    dir_path.mkdir()

    with patch("kopfolio.backup.utils.shutil.rmtree", side_effect=PermissionError("denied")):
        with pytest.raises(BackupIOError, match="denied"):
            remove_path(dir_path)


def test_discard_path_logs_instead_of_raising(tmp_path):
    dir_path = tmp_path / "dir"
    dir_path.mkdir()

    with patch("kopfolio.backup.utils.shutil.rmtree", side_effect=PermissionError("denied")):
        assert discard_path(dir_path) is False

    assert discard_path(dir_path) is True
    assert not dir_path.exists()
