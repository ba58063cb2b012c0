"""Reading and writing the portable backup archive.

An archive holds two members: the database dump (``database.sql``) and the
uploads asset tree (``uploads/``). Exports are gzip-compressed tarballs;
imports also accept ZIP containers with the same member names, which is what
older releases of the application produced.
"""

import gzip
import tarfile
import time
import zipfile
import zlib
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Iterable, List, Optional

from .._utils import logger
from .errors import BackupIOError, FormatError

DUMP_MEMBER = "database.sql"
ASSETS_MEMBER = "uploads"


@dataclass(frozen=True)
class ExtractedArchive:
    """Locations of the members found in an unpacked archive."""
    root: Path
    dump_path: Optional[Path]
    assets_path: Optional[Path]

    def require_dump(self) -> Path:
        if self.dump_path is None:
            raise FormatError(f"Archive does not contain a database dump ({DUMP_MEMBER})")
        return self.dump_path


def create_archive(dump_file: Path, assets_dir: Path, output_path: Path) -> int:
    """Create a tar.gz archive from a dump file and the asset tree.

    Args:
        dump_file: Database dump to store as ``database.sql``
        assets_dir: Uploads directory; stored empty when it does not exist
        output_path: Archive file to write

    Returns:
        Size of created archive in bytes
    """
    logger.info(f"Creating archive: {output_path}")

    try:
        with tarfile.open(output_path, "w:gz", dereference=True) as tar:
            tar.add(dump_file, arcname=DUMP_MEMBER)

            if assets_dir.is_dir():
                tar.add(assets_dir, arcname=ASSETS_MEMBER)
            else:
                logger.warning(f"Uploads directory does not exist: {assets_dir}, archiving it empty")
                info = tarfile.TarInfo(ASSETS_MEMBER)
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                info.mtime = int(time.time())
                tar.addfile(info)
    except OSError as e:
        raise BackupIOError(f"Failed to write archive {output_path}: {e}") from e

    archive_size = output_path.stat().st_size
    logger.info(f"Archive created: {archive_size:,} bytes")

    return archive_size


def extract_archive(archive_path: Path, output_dir: Path) -> ExtractedArchive:
    """Extract a tar or zip archive and locate its members.

    Args:
        archive_path: Uploaded archive
        output_dir: Directory to extract to

    Raises:
        FormatError: the container cannot be opened or holds unsafe paths
        BackupIOError: the archive file is missing or unreadable
    """
    if not archive_path.is_file():
        raise BackupIOError(f"Archive not found: {archive_path}")

    logger.info(f"Extracting archive: {archive_path} to {output_dir}")
    output_dir.mkdir(parents=True, exist_ok=True)

    if zipfile.is_zipfile(archive_path):
        _extract_zip(archive_path, output_dir)
    else:
        _extract_tar(archive_path, output_dir)

    dump_path = output_dir / DUMP_MEMBER
    assets_path = output_dir / ASSETS_MEMBER

    extracted = ExtractedArchive(
        root=output_dir,
        dump_path=dump_path if dump_path.is_file() else None,
        assets_path=assets_path if assets_path.is_dir() else None,
    )
    logger.info(
        f"Archive extracted (dump: {extracted.dump_path is not None}, "
        f"assets: {extracted.assets_path is not None})"
    )
    return extracted


def _check_member_name(name: str) -> None:
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        raise FormatError(f"Archive member escapes extraction directory: {name}")


def _safe_tar_members(members: Iterable[tarfile.TarInfo]) -> List[tarfile.TarInfo]:
    safe = []
    for member in members:
        _check_member_name(member.name)
        if not (member.isfile() or member.isdir()):
            raise FormatError(f"Archive member is not a regular file or directory: {member.name}")
        safe.append(member)
    return safe


def _extract_tar(archive_path: Path, output_dir: Path) -> None:
    try:
        with tarfile.open(archive_path, "r:*") as tar:
            members = _safe_tar_members(tar.getmembers())
            if hasattr(tarfile, "data_filter"):
                tar.extractall(output_dir, members=members, filter="data")
            else:
                tar.extractall(output_dir, members=members)
    except (tarfile.TarError, gzip.BadGzipFile, EOFError, zlib.error) as e:
        raise FormatError(f"Archive cannot be opened: {e}") from e
    except OSError as e:
        raise BackupIOError(f"Failed to extract {archive_path}: {e}") from e


def _extract_zip(archive_path: Path, output_dir: Path) -> None:
    try:
        with zipfile.ZipFile(archive_path) as archive:
            for name in archive.namelist():
                _check_member_name(name)
            archive.extractall(output_dir)
    except (zipfile.BadZipFile, EOFError, zlib.error) as e:
        raise FormatError(f"Archive cannot be opened: {e}") from e
    except OSError as e:
        raise BackupIOError(f"Failed to extract {archive_path}: {e}") from e
