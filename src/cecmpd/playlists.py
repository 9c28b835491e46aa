"""Mirror music folders as MPD playlists.

Every sub-directory of MPD's ``music_directory`` becomes one ``.m3u`` file
in ``playlist_directory`` listing the folder's files. Stale playlist files
are removed first.
"""

import asyncio
import logging
import re
from pathlib import Path
from typing import Optional

from cecmpd.errors import PlaylistError

logger = logging.getLogger(__name__)

MUSIC_DIRECTORY_RE = re.compile(r'^music_directory.*"([^"]+)"')
PLAYLIST_DIRECTORY_RE = re.compile(r'^playlist_directory.*"([^"]+)"')


def read_setting(conf_text: str, pattern: re.Pattern) -> Optional[str]:
    """Return the first quoted value of a setting in mpd.conf."""
    for line in conf_text.splitlines():
        match = pattern.match(line)
        if match:
            return match.group(1)
    return None


def read_directories(conf_path: str) -> tuple[Path, Path]:
    """Return (music_directory, playlist_directory) from mpd.conf."""
    try:
        text = Path(conf_path).read_text(encoding="utf-8")
    except OSError as e:
        raise PlaylistError(f"Cannot read {conf_path}: {e}") from e

    music = read_setting(text, MUSIC_DIRECTORY_RE)
    playlists = read_setting(text, PLAYLIST_DIRECTORY_RE)
    if music is None:
        raise PlaylistError(f"No music_directory in {conf_path}")
    if playlists is None:
        raise PlaylistError(f"No playlist_directory in {conf_path}")
    return Path(music).expanduser(), Path(playlists).expanduser()


def index_folder(folder: Path) -> list[str]:
    """Files of a folder (symlinks to files included) relative to its parent."""
    entries = []
    for entry in sorted(folder.iterdir()):
        # is_file follows symlinks, broken links are skipped
        if entry.is_file():
            entries.append(f"{folder.name}/{entry.name}")
    return entries


def sync_playlists(music_dir: Path, playlist_dir: Path) -> list[str]:
    """Rewrite playlist_dir from the folders of music_dir; return playlist names."""
    try:
        for stale in playlist_dir.iterdir():
            if stale.is_file() and stale.suffix.lower() == ".m3u":
                stale.unlink(missing_ok=True)

        names = []
        for folder in sorted(music_dir.iterdir()):
            if not folder.is_dir() or folder.is_symlink():
                continue
            entries = index_folder(folder)
            (playlist_dir / f"{folder.name}.m3u").write_text(
                "\n".join(entries), encoding="utf-8"
            )
            names.append(folder.name)
    except OSError as e:
        raise PlaylistError(f"Cannot update playlists: {e}") from e

    logger.info("Wrote %d playlist(s) to %s", len(names), playlist_dir)
    return names


async def update_playlists(conf_path: str = "/etc/mpd.conf") -> list[str]:
    """Reconcile the playlist directory with the music folders."""

    def _update():
        music_dir, playlist_dir = read_directories(conf_path)
        return sync_playlists(music_dir, playlist_dir)

    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, _update)
