"""
Path resolution - expands glob patterns into artifacts.

Supports `*`, `**`, `?` and character classes. Several patterns may be
given in one string, separated by `;`.
"""
import logging
import os
import re
from pathlib import Path
from typing import Dict, FrozenSet, Iterator, List, Optional, Set, Tuple

from .content_type import ContentTypeResolver
from .errors import NoFilesMatchedError
from .models import Artifact
from .utils.hashing import hash_file

logger = logging.getLogger(__name__)

PATTERN_SEPARATOR = ";"
_GLOB_CHARS = set("*?[")


def _has_glob(segment: str) -> bool:
    return any(c in _GLOB_CHARS for c in segment)


def translate_glob(pattern: str) -> "re.Pattern[str]":
    """
    Compile a shell glob into a regex matching POSIX paths.

    `*` and `?` never cross a `/`; `**/` matches zero or more directories
    and a trailing `**` matches everything below.
    """
    i, n = 0, len(pattern)
    parts = []
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**/", i):
                parts.append("(?:.*/)?")
                i += 3
                continue
            if pattern.startswith("**", i):
                parts.append(".*")
                i += 2
                continue
            parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "[":
            j = i + 1
            if j < n and pattern[j] in "!^":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                parts.append(re.escape(c))
            else:
                stuff = pattern[i + 1:j].replace("\\", "\\\\")
                if stuff[0] in "!^":
                    stuff = "^" + stuff[1:]
                parts.append(f"[{stuff}]")
                i = j + 1
                continue
        else:
            parts.append(re.escape(c))
        i += 1
    return re.compile("(?s:" + "".join(parts) + r")\Z")


def split_patterns(patterns: str) -> List[str]:
    """Split a `;` separated pattern string, dropping empty entries."""
    return [p.strip() for p in patterns.split(PATTERN_SEPARATOR) if p.strip()]


class PathResolver:
    """
    Resolves glob patterns against the filesystem into Artifacts.

    Without follow_symlinks, symlinked directories are never entered
    (symlinks to files are still included). With follow_symlinks,
    symlinked directories are traversed and files are deduplicated by
    their resolved absolute path.
    """

    def __init__(
        self,
        root: Optional[Path] = None,
        content_types: Optional[ContentTypeResolver] = None,
    ):
        self._root = Path(root or os.getcwd()).absolute()
        self._content_types = content_types or ContentTypeResolver()

    @property
    def root(self) -> Path:
        return self._root

    def resolve(
        self,
        pattern: str,
        follow_symlinks: bool = False,
        content_type: str = "",
    ) -> List[Artifact]:
        """
        Expand `pattern` into artifacts with size, type and checksums.

        Raises:
            NoFilesMatchedError: if nothing matched
        """
        matches = self.match(pattern, follow_symlinks)
        if not matches:
            raise NoFilesMatchedError(pattern)

        artifacts = []
        for path, display_path in matches:
            sha256sum, blake3sum = hash_file(path)
            artifacts.append(Artifact(
                path=path,
                display_path=display_path,
                size=path.stat().st_size,
                content_type=self._content_types.resolve(path, content_type),
                sha256sum=sha256sum,
                blake3sum=blake3sum,
            ))

        logger.info("Resolved %d file(s) from %r", len(artifacts), pattern)
        return artifacts

    def match(self, pattern: str, follow_symlinks: bool = False) -> List[Tuple[Path, str]]:
        """Return (absolute path, display path) for every matched regular file."""
        seen_display: Set[str] = set()
        seen_real: Set[str] = set()
        results = []

        for single in split_patterns(pattern):
            for path, display_path in self._match_one(single, follow_symlinks):
                if display_path in seen_display:
                    continue
                if follow_symlinks:
                    real = os.path.realpath(path)
                    if real in seen_real:
                        logger.debug("Skipping %s: already matched via another link", display_path)
                        continue
                    seen_real.add(real)
                seen_display.add(display_path)
                results.append((path, display_path))

        return results

    def _match_one(self, pattern: str, follow_symlinks: bool) -> List[Tuple[Path, str]]:
        pattern = pattern.replace(os.sep, "/")
        absolute = pattern.startswith("/")
        while pattern.startswith("./"):
            pattern = pattern[2:]

        segments = [s for s in pattern.split("/") if s]
        literal = []
        for segment in segments:
            if _has_glob(segment):
                break
            literal.append(segment)

        base = Path("/" if absolute else self._root).joinpath(*literal)

        # Plain path, no glob characters
        if len(literal) == len(segments):
            if base.is_file() and (follow_symlinks or not self._through_symlink(base.parent)):
                return [(base, self._display_path(base))]
            return []

        if not base.is_dir():
            return []
        if not follow_symlinks and self._through_symlink(base):
            logger.debug("Not entering symlinked directory %s", base)
            return []

        remaining = segments[len(literal):]
        recursive = any("**" in s for s in remaining)
        max_depth = None if recursive else len(remaining) - 1
        regex = translate_glob("/".join(segments))

        found = []
        for path in self._walk(base, follow_symlinks, max_depth):
            candidate = path.as_posix().lstrip("/") if absolute else path.relative_to(self._root).as_posix()
            if regex.match(candidate) and path.is_file():
                found.append((path, self._display_path(path)))

        return sorted(found, key=lambda item: item[1])

    def _walk(self, start: Path, follow_symlinks: bool, max_depth: Optional[int]) -> Iterator[Path]:
        # dirpath -> (st_dev, st_ino) of the directories above it on this descent.
        # Only re-entering an ancestor is a cycle.
        lineage: Dict[str, FrozenSet[Tuple[int, int]]] = {}
        for dirpath, dirnames, filenames in os.walk(start, followlinks=follow_symlinks):
            if follow_symlinks:
                st = os.stat(dirpath)
                key = (st.st_dev, st.st_ino)
                ancestors = lineage.pop(dirpath, frozenset())
                if key in ancestors:
                    logger.debug("Not re-entering %s: symlink cycle", dirpath)
                    dirnames[:] = []
                    continue
                below = ancestors | {key}
                for name in dirnames:
                    lineage[os.path.join(dirpath, name)] = below

            current = Path(dirpath)
            if max_depth is not None and len(current.relative_to(start).parts) >= max_depth:
                dirnames[:] = []

            for name in filenames:
                yield current / name

    def _through_symlink(self, directory: Path) -> bool:
        """True if `directory` sits under the root behind a symlinked directory."""
        try:
            rel = directory.relative_to(self._root)
        except ValueError:
            return directory.is_symlink()
        current = self._root
        for part in rel.parts:
            current = current / part
            if current.is_symlink():
                return True
        return False

    def _display_path(self, path: Path) -> str:
        try:
            return path.relative_to(self._root).as_posix()
        except ValueError:
            return path.as_posix().lstrip("/")
