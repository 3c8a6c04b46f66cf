# codegen/snapshot.py
import json
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Iterator, List, Optional

from codegen.errors import PathResolutionError
from codegen.tool_defs import FIELD_CONTENT, FIELD_FILE_PATH


def normalize_key(path: str) -> str:
    """Separator- and case-insensitive lookup key. Colons are dropped the same way the writer drops them."""
    key = path.strip().replace("\\", "/").replace(":", "")
    while "//" in key:
        key = key.replace("//", "/")
    if key.startswith("./"):
        key = key[2:]
    return key.lower()


def _parts(path: str) -> List[str]:
    return [part for part in normalize_key(path).split("/") if part]


def _shared_suffix_length(a: List[str], b: List[str]) -> int:
    count = 0
    for left, right in zip(reversed(a), reversed(b)):
        if left != right:
            break
        count += 1
    return count


class ProjectSnapshot(Mapping):
    """
    Read-only, ordered view of the files the operator included, path -> content.
    It is the only authority on whether a file "exists" for merge decisions.
    """

    def __init__(self, files: Optional[Dict[str, str]] = None):
        self._files: Dict[str, str] = dict(files or {})
        self._by_key: Dict[str, str] = {}
        for path in self._files:
            self._by_key.setdefault(normalize_key(path), path)

    @classmethod
    def from_included_files(cls, included_files: Iterable[Dict[str, Any]]) -> "ProjectSnapshot":
        files: Dict[str, str] = {}
        for entry in included_files:
            path = entry.get(FIELD_FILE_PATH, entry.get("filePath"))
            content = entry.get(FIELD_CONTENT, entry.get("content", ""))
            if path:
                files[str(path)] = "" if content is None else str(content)
        return cls(files)

    def __getitem__(self, path: str) -> str:
        return self._files[path]

    def __iter__(self) -> Iterator[str]:
        return iter(self._files)

    def __len__(self) -> int:
        return len(self._files)

    def resolve(self, path: str) -> Optional[str]:
        """
        Maps a model-supplied path to the canonical snapshot path.

        Exact match first, then basename match. Several basename candidates are
        ranked by how many trailing directories they share with `path`; a tie
        raises PathResolutionError. Returns None when nothing matches.
        """
        if not path or not path.strip():
            return None
        exact = self._by_key.get(normalize_key(path))
        if exact is not None:
            return exact

        wanted = _parts(path)
        if not wanted:
            return None
        basename = wanted[-1]
        candidates = [known for known in self._files if _parts(known) and _parts(known)[-1] == basename]
        if not candidates:
            return None
        if len(candidates) == 1:
            return candidates[0]

        scored = sorted(((_shared_suffix_length(wanted, _parts(known)), known) for known in candidates), key=lambda item: item[0], reverse=True)
        if scored[0][0] == scored[1][0]:
            tied = [known for score, known in scored if score == scored[0][0]]
            raise PathResolutionError(f"Ambiguous path: {len(tied)} project files match ({', '.join(tied)})", path)
        return scored[0][1]

    def to_json(self) -> str:
        return json.dumps([{FIELD_FILE_PATH: path, FIELD_CONTENT: content} for path, content in self._files.items()])
