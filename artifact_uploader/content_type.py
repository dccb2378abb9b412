"""Content type detection from file extensions."""
import mimetypes
from pathlib import Path
from typing import Dict, Optional

DEFAULT_CONTENT_TYPE = "application/octet-stream"


class ContentTypeResolver:
    """
    Resolve the MIME type of an artifact.

    A non-empty override always wins. Otherwise the extension is looked up;
    file bytes are never inspected.
    """

    _FALLBACK_MIMES = {
        ".log": "text/plain",
        ".txt": "text/plain",
        ".md": "text/markdown",
        ".yml": "application/x-yaml",
        ".yaml": "application/x-yaml",
        ".json": "application/json",
        ".xml": "application/xml",
        ".html": "text/html",
        ".htm": "text/html",
        ".svg": "image/svg+xml",
        ".wasm": "application/wasm",
    }

    def __init__(self, extra: Optional[Dict[str, str]] = None):
        self._fallbacks = dict(self._FALLBACK_MIMES)
        if extra:
            self._fallbacks.update({k.lower(): v for k, v in extra.items()})

    def resolve(self, path: Path, override: str = "") -> str:
        if override:
            return override

        mimetype, _ = mimetypes.guess_type(str(path), strict=False)
        if mimetype:
            return mimetype
        return self._fallbacks.get(Path(path).suffix.lower(), DEFAULT_CONTENT_TYPE)
