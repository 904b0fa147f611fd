"""Markdown documents stored under the workspace docs directory.

Every name is resolved relative to the docs root and must stay inside it:
no '..' segments, no absolute escapes, and only '.md' files. Names are
POSIX-style relative paths (``notes/Plan.md``).
"""

import logging
import os
import re
from pathlib import Path
from typing import Optional, Protocol, runtime_checkable

from .schemas import WorkspaceDocument

logger = logging.getLogger(__name__)

SNIPPET_RADIUS = 60


class InvalidDocumentPath(ValueError):
    """A document name is empty, escapes the docs root, or is not markdown."""


@runtime_checkable
class DocumentStore(Protocol):
    """Minimal store interface used by the run engine."""

    def list_documents(self) -> list[str]: ...

    def read(self, name: str) -> Optional[str]: ...

    def write(self, name: str, content: str) -> str: ...


class FileDocumentStore:
    """DocumentStore backed by a directory of markdown files."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve_path(self, relative_path: str) -> Path:
        """Resolve a document name to an absolute path inside the docs root.

        Raises:
            InvalidDocumentPath: If the name is empty, contains '..', escapes
                the root, or does not end in '.md'.
        """
        if not relative_path or ".." in relative_path:
            raise InvalidDocumentPath(f"Invalid document path: {relative_path!r}")
        resolved = (self.root / relative_path).resolve()
        if resolved == self.root or not resolved.is_relative_to(self.root):
            raise InvalidDocumentPath(f"Path escapes workspace docs: {relative_path!r}")
        if resolved.suffix.lower() != ".md":
            raise InvalidDocumentPath(f"Only markdown files are allowed: {relative_path!r}")
        return resolved

    def list_documents(self) -> list[str]:
        """All markdown documents, as sorted POSIX paths relative to the root."""
        if not self.root.exists():
            return []
        files = []
        for dirpath, _dirnames, filenames in os.walk(self.root):
            for filename in filenames:
                if filename.lower().endswith(".md"):
                    full_path = Path(dirpath) / filename
                    files.append(full_path.relative_to(self.root).as_posix())
        return sorted(files)

    def read(self, name: str) -> Optional[str]:
        path = self.resolve_path(name)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def write(self, name: str, content: str) -> str:
        """Write a document, creating parent directories. Returns the absolute path."""
        path = self.resolve_path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        logger.debug(f"Wrote {name} ({len(content):,} chars)")
        return str(path)

    def rename(self, name: str, new_name: str) -> str:
        source = self.resolve_path(name)
        target = self.resolve_path(new_name)
        target.parent.mkdir(parents=True, exist_ok=True)
        source.rename(target)
        logger.info(f"Renamed document {name} -> {new_name}")
        return new_name

    def delete(self, name: str) -> bool:
        """Delete a document. Returns True if it existed."""
        path = self.resolve_path(name)
        if not path.exists():
            return False
        path.unlink()
        logger.info(f"Deleted document {name}")
        return True

    def read_all(self) -> list[WorkspaceDocument]:
        """Read every document in the store."""
        return [
            WorkspaceDocument(path=name, content=self.read(name) or "")
            for name in self.list_documents()
        ]

    def search(self, query: str) -> list[dict]:
        """Case-insensitive substring search with a short context snippet."""
        needle = query.strip().lower()
        if not needle:
            return []

        results = []
        for name in self.list_documents():
            content = self.read(name) or ""
            index = content.lower().find(needle)
            if index < 0:
                continue
            start = max(0, index - SNIPPET_RADIUS)
            end = min(len(content), index + SNIPPET_RADIUS)
            snippet = re.sub(r"\s+", " ", content[start:end]).strip()
            results.append({"path": name, "snippet": snippet})
        return results
