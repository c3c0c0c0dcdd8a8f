#!/usr/bin/env python3
"""
TFDIFF REVISION SOURCES - Where Documents Come From
---------------------------------------------------
A RevisionSource produces the configuration files of one side of the
comparison as Documents, in lexical name order. Two implementations:

    DirectorySource      files on disk (the working copy, or any directory)
    GitRevisionSource    blobs of a committed revision, read with git plumbing
                         commands so the working tree is never touched

Every failure (missing directory, missing git, unknown revision) surfaces as
SourceError.

Author: tfdiff Team
Date: 2026-10-18
"""

import fnmatch
import logging
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Sequence

from tfdiff.core.errors import SourceError
from tfdiff.core.models import Document

logger = logging.getLogger("tfdiff.sources")

DEFAULT_PATTERN = "*.tf"
DEFAULT_BASE_BRANCHES = ("master", "main")


class RevisionSource(ABC):
    """Produces the documents of one side of a comparison."""

    @abstractmethod
    def documents(self) -> List[Document]:
        """Returns matching documents sorted by name. Raises SourceError."""

    @abstractmethod
    def describe(self) -> str:
        """Short human-readable label for reports."""


class DirectorySource(RevisionSource):
    """Regular files in one directory (not recursive) matching a glob pattern."""

    def __init__(self, directory: str = ".", pattern: str = DEFAULT_PATTERN):
        self.directory = Path(directory)
        self.pattern = pattern

    def documents(self) -> List[Document]:
        if not self.directory.is_dir():
            raise SourceError(f"Not a directory: {self.directory}")

        documents = []
        try:
            for path in sorted(self.directory.iterdir(), key=lambda p: p.name):
                if not path.is_file() or not fnmatch.fnmatchcase(path.name, self.pattern):
                    continue
                documents.append(Document(str(path), path.read_bytes()))
        except OSError as e:
            raise SourceError(f"Unable to read {self.directory}: {e}") from e

        logger.debug("%s: %d document(s)", self.describe(), len(documents))
        return documents

    def describe(self) -> str:
        return f"directory {self.directory}"


def _git(git: str, directory: str, *args: str) -> subprocess.CompletedProcess:
    command = [git, "-C", str(directory), *args]
    try:
        return subprocess.run(command, capture_output=True, check=False)
    except OSError as e:
        raise SourceError(f"Unable to run {git}: {e}") from e


def _git_output(git: str, directory: str, *args: str) -> bytes:
    result = _git(git, directory, *args)
    if result.returncode != 0:
        stderr = result.stderr.decode("utf-8", "replace").strip()
        raise SourceError(f"git {' '.join(args)} failed with code {result.returncode}: {stderr}")
    return result.stdout


class GitRevisionSource(RevisionSource):
    """
    The files of `directory` as they are in a committed revision.

    The directory's position inside its repository is resolved with
    `git rev-parse --show-prefix`, the tree at that path is listed with
    `git ls-tree`, and each matching blob is read with `git cat-file`.
    A directory that does not exist in the revision yields no documents.
    """

    def __init__(self, revision: str, directory: str = ".", pattern: str = DEFAULT_PATTERN,
                 git: str = "git"):
        self.revision = revision
        self.directory = directory
        self.pattern = pattern
        self.git = git

    def _prefix(self) -> str:
        return _git_output(self.git, self.directory, "rev-parse", "--show-prefix").decode("utf-8").strip()

    def documents(self) -> List[Document]:
        prefix = self._prefix()
        _git_output(self.git, self.directory, "rev-parse", "--verify", "--quiet", f"{self.revision}^{{commit}}")

        tree = f"{self.revision}:{prefix}"
        if _git(self.git, self.directory, "cat-file", "-e", tree).returncode != 0:
            logger.warning("%s does not exist in %s; treating it as empty", prefix or "/", self.revision)
            return []

        listing = _git_output(self.git, self.directory, "ls-tree", "-z", tree)
        entries = []
        for entry in listing.split(b"\0"):
            if not entry:
                continue
            meta, _, name = entry.partition(b"\t")
            mode, kind, sha = meta.decode("ascii").split()
            filename = name.decode("utf-8")
            if kind == "blob" and mode != "120000" and fnmatch.fnmatchcase(filename, self.pattern):
                entries.append((filename, sha))

        documents = []
        for filename, sha in sorted(entries):
            content = _git_output(self.git, self.directory, "cat-file", "blob", sha)
            documents.append(Document(f"{self.revision}:{prefix}{filename}", content))

        logger.debug("%s: %d document(s)", self.describe(), len(documents))
        return documents

    def describe(self) -> str:
        return f"revision {self.revision}"


def resolve_base_branch(directory: str = ".", candidates: Sequence[str] = DEFAULT_BASE_BRANCHES,
                        git: str = "git") -> str:
    """
    Picks the base branch when none was given: the first candidate that
    exists as a local branch.
    """
    for name in candidates:
        result = _git(git, directory, "rev-parse", "--verify", "--quiet", f"refs/heads/{name}")
        if result.returncode == 0:
            logger.debug("Using %s as base branch", name)
            return name
    raise SourceError("can't specify base branch")
