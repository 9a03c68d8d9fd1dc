"""Git access, archive extraction and read-only mold views."""

from .archive import extract_tar
from .git import GitClient, SubprocessGit
from .view import MoldFS

__all__ = ["GitClient", "MoldFS", "SubprocessGit", "extract_tar"]
