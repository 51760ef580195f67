"""Git operations.

Usage:
    from cdr.git import GitClient

    files = GitClient().tracked_files(Path("dmd/src"))
"""

from cdr.git.repository import GitClient, GitError, VcsClient

__all__ = [
    "GitClient",
    "GitError",
    "VcsClient",
]
