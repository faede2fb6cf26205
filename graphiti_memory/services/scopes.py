"""
Scope resolution: logical scopes to backend group ids.

Group ids are `{prefix}-user-{tag}` and `{prefix}-project-{tag}`. The
mapping is pure string composition, so the same inputs give the same group
id across process restarts.
"""

import getpass
import hashlib
import subprocess
from pathlib import Path

from graphiti_memory.models.memory import MemoryScope
from graphiti_memory.utils.logger import get_logger

logger = get_logger(__name__)

TAG_LENGTH = 16


def hash_tag(value: str) -> str:
    """Stable short tag: first 16 hex chars of SHA-256."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()[:TAG_LENGTH]


def resolve_group_id(prefix: str, scope: MemoryScope | str, tag: str) -> str:
    """Compose the backend group id for a scope."""
    scope_name = scope.value if isinstance(scope, MemoryScope) else MemoryScope(scope).value
    return f"{prefix}-{scope_name}-{tag}"


def project_tag(directory: str | Path) -> str:
    """Tag for a project directory, from its absolute path."""
    return hash_tag(str(Path(directory).expanduser().resolve()))


def detect_user_identity() -> str:
    """
    Stable identity for the current user.

    git user.email when available, else the login name.
    """
    try:
        completed = subprocess.run(
            ["git", "config", "--get", "user.email"],
            capture_output=True,
            text=True,
            timeout=5,
            check=False,
        )
        email = completed.stdout.strip()
        if completed.returncode == 0 and email:
            return email
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"git identity unavailable: {e}")
    return getpass.getuser()


class ScopeResolver:
    """Resolves scopes to group ids for one project and one user."""

    def __init__(
        self,
        prefix: str,
        project_directory: str | Path,
        user_identity: str | None = None,
        user_group_id: str | None = None,
    ):
        """
        Args:
            prefix: Group id prefix
            project_directory: Project root; its path is hashed into the project tag
            user_identity: Stable user identifier (detected when omitted)
            user_group_id: Explicit user group id, overriding the derived one
        """
        self.prefix = prefix
        self.project_tag = project_tag(project_directory)
        self.user_tag = hash_tag(user_identity or detect_user_identity())
        self._user_group_id = user_group_id

    @property
    def user(self) -> str:
        return self._user_group_id or resolve_group_id(self.prefix, MemoryScope.USER, self.user_tag)

    @property
    def project(self) -> str:
        return resolve_group_id(self.prefix, MemoryScope.PROJECT, self.project_tag)

    def group_id(self, scope: MemoryScope | str) -> str:
        """Group id of a scope name ("user" or "project")."""
        return self.user if MemoryScope(scope) is MemoryScope.USER else self.project
