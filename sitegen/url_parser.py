"""
Repository URL parsing and validation.

Accepted forms (any host; the API base comes from settings):
  https://github.com/owner/repo
  https://github.com/owner/repo/
  https://github.com/owner/repo.git
  https://github.com/owner/repo/tree/main   (trailing path ignored)
  http://git.example.com/owner/repo          (also accepted)

Anything else raises ``ValidationError`` with a human-readable message.
"""

from __future__ import annotations

import re

from sitegen.errors import ValidationError

_REPO_URL_RE = re.compile(
    r"^https?://"
    r"(?P<host>[A-Za-z0-9\-.]+(?::\d+)?)/"
    r"(?P<owner>[A-Za-z0-9\-_.]+)/"
    r"(?P<repo>[A-Za-z0-9\-_.]+?)"
    r"(?:\.git)?(?:/[^\s]*)?\s*$"
)


def parse_repo_url(url: str) -> tuple[str, str]:
    """Return (owner, repo) from a repository URL.

    Raises ``ValidationError`` with a descriptive message when the URL is
    not a ``host/owner/repo`` URL.
    """
    if not url or not url.strip():
        raise ValidationError("Repository URL must not be empty.")

    url = url.strip()

    match = _REPO_URL_RE.match(url)
    if not match:
        raise ValidationError(
            f"Invalid repository URL: '{url}'. "
            "Expected format: https://github.com/owner/repo"
        )

    return match.group("owner"), match.group("repo")
