"""Repository full-name utilities.

Full names are GitHub identifiers in ``owner/name`` format. GitHub treats them
case-insensitively, so every comparison in Perch goes through
:func:`normalize_full_name` rather than raw string equality.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Build a repository full name from owner and name.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def parse_repo_slug(slug: str) -> tuple[str, str]:
    """Parse a repository full name into owner and name.

    Surrounding whitespace on the slug and on each component is ignored, so
    user-entered pins such as ``" octo / reef "`` resolve.

    Parameters
    ----------
    slug:
        Repository full name in ``owner/name`` format.

    Returns
    -------
    tuple[str, str]
        ``(owner, name)`` with original casing preserved.

    Raises
    ------
    ValueError
        If the slug is not in ``owner/name`` format.

    Examples
    --------
    >>> parse_repo_slug(" octo/reef ")
    ('octo', 'reef')

    """
    stripped = slug.strip()
    if stripped.count("/") != 1:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)

    owner, name = (part.strip() for part in stripped.split("/"))
    if not owner or not name:
        msg = f"Invalid repository slug: expected 'owner/name', got {slug!r}"
        raise ValueError(msg)

    return owner, name


def normalize_full_name(slug: str) -> str:
    """Return the case-insensitive comparison key for a full name.

    Examples
    --------
    >>> normalize_full_name(" Octo/Reef ")
    'octo/reef'

    """
    return slug.strip().lower()


def canonical_full_name(slug: str) -> str:
    """Return the comparison key for a user-entered full name.

    Unlike :func:`normalize_full_name`, whitespace around each component is
    removed as well.

    Raises
    ------
    ValueError
        If the slug is not in ``owner/name`` format.

    Examples
    --------
    >>> canonical_full_name(" Octo / Reef ")
    'octo/reef'

    """
    owner, name = parse_repo_slug(slug)
    return normalize_full_name(repo_slug(owner, name))
