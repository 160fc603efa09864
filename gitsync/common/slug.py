"""Object-key and repository slug utilities.

Object keys identify stored resources in ``namespace/name`` format, and
repository slugs identify hosted repositories in ``owner/name`` format. Neither
is a filesystem path, even though both use ``/`` as a separator, so they
should be handled with these helpers rather than ``pathlib``.
"""

from __future__ import annotations


def repo_slug(owner: str, name: str) -> str:
    """Build a repository slug from owner and name.

    Examples
    --------
    >>> repo_slug("octo", "reef")
    'octo/reef'

    """
    return f"{owner}/{name}"


def object_key(namespace: str, name: str) -> str:
    """Build an object key from namespace and name.

    Examples
    --------
    >>> object_key("default", "deploy-sync")
    'default/deploy-sync'

    """
    return f"{namespace}/{name}"


def parse_object_key(
    key: str, *, default_namespace: str = "default"
) -> tuple[str, str]:
    """Parse an object key into namespace and name.

    A bare name without a separator resolves into ``default_namespace``.

    Parameters
    ----------
    key:
        Object key in ``namespace/name`` or ``name`` format.
    default_namespace:
        Namespace used when ``key`` carries none.

    Returns
    -------
    tuple[str, str]
        ``(namespace, name)``.

    Raises
    ------
    ValueError
        If the key has more than one separator or an empty component.

    Examples
    --------
    >>> parse_object_key("prod/deploy-sync")
    ('prod', 'deploy-sync')
    >>> parse_object_key("deploy-sync")
    ('default', 'deploy-sync')

    """
    if "/" not in key:
        if not key:
            msg = "Invalid object key: expected 'namespace/name', got ''"
            raise ValueError(msg)
        return default_namespace, key

    if key.count("/") != 1:
        msg = f"Invalid object key: expected 'namespace/name', got {key!r}"
        raise ValueError(msg)

    namespace, name = key.split("/")
    if not namespace or not name:
        msg = f"Invalid object key: expected 'namespace/name', got {key!r}"
        raise ValueError(msg)

    return namespace, name
