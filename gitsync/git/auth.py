"""Credential resolution and git subprocess authentication.

Credentials never appear on a git command line or inside a URL. Basic auth
is answered by a ``GIT_ASKPASS`` helper that echoes values from the child's
environment; SSH auth writes the private key to a 0600 file outside the
working tree and points ``GIT_SSH_COMMAND`` at it.
"""

from __future__ import annotations

import os
import shlex
import typing as typ

from .errors import CredentialsError
from .models import BasicAuth, SSHAuth

if typ.TYPE_CHECKING:
    from pathlib import Path

    from gitsync.resources.models import Secret

    from .models import Credential

_ASKPASS_SCRIPT = """#!/bin/sh
case "$1" in
  Username*|username*) printf '%s\\n' "$GITSYNC_ASKPASS_USERNAME" ;;
  *) printf '%s\\n' "$GITSYNC_ASKPASS_PASSWORD" ;;
esac
"""

_SSH_ASKPASS_SCRIPT = """#!/bin/sh
printf '%s\\n' "$GITSYNC_SSH_PASSPHRASE"
"""

_DEFAULT_BASIC_USERNAME = "git"


def credentials_from_secret(secret: Secret) -> Credential:
    """Build a git credential from a secret's data.

    An ``identity`` key selects SSH: the key is the PEM private key,
    ``username`` the SSH user (default ``git``) and ``password`` the key
    passphrase. Without ``identity`` the secret holds basic auth, where
    ``password`` (or its alias ``token``) is required.

    Raises
    ------
    CredentialsError
        If basic auth is selected and no password or token is present.

    """
    data = secret.data
    identity = data.get("identity", "")
    if identity:
        return SSHAuth(
            identity=identity,
            user=data.get("username") or "git",
            passphrase=data.get("password", ""),
        )

    password = data.get("password") or data.get("token")
    if not password:
        raise CredentialsError.missing_key(secret.metadata.key, "password")
    return BasicAuth(
        username=data.get("username") or _DEFAULT_BASIC_USERNAME,
        password=password,
    )


def _write_private(path: Path, content: str, mode: int) -> Path:
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as handle:
        handle.write(content)
    os.chmod(path, mode)
    return path


def auth_environment(auth: Credential | None, auth_dir: Path) -> dict[str, str]:
    """Write auth helper files into ``auth_dir`` and return the env to apply.

    ``auth_dir`` must be private to the attempt and outside the clone.
    """
    if auth is None:
        return {}

    if isinstance(auth, BasicAuth):
        askpass = _write_private(auth_dir / "askpass.sh", _ASKPASS_SCRIPT, 0o700)
        return {
            "GIT_ASKPASS": str(askpass),
            "GITSYNC_ASKPASS_USERNAME": auth.username,
            "GITSYNC_ASKPASS_PASSWORD": auth.password,
        }

    identity = auth.identity if auth.identity.endswith("\n") else f"{auth.identity}\n"
    key_path = _write_private(auth_dir / "identity", identity, 0o600)
    known_hosts = auth_dir / "known_hosts"
    ssh_command = " ".join(
        [
            "ssh",
            "-i",
            shlex.quote(str(key_path)),
            "-l",
            shlex.quote(auth.user),
            "-o",
            "IdentitiesOnly=yes",
            "-o",
            "StrictHostKeyChecking=accept-new",
            "-o",
            f"UserKnownHostsFile={shlex.quote(str(known_hosts))}",
        ]
    )
    env = {"GIT_SSH_COMMAND": ssh_command}
    if auth.passphrase:
        ssh_askpass = _write_private(
            auth_dir / "ssh-askpass.sh", _SSH_ASKPASS_SCRIPT, 0o700
        )
        env |= {
            "SSH_ASKPASS": str(ssh_askpass),
            "SSH_ASKPASS_REQUIRE": "force",
            "DISPLAY": os.environ.get("DISPLAY", ":0"),
            "GITSYNC_SSH_PASSPHRASE": auth.passphrase,
        }
    else:
        env["GIT_SSH_COMMAND"] = f"{ssh_command} -o BatchMode=yes"
    return env
