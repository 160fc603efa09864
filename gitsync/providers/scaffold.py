"""Initial project layout committed to freshly created repositories."""

from __future__ import annotations

import base64
import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

SCAFFOLD_COMMIT_MESSAGE = "creating initial project structure"
SCAFFOLD_DIRECTORIES: tuple[str, ...] = (
    "generators",
    "products",
    "subscriptions",
    "targets",
)


@dataclasses.dataclass(frozen=True, slots=True)
class ScaffoldFile:
    """One file of the initial project structure."""

    path: str
    content: str

    @property
    def content_b64(self) -> str:
        """Return the content base64-encoded, as file APIs expect."""
        return base64.b64encode(self.content.encode("utf-8")).decode("ascii")


def scaffold_files(maintainers: cabc.Sequence[str]) -> list[ScaffoldFile]:
    """Return the files for a new repository.

    ``CODEOWNERS`` lists one maintainer per line and is omitted when there
    are no maintainers.

    Examples
    --------
    >>> [f.path for f in scaffold_files([])][:2]
    ['generators/.keep', 'products/.keep']
    >>> scaffold_files(["@octo", "@reef"])[0].content
    '@octo\\n@reef\\n'

    """
    files: list[ScaffoldFile] = []
    if maintainers:
        content = "".join(f"{maintainer}\n" for maintainer in maintainers)
        files.append(ScaffoldFile(path="CODEOWNERS", content=content))
    files.extend(
        ScaffoldFile(path=f"{directory}/.keep", content="")
        for directory in SCAFFOLD_DIRECTORIES
    )
    return files
