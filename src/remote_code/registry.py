"""Language registry: maps a language tag to its execution profile.

The table is built once at process start and never mutated.  Use
:meth:`LanguageRegistry.lookup` to resolve the tag of an incoming request;
an unknown tag resolves to ``None`` and must be rejected by the caller.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType

from remote_code.models.profile import ExecutionProfile

# ---------------------------------------------------------------------------
# Language tag -> execution profile mapping
# ---------------------------------------------------------------------------

DEFAULT_PROFILES: Mapping[str, ExecutionProfile] = MappingProxyType({
    "python": ExecutionProfile(image="python-0.1", filename="main.py", title="Python"),
    "node": ExecutionProfile(image="node-0.1", filename="main.js", title="Node"),
    "c": ExecutionProfile(image="c-0.1", filename="main.c", title="C Programming"),
    "cpp": ExecutionProfile(image="cpp-0.1", filename="main.cpp", title="C++ Programming"),
    "go": ExecutionProfile(image="go-0.1", filename="main.go", title="Golang"),
})


class LanguageRegistry:
    """Read-only table of execution profiles keyed by language tag.

    Parameters
    ----------
    profiles:
        Mapping of ``tag -> ExecutionProfile``.  Defaults to
        :data:`DEFAULT_PROFILES`.  The mapping is copied, so later changes
        to the argument are not visible through the registry.
    """

    def __init__(self, profiles: Mapping[str, ExecutionProfile] | None = None) -> None:
        source = DEFAULT_PROFILES if profiles is None else profiles
        for tag in source:
            if not tag:
                raise ValueError("Language tags must be non-empty strings.")
        self._profiles: Mapping[str, ExecutionProfile] = MappingProxyType(dict(source))

    def lookup(self, tag: str) -> ExecutionProfile | None:
        """Return the profile for *tag*, or ``None`` if the tag is not registered."""
        return self._profiles.get(tag)

    def tags(self) -> list[str]:
        return sorted(self._profiles)

    def items(self) -> Iterator[tuple[str, ExecutionProfile]]:
        for tag in self.tags():
            yield tag, self._profiles[tag]

    def __contains__(self, tag: object) -> bool:
        return tag in self._profiles

    def __len__(self) -> int:
        return len(self._profiles)
