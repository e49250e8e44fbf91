"""
Package name filtering.

Raw tokens pulled out of R code include plenty of things that are not
packages: base packages that never need declaring, placeholder names from
documentation, ordinary English words, and strings that are not valid
package names at all. :class:`NameFilter` removes them with an ordered
battery of predicates and returns the canonical, sorted set of names.

The exclusion lists live in an immutable :class:`FilterConfig`. Per-run
extensions, such as the current project's own name, produce a new config
instead of touching shared state::

    config = FilterConfig().with_placeholders(["mypkg"])
    NameFilter(config).clean(["dplyr", "base", "mypkg", "dplyr"])
    # ['dplyr']
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from typing import FrozenSet, Iterable, List, Optional, Tuple

from renvkeeper.constants import (
    BASE_PACKAGES,
    EXAMPLE_SUFFIXES,
    GENERIC_WORDS,
    MIN_PACKAGE_NAME_LENGTH,
    PLACEHOLDER_PACKAGES,
)

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9.]*$")
_LOWERCASE_RE = re.compile(r"^[a-z]+$")


@dataclass(frozen=True)
class FilterConfig:
    """Exclusion lists consulted by :class:`NameFilter`.

    Attributes:
        base_packages: Packages bundled with R.
        placeholder_packages: Stand-in names used in examples.
        generic_words: Pronouns and generic nouns.
        example_suffixes: Endings of all-lowercase example project names.
        min_length: Shortest acceptable name.
    """

    base_packages: FrozenSet[str] = BASE_PACKAGES
    placeholder_packages: FrozenSet[str] = PLACEHOLDER_PACKAGES
    generic_words: FrozenSet[str] = GENERIC_WORDS
    example_suffixes: Tuple[str, ...] = tuple(EXAMPLE_SUFFIXES)
    min_length: int = MIN_PACKAGE_NAME_LENGTH

    def with_placeholders(self, names: Iterable[Optional[str]]) -> "FilterConfig":
        """Return a copy whose placeholder list also contains ``names``.

        Empty and ``None`` names are ignored.
        """
        extra = {name for name in names if name}
        if not extra:
            return self
        return replace(self, placeholder_packages=self.placeholder_packages | extra)

    def with_base_packages(self, names: Iterable[str]) -> "FilterConfig":
        """Return a copy whose base-package list also contains ``names``."""
        extra = {name for name in names if name}
        if not extra:
            return self
        return replace(self, base_packages=self.base_packages | extra)


def is_valid_package_name(name: str) -> bool:
    """Check the R package name format.

    Starts with a letter and contains only letters, digits and dots, with
    no trailing dot. Length is checked separately.
    """
    return bool(_NAME_RE.match(name)) and not name.endswith(".")


def is_generic_word(name: str, config: Optional[FilterConfig] = None) -> bool:
    """Return ``True`` for generic words that are never real packages.

    The suffix rule only applies to all-lowercase names, since real
    packages often use mixed case (``DESeq2``, ``ComplexHeatmap``).
    """
    config = config or FilterConfig()

    if name in config.generic_words:
        return True

    if _LOWERCASE_RE.match(name):
        return name.endswith(config.example_suffixes)

    return False


@dataclass(frozen=True)
class NameFilter:
    """Pure filter turning candidate tokens into a sorted package-name list.

    Filters run in this order, and rejection by any one drops the token:

    1. present and at least ``min_length`` characters;
    2. not a base package;
    3. not a placeholder;
    4. not a generic word;
    5. valid package name format.
    """

    config: FilterConfig = field(default_factory=FilterConfig)

    def accepts(self, token: Optional[str]) -> bool:
        """Return ``True`` if ``token`` survives every filter."""
        config = self.config
        if token is None or len(token) < config.min_length:
            return False
        if token in config.base_packages:
            return False
        if token in config.placeholder_packages:
            return False
        if is_generic_word(token, config):
            return False
        return is_valid_package_name(token)

    def clean(self, tokens: Iterable[Optional[str]]) -> List[str]:
        """Filter ``tokens`` and return the survivors deduplicated and sorted."""
        return sorted({token for token in tokens if self.accepts(token)})  # type: ignore[misc]


def clean_package_names(
    tokens: Iterable[Optional[str]],
    config: Optional[FilterConfig] = None,
) -> List[str]:
    """Convenience wrapper around :meth:`NameFilter.clean`."""
    return NameFilter(config or FilterConfig()).clean(tokens)
