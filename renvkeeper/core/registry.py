"""Package source validation against CRAN, Bioconductor and GitHub.

Before a package is pinned in renv.lock it is checked against the
registries it could be installed from, in a fixed order:

1. **CRAN** via the crandb metadata service,
2. **Bioconductor** via the release's bulk ``packages.json`` listing,
3. **GitHub**, only for names of the form ``owner/repo``.

The first registry that knows the package wins. Lookups are single-shot:
every failure (timeout, connection error, non-2xx status, bad JSON) is
logged at DEBUG and treated as "not found here", so a flaky registry
degrades to a ``non_installable`` result rather than aborting the run.

Typical usage::

    from renvkeeper.utils.http import HTTPClient
    from renvkeeper.core.registry import RegistryValidator

    async with HTTPClient() as http:
        registry = RegistryValidator(http)
        results = await registry.check_installable_batch(["dplyr", "limma"])
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Sequence

from renvkeeper.utils.http import HTTPClient
from renvkeeper.utils.logger import get_logger
from renvkeeper.exceptions import NetworkError
from renvkeeper.models.validation import PackageSource, ValidationResult
from renvkeeper.constants import (
    BIOC_PACKAGES_JSON,
    BIOC_TIMEOUT,
    CRAN_DB_API,
    CRAN_TIMEOUT,
    DEFAULT_BIOC_VERSION,
    GITHUB_REPOS_API,
    GITHUB_TIMEOUT,
)

logger = get_logger("registry")

ProgressCallback = Callable[[int, int], None]


class RegistryValidator:
    """Decide whether, and from where, a package can be installed.

    Each name is checked independently: the Bioconductor listing is fetched
    per lookup and never cached across names.

    Args:
        http_client: Shared HTTP client. Its concurrency limit bounds the
            number of in-flight registry requests.
        check_cran: Query CRAN.
        check_bioc: Query Bioconductor.
        check_github: Query GitHub for ``owner/repo`` names.
        bioc_version: Bioconductor release whose listing is consulted.
        cran_timeout: CRAN request timeout in seconds.
        bioc_timeout: Bioconductor request timeout in seconds.
        github_timeout: GitHub request timeout in seconds.
    """

    def __init__(
        self,
        http_client: HTTPClient,
        *,
        check_cran: bool = True,
        check_bioc: bool = True,
        check_github: bool = True,
        bioc_version: str = DEFAULT_BIOC_VERSION,
        cran_timeout: float = CRAN_TIMEOUT,
        bioc_timeout: float = BIOC_TIMEOUT,
        github_timeout: float = GITHUB_TIMEOUT,
    ) -> None:
        if http_client is None:
            raise TypeError("http_client must not be None; pass an HTTPClient instance")

        self.http_client = http_client
        self.check_cran = check_cran
        self.check_bioc = check_bioc
        self.check_github = check_github
        self.bioc_version = bioc_version
        self.cran_timeout = cran_timeout
        self.bioc_timeout = bioc_timeout
        self.github_timeout = github_timeout

    # ------------------------------------------------------------------
    # Registry lookups
    # ------------------------------------------------------------------

    async def _get_json(self, url: str, timeout: float) -> Optional[Dict[str, Any]]:
        try:
            return await self.http_client.get_json(url, timeout=timeout)
        except NetworkError as exc:
            logger.debug("Lookup failed for %s: %s", url, exc)
            return None

    async def fetch_cran_info(self, name: str) -> Optional[Dict[str, Any]]:
        """CRAN metadata for ``name``, or ``None``."""
        return await self._get_json(CRAN_DB_API.format(package=name), self.cran_timeout)

    async def fetch_bioc_info(self, name: str) -> Optional[Dict[str, Any]]:
        """The Bioconductor listing record for ``name``, or ``None``."""
        listing = await self._get_json(
            BIOC_PACKAGES_JSON.format(version=self.bioc_version),
            self.bioc_timeout,
        )
        if listing is None or name not in listing:
            return None

        record = listing[name]
        return record if isinstance(record, dict) else {"Package": name}

    async def fetch_github_info(self, name: str) -> Optional[Dict[str, Any]]:
        """GitHub repository metadata for ``owner/repo``, or ``None``."""
        if "/" not in name:
            return None
        return await self._get_json(GITHUB_REPOS_API.format(repo=name), self.github_timeout)

    async def fetch_version(self, name: str) -> Optional[str]:
        """The current CRAN version of ``name``, or ``None``."""
        info = await self.fetch_cran_info(name)
        if not info:
            return None
        version = info.get("Version")
        return str(version) if version else None

    # ------------------------------------------------------------------
    # Installability
    # ------------------------------------------------------------------

    async def check_installable(self, name: str) -> ValidationResult:
        """Return the first registry that knows ``name``."""
        if self.check_cran:
            info = await self.fetch_cran_info(name)
            if info is not None:
                return _found(name, PackageSource.CRAN, info)

        if self.check_bioc:
            info = await self.fetch_bioc_info(name)
            if info is not None:
                return _found(name, PackageSource.BIOCONDUCTOR, info)

        if self.check_github and "/" in name:
            info = await self.fetch_github_info(name)
            if info is not None:
                return ValidationResult(
                    package=name,
                    installable=True,
                    source=PackageSource.GITHUB,
                )

        logger.debug("%s not found in any registry", name)
        return ValidationResult.not_found(name)

    async def check_installable_batch(
        self,
        names: Sequence[str],
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[ValidationResult]:
        """Check ``names`` concurrently; results keep the input order.

        Args:
            names: Package names.
            progress_callback: Called as ``callback(completed, total)``
                each time one name finishes.
        """
        total = len(names)
        if total == 0:
            return []

        completed = 0

        async def _check(name: str) -> ValidationResult:
            nonlocal completed
            result = await self.check_installable(name)
            completed += 1
            if progress_callback is not None:
                progress_callback(completed, total)
            return result

        results = await asyncio.gather(*(_check(name) for name in names))

        found = sum(1 for r in results if r.installable)
        logger.info("Validated %d package(s): %d installable", total, found)
        return list(results)


def _found(name: str, source: PackageSource, info: Dict[str, Any]) -> ValidationResult:
    version = info.get("Version")
    return ValidationResult(
        package=name,
        installable=True,
        source=source,
        version=str(version) if version else None,
    )
