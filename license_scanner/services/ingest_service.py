import concurrent.futures
import time

import structlog
from pydantic import ValidationError

from license_scanner.core.stats import ScanStats
from license_scanner.models.package import LicenseResolution
from license_scanner.models.package import MISSING_VERSION
from license_scanner.models.package import PackageFinding
from license_scanner.models.package import RepositoryResult
from license_scanner.models.package import SbomPackage
from license_scanner.models.repository import Repository
from license_scanner.services.github_service import GitHubService
from license_scanner.services.license_resolver import LicenseResolver
from license_scanner.services.license_resolver import normalize_license

logger = structlog.get_logger('ingest_service')


def parse_sbom_packages(sbom: dict, repo: str = '') -> list[SbomPackage]:
    """Return the dependency entries of an SPDX document, in document order."""
    packages = []
    for entry in sbom.get('packages') or []:
        try:
            package = SbomPackage.model_validate(entry)
        except ValidationError as e:
            logger.warning('Skipping malformed SBOM entry', repo=repo, error=str(e))
            continue
        if package.is_dependency:
            packages.append(package)
    return packages


class IngestService:
    """Turn one repository's SBOM into license findings."""

    def __init__(
        self,
        github: GitHubService,
        resolver: LicenseResolver,
        executor: concurrent.futures.Executor,
        stats: ScanStats | None = None,
    ):
        self.github = github
        self.resolver = resolver
        # Shared by all repositories so the number of registry calls in flight stays bounded
        self.executor = executor
        self.stats = stats or ScanStats()

    def ingest(self, repository: Repository) -> RepositoryResult:
        """
        Fetch and resolve the SBOM of `repository`.

        Raises IngestionError when the SBOM itself cannot be fetched. License
        lookups never fail the repository; they degrade to 'Unknown'.
        """
        start_time = time.time()
        sbom = self.github.get_sbom(repository.owner, repository.name)
        packages = parse_sbom_packages(sbom, repository.name)

        findings = list(self.executor.map(self._build_finding, packages))

        unknown = sum(1 for finding in findings if finding.is_unknown)
        self.stats.inc_repositories()
        self.stats.inc_packages(len(findings))
        self.stats.inc_unknown(unknown)
        logger.info(
            'Repository ingested',
            repo=repository.name,
            packages=len(findings),
            unknown=unknown,
            elapsed=f"{time.time() - start_time:.3f}s",
        )
        return RepositoryResult(repo=repository.name, packages=findings)

    def _build_finding(self, package: SbomPackage) -> PackageFinding:
        name = package.name or ''
        try:
            resolution = self.resolver.resolve(
                package.license_concluded, name, package.version_info,
            )
        except Exception as e:
            logger.warning('License resolution failed', package=name, error=str(e))
            resolution = LicenseResolution.unresolvable()

        return PackageFinding(
            name=name,
            version=package.version_info or MISSING_VERSION,
            license=normalize_license(resolution.value),
        )
