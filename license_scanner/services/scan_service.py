import concurrent.futures
from dataclasses import dataclass
from dataclasses import field

import structlog

from license_scanner.core.config import FailurePolicy
from license_scanner.core.config import ScannerConfig
from license_scanner.core.errors import IngestionError
from license_scanner.core.stats import ScanStats
from license_scanner.models.package import RepositoryFailure
from license_scanner.models.package import RepositoryResult
from license_scanner.models.repository import Repository
from license_scanner.services.aggregator import aggregate
from license_scanner.services.aggregator import Aggregation
from license_scanner.services.github_service import GitHubService
from license_scanner.services.ingest_service import IngestService
from license_scanner.services.license_resolver import LicenseResolver
from license_scanner.services.registry_service import RegistryService
from license_scanner.services.report_service import ReportRenderer

logger = structlog.get_logger('scan_service')

# Administrative repository holding org-wide community files, not a project
EXCLUDED_REPOSITORIES = frozenset({'.github'})


@dataclass
class ScanReport:
    markdown: str
    chat: str
    aggregation: Aggregation
    results: list[RepositoryResult] = field(default_factory=list)
    failures: list[RepositoryFailure] = field(default_factory=list)


class ScanService:
    """Run one organization-wide license scan."""

    def __init__(
        self,
        config: ScannerConfig,
        github: GitHubService | None = None,
        resolver: LicenseResolver | None = None,
        stats: ScanStats | None = None,
    ):
        self.config = config
        self.stats = stats or ScanStats()
        self.github = github or GitHubService(config.github)
        self.resolver = resolver or LicenseResolver(
            RegistryService(
                config.scan.registry_url,
                timeout=config.scan.registry_timeout,
                cache_name=config.scan.registry_cache,
            ),
            stats=self.stats,
        )
        self.renderer = ReportRenderer(config.github.repo_url)

    def list_repositories(self) -> list[Repository]:
        repositories = self.github.list_org_repositories(self.config.github.org_name)
        return [r for r in repositories if r.name not in EXCLUDED_REPOSITORIES]

    def ingest_all(
        self, repositories: list[Repository],
    ) -> tuple[list[RepositoryResult], list[RepositoryFailure]]:
        """
        Ingest every repository concurrently, returning results in listing order.

        With the abort policy the first IngestionError propagates and the
        remaining results are discarded.
        """
        workers = self.config.scan.max_workers
        policy = self.config.scan.failure_policy
        # Filled by listing index so the report order never depends on timing
        outcomes: list[RepositoryResult | RepositoryFailure | None] = [None] * len(repositories)

        with concurrent.futures.ThreadPoolExecutor(
            max_workers=workers, thread_name_prefix='package',
        ) as package_pool:
            ingestor = IngestService(
                self.github, self.resolver, package_pool, stats=self.stats,
            )
            with concurrent.futures.ThreadPoolExecutor(
                max_workers=workers, thread_name_prefix='repo',
            ) as repo_pool:
                futures = {
                    repo_pool.submit(ingestor.ingest, repository): idx
                    for idx, repository in enumerate(repositories)
                }
                for future in concurrent.futures.as_completed(futures):
                    idx = futures[future]
                    repository = repositories[idx]
                    try:
                        outcomes[idx] = future.result()
                    except IngestionError as e:
                        self.stats.inc_failed()
                        if policy == FailurePolicy.ABORT:
                            logger.error(
                                'Ingestion failed, aborting scan',
                                repo=repository.name, error=str(e),
                            )
                            for pending in futures:
                                pending.cancel()
                            raise
                        logger.warning(
                            'Ingestion failed, continuing',
                            repo=repository.name, error=str(e),
                        )
                        outcomes[idx] = RepositoryFailure(
                            repository.name, e.reason or str(e),
                        )

        results = [o for o in outcomes if isinstance(o, RepositoryResult)]
        failures = [o for o in outcomes if isinstance(o, RepositoryFailure)]
        return results, failures

    def run(self) -> ScanReport:
        self.github.authenticate()
        repositories = self.list_repositories()
        logger.info(
            'Scanning repositories',
            org=self.config.github.org_name,
            count=len(repositories),
            workers=self.config.scan.max_workers,
            on_error=str(self.config.scan.failure_policy),
        )

        results, failures = self.ingest_all(repositories)
        aggregation = aggregate(results, self.config.scan.blacklist)

        logger.info(
            'Scan complete',
            repositories=self.stats.repositories,
            failed=self.stats.failed,
            packages=self.stats.packages,
            registry_lookups=self.stats.registry_lookups,
            blacklisted=len(aggregation.blacklisted),
            missing=len(aggregation.missing),
            elapsed=f"{self.stats.elapsed_time:.3f}s",
        )
        return ScanReport(
            markdown=self.renderer.markdown_report(aggregation, failures),
            chat=self.renderer.chat_report(aggregation, failures),
            aggregation=aggregation,
            results=results,
            failures=failures,
        )
