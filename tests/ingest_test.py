import concurrent.futures
from unittest.mock import MagicMock

import pytest

from license_scanner.core.errors import IngestionError
from license_scanner.core.stats import ScanStats
from license_scanner.models.package import PackageFinding
from license_scanner.models.repository import Repository
from license_scanner.services.ingest_service import IngestService
from license_scanner.services.ingest_service import parse_sbom_packages
from license_scanner.services.license_resolver import LicenseResolver

SBOM = {
    'spdxVersion': 'SPDX-2.3',
    'packages': [
        {'name': 'com.github.acme/api', 'versionInfo': 'main', 'licenseConcluded': 'MIT'},
        {'name': 'left-pad', 'versionInfo': '1.0.0', 'licenseConcluded': 'MIT'},
        {'name': 'foo-lib', 'versionInfo': '2.1.0'},
        {'versionInfo': '0.0.1', 'licenseConcluded': 'MIT'},
        {'name': '', 'versionInfo': '0.0.1'},
        {'name': 'bar', 'versionInfo': '3.0.0', 'licenseConcluded': 'GPL-3.0'},
        {'name': 'dual', 'licenseConcluded': 'MIT OR Apache-2.0'},
    ],
}


@pytest.fixture
def registry():
    registry = MagicMock()
    registry.get_license.return_value = None
    return registry


@pytest.fixture
def github():
    github = MagicMock()
    github.get_sbom.return_value = SBOM
    return github


@pytest.fixture
def ingest_service(github, registry):
    stats = ScanStats()
    with concurrent.futures.ThreadPoolExecutor(max_workers=4) as executor:
        yield IngestService(
            github, LicenseResolver(registry, stats=stats), executor, stats=stats,
        )


def test_parse_sbom_packages_filters_root_and_nameless():
    names = [p.name for p in parse_sbom_packages(SBOM)]
    assert names == ['left-pad', 'foo-lib', 'bar', 'dual']


def test_parse_sbom_packages_without_packages():
    assert parse_sbom_packages({}) == []
    assert parse_sbom_packages({'packages': None}) == []


def test_parse_sbom_packages_skips_malformed_entries():
    sbom = {'packages': [{'name': ['not', 'a', 'string']}, {'name': 'ok', 'versionInfo': '1'}]}
    assert [p.name for p in parse_sbom_packages(sbom)] == ['ok']


def test_ingest_builds_findings_in_sbom_order(ingest_service, github):
    repository = Repository(name='api', owner='acme')
    result = ingest_service.ingest(repository)

    github.get_sbom.assert_called_once_with('acme', 'api')
    assert result.repo == 'api'
    assert result.packages == [
        PackageFinding('left-pad', '1.0.0', 'MIT'),
        PackageFinding('foo-lib', '2.1.0', 'Unknown'),
        PackageFinding('bar', '3.0.0', 'GPL-3.0'),
        PackageFinding('dual', 'Missing version data', 'MIT-OR-Apache-2.0'),
    ]


def test_ingest_only_queries_registry_without_declared_license(ingest_service, registry):
    ingest_service.ingest(Repository(name='api', owner='acme'))
    registry.get_license.assert_called_once_with('foo-lib', '2.1.0')


def test_ingest_uses_registry_license(ingest_service, registry):
    registry.get_license.return_value = 'BSD 3-Clause'
    result = ingest_service.ingest(Repository(name='api', owner='acme'))
    assert PackageFinding('foo-lib', '2.1.0', 'BSD-3-Clause') in result.packages


def test_ingest_updates_stats(ingest_service):
    ingest_service.ingest(Repository(name='api', owner='acme'))
    assert ingest_service.stats.repositories == 1
    assert ingest_service.stats.packages == 4
    assert ingest_service.stats.unknown == 1
    assert ingest_service.stats.registry_lookups == 1


def test_ingest_resolution_error_becomes_unknown(github):
    resolver = MagicMock()
    resolver.resolve.side_effect = RuntimeError('boom')
    with concurrent.futures.ThreadPoolExecutor(max_workers=2) as executor:
        service = IngestService(github, resolver, executor)
        result = service.ingest(Repository(name='api', owner='acme'))
    assert {finding.license for finding in result.packages} == {'Unknown'}


def test_ingest_propagates_sbom_failure(ingest_service, github):
    github.get_sbom.side_effect = IngestionError('api', '404 Not Found')
    with pytest.raises(IngestionError, match='api'):
        ingest_service.ingest(Repository(name='api', owner='acme'))
