from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from license_scanner.__main__ import app
from license_scanner.core.config import FailurePolicy
from license_scanner.core.errors import IngestionError
from license_scanner.services.aggregator import Aggregation
from license_scanner.services.scan_service import ScanReport

runner = CliRunner()

ENV = {
    'GH_APP_ID': '42',
    'GH_APP_PRIVATE_KEY': 'pem',
    'GH_ORG_INSTALLATION_ID': '7',
    'GH_ORG_URL': 'https://github.com/acme',
    'LICENSE_BLACKLIST': 'GPL-3.0',
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in list(ENV) + ['SLACK_WEBHOOK_URL', 'SCANNER_MAX_WORKERS', 'SCANNER_ON_ERROR']:
        monkeypatch.delenv(name, raising=False)


def make_report():
    return ScanReport(
        markdown='```license-scanner``` has detected dependency licensing issues:',
        chat='*License Blacklist Scanner Results*',
        aggregation=Aggregation(),
    )


@patch('license_scanner.commands.scan.NotifierService')
@patch('license_scanner.commands.scan.ScanService')
def test_scan_prints_report(mock_scan_service, mock_notifier):
    mock_scan_service.return_value.run.return_value = make_report()

    result = runner.invoke(app, ['scan'], env=ENV)

    assert result.exit_code == 0, result.output
    assert 'has detected dependency licensing issues' in result.output
    config = mock_scan_service.call_args.args[0]
    assert config.scan.blacklist == ('GPL-3.0',)
    assert config.github.org_name == 'acme'
    mock_notifier.return_value.send.assert_called_once_with(
        '*License Blacklist Scanner Results*',
    )


@patch('license_scanner.commands.scan.NotifierService')
@patch('license_scanner.commands.scan.ScanService')
def test_scan_options_override_environment(mock_scan_service, mock_notifier, tmp_path):
    mock_scan_service.return_value.run.return_value = make_report()
    blacklist_file = tmp_path / 'blacklist.txt'
    blacklist_file.write_text('AGPL-3.0\nSSPL-1.0\n')
    output = tmp_path / 'out' / 'report.md'

    result = runner.invoke(
        app, [
            'scan',
            '--blacklist-file', str(blacklist_file),
            '--org-url', 'https://github.com/other',
            '--workers', '2',
            '--on-error', 'continue',
            '--output', str(output),
            '--no-notify',
        ],
        env=ENV,
    )

    assert result.exit_code == 0, result.output
    config = mock_scan_service.call_args.args[0]
    assert config.scan.blacklist == ('AGPL-3.0', 'SSPL-1.0')
    assert config.github.org_name == 'other'
    assert config.scan.max_workers == 2
    assert config.scan.failure_policy == FailurePolicy.CONTINUE
    assert output.read_text().startswith('```license-scanner```')
    mock_notifier.assert_not_called()


@patch('license_scanner.commands.scan.ScanService')
def test_scan_missing_blacklist_fails_before_network(mock_scan_service):
    env = {k: v for k, v in ENV.items() if k != 'LICENSE_BLACKLIST'}
    result = runner.invoke(app, ['scan'], env=env)

    assert result.exit_code == 1
    assert 'no blacklist provided' in result.output
    mock_scan_service.assert_not_called()


@patch('license_scanner.commands.scan.ScanService')
def test_scan_missing_credentials(mock_scan_service):
    env = {k: v for k, v in ENV.items() if k != 'GH_APP_ID'}
    result = runner.invoke(app, ['scan'], env=env)

    assert result.exit_code == 1
    assert 'missing credentials' in result.output
    mock_scan_service.assert_not_called()


@patch('license_scanner.commands.scan.NotifierService')
@patch('license_scanner.commands.scan.ScanService')
def test_scan_ingestion_error_exits_non_zero(mock_scan_service, mock_notifier):
    mock_scan_service.return_value.run.side_effect = IngestionError('api', '404')
    result = runner.invoke(app, ['scan'], env=ENV)

    assert result.exit_code == 1
    assert 'failed to retrieve SBOM for repo api' in result.output
    mock_notifier.assert_not_called()


def test_version():
    result = runner.invoke(app, ['--version'])
    assert result.exit_code == 0


@patch('license_scanner.commands.scan.NotifierService')
@patch('license_scanner.commands.scan.ScanService')
def test_scan_prints_report_verbatim(mock_scan_service, mock_notifier):
    report = make_report()
    report.markdown = '| ```org.acme:rocket:core``` | GPL-3.0 | x |'
    mock_scan_service.return_value.run.return_value = report

    result = runner.invoke(app, ['scan', '--no-notify'], env=ENV)

    assert result.exit_code == 0, result.output
    assert report.markdown + '\n' in result.stdout
