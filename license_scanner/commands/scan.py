from pathlib import Path

import structlog
import typer

from license_scanner.core.config import FailurePolicy
from license_scanner.core.config import load_blacklist_file
from license_scanner.core.config import parse_blacklist
from license_scanner.core.config import ScannerConfig
from license_scanner.core.decorators import handle_errors
from license_scanner.services.notifier_service import NotifierService
from license_scanner.services.scan_service import ScanService

logger = structlog.get_logger('scan_command')
app = typer.Typer()


def build_config(
    app_id: str | None = None,
    private_key: str | None = None,
    private_key_file: Path | None = None,
    installation_id: str | None = None,
    org_url: str | None = None,
    blacklist: str | None = None,
    blacklist_file: Path | None = None,
    webhook_url: str | None = None,
    workers: int | None = None,
    on_error: FailurePolicy | None = None,
    env_file: Path | None = None,
) -> ScannerConfig:
    """Environment first, command line options on top, then validate."""
    config = ScannerConfig.load(env_file)
    gh = config.github

    if app_id:
        gh.app_id = app_id
    if private_key_file:
        gh.private_key = private_key_file.read_text(encoding='utf-8')
    elif private_key:
        gh.private_key = private_key
    if installation_id:
        gh.installation_id = installation_id
    if org_url:
        gh.org_url = org_url

    if blacklist_file:
        config.scan.blacklist = load_blacklist_file(blacklist_file)
    elif blacklist:
        config.scan.blacklist = parse_blacklist(blacklist)
    if workers is not None:
        config.scan.max_workers = workers
    if on_error is not None:
        config.scan.failure_policy = on_error
    if webhook_url:
        config.notifier.webhook_url = webhook_url

    return config.validate()


@app.callback(invoke_without_command=True)
@handle_errors
def main(
    app_id: str = typer.Option(None, help='GitHub App ID [env: GH_APP_ID]'),
    private_key: str = typer.Option(
        None, help='GitHub App private key (PEM) [env: GH_APP_PRIVATE_KEY]',
    ),
    private_key_file: Path = typer.Option(
        None, exists=True, dir_okay=False, help='Read the private key from a PEM file',
    ),
    installation_id: str = typer.Option(
        None, help='App installation ID [env: GH_ORG_INSTALLATION_ID]',
    ),
    org_url: str = typer.Option(
        None, help='Organization URL, e.g. https://github.com/acme [env: GH_ORG_URL]',
    ),
    blacklist: str = typer.Option(
        None, help='Comma separated blacklisted licenses [env: LICENSE_BLACKLIST]',
    ),
    blacklist_file: Path = typer.Option(
        None, exists=True, dir_okay=False, help='File with blacklisted licenses',
    ),
    webhook_url: str = typer.Option(
        None, help='Chat webhook for the summary [env: SLACK_WEBHOOK_URL]',
    ),
    workers: int = typer.Option(
        None, help='Concurrent repository and registry workers [env: SCANNER_MAX_WORKERS]',
    ),
    on_error: FailurePolicy = typer.Option(
        None, help='abort the scan or continue when an SBOM cannot be fetched',
    ),
    output: Path = typer.Option(
        None, '--output', '-o', help='Also write the Markdown report to this file',
    ),
    notify: bool = typer.Option(True, help='Send the chat message if a webhook is set'),
    env_file: Path = typer.Option(None, help='Load environment from this .env file'),
):
    """
    Scan every repository of the organization for blacklisted or unknown licenses.
    """
    config = build_config(
        app_id=app_id,
        private_key=private_key,
        private_key_file=private_key_file,
        installation_id=installation_id,
        org_url=org_url,
        blacklist=blacklist,
        blacklist_file=blacklist_file,
        webhook_url=webhook_url,
        workers=workers,
        on_error=on_error,
        env_file=env_file,
    )
    logger.debug('Loaded configuration', config=repr(config))

    report = ScanService(config).run()

    # Raw text: rich would rewrite :name: sequences (Maven coordinates) into emoji
    typer.echo(report.markdown)
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report.markdown + '\n', encoding='utf-8')
        logger.info('Report written', path=str(output))

    if notify:
        notifier = NotifierService(
            config.notifier.webhook_url, timeout=config.notifier.timeout,
        )
        notifier.send(report.chat)
