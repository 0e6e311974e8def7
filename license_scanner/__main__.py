import typer

from license_scanner.__version__ import __version__
from license_scanner.commands import scan
from license_scanner.core.logging import setup_logging

app = typer.Typer(
    help='license-scanner: audit the dependency licenses of a GitHub organization.',
    no_args_is_help=True,
    pretty_exceptions_show_locals=False,
)

app.add_typer(scan.app, name='scan')


def version_callback(value: bool):
    if value:
        typer.echo(__version__)
        raise typer.Exit()


@app.callback()
def main(
    debug: bool = typer.Option(False, '--debug', help='Enable debug logging'),
    version: bool = typer.Option(
        False, '--version', callback=version_callback, is_eager=True,
        help='Show the version and exit',
    ),
):
    """
    license-scanner CLI.
    """
    level = 'DEBUG' if debug else 'INFO'
    setup_logging(level=level)


if __name__ == '__main__':
    app()
