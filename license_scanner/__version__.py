"""Version information for license-scanner."""
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version


def get_version() -> str:
    try:
        return version('license-scanner')
    except PackageNotFoundError:
        return '0.0.0-dev'


__version__ = get_version()
