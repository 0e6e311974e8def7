from collections import OrderedDict
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass
from dataclasses import field

from license_scanner.models.package import Occurrence
from license_scanner.models.package import RepositoryResult
from license_scanner.models.package import UNKNOWN_LICENSE


class AggregationMap:
    """
    package name -> license -> occurrences, in first-seen order.

    Each (name, license) pair exists once and collects every occurrence,
    duplicates included.
    """

    def __init__(self):
        self._packages: OrderedDict[str, OrderedDict[str, list[Occurrence]]] = OrderedDict()

    def add(self, name: str, license: str, occurrence: Occurrence) -> None:
        licenses = self._packages.setdefault(name, OrderedDict())
        licenses.setdefault(license, []).append(occurrence)

    def __iter__(self) -> Iterator[tuple[str, list[tuple[str, list[Occurrence]]]]]:
        for name, licenses in self._packages.items():
            yield name, list(licenses.items())

    def __len__(self) -> int:
        return len(self._packages)

    def __bool__(self) -> bool:
        return bool(self._packages)

    def __contains__(self, name: object) -> bool:
        return name in self._packages

    def get(self, name: str, license: str) -> list[Occurrence]:
        return list(self._packages.get(name, {}).get(license, []))

    def to_dict(self) -> dict[str, dict[str, list[dict[str, str]]]]:
        return {
            name: {
                license: [{'repo': o.repo, 'version': o.version} for o in occurrences]
                for license, occurrences in licenses.items()
            }
            for name, licenses in self._packages.items()
        }


@dataclass
class Aggregation:
    blacklisted: AggregationMap = field(default_factory=AggregationMap)
    missing: AggregationMap = field(default_factory=AggregationMap)

    @property
    def is_empty(self) -> bool:
        return not self.blacklisted and not self.missing


def aggregate(results: Iterable[RepositoryResult], blacklist: Iterable[str]) -> Aggregation:
    """Group every finding by package and license into the two report maps."""
    blacklisted = set(blacklist)
    aggregation = Aggregation()

    for result in results:
        for finding in result.packages:
            occurrence = Occurrence(repo=result.repo, version=finding.version)
            if finding.license == UNKNOWN_LICENSE:
                aggregation.missing.add(finding.name, finding.license, occurrence)
            if finding.license in blacklisted:
                aggregation.blacklisted.add(finding.name, finding.license, occurrence)

    return aggregation
