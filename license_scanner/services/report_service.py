"""Render aggregated findings as a Markdown document and a chat message."""
from collections.abc import Callable
from collections.abc import Sequence
from enum import Enum

from license_scanner.models.package import Occurrence
from license_scanner.models.package import RepositoryFailure
from license_scanner.services.aggregator import Aggregation
from license_scanner.services.aggregator import AggregationMap

MARKDOWN_BANNER = '```license-scanner``` has detected dependency licensing issues:'
CHAT_BANNER = '*License Blacklist Scanner Results*'
TRAILER = 'Please remove these dependencies.'
FAILED_TITLE = 'Repositories that could not be scanned'


def _escape_cell(text: str) -> str:
    return text.replace('|', '\\|').replace('\n', ' ')


class ReportCategory(str, Enum):
    BLACKLISTED = 'blacklisted'
    MISSING = 'missing'

    def __str__(self) -> str:
        return self.value


class ReportRenderer:
    """
    Both renderings walk the maps in the same order: packages in first-seen
    order, then licenses in first-seen order, one row per license. The
    package name is only printed on its first row.
    """

    def __init__(self, repo_url: Callable[[str], str]):
        self.repo_url = repo_url

    # -- Markdown --

    def _markdown_link(self, occurrence: Occurrence) -> str:
        return (
            f"[```{occurrence.repo}```]({self.repo_url(occurrence.repo)})"
            f" @ {occurrence.version}"
        )

    def markdown_section(self, packages: AggregationMap, category: ReportCategory) -> str:
        rows = []
        for name, licenses in packages:
            for idx, (license, occurrences) in enumerate(licenses):
                links = ','.join(self._markdown_link(o) for o in occurrences)
                if idx < 1:
                    rows.append(f"| ```{name}``` | {license} | {links} |")
                else:
                    rows.append(f"| | {license} | {links} |")

        return (
            f"### Dependencies with {category} licenses\n"
            '| Package Name | License | Repositories Affected |\n'
            '| --- | --- | --- |\n'
            + '\n'.join(rows)
            + f"\n\n{TRAILER}"
        )

    def markdown_failures(self, failures: Sequence[RepositoryFailure]) -> str:
        rows = [
            f"| [```{f.repo}```]({self.repo_url(f.repo)}) | {_escape_cell(f.error)} |"
            for f in failures
        ]
        return (
            f"### {FAILED_TITLE}\n"
            '| Repository | Error |\n'
            '| --- | --- |\n'
            + '\n'.join(rows)
        )

    def markdown_report(
        self,
        aggregation: Aggregation,
        failures: Sequence[RepositoryFailure] = (),
    ) -> str:
        components = [MARKDOWN_BANNER]
        if aggregation.blacklisted:
            components.append(
                self.markdown_section(aggregation.blacklisted, ReportCategory.BLACKLISTED),
            )
        if aggregation.missing:
            components.append(
                self.markdown_section(aggregation.missing, ReportCategory.MISSING),
            )
        if failures:
            components.append(self.markdown_failures(failures))
        return '\n\n'.join(components)

    # -- Chat (Slack mrkdwn) --

    def _chat_link(self, occurrence: Occurrence) -> str:
        return (
            f"`{occurrence.repo}` (<{self.repo_url(occurrence.repo)}|link>)"
            f" @ {occurrence.version}"
        )

    def chat_section(self, packages: AggregationMap, category: ReportCategory) -> str:
        blocks = []
        for name, licenses in packages:
            lines = []
            for idx, (license, occurrences) in enumerate(licenses):
                links = ','.join(self._chat_link(o) for o in occurrences)
                if idx < 1:
                    lines.append(f"*{name} - {license}*\n - {links}")
                else:
                    lines.append(f"- {links}")
            blocks.append('\n'.join(lines))

        return (
            f"Dependencies with {category} licenses:\n\n"
            + '\n\n'.join(blocks)
            + f"\n\n{TRAILER}"
        )

    def chat_failures(self, failures: Sequence[RepositoryFailure]) -> str:
        lines = [
            f"- `{f.repo}` (<{self.repo_url(f.repo)}|link>): {f.error}"
            for f in failures
        ]
        return f"{FAILED_TITLE}:\n\n" + '\n'.join(lines)

    def chat_report(
        self,
        aggregation: Aggregation,
        failures: Sequence[RepositoryFailure] = (),
    ) -> str:
        components = [CHAT_BANNER]
        if aggregation.blacklisted:
            components.append(
                self.chat_section(aggregation.blacklisted, ReportCategory.BLACKLISTED),
            )
        if aggregation.missing:
            components.append(
                self.chat_section(aggregation.missing, ReportCategory.MISSING),
            )
        if failures:
            components.append(self.chat_failures(failures))
        return '\n\n'.join(components)
