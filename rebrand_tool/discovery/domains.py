"""
Domain discovery on the remote host.

Several independent strategies each run one shell query and parse its
output into domain names. Every strategy is best-effort: its failure is
logged and contributes nothing. A reducer merges the outcomes into one
deduplicated list; if nothing was found, a raw listing of the domains
root is parsed as a last resort.
"""

import logging
import posixpath
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from rebrand_tool.core.exceptions import RebrandToolError
from rebrand_tool.models.config import AppConfig
from rebrand_tool.models.results import Domain
from rebrand_tool.utils.helpers import quote

logger = logging.getLogger("rebrand_tool.discovery.domains")

# (name, explicit path or None)
Candidate = Tuple[str, Optional[str]]


@dataclass
class StrategyOutcome:
    """Result of one discovery strategy: candidates or an error."""
    strategy: str
    candidates: List[Candidate] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class DiscoveryStrategy:
    """A shell query plus the parser for its stdout."""
    name: str
    command: str
    parse: Callable[[List[str]], List[Candidate]]


def _names_with_dot(lines: List[str]) -> List[Candidate]:
    return [(line, None) for line in lines if "." in line and " " not in line]


def build_strategies(config: AppConfig) -> List[DiscoveryStrategy]:
    """The five discovery strategies, in the order they are tried."""
    root = config.paths.domains_root
    web_root = config.paths.web_root_name
    panel = config.provisioning.control_panel_command
    home_web_root = posixpath.join(posixpath.dirname(root), web_root)
    home_re = re.compile(rf"^(/home/[^/]+/domains/([^/]+))/{re.escape(web_root)}/?$")

    def parse_directories(lines: List[str]) -> List[Candidate]:
        found = []
        for line in lines:
            if not line.startswith(root + "/"):
                continue
            name = line.rstrip("/").rsplit("/", 1)[-1]
            if name and name not in (".", ".."):
                found.append((name, line.rstrip("/")))
        return found

    def parse_home(lines: List[str]) -> List[Candidate]:
        found = []
        for line in lines:
            match = home_re.match(line)
            if match:
                found.append((match.group(2), match.group(1)))
        return found

    return [
        DiscoveryStrategy(
            "domain directories",
            f"find {quote(root)} -maxdepth 1 -type d -not -path {quote(root)}",
            parse_directories,
        ),
        DiscoveryStrategy(
            "apache vhosts",
            "grep -rh 'ServerName' /etc/apache2/sites-enabled/ 2>/dev/null | awk '{print $2}'",
            _names_with_dot,
        ),
        DiscoveryStrategy(
            "nginx vhosts",
            "grep -rh 'server_name' /etc/nginx/sites-enabled/ 2>/dev/null "
            "| sed 's/server_name//g' | sed 's/;//g' | tr -d ' '",
            _names_with_dot,
        ),
        DiscoveryStrategy(
            "control panel",
            f"{panel} list-domains --name-only 2>/dev/null || echo ''",
            _names_with_dot,
        ),
        DiscoveryStrategy(
            "home directories",
            f"find /home -name {quote(web_root)} -type d 2>/dev/null | grep -v {quote(home_web_root)}",
            parse_home,
        ),
    ]


def merge_outcomes(
    outcomes: Sequence[StrategyOutcome],
    default_path: Callable[[str], str]
) -> List[Domain]:
    """
    Merge strategy outcomes into a list of unique domains.

    Names keep first-seen order. An explicit path from any strategy wins
    over the conventional default; between explicit paths the first wins.
    Failed outcomes are logged and skipped.
    """
    names: List[str] = []
    paths: Dict[str, Optional[str]] = {}

    for outcome in outcomes:
        if not outcome.ok:
            logger.warning(f"Discovery strategy '{outcome.strategy}' failed: {outcome.error}")
            continue
        logger.debug(f"Strategy '{outcome.strategy}' found {len(outcome.candidates)} candidates")
        for name, path in outcome.candidates:
            if name not in paths:
                names.append(name)
                paths[name] = path
            elif paths[name] is None and path:
                paths[name] = path

    return [Domain(name=name, path=paths[name] or default_path(name)) for name in names]


def parse_ls_listing(lines: List[str]) -> List[str]:
    """Directory names from ``ls -la`` output (ninth column onward)."""
    names = []
    for line in lines:
        parts = line.split(None, 8)
        if len(parts) < 9 or not parts[0].startswith("d"):
            continue
        name = parts[8].strip()
        if name and name not in (".", ".."):
            names.append(name)
    return names


class DomainDiscovery:
    """Runs the discovery strategies over one command executor."""

    def __init__(self, executor, config: AppConfig):
        self.executor = executor
        self.config = config
        self.strategies = build_strategies(config)
        self.logger = logging.getLogger(f"rebrand_tool.discovery.{self.__class__.__name__}")

    def default_path(self, name: str) -> str:
        return posixpath.join(self.config.paths.domains_root, name)

    async def run_strategy(self, strategy: DiscoveryStrategy) -> StrategyOutcome:
        """Run one strategy; never raises."""
        try:
            result = await self.executor.run(strategy.command, label=f"Discovery: {strategy.name}")
        except RebrandToolError as e:
            return StrategyOutcome(strategy.name, error=e.message)
        if not result.ok:
            return StrategyOutcome(
                strategy.name,
                error=result.stderr.strip() or f"exit status {result.status.value}"
            )
        try:
            candidates = strategy.parse(result.lines())
        except ValueError as e:
            return StrategyOutcome(strategy.name, error=f"unparseable output: {e}")
        return StrategyOutcome(strategy.name, candidates=candidates)

    async def discover(self) -> List[Domain]:
        """
        Enumerate domains from every strategy.

        Returns:
            Deduplicated domains, sorted by name
        """
        outcomes = [await self.run_strategy(s) for s in self.strategies]
        domains = merge_outcomes(outcomes, self.default_path)

        if not domains:
            self.logger.debug("No domains found yet, trying directory listing fallback")
            domains = await self._listing_fallback()

        domains.sort(key=lambda d: d.name)
        self.logger.info(f"Found {len(domains)} domains")
        return domains

    async def _listing_fallback(self) -> List[Domain]:
        root = self.config.paths.domains_root
        try:
            result = await self.executor.run(
                f"ls -la {quote(root + '/')}",
                label="Listing domains with ls"
            )
        except RebrandToolError as e:
            self.logger.warning(f"Directory listing fallback failed: {e.message}")
            return []
        if not result.ok:
            self.logger.warning(f"Directory listing fallback failed: {result.stderr.strip()}")
            return []
        return [Domain(name=name, path=self.default_path(name)) for name in parse_ls_listing(result.lines())]
