"""
Deployment orchestrator.

One coroutine per user-facing operation. Each operation opens its own
remote session and closes it when done; no session is shared between
operations. Configuration is read from the injected configuration
service at call time, and the DNS backend is rebuilt when the ``dns``
section changes.
"""

import asyncio
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Union

from rebrand_tool.core.exceptions import ConfigurationError, RebrandToolError
from rebrand_tool.discovery.analyzer import DomainAnalyzer
from rebrand_tool.discovery.domains import DomainDiscovery
from rebrand_tool.dns.backends import DnsBackend, create_backend
from rebrand_tool.dns.service import DnsService, root_domain_or_default
from rebrand_tool.models.results import (
    DeploymentResult,
    DnsCreationResult,
    Domain,
    DomainStructureAnalysis,
    ProvisioningResult,
    RemoteEntry,
    TransferSummary,
)
from rebrand_tool.provisioning.service import ProvisioningService
from rebrand_tool.registry.modules import DEFAULT_REGISTRY, ModuleRegistry
from rebrand_tool.remote import connection
from rebrand_tool.remote.executor import CommandExecutor
from rebrand_tool.remote.files import RemoteFileOperations
from rebrand_tool.remote.session import RemoteSession, remote_session
from rebrand_tool.transfer.executor import TransferExecutor
from rebrand_tool.transfer.planner import TransferPlanner
from rebrand_tool.transfer.selection import SelectedItem, SelectionSet
from rebrand_tool.utils.helpers import extract_subdomain, join_remote


class DeploymentOrchestrator:
    """Entry point for every remote deployment operation."""

    def __init__(
        self,
        config_service,
        session_factory: Optional[Callable[..., RemoteSession]] = None,
        dns_backend: Optional[DnsBackend] = None,
        registry: ModuleRegistry = DEFAULT_REGISTRY
    ):
        self.config_service = config_service
        self.session_factory = session_factory
        self.registry = registry
        self._dns_backend_override = dns_backend
        self._dns_backend = dns_backend
        self._retired_backends: List[DnsBackend] = []
        self._cancel_event = asyncio.Event()
        self.logger = logging.getLogger(f"rebrand_tool.orchestrator.{self.__class__.__name__}")
        config_service.subscribe(self)

    @property
    def config(self):
        return self.config_service.config

    def on_config_changed(self, section: str) -> None:
        if section == "dns" and self._dns_backend_override is None:
            self.logger.debug("DNS configuration changed, backend will be rebuilt")
            if self._dns_backend is not None:
                # closed on the next DNS call or aclose(), inside a running loop
                self._retired_backends.append(self._dns_backend)
            self._dns_backend = None

    @property
    def dns_backend(self) -> DnsBackend:
        if self._dns_backend is None:
            self._dns_backend = create_backend(self.config.dns)
        return self._dns_backend

    async def _close_retired_backends(self) -> None:
        while self._retired_backends:
            backend = self._retired_backends.pop()
            try:
                await backend.aclose()
            except Exception as e:
                self.logger.warning(f"Error closing DNS backend {backend.name}: {e}")

    async def aclose(self) -> None:
        """
        Release the HTTP clients held by DNS backends this orchestrator built.

        An injected backend belongs to the caller and is left open. The
        backend is rebuilt on the next DNS call.
        """
        await self._close_retired_backends()
        if self._dns_backend is not None and self._dns_backend_override is None:
            backend, self._dns_backend = self._dns_backend, None
            await backend.aclose()

    def cancel(self) -> None:
        """Stop the running transfer or DNS batch before its next item."""
        self.logger.info("Cancellation requested")
        self._cancel_event.set()

    def _session(self, connect_timeout: Optional[float] = None):
        return remote_session(
            self.config.connection,
            connect_timeout=connect_timeout,
            factory=self.session_factory
        )

    def _executor(self, session) -> CommandExecutor:
        return CommandExecutor(
            session,
            timeout=self.config.connection.command_timeout,
            log_commands=self.config.settings.log_sftp_commands
        )

    def _files(self, session, executor: Optional[CommandExecutor] = None) -> RemoteFileOperations:
        return RemoteFileOperations(session, executor=executor, transfer_config=self.config.transfer)

    def web_root_for(self, domain: str) -> str:
        """Transfer target for ``domain`` below the destination root."""
        return join_remote(self.config.paths.local_destination, domain, self.config.paths.web_root_name)

    # Connection and file browsing

    async def test_connection(self) -> Dict[str, Any]:
        return await connection.test_connection(self.config, factory=self.session_factory)

    async def list_remote_directory(self, path: str = "") -> List[RemoteEntry]:
        """List ``path`` relative to the source base path."""
        target = join_remote(self.config.paths.base_path, path)
        async with self._session() as session:
            return await self._files(session).list_directory(target)

    async def list_destination_folders(self) -> List[Domain]:
        async with self._session() as session:
            return await connection.list_destination_folders(
                self._files(session), self.config.paths.local_destination
            )

    async def check_remote_file(self, path: str) -> bool:
        """Whether an absolute remote path exists."""
        async with self._session() as session:
            return await self._files(session).exists(path)

    async def copy_folder_contents(self, source: str, target: str) -> Dict[str, Any]:
        """Copy ``base_path/source`` into ``local_destination/target``."""
        src = join_remote(self.config.paths.base_path, source)
        dst = join_remote(self.config.paths.local_destination, target)
        async with self._session() as session:
            executor = self._executor(session)
            return await self._files(session, executor).copy_folder_contents(src, dst)

    async def download(self, path: str, local_path: Union[str, Path]) -> List[Path]:
        """
        Download a file or directory below the source base path.

        Returns:
            Local paths of the downloaded files

        Raises:
            NotFoundError: If the remote path does not exist
        """
        remote = join_remote(self.config.paths.base_path, path)
        async with self._session() as session:
            files = self._files(session)
            if await files.is_directory(remote):
                return await files.download_directory(remote, local_path)
            return [await files.download_file(remote, local_path)]

    # Domains

    async def list_domains(self) -> List[Domain]:
        async with self._session() as session:
            return await DomainDiscovery(self._executor(session), self.config).discover()

    async def analyze_domain(self, domain: str, path: Optional[str] = None) -> DomainStructureAnalysis:
        """
        Analyze the web root of ``domain``.

        Args:
            domain: Domain name
            path: Domain directory; defaults to the domains root convention
        """
        domain_path = path or join_remote(self.config.paths.domains_root, domain)
        web_root = join_remote(domain_path, self.config.paths.web_root_name)
        try:
            async with self._session() as session:
                analyzer = DomainAnalyzer(self._files(session), self.config.analyzer, self.registry)
                return await analyzer.analyze(domain, web_root)
        except RebrandToolError as e:
            self.logger.error(f"Error analyzing {domain}: {e.message}")
            return DomainStructureAnalysis(domain=domain, web_root=web_root, error=e.message)

    async def create_subdomain(
        self,
        subdomain: str,
        description: Optional[str] = None,
        php_mode: Optional[str] = None,
        php_version: Optional[str] = None
    ) -> ProvisioningResult:
        async with self._session() as session:
            service = ProvisioningService(self._executor(session), self.config)
            return await service.create_subdomain(
                subdomain, description=description, php_mode=php_mode, php_version=php_version
            )

    # DNS

    @property
    def root_domain(self) -> str:
        return root_domain_or_default(self.config.dns)

    async def get_root_domain(self) -> str:
        return self.root_domain

    def extract_subdomain(self, domain: str) -> str:
        return extract_subdomain(domain, self.root_domain)

    async def create_dns_records(self, subdomain: str) -> DnsCreationResult:
        """
        Create the standard record set for ``subdomain``.

        Configuration problems are returned in ``error``; no request is
        sent in that case.
        """
        self._cancel_event.clear()
        return await self._create_dns_records(subdomain)

    async def _create_dns_records(self, subdomain: str) -> DnsCreationResult:
        await self._close_retired_backends()
        dns_config = self.config.dns
        service = DnsService(dns_config, self.dns_backend, self._cancel_event)
        try:
            return await service.create_records(subdomain)
        except ConfigurationError as e:
            self.logger.error(f"Cannot create DNS records: {e.message}")
            return DnsCreationResult(
                subdomain=subdomain,
                root_domain=dns_config.root_domain,
                error=e.message
            )

    # Transfer

    async def transfer_items(
        self,
        items: Iterable[SelectedItem],
        target_path: str,
        selection: Optional[SelectionSet] = None,
        progress_callback=None
    ) -> TransferSummary:
        """
        Copy selected items into ``local_destination/target_path``.

        When a ``selection`` is given it is cleared after a fully or
        partially successful transfer.

        Raises:
            ConnectivityError: If no session can be opened
            TransferError: If the target root cannot be created
        """
        self._cancel_event.clear()
        return await self._transfer_items(list(items), target_path, selection, progress_callback)

    async def _transfer_items(
        self,
        items: List[SelectedItem],
        target_path: str,
        selection: Optional[SelectionSet],
        progress_callback
    ) -> TransferSummary:
        target_root = join_remote(self.config.paths.local_destination, target_path)
        plan = TransferPlanner(self.config.paths.base_path).plan(items, target_root)

        async with self._session() as session:
            executor = TransferExecutor(self._executor(session), self.config.transfer, self._cancel_event)
            if progress_callback:
                executor.set_progress_callback(progress_callback)
            summary = await executor.execute(plan, target_root)

        if summary.success and selection is not None:
            selection.clear()
        return summary

    async def deploy(
        self,
        domain: str,
        selection: SelectionSet,
        create_dns: bool = False
    ) -> DeploymentResult:
        """
        Transfer the selection to ``domain`` and optionally create DNS records.

        Transfer and DNS outcomes are reported independently; a transfer
        failure does not prevent DNS creation. A cancel during the
        transfer also skips every DNS record.
        """
        self._cancel_event.clear()
        target_path = join_remote(domain, self.config.paths.web_root_name)
        items = selection.items()
        self.logger.info(f"Deploying {len(items)} items to {domain}")

        if items:
            try:
                summary = await self._transfer_items(items, target_path, selection, None)
            except RebrandToolError as e:
                self.logger.error(f"Transfer to {domain} failed: {e.message}")
                summary = TransferSummary(target_root=self.web_root_for(domain), error=e.message)
        else:
            summary = TransferSummary(target_root=self.web_root_for(domain))

        dns_result = None
        if create_dns:
            subdomain = self.extract_subdomain(domain)
            if not subdomain:
                dns_result = DnsCreationResult(
                    subdomain="",
                    root_domain=self.root_domain,
                    error=f"Could not determine subdomain from {domain}"
                )
            else:
                dns_result = await self._create_dns_records(subdomain)

        return DeploymentResult(domain=domain, transfer=summary, dns=dns_result)
