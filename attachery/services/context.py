"""
Attachment Context Module.

The explicit setup-time object shared by every attachment: configuration,
interpolation tokens, the external command runner, and the processor and
storage backend registries.

A context is configured once at startup and read-only afterwards.
"""

import logging
from typing import Callable, Dict, Optional, Type

from attachery.core.config import AttacheryConfig
from attachery.core.definition import AttachmentSpec
from attachery.core.errors import AttacheryError
from attachery.core.interpolation import Interpolations
from attachery.services.command_runner import CommandRunner
from attachery.services.processors import Processor, Thumbnail
from attachery.services.storage import FilesystemStorage, S3Storage, S3StoreConfig, Storage

logger = logging.getLogger(__name__)

DEFAULT_PROCESSORS: Dict[str, Type[Processor]] = {"thumbnail": Thumbnail}


class AttachmentContext:
    """
    Registry of everything attachments need besides their own definition.

    Attributes:
        config: Process-wide configuration.
        interpolations: Token registry used for paths and URLs.
        runner: Runner for external commands.
        processors: Processor classes keyed by name.
    """

    def __init__(
        self,
        config: Optional[AttacheryConfig] = None,
        interpolations: Optional[Interpolations] = None,
        runner: Optional[CommandRunner] = None,
    ) -> None:
        """
        Initialize the context.

        Args:
            config: Configuration; defaults to AttacheryConfig().
            interpolations: Token registry; defaults to the default tokens.
            runner: Command runner; defaults to one built from ``config``.
        """
        self.config = config or AttacheryConfig()
        self.interpolations = interpolations or Interpolations.with_defaults()
        self.runner = runner or CommandRunner(
            command_path=self.config.command_path,
            log_command=self.config.log_command,
            swallow_stderr=self.config.swallow_stderr,
            timeout=self.config.command_timeout,
        )
        self.processors: Dict[str, Type[Processor]] = dict(DEFAULT_PROCESSORS)
        self._storage_factories: Dict[str, Callable[[AttachmentSpec], Storage]] = {
            "filesystem": self._filesystem_storage,
            "s3": self._s3_storage,
        }
        self._frozen = False

    @classmethod
    def from_env(cls) -> "AttachmentContext":
        """Builds a context from ATTACHERY_* environment variables."""
        return cls(config=AttacheryConfig.from_env())

    def interpolates(self, token: str, resolver) -> None:
        """Registers a custom interpolation token."""
        self.interpolations.register(token, resolver)

    def register_processor(self, name: str, processor: Type[Processor]) -> None:
        self._ensure_writable()
        self.processors[name] = processor

    def register_storage(
        self, kind: str, factory: Callable[[AttachmentSpec], Storage]
    ) -> None:
        """
        Registers a storage backend.

        Args:
            kind: Name used in attachment definitions.
            factory: Callable building the backend for a definition.
        """
        self._ensure_writable()
        self._storage_factories[kind] = factory

    def freeze(self) -> None:
        """Ends setup: no further tokens, processors or backends may be added."""
        self._frozen = True
        self.interpolations.freeze()

    def _ensure_writable(self) -> None:
        if self._frozen:
            raise RuntimeError("AttachmentContext is frozen")

    def processor(self, name: str) -> Type[Processor]:
        """
        Returns the processor class registered as ``name``.

        Raises:
            AttacheryError: If no such processor is registered.
        """
        try:
            return self.processors[name]
        except KeyError:
            raise AttacheryError(f"Processor {name} was not found") from None

    def build_storage(self, spec: AttachmentSpec) -> Storage:
        """
        Builds the storage backend named by ``spec``.

        Raises:
            AttacheryError: If the backend kind is unknown.
        """
        kind = spec.storage or self.config.default_storage
        factory = self._storage_factories.get(kind)
        if factory is None:
            raise AttacheryError(f"Unknown storage backend {kind!r} for {spec.name}")
        return factory(spec)

    def _filesystem_storage(self, spec: AttachmentSpec) -> Storage:
        root = spec.storage_options.get("root") or self.config.root
        return FilesystemStorage(self.interpolations, spec, root=root)

    def _s3_storage(self, spec: AttachmentSpec) -> Storage:
        s3_config = S3StoreConfig.from_options(spec.storage_options, self.config)
        return S3Storage(
            self.interpolations,
            spec,
            s3_config=s3_config,
            client=spec.storage_options.get("client"),
        )
