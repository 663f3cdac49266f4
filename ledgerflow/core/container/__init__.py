"""Dependency injection container.

Usage:
    # Initialize at startup (once, from main.py, the Temporal worker or the consumer)
    from ledgerflow.core.config import settings
    from ledgerflow.core.container import initialize_container
    initialize_container(settings)

    # Then, outside domain code
    from ledgerflow.core import container as container_mod
    await container_mod.container.orchestrator.run()

Domains never import the container; they receive dependencies through
their constructors.
"""

from typing import TYPE_CHECKING

from ledgerflow.core.container.container import Container
from ledgerflow.core.container.factory import create_container

if TYPE_CHECKING:
    from ledgerflow.core.config import Settings

__all__ = ["Container", "create_container", "container", "initialize_container"]


container: Container | None = None
"""Global container instance, set by ``initialize_container()``."""


def initialize_container(settings: "Settings") -> None:
    """Initialize the global container. Call once at startup.

    Raises:
        RuntimeError: If the container is already initialized
    """
    global container

    if container is not None:
        raise RuntimeError(
            "Container already initialized. "
            "initialize_container() should only be called once at startup."
        )

    container = create_container(settings)


def reset_container() -> None:
    """Reset the global container to None. For testing only."""
    global container
    container = None
