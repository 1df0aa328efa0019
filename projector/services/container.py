"""Dependency injection container for services."""

from dependency_injector import containers, providers

from projector.config import Settings
from projector.services.atomic_writer import AtomicWriter
from projector.services.payload_materializer import PayloadMaterializer
from projector.services.swap_strategy import select_swap_strategy


class ServiceContainer(containers.DeclarativeContainer):
    """Container for service dependency injection."""

    # Configuration providers
    config = providers.Dependency(instance_of=Settings)

    # Swap strategy - chosen once per process from configuration
    swap_strategy = providers.Singleton(
        select_swap_strategy,
        name=config.provided.swap_strategy,
    )

    # Payload materializer - stateless, shared by all writers
    payload_materializer = providers.Singleton(
        PayloadMaterializer,
        max_workers=config.provided.materialize_workers,
    )

    # AtomicWriter - Factory; callers pass target_dir per target directory
    atomic_writer = providers.Factory(
        AtomicWriter,
        swap_strategy=swap_strategy,
        materializer=payload_materializer,
        prune_orphans=config.provided.prune_orphans,
    )
