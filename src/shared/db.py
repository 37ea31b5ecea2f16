"""Schema management for relational providers (sqlite / postgresql)."""

from protean.domain import Domain
from sqlalchemy import create_engine

RELATIONAL_PROVIDERS = ("sqlite", "postgresql")


def _relational_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in RELATIONAL_PROVIDERS:
            yield provider


def setup_db(domain: Domain):
    """Create tables for every aggregate, entity and projection of ``domain``."""
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Touching ``_dao`` registers each model's table with SQLAlchemy metadata.
            for registry in (
                domain.registry.aggregates,
                domain.registry.entities,
                domain.registry.projections,
            ):
                for _, record in registry.items():
                    if record.cls.meta_.provider == provider.name:
                        domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop every table ``setup_db`` created."""
    with domain.domain_context():
        for provider in _relational_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
