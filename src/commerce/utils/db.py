"""Schema management for RDBMS-backed providers.

The memory provider needs no schema. For SQLite and PostgreSQL providers the
tables for aggregates, entities and projections are created from the models
Protean derives for them.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_RDBMS_PROVIDERS = ("sqlite", "postgresql")


def _load_models(domain: Domain, provider_name: str) -> None:
    # Touching a repository's DAO registers the element's model with SQLAlchemy
    for registry_section in (
        domain.registry.aggregates,
        domain.registry.entities,
        domain.registry.projections,
    ):
        for _, record in registry_section.items():
            if record.cls.meta_.provider == provider_name:
                domain.repository_for(record.cls)._dao  # noqa: B018


def setup_db(domain: Domain) -> None:
    """Create tables for every RDBMS provider of the domain."""
    with domain.domain_context():
        for name, provider in domain.providers.items():
            if provider.conn_info["provider"] in _RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                _load_models(domain, name)
                provider._metadata.create_all(engine)


def drop_db(domain: Domain) -> None:
    """Drop tables for every RDBMS provider of the domain."""
    with domain.domain_context():
        for _, provider in domain.providers.items():
            if provider.conn_info["provider"] in _RDBMS_PROVIDERS:
                engine = create_engine(provider.conn_info["database_uri"])
                provider._metadata.drop_all(engine)
