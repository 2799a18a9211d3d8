from logging.config import fileConfig

from alembic import context
from sqlalchemy import engine_from_config, pool

# settings loads .env on import
from app.core.config import settings
from app.db.model_registry import metadata  # imports every model module

config = context.config
if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = metadata


def _get_url() -> str:
    """``alembic -x url=...`` wins over DATABASE_URL / settings."""
    url = context.get_x_argument(as_dictionary=True).get("url") or settings.database_url
    if not url:
        raise RuntimeError("No database URL: set DATABASE_URL or pass -x url=...")
    return url


def _configure(**kwargs) -> None:
    url = kwargs.pop("url", None) or _get_url()
    context.configure(
        url=url if "connection" not in kwargs else None,
        target_metadata=target_metadata,
        compare_type=True,
        # SQLite cannot ALTER most constraints in place
        render_as_batch=url.startswith("sqlite"),
        **kwargs,
    )


def run_migrations_offline():
    _configure(literal_binds=True, dialect_opts={"paramstyle": "named"})
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    url = _get_url()
    connectable = engine_from_config({"url": url}, prefix="", poolclass=pool.NullPool)
    with connectable.connect() as connection:
        _configure(url=url, connection=connection)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
