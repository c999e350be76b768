import asyncio
from logging.config import fileConfig

from alembic import context
from sqlalchemy import Connection, Inspector, inspect
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.sql.ddl import CreateSchema

from assetgate.core.config import settings
from assetgate.core.db import meta
from assetgate.models import *  # noqa: F403

config = context.config

if config.config_file_name is not None:
    fileConfig(config.config_file_name)

# Every model registers its table on this metadata
target_metadata = meta


def include_name(name, type_, parent_names):
    """
    Keep autogenerate inside the application schema.
    :param name: The name of the database object (e.g., table, schema).
    :param type_: The type of the database object (e.g., "table", "schema").
    :param parent_names: Names of the enclosing objects.
    :return: True if the object should be included, False otherwise.
    """
    if type_ == "schema":
        return name == settings.postgres_db_schema

    return True


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting to the database."""
    context.configure(
        url=settings.db_url.human_repr(),
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        include_schemas=True,
        version_table_schema=settings.postgres_db_schema,
    )

    with context.begin_transaction():
        context.run_migrations()


def do_run_migrations(connection: Connection) -> None:
    """
    Create the application schema when missing, then run the migrations.

    :param connection: connection to the database.
    """
    context.configure(
        connection=connection,
        target_metadata=target_metadata,
        include_name=include_name,
        include_schemas=True,
        version_table_schema=settings.postgres_db_schema,
    )
    inspector: Inspector = inspect(connection)

    if not inspector.has_schema(schema_name=settings.postgres_db_schema):
        connection.execute(CreateSchema(settings.postgres_db_schema))
        connection.commit()

    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    connectable = create_async_engine(settings.db_url.human_repr())

    async with connectable.connect() as connection:
        await connection.run_sync(do_run_migrations)

    await connectable.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
