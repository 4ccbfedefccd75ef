"""
Migration runner for the user, upload and payment tables.

The URL comes from the caller (app startup sets sqlalchemy.url) or, for the
alembic CLI, from DATABASE_URL in the environment or .env.
"""
import os
import sys
from logging.config import fileConfig
from pathlib import Path

from alembic import context
from sqlalchemy import create_engine, pool

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from dotenv import load_dotenv

load_dotenv()

from app.db.base import Base
from app.db.session import normalize_database_url
import app.models  # noqa: F401

config = context.config

# App startup has its own logging setup and passes configure_logger=False
if config.config_file_name and config.attributes.get("configure_logger", True):
    fileConfig(config.config_file_name, disable_existing_loggers=False)

database_url = normalize_database_url(
    os.getenv("DATABASE_URL") or config.get_main_option("sqlalchemy.url")
)

if context.is_offline_mode():
    context.configure(url=database_url, target_metadata=Base.metadata, literal_binds=True)
    with context.begin_transaction():
        context.run_migrations()
else:
    engine = create_engine(database_url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, target_metadata=Base.metadata)
        with context.begin_transaction():
            context.run_migrations()
    engine.dispose()
