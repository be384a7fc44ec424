import logging
from os import getenv

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from models.base_model import Base
# imported so their tables are registered on Base.metadata before create_all
from models.user import User  # noqa: F401
from models.refresh_token import RefreshToken  # noqa: F401

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///credentials.db"


class DBStorage:
    __engine = None
    __session = None

    def __init__(self, database_url=None, schema_name="public", echo=False):
        """Initialize engine for the given URL (DATABASE_URL env var otherwise)"""
        url = database_url or getenv("DATABASE_URL", DEFAULT_DATABASE_URL)
        options = {"echo": echo}

        if url.startswith("sqlite"):
            options["connect_args"] = {"check_same_thread": False}
            if url in ("sqlite://", "sqlite:///:memory:"):
                # one shared connection, otherwise every checkout sees an empty database
                options["poolclass"] = StaticPool
        else:
            options["pool_pre_ping"] = True

        self.__engine = create_engine(url, **options)

        if self.__engine.url.get_backend_name() == "sqlite":
            # Enable SQLite foreign keys (needed for ON DELETE CASCADE)
            @event.listens_for(self.__engine, "connect")
            def _set_sqlite_pragma(dbapi_connection, connection_record):
                cursor = dbapi_connection.cursor()
                cursor.execute("PRAGMA foreign_keys=ON")
                cursor.close()

        if schema_name and schema_name.lower() != "public":
            # tables are declared schema-less; route them to the configured schema
            self.__engine = self.__engine.execution_options(
                schema_translate_map={None: schema_name.lower()}
            )
        logger.debug("Credential store engine ready (%s)", self.__engine.url.get_backend_name())

    def reload(self):
        """Create tables and start session"""
        Base.metadata.create_all(self.__engine)
        session_factory = sessionmaker(bind=self.__engine, expire_on_commit=False)
        Session = scoped_session(session_factory)
        self.__session = Session

    def new(self, obj):
        """Add object to session"""
        self.__session.add(obj)

    def save(self):
        """Commit session"""
        try:
            self.__session.commit()
        except SQLAlchemyError:
            self.__session.rollback()
            raise

    def count(self, cls):
        """Count objects"""
        return self.__session.query(cls).count()

    def close(self):
        """Remove session (for API teardown)"""
        if self.__session is not None:
            self.__session.remove()

    def dispose(self):
        self.close()
        self.__engine.dispose()

    # expose the SQLAlchemy session for advanced querying (joins, filters, etc.)
    def get_session(self):
        return self.__session
