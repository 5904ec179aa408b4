from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from transaction_core.infrastructure.schema import metadata


class Database:
    def __init__(self, database_url: str, echo: bool = False) -> None:
        self.engine = create_engine(
            database_url,
            echo=echo,
            pool_pre_ping=True,
        )
        self.session_factory = sessionmaker(
            self.engine,
            class_=Session,
            expire_on_commit=False,
            autoflush=False,
        )

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    @contextmanager
    def session(self) -> Generator[Session, None, None]:
        with self.session_factory() as session:
            try:
                yield session
            except Exception:
                session.rollback()
                raise

    def close(self) -> None:
        self.engine.dispose()
