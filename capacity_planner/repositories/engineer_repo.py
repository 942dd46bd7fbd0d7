import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from capacity_planner.models.orm.engineer import EngineerORM, Seniority
from capacity_planner.models.schemas.engineer import EngineerCreateModel

logger = logging.getLogger(__name__)


class EngineerRepository:
    def __init__(self, db: Session):
        """Initializes the repository with a database session."""
        self.db = db

    def create_engineer(self, engineer_data: EngineerCreateModel) -> EngineerORM:
        db_engineer = EngineerORM(
            engineer_id=str(uuid.uuid4()),
            **engineer_data.model_dump(),
        )
        try:
            self.db.add(db_engineer)
            self.db.commit()
            self.db.refresh(db_engineer)
            return db_engineer

        except IntegrityError as e:
            self.db.rollback()
            raise ValueError(f"Engineer with email {engineer_data.email} already exists: {str(e).splitlines()[0]}")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error creating engineer")
            raise RuntimeError(f"A database error occurred during engineer creation: {e}")

    def get_engineer(self, engineer_id: str) -> Optional[EngineerORM]:
        return self.db.get(EngineerORM, engineer_id)

    def lock_engineer(self, engineer_id: str) -> Optional[EngineerORM]:
        """
        Loads the engineer with a row lock (SELECT ... FOR UPDATE) held until the
        current transaction ends. Capacity checks and the write that follows them
        run under this lock, so concurrent writers for the same engineer queue up.
        SQLite ignores FOR UPDATE and runs the reads outside a write transaction,
        so there only the in-process EngineerLockRegistry keeps writers apart.
        """
        stmt = (
            select(EngineerORM)
            .where(EngineerORM.engineer_id == engineer_id)
            .with_for_update()
        )
        return self.db.scalars(stmt).one_or_none()

    def list_engineers(
        self,
        skills: Optional[list[str]] = None,
        seniority: Optional[Seniority] = None,
    ) -> list[EngineerORM]:
        """
        Engineers sorted by name. With `skills`, only those having at least
        one of them are returned.
        """
        stmt = select(EngineerORM)

        if seniority is not None:
            stmt = stmt.where(EngineerORM.seniority == seniority)

        stmt = stmt.order_by(EngineerORM.name)
        engineers = list(self.db.scalars(stmt).all())

        # skills is a JSON list; matching in Python keeps this portable across dialects
        if skills:
            wanted = set(skills)
            engineers = [e for e in engineers if wanted.intersection(e.skills or [])]

        return engineers

    def update_engineer(self, db_engineer: EngineerORM, changes: dict) -> EngineerORM:
        try:
            for field_name, value in changes.items():
                setattr(db_engineer, field_name, value)
            self.db.commit()
            self.db.refresh(db_engineer)
            return db_engineer

        except IntegrityError as e:
            self.db.rollback()
            raise ValueError(f"Database integrity error: {str(e).splitlines()[0]}")

        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception("Database error updating engineer %s", db_engineer.engineer_id)
            raise RuntimeError(f"A database error occurred during engineer update: {e}")
