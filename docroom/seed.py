"""Reset the database to a small sample data set.

Usage: ``docroom-seed`` (reads ``DATABASE_URL`` like the API does).
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import delete
from sqlalchemy.orm import Session

from .database import Base, build_engine, build_session_factory
from .logging_config import configure_logging
from .models import Document, Folder

logger = logging.getLogger(__name__)

SEED_USER = "John Green"
PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def seed(db: Session) -> None:
    logger.info("Cleaning up existing data...")
    db.execute(delete(Document))
    db.execute(delete(Folder))

    logger.info("Inserting sample folders and documents...")
    appointments = Folder(name="Appointment resolutions", created_by=SEED_USER)
    policies = Folder(name="Policy approvals", created_by=SEED_USER)
    db.add_all([appointments, policies])
    db.flush()

    seeded_at = datetime(2024, 4, 12, tzinfo=timezone.utc)
    db.add_all(
        [
            Document(
                name="2025_01_15_Director_Appointment_Resolution.pdf",
                type=PDF,
                size=1024,
                folder_id=appointments.id,
                created_by=SEED_USER,
                created_at=seeded_at,
                updated_at=seeded_at,
            ),
            Document(
                name="2024_12_10_Dividend_Declaration_Resolution.docx",
                type=DOCX,
                size=1024,
                created_by=SEED_USER,
                created_at=seeded_at,
                updated_at=seeded_at,
            ),
            Document(
                name="2023_08_06_Investment_Policy_Approval.pdf",
                type=PDF,
                size=1024,
                folder_id=policies.id,
                created_by=SEED_USER,
                created_at=seeded_at,
                updated_at=seeded_at,
            ),
        ]
    )
    db.commit()
    logger.info("Seed completed successfully")


def main() -> None:
    configure_logging()
    engine = build_engine()
    Base.metadata.create_all(bind=engine)
    session_factory = build_session_factory(engine)
    with session_factory() as db:
        try:
            seed(db)
        except Exception:
            logger.exception("Seed failed")
            db.rollback()
            raise
    engine.dispose()


if __name__ == "__main__":
    main()
