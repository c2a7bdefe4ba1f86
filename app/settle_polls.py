from sqlalchemy.orm import Session

from app.core.config import get_settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal, init_db
from app.services.poll_settlement_service import PollSettlementService


def settle_polls(limit: int = 200) -> dict:
    settings = get_settings()
    configure_logging(settings)
    init_db()

    db: Session = SessionLocal()
    try:
        return PollSettlementService(settings).settle_closed_polls(db, limit=limit)
    finally:
        db.close()


def main() -> None:
    settle_polls()


if __name__ == "__main__":
    main()
