from sqlalchemy import inspect, text
from clubchat.db.session import engine, Base
from clubchat.utils.logger import get_logger, setup_logging

# Import all models before create_all
from clubchat.models import user, follow, golf_club, thread, message, notification

logger = get_logger("init_db")


def create_missing_tables():
    logger.info("Creating missing tables...")
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("Tables created successfully (if missing).")
    except Exception:
        logger.exception("Error creating tables")
        raise


def add_missing_columns():
    inspector = inspect(engine)
    existing_tables = inspector.get_table_names()
    with engine.connect() as conn:
        for table_name, model_table in Base.metadata.tables.items():
            if table_name not in existing_tables:
                logger.warning("Table %s not found in DB, creating it...", table_name)
                model_table.create(bind=engine, checkfirst=True)
                continue

            existing_cols = [col["name"] for col in inspector.get_columns(table_name)]
            for col_name, col in model_table.columns.items():
                if col_name in existing_cols:
                    continue
                sql = f'ALTER TABLE "{table_name}" ADD COLUMN "{col_name}" {col.type.compile(engine.dialect)}'
                logger.info("Adding column %s.%s", table_name, col_name)
                try:
                    conn.execute(text(sql))
                    conn.commit()
                except Exception:
                    conn.rollback()
                    logger.exception("Error adding column %s.%s", table_name, col_name)


if __name__ == "__main__":
    setup_logging()
    logger.info("Syncing database...")
    create_missing_tables()
    add_missing_columns()
    logger.info("Database sync complete.")
