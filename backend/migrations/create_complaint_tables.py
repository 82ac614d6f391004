"""
Migration: Create complaints and sync_runs tables.

complaints holds one row per (portal, complaint reference). The natural_key
column stores lower(trim(portal)) :: lower(trim(reference)) so the unique
index matches the reconciliation engine's notion of identity.

Timestamps are stored as naive UTC.
"""
from sqlalchemy import create_engine, text
import os

# Use same DB URL pattern as main app
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('USER', 'postgres')}@localhost:5432/complaint_tracker"
)


def run_migration():
    """Create complaint tables if they don't exist, then backfill natural_key."""
    engine = create_engine(DATABASE_URL)

    with engine.connect() as conn:
        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS complaints (
                id VARCHAR(64) PRIMARY KEY,
                complaint_id VARCHAR(255) NOT NULL,
                complaint_name VARCHAR(500) DEFAULT '',
                portal_name VARCHAR(255) NOT NULL,
                natural_key VARCHAR(520),
                category VARCHAR(32) NOT NULL DEFAULT 'Other',
                description TEXT NOT NULL DEFAULT '',
                date_lodged DATE NOT NULL,
                status VARCHAR(32) NOT NULL,
                department VARCHAR(255) NOT NULL DEFAULT '',
                office_email VARCHAR(255) DEFAULT '',
                office_phone VARCHAR(64) DEFAULT '',
                expected_response_date DATE,
                documents JSON NOT NULL DEFAULT '[]',
                notes TEXT NOT NULL DEFAULT '',
                section_data JSON,
                last_updated TIMESTAMP NOT NULL,
                resolved_at TIMESTAMP,
                created_at TIMESTAMP DEFAULT (now() AT TIME ZONE 'utc')
            )
        """))
        print("complaints table ready")

        # Tables created before natural_key existed
        result = conn.execute(text("""
            SELECT column_name
            FROM information_schema.columns
            WHERE table_name = 'complaints' AND column_name = 'natural_key'
        """))
        if not result.fetchone():
            conn.execute(text("ALTER TABLE complaints ADD COLUMN natural_key VARCHAR(520)"))
            print("Added natural_key column to complaints table")

        result = conn.execute(text("""
            UPDATE complaints
            SET natural_key = lower(trim(portal_name)) || '::' || lower(trim(complaint_id))
            WHERE natural_key IS NULL
        """))
        print(f"Backfilled natural_key on {result.rowcount} complaints")

        conn.execute(text("""
            CREATE UNIQUE INDEX IF NOT EXISTS ix_complaints_natural_key
            ON complaints (natural_key)
        """))
        conn.execute(text("""
            ALTER TABLE complaints ALTER COLUMN natural_key SET NOT NULL
        """))
        print("natural_key is unique and required")

        conn.execute(text("""
            CREATE TABLE IF NOT EXISTS sync_runs (
                id BIGSERIAL PRIMARY KEY,
                source VARCHAR(100) NOT NULL,
                status VARCHAR(20) NOT NULL,
                count_imported INTEGER NOT NULL DEFAULT 0,
                message TEXT,
                created_at TIMESTAMP DEFAULT (now() AT TIME ZONE 'utc')
            )
        """))
        print("sync_runs table ready")

        conn.commit()
        print("Migration complete.")


if __name__ == "__main__":
    run_migration()
