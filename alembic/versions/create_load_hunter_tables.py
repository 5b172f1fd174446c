from alembic import op

revision = "create_load_hunter_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute("""
        CREATE TABLE IF NOT EXISTS load_emails (
            id SERIAL PRIMARY KEY,
            email_id VARCHAR(255) NOT NULL UNIQUE,
            load_id VARCHAR(32) UNIQUE,
            from_email VARCHAR(255),
            from_name VARCHAR(255),
            subject TEXT,
            body_text TEXT,
            body_html TEXT,
            received_at TIMESTAMPTZ NOT NULL,
            expires_at TIMESTAMPTZ,
            parsed_data JSONB,
            status VARCHAR(20) NOT NULL DEFAULT 'new',
            has_issues BOOLEAN NOT NULL DEFAULT FALSE,
            issue_notes TEXT,
            email_source VARCHAR(20) NOT NULL DEFAULT 'sylectus',
            content_fingerprint VARCHAR(64),
            dedup_eligible BOOLEAN NOT NULL DEFAULT FALSE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_load_emails_status ON load_emails(status);
        CREATE INDEX IF NOT EXISTS idx_load_emails_expires_at ON load_emails(expires_at);
        CREATE INDEX IF NOT EXISTS idx_load_emails_has_issues ON load_emails(has_issues);
        CREATE INDEX IF NOT EXISTS idx_load_emails_fingerprint ON load_emails(content_fingerprint);

        CREATE TABLE IF NOT EXISTS hunt_plans (
            id SERIAL PRIMARY KEY,
            vehicle_id VARCHAR(64) NOT NULL,
            plan_name VARCHAR(120) NOT NULL,
            vehicle_size VARCHAR(255),
            zip_code VARCHAR(10),
            hunt_coordinates JSONB,
            pickup_radius DOUBLE PRECISION,
            notes TEXT,
            enabled BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ DEFAULT NOW(),
            updated_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_hunt_plans_vehicle_id ON hunt_plans(vehicle_id);
        CREATE INDEX IF NOT EXISTS idx_hunt_plans_enabled ON hunt_plans(enabled);

        CREATE TABLE IF NOT EXISTS load_hunt_matches (
            id SERIAL PRIMARY KEY,
            load_email_id INTEGER NOT NULL REFERENCES load_emails(id) ON DELETE CASCADE,
            hunt_plan_id INTEGER NOT NULL REFERENCES hunt_plans(id) ON DELETE CASCADE,
            vehicle_id VARCHAR(64) NOT NULL,
            distance_miles NUMERIC(10, 2),
            match_score NUMERIC(6, 2),
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            match_status VARCHAR(20) NOT NULL DEFAULT 'active',
            matched_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT uq_load_hunt_matches_email_plan UNIQUE (load_email_id, hunt_plan_id)
        );

        CREATE INDEX IF NOT EXISTS idx_load_hunt_matches_vehicle_id ON load_hunt_matches(vehicle_id);
        CREATE INDEX IF NOT EXISTS idx_load_hunt_matches_active ON load_hunt_matches(is_active);

        CREATE TABLE IF NOT EXISTS geocode_cache (
            id SERIAL PRIMARY KEY,
            location_key VARCHAR(255) NOT NULL UNIQUE,
            city VARCHAR(120),
            state VARCHAR(10),
            latitude NUMERIC(10, 6) NOT NULL,
            longitude NUMERIC(10, 6) NOT NULL,
            hit_count INTEGER NOT NULL DEFAULT 1,
            month_created VARCHAR(7),
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE TABLE IF NOT EXISTS parser_hints (
            id SERIAL PRIMARY KEY,
            source VARCHAR(20) NOT NULL DEFAULT 'sylectus',
            field_name VARCHAR(60) NOT NULL,
            pattern TEXT NOT NULL,
            priority INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            notes TEXT,
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE INDEX IF NOT EXISTS idx_parser_hints_source ON parser_hints(source);

        CREATE TABLE IF NOT EXISTS vehicle_type_mappings (
            id SERIAL PRIMARY KEY,
            original_value VARCHAR(120) NOT NULL UNIQUE,
            canonical_value VARCHAR(120) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT TRUE,
            created_at TIMESTAMPTZ DEFAULT NOW()
        );

        CREATE TABLE IF NOT EXISTS load_id_counters (
            day_key VARCHAR(6) PRIMARY KEY,
            last_seq INTEGER NOT NULL DEFAULT 0
        );
    """)


def downgrade():
    op.execute("""
        DROP TABLE IF EXISTS load_id_counters CASCADE;
        DROP TABLE IF EXISTS vehicle_type_mappings CASCADE;
        DROP TABLE IF EXISTS parser_hints CASCADE;
        DROP TABLE IF EXISTS geocode_cache CASCADE;
        DROP TABLE IF EXISTS load_hunt_matches CASCADE;
        DROP TABLE IF EXISTS hunt_plans CASCADE;
        DROP TABLE IF EXISTS load_emails CASCADE;
    """)
