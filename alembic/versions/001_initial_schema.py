"""001 – Initial schema: profiles, departments, sessions, attendance, leave, audit.

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18 09:00:00.000000+00:00
"""

from alembic import op

# Revision identifiers
revision = "001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

ENUM_TYPES: list[tuple[str, list[str]]] = [
    (
        "user_role",
        ["SUPERADMIN", "ADMIN", "HR", "HOD", "MANAGER", "DIRECTOR", "EMPLOYEE"],
    ),
    (
        "attendance_status",
        ["PRESENT", "ABSENT", "HALF_DAY", "LATE", "EARLY_LEAVE"],
    ),
    (
        "leave_type",
        ["SICK", "CASUAL", "ANNUAL", "MATERNITY", "PATERNITY", "EMERGENCY"],
    ),
    ("leave_status", ["PENDING", "APPROVED", "REJECTED"]),
]


def _create_enum(name: str, values: list[str]) -> None:
    vals = ", ".join(f"'{v}'" for v in values)
    op.execute(f"CREATE TYPE {name} AS ENUM ({vals})")


def _drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


# ---------------------------------------------------------------------------
# UPGRADE
# ---------------------------------------------------------------------------


def upgrade() -> None:
    # ── Enum types ────────────────────────────────────────────────────────
    for name, values in ENUM_TYPES:
        _create_enum(name, values)

    # ── 1. departments (head FK added after profiles) ─────────────────────
    op.execute("""
        CREATE TABLE departments (
            id              UUID PRIMARY KEY,
            name            VARCHAR(150) NOT NULL UNIQUE,
            description     TEXT,
            hod_id          UUID,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 2. profiles ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE profiles (
            id              UUID PRIMARY KEY,
            employee_code   VARCHAR(20) NOT NULL UNIQUE,
            email           VARCHAR(255) NOT NULL UNIQUE,
            full_name       VARCHAR(255) NOT NULL,
            role            user_role NOT NULL DEFAULT 'EMPLOYEE',
            department_id   UUID REFERENCES departments(id) ON DELETE SET NULL,
            phone           VARCHAR(30),
            hire_date       DATE,
            is_active       BOOLEAN NOT NULL DEFAULT TRUE,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_profiles_department_id ON profiles (department_id)")

    op.execute("""
        ALTER TABLE departments
            ADD CONSTRAINT fk_departments_hod
            FOREIGN KEY (hod_id) REFERENCES profiles(id) ON DELETE SET NULL
    """)

    # ── 3. user_sessions ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE user_sessions (
            id              UUID PRIMARY KEY,
            profile_id      UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            token_hash      VARCHAR(64) NOT NULL UNIQUE,
            ip_address      VARCHAR(45),
            user_agent      TEXT,
            expires_at      TIMESTAMPTZ NOT NULL,
            is_revoked      BOOLEAN NOT NULL DEFAULT FALSE,
            revoked_at      TIMESTAMPTZ,
            created_at      TIMESTAMPTZ DEFAULT NOW()
        )
    """)

    # ── 4. attendance_records ─────────────────────────────────────────────
    op.execute("""
        CREATE TABLE attendance_records (
            id              UUID PRIMARY KEY,
            user_id         UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            date            DATE NOT NULL,
            punch_in        TIMESTAMPTZ,
            punch_out       TIMESTAMPTZ,
            location_in     TEXT,
            location_out    TEXT,
            total_hours     NUMERIC(5, 2),
            status          attendance_status,
            notes           TEXT,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT uq_attendance_user_date UNIQUE (user_id, date),
            CONSTRAINT ck_attendance_punch_order
                CHECK (punch_out IS NULL OR punch_out >= punch_in)
        )
    """)
    op.execute("CREATE INDEX ix_attendance_records_date ON attendance_records (date)")

    # ── 5. leave_requests ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE leave_requests (
            id              UUID PRIMARY KEY,
            user_id         UUID NOT NULL REFERENCES profiles(id) ON DELETE CASCADE,
            leave_type      leave_type NOT NULL,
            start_date      DATE NOT NULL,
            end_date        DATE NOT NULL,
            reason          TEXT NOT NULL,
            status          leave_status NOT NULL DEFAULT 'PENDING',
            approved_by     UUID REFERENCES profiles(id) ON DELETE SET NULL,
            approved_at     TIMESTAMPTZ,
            remarks         TEXT,
            created_at      TIMESTAMPTZ DEFAULT NOW(),
            updated_at      TIMESTAMPTZ DEFAULT NOW(),
            CONSTRAINT ck_leave_date_order CHECK (end_date >= start_date)
        )
    """)
    op.execute("CREATE INDEX ix_leave_requests_user_id ON leave_requests (user_id)")
    op.execute("CREATE INDEX ix_leave_requests_status ON leave_requests (status)")

    # ── 6. audit_trail ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE audit_trail (
            id              UUID PRIMARY KEY,
            actor_id        UUID REFERENCES profiles(id) ON DELETE SET NULL,
            action          VARCHAR(50) NOT NULL,
            entity_type     VARCHAR(50) NOT NULL,
            entity_id       UUID NOT NULL,
            old_values      JSON,
            new_values      JSON,
            ip_address      VARCHAR(45),
            user_agent      TEXT,
            created_at      TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("CREATE INDEX ix_audit_trail_actor_id ON audit_trail (actor_id)")
    op.execute("CREATE INDEX ix_audit_trail_entity ON audit_trail (entity_type, entity_id)")
    op.execute("CREATE INDEX ix_audit_trail_created_at ON audit_trail (created_at)")


# ---------------------------------------------------------------------------
# DOWNGRADE
# ---------------------------------------------------------------------------


def downgrade() -> None:
    op.execute("ALTER TABLE departments DROP CONSTRAINT IF EXISTS fk_departments_hod")

    # Drop tables in reverse dependency order
    tables = [
        "audit_trail",
        "leave_requests",
        "attendance_records",
        "user_sessions",
        "profiles",
        "departments",
    ]
    for table in tables:
        op.execute(f"DROP TABLE IF EXISTS {table} CASCADE")

    for name, _ in reversed(ENUM_TYPES):
        _drop_enum(name)
