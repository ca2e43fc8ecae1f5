"""PostgreSQL fixtures for integration tests.

Set SCALESEED_TEST_DATABASE_URL to a database the tests may create a scratch
schema in; without it every integration test is skipped.
"""

import os

import psycopg
import pytest
from psycopg import Connection

TEST_SCHEMA = "scaleseed_test"

TABLES_DDL = """
CREATE TABLE {s}.organizations (
    id UUID PRIMARY KEY,
    name TEXT NOT NULL,
    slug TEXT NOT NULL,
    settings JSONB,
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ
);
CREATE TABLE {s}.users (
    id UUID PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    first_name TEXT,
    last_name TEXT,
    password TEXT,
    role TEXT,
    is_email_verified BOOLEAN,
    created_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ
);
CREATE TABLE {s}.user_organizations (
    id UUID PRIMARY KEY,
    user_id UUID NOT NULL REFERENCES {s}.users(id),
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    role TEXT,
    is_active BOOLEAN,
    joined_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.workspaces (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    name TEXT NOT NULL,
    slug TEXT,
    description TEXT,
    created_by UUID REFERENCES {s}.users(id),
    created_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ
);
CREATE TABLE {s}.workspace_members (
    id UUID PRIMARY KEY,
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    user_id UUID NOT NULL REFERENCES {s}.users(id),
    role TEXT,
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.projects (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    name TEXT NOT NULL,
    description TEXT,
    status TEXT,
    start_date DATE,
    end_date DATE,
    budget NUMERIC(14, 2),
    created_by_id UUID REFERENCES {s}.users(id),
    created_at TIMESTAMPTZ NOT NULL,
    updated_at TIMESTAMPTZ
);
CREATE TABLE {s}.work_tasks (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    project_id UUID NOT NULL REFERENCES {s}.projects(id),
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL,
    type TEXT,
    priority TEXT,
    assignee_user_id UUID REFERENCES {s}.users(id),
    reporter_user_id UUID REFERENCES {s}.users(id),
    start_date DATE,
    due_date DATE,
    completed_at TIMESTAMPTZ,
    rank INTEGER NOT NULL,
    estimate_hours INTEGER,
    created_at TIMESTAMPTZ,
    updated_at TIMESTAMPTZ
);
CREATE TABLE {s}.work_task_dependencies (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID REFERENCES {s}.workspaces(id),
    project_id UUID NOT NULL REFERENCES {s}.projects(id),
    predecessor_task_id UUID NOT NULL REFERENCES {s}.work_tasks(id),
    successor_task_id UUID NOT NULL REFERENCES {s}.work_tasks(id),
    type TEXT,
    created_by_user_id UUID REFERENCES {s}.users(id),
    created_at TIMESTAMPTZ,
    UNIQUE (predecessor_task_id, successor_task_id)
);
CREATE TABLE {s}.schedule_baselines (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    project_id UUID NOT NULL REFERENCES {s}.projects(id),
    name TEXT,
    is_active BOOLEAN,
    created_by UUID REFERENCES {s}.users(id),
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.schedule_baseline_items (
    id UUID PRIMARY KEY,
    baseline_id UUID NOT NULL REFERENCES {s}.schedule_baselines(id),
    task_id UUID NOT NULL REFERENCES {s}.work_tasks(id),
    planned_start_at TIMESTAMPTZ,
    planned_end_at TIMESTAMPTZ,
    duration_days INTEGER,
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.earned_value_snapshots (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    project_id UUID NOT NULL REFERENCES {s}.projects(id),
    snapshot_date DATE,
    bac NUMERIC(14, 2), pv NUMERIC(14, 2), ev NUMERIC(14, 2), ac NUMERIC(14, 2),
    cpi NUMERIC(8, 4), spi NUMERIC(8, 4),
    eac NUMERIC(14, 2), etc NUMERIC(14, 2), vac NUMERIC(14, 2),
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.workspace_member_capacity (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    user_id UUID NOT NULL REFERENCES {s}.users(id),
    date DATE NOT NULL,
    capacity_hours INTEGER,
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.attachments (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    parent_type TEXT,
    parent_id UUID,
    file_name TEXT,
    mime_type TEXT,
    size_bytes BIGINT,
    storage_key TEXT,
    status TEXT,
    uploader_user_id UUID REFERENCES {s}.users(id),
    created_at TIMESTAMPTZ
);
CREATE TABLE {s}.workspace_storage_usage (
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID NOT NULL REFERENCES {s}.workspaces(id),
    used_bytes BIGINT NOT NULL DEFAULT 0,
    reserved_bytes BIGINT NOT NULL DEFAULT 0,
    updated_at TIMESTAMPTZ,
    PRIMARY KEY (organization_id, workspace_id)
);
CREATE TABLE {s}.audit_events (
    id UUID PRIMARY KEY,
    organization_id UUID NOT NULL REFERENCES {s}.organizations(id),
    workspace_id UUID REFERENCES {s}.workspaces(id),
    actor_user_id UUID REFERENCES {s}.users(id),
    entity_type TEXT,
    entity_id UUID,
    action TEXT,
    metadata_json JSONB,
    created_at TIMESTAMPTZ NOT NULL
);
"""

INDEXES_DDL = """
CREATE INDEX idx_audit_events_org_created ON {s}.audit_events (organization_id, created_at DESC);
CREATE INDEX idx_work_tasks_board ON {s}.work_tasks (project_id, status, rank);
CREATE INDEX idx_work_task_deps_org_project ON {s}.work_task_dependencies (organization_id, project_id);
CREATE INDEX idx_projects_org_created ON {s}.projects (organization_id, created_at DESC);
"""


@pytest.fixture(scope="session")
def database_url() -> str:
    url = os.environ.get("SCALESEED_TEST_DATABASE_URL")
    if not url:
        pytest.skip("SCALESEED_TEST_DATABASE_URL not set")
    try:
        with psycopg.connect(url, connect_timeout=3):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"Test database unreachable: {e}")
    return url


@pytest.fixture
def db_conn(database_url: str) -> Connection:
    """Autocommit connection, as the CLI opens it."""
    conn = psycopg.connect(database_url, autocommit=True)
    yield conn
    conn.close()


def _create_schema(conn: Connection, with_indexes: bool, drop: tuple[str, ...] = ()) -> str:
    with conn.cursor() as cur:
        cur.execute(f"DROP SCHEMA IF EXISTS {TEST_SCHEMA} CASCADE")
        cur.execute(f"CREATE SCHEMA {TEST_SCHEMA}")
        cur.execute(TABLES_DDL.format(s=TEST_SCHEMA))
        if with_indexes:
            cur.execute(INDEXES_DDL.format(s=TEST_SCHEMA))
        for table in drop:
            cur.execute(f"DROP TABLE {TEST_SCHEMA}.{table} CASCADE")
    return TEST_SCHEMA


@pytest.fixture
def test_schema(db_conn: Connection) -> str:
    """Fully migrated schema: every table and every required index."""
    yield _create_schema(db_conn, with_indexes=True)

    with db_conn.cursor() as cur:
        cur.execute(f"DROP SCHEMA IF EXISTS {TEST_SCHEMA} CASCADE")


@pytest.fixture
def partial_schema(db_conn: Connection) -> str:
    """Schema without the attachment tables and without the required indexes."""
    yield _create_schema(
        db_conn, with_indexes=False, drop=("workspace_storage_usage", "attachments")
    )

    with db_conn.cursor() as cur:
        cur.execute(f"DROP SCHEMA IF EXISTS {TEST_SCHEMA} CASCADE")
