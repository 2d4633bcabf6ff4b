"""
Mind Map Portal - Database Schema
==================================

Table definitions for the three persisted entities:

- users              Accounts (created by approving an application)
- user_applications  Pending/decided registration requests
- mind_maps          Markdown mind maps, optionally owned by a user

Ids are UUID strings. Booleans are stored as 0/1 INTEGER and timestamps
as ISO-8601 text (UTC). Every statement is idempotent so the schema can
be applied on every startup.
"""

SCHEMA_VERSION = "1.0.0"

TABLE_NAMES = ("users", "mind_maps", "user_applications")

USERS_TABLE = """
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    role TEXT NOT NULL DEFAULT 'user' CHECK (role IN ('user', 'admin')),
    status TEXT NOT NULL DEFAULT 'approved'
        CHECK (status IN ('pending', 'approved', 'rejected')),
    language TEXT NOT NULL DEFAULT 'zh' CHECK (language IN ('zh', 'en')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

# user_id is nullable: legacy maps created before accounts existed have
# no owner and are editable by any signed-in user.
MIND_MAPS_TABLE = """
CREATE TABLE IF NOT EXISTS mind_maps (
    id TEXT PRIMARY KEY,
    user_id TEXT REFERENCES users(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    description TEXT,
    content TEXT NOT NULL,
    is_public INTEGER NOT NULL DEFAULT 1 CHECK (is_public IN (0, 1)),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

USER_APPLICATIONS_TABLE = """
CREATE TABLE IF NOT EXISTS user_applications (
    id TEXT PRIMARY KEY,
    email TEXT NOT NULL UNIQUE,
    username TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    reason TEXT,
    status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending', 'approved', 'rejected')),
    created_at TEXT NOT NULL,
    updated_at TEXT NOT NULL
)
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_mind_maps_user_id ON mind_maps(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_mind_maps_is_public ON mind_maps(is_public)",
    "CREATE INDEX IF NOT EXISTS idx_mind_maps_updated_at ON mind_maps(updated_at)",
    "CREATE INDEX IF NOT EXISTS idx_users_role ON users(role)",
    "CREATE INDEX IF NOT EXISTS idx_user_applications_status ON user_applications(status)",
]

ALL_STATEMENTS = [USERS_TABLE, MIND_MAPS_TABLE, USER_APPLICATIONS_TABLE] + INDEXES
