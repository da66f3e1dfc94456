"""
Table definitions for the adboard backend.

Created on startup with ``ensure_schema()``; every statement is idempotent.
"""

import logging

from .database import DatabaseManager, db_manager

logger = logging.getLogger(__name__)

SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS user_sessions (
        session_token VARCHAR(255) PRIMARY KEY,
        user_id TEXT NOT NULL,
        user_email VARCHAR(255),
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        expires_at TIMESTAMP WITH TIME ZONE NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS api_tokens (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        provider TEXT NOT NULL,
        access_token_encrypted TEXT NOT NULL,
        refresh_token_encrypted TEXT,
        expires_at TIMESTAMP WITH TIME ZONE NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        UNIQUE (user_id, provider)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS ad_accounts (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        platform TEXT NOT NULL,
        account_id TEXT NOT NULL,
        account_name TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        UNIQUE (user_id, platform, account_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS oauth_states (
        state TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        provider TEXT NOT NULL,
        redirect_uri TEXT NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_preferences (
        user_id TEXT NOT NULL,
        provider TEXT NOT NULL,
        selected_account_id TEXT,
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        PRIMARY KEY (user_id, provider)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS connected_forms (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        form_id TEXT NOT NULL UNIQUE,
        user_id TEXT NOT NULL,
        website_url TEXT NOT NULL,
        form_name TEXT,
        form_url TEXT,
        field_mappings JSONB NOT NULL DEFAULT '[]',
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS leads (
        id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
        user_id TEXT NOT NULL,
        form_id TEXT NOT NULL,
        source TEXT,
        status TEXT,
        raw_data JSONB,
        name TEXT,
        first_name TEXT,
        last_name TEXT,
        email TEXT,
        phone TEXT,
        company TEXT,
        message TEXT,
        campaign TEXT,
        search_keyword TEXT,
        created_at TIMESTAMP WITH TIME ZONE DEFAULT NOW(),
        updated_at TIMESTAMP WITH TIME ZONE DEFAULT NOW()
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_leads_form_id ON leads(form_id)",
    "CREATE INDEX IF NOT EXISTS idx_ad_accounts_user_platform ON ad_accounts(user_id, platform)",
]


async def ensure_schema(db: DatabaseManager = db_manager) -> None:
    """Create all tables if they don't exist"""
    for statement in SCHEMA_STATEMENTS:
        await db.execute(statement)
    logger.info(f"✅ Schema ensured ({len(SCHEMA_STATEMENTS)} statements)")
