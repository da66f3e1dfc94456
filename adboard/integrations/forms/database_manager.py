# adboard/integrations/forms/database_manager.py
"""
Forms Database Manager
PostgreSQL operations for connected forms and the leads they submit

Database Tables:
- connected_forms: form_id -> owner, website and ordered field mappings (JSONB)
- leads: one row per submission, typed columns plus the verbatim raw_data
"""

import json
import logging
import uuid
from typing import Any, List, Optional

from adboard.core.database import DatabaseManager, db_manager

from .models import FieldMapping, FormMapping, Lead

logger = logging.getLogger(__name__)

# Typed lead columns a mapping may target
LEAD_COLUMNS = (
    'name',
    'first_name',
    'last_name',
    'email',
    'phone',
    'company',
    'message',
    'campaign',
    'search_keyword',
)


def _json_value(value: Any) -> Any:
    # asyncpg hands JSONB back as text unless a codec is registered
    return json.loads(value) if isinstance(value, str) else value


class FormStore:
    """connected_forms persistence"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def get_by_form_id(self, form_id: str) -> Optional[FormMapping]:
        row = await self.db.fetch_one(
            '''
            SELECT form_id, user_id, website_url, form_name, form_url, field_mappings
            FROM connected_forms
            WHERE form_id = $1
            ''',
            form_id
        )
        return self._from_row(row) if row else None

    async def save(self, form: FormMapping) -> Optional[FormMapping]:
        """
        Create the form, or replace its mappings if the same user owns it.
        Returns None when the form_id belongs to someone else.
        """
        form_id = form.form_id or str(uuid.uuid4())
        row = await self.db.fetch_one(
            '''
            INSERT INTO connected_forms (form_id, user_id, website_url, form_name, form_url, field_mappings)
            VALUES ($1, $2, $3, $4, $5, $6::jsonb)
            ON CONFLICT (form_id) DO UPDATE SET
                website_url = EXCLUDED.website_url,
                form_name = EXCLUDED.form_name,
                form_url = EXCLUDED.form_url,
                field_mappings = EXCLUDED.field_mappings,
                updated_at = NOW()
            WHERE connected_forms.user_id = EXCLUDED.user_id
            RETURNING form_id, user_id, website_url, form_name, form_url, field_mappings
            ''',
            form_id,
            form.user_id,
            form.website_url,
            form.form_name,
            form.form_url,
            json.dumps([mapping.to_dict() for mapping in form.field_mappings]),
        )
        if not row:
            return None

        logger.info(f"📝 Saved form {form_id} for user {form.user_id}")
        return self._from_row(row)

    async def list_for_user(self, user_id: str) -> List[FormMapping]:
        rows = await self.db.fetch_all(
            '''
            SELECT form_id, user_id, website_url, form_name, form_url, field_mappings
            FROM connected_forms
            WHERE user_id = $1
            ORDER BY created_at DESC
            ''',
            user_id
        )
        return [self._from_row(row) for row in rows]

    @staticmethod
    def _from_row(row) -> FormMapping:
        mappings = _json_value(row['field_mappings']) or []
        return FormMapping(
            form_id=row['form_id'],
            user_id=str(row['user_id']),
            website_url=row['website_url'],
            form_name=row['form_name'],
            form_url=row['form_url'],
            field_mappings=[FieldMapping.from_dict(m) for m in mappings if isinstance(m, dict)],
        )


class LeadStore:
    """leads persistence; inserts are never deduplicated"""

    def __init__(self, db: DatabaseManager = db_manager):
        self.db = db

    async def insert(self, lead: Lead) -> str:
        typed = {column: lead.fields[column] for column in LEAD_COLUMNS if column in lead.fields}
        columns = ['user_id', 'form_id', 'source', 'status', 'raw_data'] + list(typed)
        placeholders = [f'${i}' for i in range(1, len(columns) + 1)]
        placeholders[4] += '::jsonb'

        row = await self.db.fetch_one(
            f'''
            INSERT INTO leads ({', '.join(columns)})
            VALUES ({', '.join(placeholders)})
            RETURNING id
            ''',
            lead.user_id,
            lead.form_id,
            lead.source,
            lead.status,
            json.dumps(lead.raw_data),
            *typed.values(),
        )
        return str(row['id'])


# Global instances
form_store = FormStore()
lead_store = LeadStore()


def get_form_store() -> FormStore:
    """FastAPI dependency"""
    return form_store


def get_lead_store() -> LeadStore:
    """FastAPI dependency"""
    return lead_store
