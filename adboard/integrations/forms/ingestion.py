"""
Lead ingestion: turn a website form submission into a lead row.

Mappings are applied in order. A mapping contributes only when its lead field
is set (and not "none") and the submitted value is non-empty; later mappings
to the same lead field win. Targets the setup UI writes in camelCase are
normalised to column names. ``source`` is fixed and never mapped.
"""

import logging
from typing import Any, Dict

from adboard.core.errors import ResourceNotFound

from .database_manager import LEAD_COLUMNS, FormStore, LeadStore
from .models import FormMapping, Lead

logger = logging.getLogger(__name__)

FIELD_ALIASES = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'searchKeyword': 'search_keyword',
}

UNMAPPED = 'none'


def normalize_lead_field(lead_field: str) -> str:
    return FIELD_ALIASES.get(lead_field, lead_field)


def map_submission(form: FormMapping, form_data: Dict[str, Any]) -> Dict[str, str]:
    """Typed lead fields produced by the form's mappings"""
    fields: Dict[str, str] = {}
    for mapping in form.field_mappings:
        if not mapping.lead_field or mapping.lead_field == UNMAPPED:
            continue
        value = form_data.get(mapping.website_field)
        if not value:
            continue

        column = normalize_lead_field(mapping.lead_field)
        if column not in LEAD_COLUMNS:
            logger.debug(f"Ignoring mapping to unsupported lead field {mapping.lead_field!r}")
            continue

        fields[column] = value if isinstance(value, str) else str(value)
    return fields


class LeadIngestionService:
    def __init__(self, forms: FormStore, leads: LeadStore):
        self.forms = forms
        self.leads = leads

    async def ingest(self, form_id: str, form_data: Dict[str, Any]) -> str:
        """
        Store one submission and return the new lead id

        Raises:
            ResourceNotFound: no connected form with this id
            StorageFailure: the lead could not be written
        """
        form = await self.forms.get_by_form_id(form_id)
        if form is None:
            logger.info(f"Form submission for unknown form {form_id}")
            raise ResourceNotFound("Form not found")

        lead = Lead(
            user_id=form.user_id,
            form_id=form_id,
            raw_data=form_data,
            fields=map_submission(form, form_data),
        )
        lead_id = await self.leads.insert(lead)

        logger.info(f"📥 Lead {lead_id} saved from form {form_id} ({len(lead.fields)} mapped fields)")
        return lead_id
