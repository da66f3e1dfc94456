# adboard/integrations/forms/router.py
"""
Forms FastAPI Router
Lead capture from website forms

Endpoints:
- POST /forms/webhook - Receive a form submission (public, CORS-open)
- POST /forms         - Connect a form (create or update its field mappings)
- GET  /forms         - List the caller's connected forms

Webhook responses are built here and never include internal error details,
since the caller is an anonymous website visitor.
"""

import json
import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from adboard.core.auth import get_current_user_id
from adboard.core.errors import InvalidRequest, ResourceNotFound, StorageFailure

from .database_manager import FormStore, LeadStore, get_form_store, get_lead_store
from .ingestion import LeadIngestionService
from .models import FieldMapping, FormMapping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/forms", tags=["Forms"])


def get_ingestion_service(
    forms: FormStore = Depends(get_form_store),
    leads: LeadStore = Depends(get_lead_store),
) -> LeadIngestionService:
    return LeadIngestionService(forms, leads)


# ============================================================================
# REQUEST MODELS
# ============================================================================

class FieldMappingModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_field: str = Field(alias='websiteField')
    lead_field: str = Field(alias='leadField')


class ConnectFormRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    website_url: str = Field(alias='websiteUrl')
    field_mappings: List[FieldMappingModel] = Field(default_factory=list, alias='fieldMappings')
    form_id: Optional[str] = Field(None, alias='formId')
    form_name: Optional[str] = Field(None, alias='formName')
    form_url: Optional[str] = Field(None, alias='formUrl')


def _form_response(form: FormMapping) -> dict:
    return {
        'formId': form.form_id,
        'websiteUrl': form.website_url,
        'formName': form.form_name,
        'formUrl': form.form_url,
        'fieldMappings': [mapping.to_dict() for mapping in form.field_mappings],
    }


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'error': message})


# ============================================================================
# WEBHOOK
# ============================================================================

@router.post("/webhook")
async def form_webhook(request: Request, service: LeadIngestionService = Depends(get_ingestion_service)):
    """
    Receive a website form submission

    Body: {"formId": "...", "formData": {...}, "websiteUrl"?: "..."}
    Every call creates a new lead; duplicates are not detected.
    """
    raw_body = await request.body()
    try:
        body = json.loads(raw_body)
    except ValueError:
        logger.warning("⚠️ Form webhook received invalid JSON")
        return _error(400, "Invalid JSON in request body")

    if not isinstance(body, dict):
        return _error(400, "Invalid JSON in request body")

    form_id = body.get('formId')
    form_data = body.get('formData')

    if not form_id:
        return _error(400, "Missing formId")
    if form_data is None:
        return _error(400, "Missing formData")
    if not isinstance(form_data, dict):
        return _error(400, "formData must be an object")

    try:
        lead_id = await service.ingest(str(form_id), form_data)
    except ResourceNotFound:
        return _error(404, "Form not found")
    except StorageFailure as e:
        logger.error(f"❌ Failed to save lead for form {form_id}: {e}")
        return _error(500, "Failed to save lead")
    except Exception as e:
        logger.exception(f"❌ Unexpected error processing form {form_id}: {e}")
        return _error(500, "Internal server error")

    return {'success': True, 'leadId': lead_id}


# ============================================================================
# FORM SETUP
# ============================================================================

@router.post("")
async def connect_form(
    request: ConnectFormRequest,
    user_id: str = Depends(get_current_user_id),
    forms: FormStore = Depends(get_form_store),
):
    if not request.website_url:
        raise InvalidRequest("websiteUrl is required")

    saved = await forms.save(FormMapping(
        form_id=request.form_id or '',
        user_id=user_id,
        website_url=request.website_url,
        form_name=request.form_name,
        form_url=request.form_url,
        field_mappings=[
            FieldMapping(website_field=m.website_field, lead_field=m.lead_field)
            for m in request.field_mappings
        ],
    ))
    if saved is None:
        raise InvalidRequest("formId is already in use")

    return {'success': True, 'form': _form_response(saved)}


@router.get("")
async def list_forms(
    user_id: str = Depends(get_current_user_id),
    forms: FormStore = Depends(get_form_store),
):
    connected = await forms.list_for_user(user_id)
    return {'success': True, 'forms': [_form_response(form) for form in connected]}
