"""Form mappings and the leads they produce"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class FieldMapping:
    website_field: str
    lead_field: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'FieldMapping':
        return cls(
            website_field=data.get('websiteField', ''),
            lead_field=data.get('leadField', 'none'),
        )

    def to_dict(self) -> Dict[str, str]:
        return {'websiteField': self.website_field, 'leadField': self.lead_field}


@dataclass
class FormMapping:
    """A website form connected to a user's lead inbox"""
    form_id: str
    user_id: str
    website_url: str
    field_mappings: List[FieldMapping] = field(default_factory=list)
    form_name: Optional[str] = None
    form_url: Optional[str] = None


@dataclass
class Lead:
    user_id: str
    form_id: str
    raw_data: Dict[str, Any]
    fields: Dict[str, str] = field(default_factory=dict)
    source: str = 'website_form'
    status: str = 'New'
    id: Optional[str] = None
