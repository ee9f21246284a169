from typing import Optional

from pydantic import BaseModel

from .cache_entry import EntryType


class FindCriteria(BaseModel):
    """AND-combined filters for SmartCache.find; None means unconstrained"""
    type: Optional[EntryType] = None
    patient_id: Optional[str] = None
    form_type: Optional[str] = None
    since: Optional[int] = None  # inclusive lower bound on timestamp, epoch ms
