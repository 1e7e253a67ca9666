# fastapi dependency injection
# provides the record store and note generator handles to routers

import logging
from fastapi import Depends

from clinic_metrics.services.db import Database, get_db
from clinic_metrics.services.note_service import NoteGenerator
from clinic_metrics.services.record_store import MongoRecordStore, RecordStore

logger = logging.getLogger(__name__)


async def get_record_store(db: Database = Depends(get_db)) -> RecordStore:
    """record store for the current request, backed by the shared mongodb connection"""
    return MongoRecordStore(db)


async def get_note_generator() -> NoteGenerator:
    """note generator using the configured gemini model"""
    return NoteGenerator()
