"""Database models and storage utilities."""

from .models import Deal, EventLog, NotificationRecord
from .database import get_db, get_session, init_db, close_db
from .storage import SQLDealStore, get_deal, get_deal_events, get_deals

__all__ = [
    "Deal",
    "EventLog",
    "NotificationRecord",
    "get_db",
    "get_session",
    "init_db",
    "close_db",
    "SQLDealStore",
    "get_deal",
    "get_deal_events",
    "get_deals",
]
