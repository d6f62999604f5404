"""Subscriber storage adapters - one interface, interchangeable backends."""

from app.adapters.storage.base import AbstractSubscriberRepository, SubscriberRecord
from app.adapters.storage.factory import create_subscriber_repository
from app.adapters.storage.google_sheets import GoogleSheetsSubscriberRepository
from app.adapters.storage.in_memory import InMemorySubscriberRepository
from app.adapters.storage.mongodb import MongoSubscriberRepository

__all__ = [
    "AbstractSubscriberRepository",
    "GoogleSheetsSubscriberRepository",
    "InMemorySubscriberRepository",
    "MongoSubscriberRepository",
    "SubscriberRecord",
    "create_subscriber_repository",
]
