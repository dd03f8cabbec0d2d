"""Record store backends."""
from fileshare.stores.base import RecordStore
from fileshare.stores.http import HttpRecordStore
from fileshare.stores.local import LocalRecordStore
from fileshare.stores.relational import SqlRecordStore

__all__ = ["RecordStore", "SqlRecordStore", "LocalRecordStore", "HttpRecordStore"]
