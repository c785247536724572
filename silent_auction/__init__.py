"""
Silent Auction - Admin Panel

Registers auction items and bidders, records winning bids, looks up
attendees, prints receipts and exports a CSV summary. Data lives in
Supabase with real-time change notifications and a local fallback
snapshot.

Modules:
- config: Configuration and environment variables
- errors: Error taxonomy
- models: Items, attendees, change events and write operations
- store: The owned in-memory collections
- db: Supabase table operations
- realtime: Supabase Realtime change feed
- snapshot: Local fallback snapshot
- sync: Load, change application, persistence and remote writes
- ledger: Consistency-preserving operations (the Auction Ledger)
- reports: CSV export, receipts, item search/sort
- auth: Sign-in with the approved users allow-list
- panel: Wiring, change-feed lifecycle and reconnection
- web: Flask admin panel
- cli: Command line entry point
"""

__version__ = "0.1.0"

# Convenient imports
from .errors import (
    AuctionError,
    InvalidInput,
    DuplicateKey,
    NotFound,
    RemoteStoreError,
    ConfigurationError,
    AccessPolicyError,
    RemoteWriteFailed,
    AccessDenied,
    AuthenticationFailed,
)
from .models import (
    Item,
    Attendee,
    WinningBid,
    ChangeEvent,
    ChangeKind,
    EntityType,
    WriteOperation,
    WriteAction,
    parse_amount,
)
from .store import AuctionStore
from .snapshot import LocalSnapshot
from .sync import SyncLayer, LoadResult, LoadSource
from .ledger import AuctionLedger
from .reports import export_csv, build_receipt, format_receipt_text, search_items, sort_items
from .panel import AdminPanel, get_panel

__all__ = [
    # Errors
    "AuctionError",
    "InvalidInput",
    "DuplicateKey",
    "NotFound",
    "RemoteStoreError",
    "ConfigurationError",
    "AccessPolicyError",
    "RemoteWriteFailed",
    "AccessDenied",
    "AuthenticationFailed",
    # Models
    "Item",
    "Attendee",
    "WinningBid",
    "ChangeEvent",
    "ChangeKind",
    "EntityType",
    "WriteOperation",
    "WriteAction",
    "parse_amount",
    # State & sync
    "AuctionStore",
    "LocalSnapshot",
    "SyncLayer",
    "LoadResult",
    "LoadSource",
    # Ledger
    "AuctionLedger",
    # Reports
    "export_csv",
    "build_receipt",
    "format_receipt_text",
    "search_items",
    "sort_items",
    # Panel
    "AdminPanel",
    "get_panel",
]
