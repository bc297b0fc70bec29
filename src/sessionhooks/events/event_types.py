"""
Event Type Registry
===================

Closed enumeration of the provider event types the webhook layer knows how
to deliver. Membership is fixed at import time.

Unknown types are not errors: the dispatcher drops them with a debug trace so
that new provider events do not break delivery of the ones already modelled.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Iterable, List, Optional, Union


class EventType(str, Enum):
    """Event type tags carried by provider events."""

    # Messages and communication
    MESSAGE = "Message"
    UNDECRYPTABLE_MESSAGE = "UndecryptableMessage"
    RECEIPT = "Receipt"
    MEDIA_RETRY = "MediaRetry"
    READ_RECEIPT = "ReadReceipt"

    # Groups and contacts
    GROUP_INFO = "GroupInfo"
    JOINED_GROUP = "JoinedGroup"
    PICTURE = "Picture"
    BLOCKLIST_CHANGE = "BlocklistChange"
    BLOCKLIST = "Blocklist"

    # Connection and session
    CONNECTED = "Connected"
    DISCONNECTED = "Disconnected"
    CONNECT_FAILURE = "ConnectFailure"
    KEEP_ALIVE_RESTORED = "KeepAliveRestored"
    KEEP_ALIVE_TIMEOUT = "KeepAliveTimeout"
    LOGGED_OUT = "LoggedOut"
    CLIENT_OUTDATED = "ClientOutdated"
    TEMPORARY_BAN = "TemporaryBan"
    STREAM_ERROR = "StreamError"
    STREAM_REPLACED = "StreamReplaced"
    PAIR_SUCCESS = "PairSuccess"
    PAIR_ERROR = "PairError"
    QR = "QR"
    QR_SCANNED_WITHOUT_MULTIDEVICE = "QRScannedWithoutMultidevice"

    # Privacy and settings
    PRIVACY_SETTINGS = "PrivacySettings"
    PUSH_NAME_SETTING = "PushNameSetting"
    USER_ABOUT = "UserAbout"

    # Synchronization and state
    APP_STATE = "AppState"
    APP_STATE_SYNC_COMPLETE = "AppStateSyncComplete"
    HISTORY_SYNC = "HistorySync"
    OFFLINE_SYNC_COMPLETED = "OfflineSyncCompleted"
    OFFLINE_SYNC_PREVIEW = "OfflineSyncPreview"

    # Calls
    CALL_OFFER = "CallOffer"
    CALL_ACCEPT = "CallAccept"
    CALL_TERMINATE = "CallTerminate"
    CALL_OFFER_NOTICE = "CallOfferNotice"
    CALL_RELAY_LATENCY = "CallRelayLatency"

    # Presence and activity
    PRESENCE = "Presence"
    CHAT_PRESENCE = "ChatPresence"

    # Identity
    IDENTITY_CHANGE = "IdentityChange"

    # Errors
    CAT_REFRESH_ERROR = "CATRefreshError"

    # Newsletters (channels)
    NEWSLETTER_JOIN = "NewsletterJoin"
    NEWSLETTER_LEAVE = "NewsletterLeave"
    NEWSLETTER_MUTE_CHANGE = "NewsletterMuteChange"
    NEWSLETTER_LIVE_UPDATE = "NewsletterLiveUpdate"

    FB_MESSAGE = "FBMessage"

    # Subscription wildcard
    ALL = "All"


ALL_EVENTS = EventType.ALL.value

SUPPORTED_EVENT_TYPES: FrozenSet[str] = frozenset(e.value for e in EventType)


def normalize_event_type(value: Union[str, EventType, None]) -> Optional[str]:
    """Return the canonical tag for ``value`` or None if it is not registered."""
    if value is None:
        return None
    if isinstance(value, EventType):
        return value.value
    return value if value in SUPPORTED_EVENT_TYPES else None


def is_valid_event_type(value: Union[str, EventType, None]) -> bool:
    """Membership test against the registry. Case-sensitive."""
    return normalize_event_type(value) is not None


def validate_events(values: Iterable[Union[str, EventType]]) -> List[str]:
    """Return the entries of ``values`` that are not registered event types."""
    return [str(v) for v in values if not is_valid_event_type(v)]
