"""
Communication module for engine events and auditing.
"""
from .message import Message, MessageType
from .message_bus import MessageBus
from .audit_trail import AuditEntry, AuditOperation, AuditTrail

__all__ = [
    "Message", "MessageType", "MessageBus",
    "AuditEntry", "AuditOperation", "AuditTrail",
]
