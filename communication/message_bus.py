"""
Event bus shared by the governance engines.

Engines publish, subscribers listen. A subscriber never receives the
events it published itself, and a failing subscriber does not stop the
others from being notified.
"""
from collections import Counter
from typing import Callable, Dict, List, Optional
import logging

from rich.console import Console
from rich.table import Table

from .message import Message, MessageType


logger = logging.getLogger("WorkloadGovernance")

Handler = Callable[[Message], None]

_CATEGORY_STYLES = {
    "alerts": "yellow",
    "balancing": "green",
    "workflow": "magenta",
    "system": "white",
}


class MessageBus:
    """
    In-process event bus.

    Attributes:
        subscribers: Subscriber name -> handler
        message_history: Published events, oldest first
        max_history: Keep at most this many events (None keeps all)
        verbose: Echo every event to the console
    """

    def __init__(self, verbose: bool = False, max_history: Optional[int] = None):
        self.subscribers: Dict[str, Handler] = {}
        self.message_history: List[Message] = []
        self.max_history = max_history
        self.verbose = verbose
        self.console = Console()

    def register(self, name: str, handler: Handler) -> None:
        """
        Subscribe to every event.

        Args:
            name: Unique subscriber name; registering again replaces the handler
            handler: Called with each event
        """
        self.subscribers[name] = handler
        if self.verbose:
            self.console.print(f"[dim]📡 {name} listening[/dim]")

    def unregister(self, name: str) -> None:
        self.subscribers.pop(name, None)

    def send(self, message: Message) -> None:
        """
        Record an event and hand it to every other subscriber.

        A subscriber that raises is logged and skipped.
        """
        self.message_history.append(message)
        if self.max_history is not None and len(self.message_history) > self.max_history:
            del self.message_history[:-self.max_history]

        if self.verbose:
            self._print_message(message)

        for name, handler in list(self.subscribers.items()):
            if name == message.sender:
                continue
            try:
                handler(message)
            except Exception:
                logger.exception("Subscriber %s failed on %s", name, message.msg_type.value)
                if self.verbose:
                    self.console.print(
                        f"[red]⚠️ {name} failed on {message.msg_type.value}[/red]"
                    )

    def _print_message(self, message: Message) -> None:
        category = message.msg_type.category
        style = "red" if message.msg_type.is_failure else _CATEGORY_STYLES[category]

        self.console.print(
            f"[dim]{message.timestamp.strftime('%H:%M:%S.%f')[:-3]}[/dim] "
            f"[bold]{message.sender}[/bold] "
            f"[{style}]{category}/{message.msg_type.value}[/{style}] "
            f"[dim]by {message.actor} #{message.correlation_id}[/dim]"
        )
        preview = message.preview(150)
        if preview:
            self.console.print(f"  [dim]└─ {preview}[/dim]")

    # ==================== History ====================

    def get_history(self,
                    sender: Optional[str] = None,
                    msg_type: Optional[MessageType] = None,
                    correlation_id: Optional[str] = None,
                    category: Optional[str] = None) -> List[Message]:
        """
        Events matching every given filter, oldest first.

        Args:
            sender: Publishing engine name
            msg_type: Event type
            correlation_id: Batch or bulk operation id
            category: alerts, balancing, workflow or system
        """
        return [
            m for m in self.message_history
            if (sender is None or m.sender == sender)
            and (msg_type is None or m.msg_type == msg_type)
            and (correlation_id is None or m.correlation_id == correlation_id)
            and (category is None or m.msg_type.category == category)
        ]

    def operations(self) -> Dict[str, List[Message]]:
        """Events grouped by correlation id, in publication order."""
        grouped: Dict[str, List[Message]] = {}
        for message in self.message_history:
            grouped.setdefault(message.correlation_id, []).append(message)
        return grouped

    def print_summary(self) -> None:
        """Print event counts per engine and event type."""
        table = Table(title="📊 Governance Events")
        table.add_column("Engine", style="cyan")
        table.add_column("Category")
        table.add_column("Event", style="magenta")
        table.add_column("Count", justify="right")

        counts = Counter((m.sender, m.msg_type) for m in self.message_history)
        for (sender, msg_type), count in sorted(counts.items(),
                                                key=lambda item: (item[0][0], item[0][1].value)):
            table.add_row(sender, msg_type.category, msg_type.value, str(count))

        self.console.print(table)

    def export_log(self) -> List[dict]:
        return [m.to_dict() for m in self.message_history]

    def clear_history(self) -> None:
        self.message_history = []
