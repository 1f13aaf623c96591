"""
Alert notification sinks.

Dispatch is fire-and-forget: each sink is called once, its outcome is
recorded on the alert, and failures are logged without retrying.
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from fairwatch.data.models.alert import Alert, NotificationRecord
from fairwatch.data.models.base import utcnow
from fairwatch.utils.constants import NotificationChannel, NotificationStatus, Severity
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)


class NotificationSink(ABC):
    """Delivers alert notifications on one channel."""

    channel: NotificationChannel = NotificationChannel.LOG

    def __init__(self, recipient: str):
        self.recipient = recipient

    @abstractmethod
    def send(self, alert: Alert) -> None:
        """Deliver the alert; raise on failure."""


class LoggingNotificationSink(NotificationSink):
    """Writes alerts to the application log."""

    def __init__(self, recipient: str = "compliance-team"):
        super().__init__(recipient)

    def send(self, alert: Alert) -> None:
        severity = Severity(alert.priority)
        message = (
            f"[{severity.value.upper()}] alert {alert.alert_id} for process {alert.process_id}: "
            f"{alert.violation.description} (to {self.recipient})"
        )
        if severity.rank >= Severity.HIGH.rank:
            logger.warning(message)
        else:
            logger.info(message)


class NotificationDispatcher:
    """Calls every sink for an alert and reports one record per sink."""

    def __init__(self, sinks: Optional[Iterable[NotificationSink]] = None):
        self.sinks = list(sinks) if sinks is not None else [LoggingNotificationSink()]

    def dispatch(self, alert: Alert) -> list[NotificationRecord]:
        records = []
        for sink in self.sinks:
            try:
                sink.send(alert)
                status, error = NotificationStatus.SENT, None
            except Exception as e:
                logger.error(f"Notification via {sink.channel} for alert {alert.alert_id} failed: {e}")
                status, error = NotificationStatus.FAILED, str(e)
            records.append(
                NotificationRecord(
                    channel=sink.channel,
                    recipient=sink.recipient,
                    sent_at=utcnow(),
                    status=status,
                    error=error,
                )
            )
        return records
