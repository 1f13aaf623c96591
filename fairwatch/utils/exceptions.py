"""Exception taxonomy for FairWatch."""


class FairWatchError(Exception):
    """Base exception for FairWatch."""

    def __init__(self, code: str, message: str, details=None):
        self.code = code
        self.message = message
        self.details = details
        super().__init__(message)


class InsufficientSampleSize(FairWatchError):
    """Not enough outcomes to compute a statistically meaningful metric."""

    def __init__(self, message: str, total: int = 0, minimum: int = 0):
        super().__init__(
            "INSUFFICIENT_SAMPLE_SIZE",
            message,
            {"total": total, "minimum": minimum},
        )
        self.total = total
        self.minimum = minimum


class InconsistentAggregateScore(FairWatchError):
    """Overall fairness score drifted from the mean of its components."""

    def __init__(self, overall_score: float, component_mean: float, tolerance: float):
        super().__init__(
            "INCONSISTENT_AGGREGATE_SCORE",
            f"Overall score {overall_score:.4f} deviates from component mean "
            f"{component_mean:.4f} by more than {tolerance}",
            {
                "overall_score": overall_score,
                "component_mean": component_mean,
                "tolerance": tolerance,
            },
        )


class MissingRecommendedAction(FairWatchError):
    """High or critical bias recorded without any recommended action."""

    def __init__(self, severity: str):
        super().__init__(
            "MISSING_RECOMMENDED_ACTION",
            f"Detected bias of severity '{severity}' requires at least one recommended action",
            {"severity": severity},
        )


class AlertNotEligible(FairWatchError):
    """Alert transition attempted from a state that does not allow it."""

    def __init__(self, alert_id: str, transition: str):
        super().__init__(
            "ALERT_NOT_ELIGIBLE",
            f"Alert '{alert_id}' not found or already in terminal state",
            {"alert_id": alert_id, "transition": transition},
        )
        self.alert_id = alert_id
        self.transition = transition


class ThresholdConfigInvalid(FairWatchError):
    """Rejected threshold update; the previous configuration stays active."""

    def __init__(self, message: str, errors=None):
        super().__init__("THRESHOLD_CONFIG_INVALID", message, errors)


class PersistenceUnavailable(FairWatchError):
    """Read or write against the document store failed."""

    def __init__(self, operation: str, collection: str, cause: Exception | None = None):
        super().__init__(
            "PERSISTENCE_UNAVAILABLE",
            f"Persistence failure during {operation} on '{collection}'"
            + (f": {cause}" if cause else ""),
            {"operation": operation, "collection": collection},
        )
        self.operation = operation
        self.collection = collection


class AuditEntryImmutable(FairWatchError):
    """Attempt to edit or delete an audit entry."""

    def __init__(self, entry_id: str):
        super().__init__(
            "AUDIT_ENTRY_IMMUTABLE",
            f"Audit entry '{entry_id}' is append-only; record a correction instead",
            {"entry_id": entry_id},
        )
