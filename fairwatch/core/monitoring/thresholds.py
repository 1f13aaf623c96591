"""
Versioned threshold configuration shared by all evaluations.

The active ThresholdConfig is an immutable snapshot. Updates validate a
merged copy and swap it in atomically; evaluations that already captured
the previous snapshot keep using it.
"""

import threading
from typing import Any

from pydantic import ValidationError

from fairwatch.data.models.audit import ChangeRecord
from fairwatch.data.models.base import utcnow
from fairwatch.data.models.thresholds import ThresholdConfig
from fairwatch.utils.exceptions import ThresholdConfigInvalid
from fairwatch.utils.logger import get_logger

logger = get_logger(__name__)

_READ_ONLY_FIELDS = {"version", "updated_by", "updated_at"}


def _expand_dotted(changes: dict[str, Any]) -> dict[str, Any]:
    """Turn {"demographic_parity.warning": 0.85} into nested dicts."""
    expanded: dict[str, Any] = {}
    for key, value in changes.items():
        parts = key.split(".")
        target = expanded
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        if isinstance(value, dict) and isinstance(target.get(parts[-1]), dict):
            target[parts[-1]].update(value)
        else:
            target[parts[-1]] = value
    return expanded


def _merge(base: dict[str, Any], changes: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in changes.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def diff_configs(old: ThresholdConfig, new: ThresholdConfig) -> list[ChangeRecord]:
    """Field-level changes between two snapshots, ignoring bookkeeping fields."""
    records = []

    def walk(prefix: str, before: Any, after: Any) -> None:
        if isinstance(before, dict) and isinstance(after, dict):
            for key in sorted(set(before) | set(after)):
                walk(f"{prefix}.{key}" if prefix else key, before.get(key), after.get(key))
        elif before != after:
            records.append(ChangeRecord(field_name=prefix, old_value=before, new_value=after))

    old_data = old.model_dump(mode="json", exclude=_READ_ONLY_FIELDS)
    new_data = new.model_dump(mode="json", exclude=_READ_ONLY_FIELDS)
    walk("", old_data, new_data)
    return records


class ThresholdRegistry:
    """Holds the active threshold snapshot and applies validated updates."""

    def __init__(self, initial: ThresholdConfig | None = None):
        self._lock = threading.RLock()
        self._current = initial or ThresholdConfig()

    def snapshot(self) -> ThresholdConfig:
        """The snapshot an evaluation should capture at its start."""
        with self._lock:
            return self._current

    @property
    def version(self) -> int:
        return self.snapshot().version

    def update(self, changes: dict[str, Any], actor: str) -> tuple[ThresholdConfig, list[ChangeRecord]]:
        """
        Validate and activate a new snapshot.

        Args:
            changes: Fields to change; nested dicts or dotted keys
                (e.g. ``"demographic_parity.warning"``).
            actor: Who requested the change.

        Returns:
            The new active snapshot and the field-level changes.

        Raises:
            ThresholdConfigInvalid: Unknown fields or a configuration that
                fails validation. The previous snapshot stays active.
        """
        expanded = _expand_dotted(changes)
        if not expanded:
            raise ThresholdConfigInvalid("No threshold changes supplied")

        unknown = sorted(set(expanded) - set(ThresholdConfig.model_fields))
        protected = sorted(set(expanded) & _READ_ONLY_FIELDS)
        if unknown or protected:
            errors = [f"unknown field: {name}" for name in unknown]
            errors += [f"read-only field: {name}" for name in protected]
            raise ThresholdConfigInvalid("Threshold update rejected", errors=errors)

        with self._lock:
            current = self._current
            candidate = _merge(current.model_dump(), expanded)
            candidate.update(
                version=current.version + 1,
                updated_by=actor,
                updated_at=utcnow(),
            )
            try:
                new_config = ThresholdConfig.model_validate(candidate)
            except ValidationError as exc:
                errors = [
                    f"{'.'.join(str(p) for p in err['loc']) or 'config'}: {err['msg']}"
                    for err in exc.errors()
                ]
                logger.warning(f"Rejected threshold update from {actor}: {errors}")
                raise ThresholdConfigInvalid("Threshold update rejected", errors=errors) from exc

            self._current = new_config

        logger.info(f"Threshold configuration v{new_config.version} activated by {actor}")
        return new_config, diff_configs(current, new_config)
