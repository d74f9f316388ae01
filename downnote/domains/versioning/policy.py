import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

DEFAULT_CHAR_THRESHOLD = 100
DEFAULT_TIME_THRESHOLD_MINUTES = 5


class VersionReason(str, enum.Enum):
    FIRST_VERSION = "first_version"
    SIGNIFICANT_CHANGE = "significant_change"
    TIME_THRESHOLD = "time_threshold"
    NO_VERSION_NEEDED = "no_version_needed"


@dataclass(frozen=True)
class VersionDecision:
    should_snapshot: bool
    reason: VersionReason


class VersionDecisionPolicy:
    """Решает, нужно ли сохранить снимок документа.

    Разница длины - дешевая замена настоящего diff; порог по времени
    гарантирует снимок для медленных мелких правок, но только если текст
    действительно изменился. Часы не читаются: текущее время передается
    параметром `now`.
    """

    def __init__(
        self,
        char_threshold: int = DEFAULT_CHAR_THRESHOLD,
        time_threshold_minutes: float = DEFAULT_TIME_THRESHOLD_MINUTES
    ):
        self.char_threshold = char_threshold
        self.time_threshold_minutes = time_threshold_minutes

    @classmethod
    def from_settings(cls, settings) -> "VersionDecisionPolicy":
        return cls(
            char_threshold=settings.version_char_threshold,
            time_threshold_minutes=settings.version_time_threshold_minutes
        )

    def decide(
        self,
        current_body: str,
        last_snapshot_body: Optional[str],
        last_snapshot_time: Optional[datetime],
        *,
        now: datetime
    ) -> VersionDecision:
        if last_snapshot_body is None or last_snapshot_time is None:
            return VersionDecision(True, VersionReason.FIRST_VERSION)

        char_diff = abs(len(current_body) - len(last_snapshot_body))
        if char_diff > self.char_threshold:
            return VersionDecision(True, VersionReason.SIGNIFICANT_CHANGE)

        elapsed_minutes = (now - last_snapshot_time).total_seconds() / 60
        if elapsed_minutes > self.time_threshold_minutes and current_body != last_snapshot_body:
            return VersionDecision(True, VersionReason.TIME_THRESHOLD)

        return VersionDecision(False, VersionReason.NO_VERSION_NEEDED)


_default_policy = VersionDecisionPolicy()


def decide(
    current_body: str,
    last_snapshot_body: Optional[str],
    last_snapshot_time: Optional[datetime],
    *,
    now: datetime
) -> VersionDecision:
    """Решение с порогами по умолчанию (100 символов, 5 минут)"""
    return _default_policy.decide(current_body, last_snapshot_body, last_snapshot_time, now=now)
