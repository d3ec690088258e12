"""Settings for the stage-time / SLA module"""

import os
from typing import List
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _env_days(name: str, default: List[int]) -> List[int]:
    value = os.getenv(name)
    if not value:
        return list(default)
    return [int(p) for p in value.split(",") if p.strip()]


@dataclass
class StageSlaSettings:
    """General settings for stage-time and SLA calculations"""

    # Calendar
    REFERENCE_TIMEZONE: str = "UTC"        # Timezone used to decide calendar days
    WEEKEND_DAYS: List[int] = None         # datetime.weekday(): 5=Sat, 6=Sun

    # Numbers
    ROUND_DIGITS: int = 2                  # Rounding applied once, to totals
    STORED_UNITS_PER_HOUR: int = 60        # Chronology stores closed visits in minutes

    def __post_init__(self):
        if self.WEEKEND_DAYS is None:
            self.WEEKEND_DAYS = [5, 6]

    @classmethod
    def from_env(cls) -> "StageSlaSettings":
        """Builds settings from STAGE_SLA_* environment variables"""
        return cls(
            REFERENCE_TIMEZONE=os.getenv("STAGE_SLA_TIMEZONE", "UTC"),
            WEEKEND_DAYS=_env_days("STAGE_SLA_WEEKEND_DAYS", [5, 6]),
            ROUND_DIGITS=int(os.getenv("STAGE_SLA_ROUND_DIGITS", "2")),
            STORED_UNITS_PER_HOUR=int(os.getenv("STAGE_SLA_STORED_UNITS_PER_HOUR", "60")),
        )


# Global instance
settings = StageSlaSettings.from_env()
