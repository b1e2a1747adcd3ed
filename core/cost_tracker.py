"""
Session cost accounting.

A CostTracker is created once per session and handed to the model-call
wrapper; the terminal front end reads it for the exit summary. Keep it to
cost and durations only.
"""

import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Costs above this are shown with cents precision
COST_PRECISION_THRESHOLD = 0.5


def format_cost(cost: float) -> str:
    if cost > COST_PRECISION_THRESHOLD:
        return f"${cost:.2f}"
    return f"${cost:.4f}"


def format_duration(ms: float) -> str:
    """Render a millisecond duration as e.g. '1h 2m 3.4s' or '850ms'."""
    if ms < 1000:
        return f"{round(ms)}ms"
    seconds = ms / 1000
    hours, rem = divmod(seconds, 3600)
    minutes, secs = divmod(rem, 60)
    if hours >= 1:
        return f"{int(hours)}h {int(minutes)}m {secs:.1f}s"
    if minutes >= 1:
        return f"{int(minutes)}m {secs:.1f}s"
    return f"{secs:.1f}s"


@dataclass
class CostTracker:
    """Running totals for one session; both totals only ever grow."""

    total_cost: float = 0.0
    total_api_duration_ms: float = 0.0
    start_time: float = field(default_factory=time.monotonic)

    def add(self, cost_usd: float, duration_ms: float) -> None:
        self.total_cost += cost_usd
        self.total_api_duration_ms += duration_ms
        logger.debug(
            "Model call cost $%.6f in %.0fms (session total $%.6f)",
            cost_usd,
            duration_ms,
            self.total_cost,
        )

    @property
    def total_duration_ms(self) -> float:
        return (time.monotonic() - self.start_time) * 1000

    def format_total_cost(self) -> str:
        return (
            f"Total cost: {format_cost(self.total_cost)}\n"
            f"Total duration (API): {format_duration(self.total_api_duration_ms)}\n"
            f"Total duration (wall): {format_duration(self.total_duration_ms)}"
        )

    def save_to_project(self, project_config, session_id: str):
        """
        Record this session's totals on a project config.

        Args:
            project_config: ProjectConfig to update
            session_id: Identifier of the finishing session

        Returns:
            Updated copy of the project config
        """
        return project_config.model_copy(
            update={
                "last_cost": self.total_cost,
                "last_api_duration": self.total_api_duration_ms,
                "last_duration": self.total_duration_ms,
                "last_session_id": session_id,
            }
        )
