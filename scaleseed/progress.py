"""Stage checkpoints for seed and bench runs.

The checkpoint is a single JSON file overwritten at every stage boundary and
removed when a run succeeds. A failed run leaves it behind so the operator can
see how far it got (``scaleseed progress``) before cleaning up and re-running.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from scaleseed.models import GeneratorProgress, ProgressState

logger = logging.getLogger(__name__)


class ProgressTracker:
    """Read, write and clear the checkpoint file at ``path``."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def write(self, state: ProgressState) -> None:
        now = datetime.now(timezone.utc).isoformat()
        if not state.started_at:
            state.started_at = now
        state.last_updated_at = now

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(state.to_dict(), indent=2) + "\n")

    def read(self) -> ProgressState | None:
        """Current checkpoint, or None if no run is in flight."""
        if not self.path.exists():
            return None
        try:
            return ProgressState.from_dict(json.loads(self.path.read_text()))
        except (json.JSONDecodeError, TypeError, KeyError) as e:
            logger.warning(f"Unreadable progress file {self.path}: {e}")
            return None

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    def record_generator(self, state: ProgressState, name: str, row_count: int) -> None:
        """Mark generator ``name`` complete and persist the checkpoint."""
        state.completed_generators.append(
            GeneratorProgress(
                name=name,
                row_count=row_count,
                completed_at=datetime.now(timezone.utc).isoformat(),
            )
        )
        state.stage = f"generator_{name}"
        state.completed_stages.append(f"generator_{name}")
        self.write(state)


def format_progress(state: ProgressState) -> str:
    """Human-readable rendering for the CLI."""
    lines = [
        f"Command:      {state.command}",
        f"Seed:         {state.seed}",
        f"Scale:        {state.scale}",
        f"Stage:        {state.stage}",
        f"Started:      {state.started_at}",
        f"Last update:  {state.last_updated_at}",
    ]
    if state.completed_stages:
        lines.append("Completed stages:")
        lines.extend(f"  - {s}" for s in state.completed_stages)
    if state.completed_generators:
        lines.append("Completed generators:")
        lines.extend(
            f"  - {g.name}: {g.row_count} rows ({g.completed_at})"
            for g in state.completed_generators
        )
    return "\n".join(lines)
