"""Shared CLI utilities."""

import json
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path
from typing import Optional

import yaml
from rich.console import Console

console = Console()


def load_tasks(path: Path) -> list[dict]:
    """Read a YAML or JSON list of task mappings.

    A mapping with a top-level ``tasks`` key is also accepted.
    """
    path = Path(path)
    text = path.read_text()
    try:
        if path.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ValueError(f"Could not parse {path.name}: {e}")

    if isinstance(data, dict) and "tasks" in data:
        data = data["tasks"]
    if data is None:
        return []
    if not isinstance(data, list):
        raise ValueError(f"{path.name} must contain a list of tasks")
    return data


def energy_override(level: Optional[str]):
    """History provider that pins the user's energy level, else None."""
    if level is None:
        return None

    from recommender import derive_work_history
    from shared_types import EnergyLevel

    def provider(user_id, tasks):
        return replace(derive_work_history(datetime.now(), tasks), energy_level=EnergyLevel(level))

    return provider


def get_components(energy: Optional[str] = None):
    """Initialize config, feedback store and engine."""
    from cli.config import get_paths, load_config_model
    from feedback import FeedbackRecorder, FeedbackStore
    from recommender import RecommendationEngine

    try:
        config = load_config_model()
    except ValueError as e:
        console.print(f"[red]Config error:[/] {e}")
        sys.exit(1)

    paths = get_paths(config)
    store = FeedbackStore(paths["feedback_db"])
    engine = RecommendationEngine.from_config(
        config,
        feedback_recorder=FeedbackRecorder(store),
        history_provider=energy_override(energy),
    )

    return {
        "config": config,
        "paths": paths,
        "feedback_store": store,
        "engine": engine,
    }
