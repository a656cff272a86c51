"""Flowgraph settings schema and loading."""

import logging
import os
from pathlib import Path
from typing import Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import DocumentError

CONFIG_ENV_VAR = "FLOWGRAPH_CONFIG"


class FlowgraphConfig(BaseModel):
    """Settings for a catalog + editing session."""

    load_builtins: bool = Field(
        default=True, description="Seed the registry with the built-in task catalog"
    )
    custom_definitions_path: Optional[str] = Field(
        default=None, description="YAML/JSON file with user-defined task definitions"
    )
    default_timezone: str = Field(
        default="UTC", description="Timezone applied to schedules that omit one"
    )
    node_id_prefix: str = Field(default="node", description="Prefix for generated node ids")
    log_level: str = Field(default="WARNING", description="Level for the flowgraph logger")

    model_config = ConfigDict(extra="forbid")


def load_config(path: Union[str, Path, None] = None) -> FlowgraphConfig:
    """Load settings from a YAML file.

    Falls back to ``$FLOWGRAPH_CONFIG`` and then to defaults.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return FlowgraphConfig()

    path = Path(path)
    if not path.exists():
        raise DocumentError(f"Config file not found: {path}")

    data = yaml.safe_load(path.read_text()) or {}
    try:
        return FlowgraphConfig.model_validate(data)
    except ValidationError as e:
        raise DocumentError(f"Config validation error: {e}")


def configure_logging(config: FlowgraphConfig) -> None:
    """Apply ``log_level`` to the package logger."""
    logging.getLogger("flowgraph").setLevel(config.log_level.upper())
