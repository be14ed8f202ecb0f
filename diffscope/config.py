import logging
import os

from pydantic import BaseModel, ConfigDict, Field

MAX_READ_BYTES = 2_000_000
MAX_GLOB_RESULTS = 2_000
MAX_GREP_RESULTS = 2_000

logger = logging.getLogger(__name__)


class ToolLimits(BaseModel):
    """Defaults applied when a tool call leaves a limit unset."""

    model_config = ConfigDict(
        extra="forbid",
        frozen=True,
    )

    read_max_bytes: int = Field(default=200_000, gt=0, le=MAX_READ_BYTES)
    glob_max_results: int = Field(default=250, gt=0, le=MAX_GLOB_RESULTS)
    grep_max_results: int = Field(default=200, gt=0, le=MAX_GREP_RESULTS)
    grep_snippet_chars: int = Field(default=200, ge=20)

    @classmethod
    def from_env(cls) -> "ToolLimits":
        """
        Build limits from DIFFSCOPE_* environment variables.

        Unset variables keep the defaults. Values are validated like any
        other field, so a non-numeric or out-of-range value raises.
        """

        overrides: dict[str, str] = {}
        for field_name in ("read_max_bytes", "glob_max_results", "grep_max_results"):
            value = os.getenv(f"DIFFSCOPE_{field_name.upper()}")
            if value:
                overrides[field_name] = value.strip()

        if overrides:
            logger.debug("Tool limit overrides from environment: %s", overrides)
        return cls(**overrides)
