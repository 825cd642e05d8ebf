"""Immutable run configuration shared by every parse in a process."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

ENCODERS: tuple[str, ...] = ("boostbook", "html")

# Reproducible clock used in debug mode.
FIXED_TIME = datetime(2000, 12, 20, 12, 0, 0)

DEFAULT_INDENT = 2
DEFAULT_LINEWIDTH = 80


def _local_now() -> datetime:
    return datetime.now()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True, slots=True)
class Config:
    """Options assembled once (by the CLI or a caller) and never mutated."""

    encoder: str = "boostbook"
    pretty_print: bool = True
    indent: int = DEFAULT_INDENT
    linewidth: int = DEFAULT_LINEWIDTH
    defines: tuple[str, ...] = ()
    include_path: tuple[Path, ...] = ()
    ms_errors: bool = False
    debug: bool = False
    current_time: datetime = field(default_factory=_local_now)
    current_gm_time: datetime = field(default_factory=_utc_now)

    def __post_init__(self) -> None:
        if self.encoder not in ENCODERS:
            raise ValueError(f"unknown encoder: {self.encoder!r} (expected one of {', '.join(ENCODERS)})")
        if self.indent < 0:
            raise ValueError(f"indent must not be negative: {self.indent}")
        if self.linewidth < 1:
            raise ValueError(f"linewidth must be positive: {self.linewidth}")

    @property
    def timestamp(self) -> datetime:
        """Local time used for __DATE__ and __TIME__."""
        return FIXED_TIME if self.debug else self.current_time

    @property
    def gm_timestamp(self) -> datetime:
        """UTC time used for the default last-revision."""
        return FIXED_TIME if self.debug else self.current_gm_time

    @property
    def output_extension(self) -> str:
        return ".html" if self.encoder == "html" else ".xml"
