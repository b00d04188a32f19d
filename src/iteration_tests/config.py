from __future__ import annotations

from pathlib import Path

import yaml
from expandvars import expandvars
from pydantic import BaseModel, ConfigDict, field_validator

DEFAULT_CONFIG_FILENAME = "iteration-tests.yaml"


class ReporterConfig(BaseModel):
    """Output locations and conventions shared by the whole run."""

    model_config = ConfigDict(extra="forbid")

    base_dir: str = "."
    report_dir: str = "newman"
    json_suffix: str = ".iterations-report.json"
    tsv_suffix: str = ".iterations-report.tsv"
    marker: str = "iterationId"
    separator: str = "\t"

    @field_validator("base_dir")
    @classmethod
    def expand_base_dir(cls, v: str) -> str:
        try:
            return expandvars(v, nounset=True)
        except Exception as e:
            raise ValueError(f"base_dir {v!r} references an unset variable: {e}")

    @field_validator("marker", "separator", "json_suffix", "tsv_suffix")
    @classmethod
    def must_not_be_empty(cls, v: str) -> str:
        if not v:
            raise ValueError("must not be empty")
        return v

    @property
    def output_dir(self) -> Path:
        return Path(self.base_dir) / self.report_dir

    def json_report_path(self, collection: str) -> Path:
        return self.output_dir / f"{collection}{self.json_suffix}"

    def tsv_report_path(self, collection: str) -> Path:
        return self.output_dir / f"{collection}{self.tsv_suffix}"


def load_config(path: Path | None = None) -> ReporterConfig:
    """Load and validate reporter settings from a YAML file.

    Without a path the defaults apply. A relative ``base_dir`` is resolved
    against the directory holding the config file.
    """
    if path is None:
        return ReporterConfig()

    with open(path) as f:
        raw = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Expected a mapping at the top level of {path}")

    config = ReporterConfig(**raw)

    base = Path(config.base_dir)
    if not base.is_absolute():
        config.base_dir = str((path.parent.resolve() / base).resolve())

    return config
