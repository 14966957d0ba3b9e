# bridgeopt/config.py

from typing import List, Optional
from pathlib import Path
import json
import logging
import sys

from pydantic import BaseModel, Field, model_validator, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv
from pythonjsonlogger.json import JsonFormatter

load_dotenv()

# Custom JSON formatter that excludes null/None fields
class CustomJsonFormatter(JsonFormatter):
    """Custom JSON formatter that only includes fields with non-None values."""

    def add_fields(self, log_record, record, message_dict):
        """Override to filter out None values before adding to JSON output."""
        super().add_fields(log_record, record, message_dict)

        for key, value in dict(log_record).items():
            if value is None:
                del log_record[key]

def setup_json_logging(log_level: int = logging.INFO) -> None:
    """Initialize JSON logging for the bridgeopt package."""
    handler = logging.StreamHandler(sys.stdout)

    # Fields used across bridge building, selection and final touch
    formatter = CustomJsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(message)s "
        "%(bridge)s %(bridges)s %(construct_type)s %(index)s "
        "%(cost)s %(count)s %(runs)s %(cycle)s %(sense)s "
        "%(solver)s %(status)s %(objective_value)s"
    )

    handler.setFormatter(formatter)

    root_logger = logging.getLogger("bridgeopt")
    root_logger.setLevel(log_level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers = []

    root_logger.addHandler(handler)

    # Prevent propagation to avoid duplicate logs
    root_logger.propagate = False


class OrtoolsSolverConfig(BaseModel):
    """Backend names and limits for the OR-Tools linear solver adapter."""
    lp_solver: str = "GLOP"
    mip_solver: str = "CBC"
    time_limit_ms: Optional[int] = None
    enable_output: bool = False

    @field_validator("lp_solver", "mip_solver")
    @classmethod
    def validate_solver_name(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("OR-Tools solver name must be a non-empty string")
        return v.strip().upper()


class BridgeCatalogConfig(BaseModel):
    default_set: Optional[List[str]] = None
    include: List[str] = Field(default_factory=list)
    exclude: List[str] = Field(default_factory=list)
    cost_policy: Optional[str] = None


COST_POLICY_NAMES = ("uniform", "resource_weighted")


def _normalize_cost_policy(v: str) -> str:
    v = v.strip().lower()
    if v not in COST_POLICY_NAMES:
        raise ValueError(f"BRIDGE_COST_POLICY must be one of {COST_POLICY_NAMES}, got {v!r}")
    return v


BASE_DIR = Path(__file__).resolve().parent.parent  # project root folder


class Settings(BaseSettings):
    # App
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"

    # Bridge selection
    BRIDGE_COST_POLICY: str = "uniform"  # uniform | resource_weighted
    # None -> registry defaults; a list replaces them
    BRIDGE_DEFAULT_SET: Optional[List[str]] = None
    BRIDGE_INCLUDE: List[str] = Field(default_factory=list)
    BRIDGE_EXCLUDE: List[str] = Field(default_factory=list)

    # Path to JSON object with default_set / include / exclude / cost_policy
    BRIDGE_CATALOG_CONFIG_FILE: Optional[str] = None

    # OR-Tools adapter
    ORTOOLS_LP_SOLVER: str = "GLOP"
    ORTOOLS_MIP_SOLVER: str = "CBC"
    ORTOOLS_TIME_LIMIT_MS: Optional[int] = None
    ORTOOLS: Optional[OrtoolsSolverConfig] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @field_validator("BRIDGE_COST_POLICY")
    @classmethod
    def validate_cost_policy(cls, v: str) -> str:
        return _normalize_cost_policy(v)

    @model_validator(mode="after")
    def load_bridge_catalog_from_file(self) -> "Settings":
        """
        If BRIDGE_CATALOG_CONFIG_FILE is set, read that JSON file
        and merge it into the BRIDGE_* settings.
        """
        if self.BRIDGE_CATALOG_CONFIG_FILE:
            cfg_path = Path(self.BRIDGE_CATALOG_CONFIG_FILE)
            if not cfg_path.is_absolute():
                cfg_path = BASE_DIR / cfg_path

            if not cfg_path.exists():
                raise FileNotFoundError(
                    f"BRIDGE_CATALOG_CONFIG_FILE points to {cfg_path}, but it does not exist."
                )

            with cfg_path.open("r", encoding="utf-8") as f:
                raw = json.load(f)

            if not isinstance(raw, dict):
                raise ValueError(
                    "Bridge catalog config file must contain a JSON object with default_set/include/exclude."
                )

            catalog = BridgeCatalogConfig.model_validate(raw)
            if catalog.default_set is not None:
                self.BRIDGE_DEFAULT_SET = catalog.default_set
            self.BRIDGE_INCLUDE = [*self.BRIDGE_INCLUDE, *(n for n in catalog.include if n not in self.BRIDGE_INCLUDE)]
            self.BRIDGE_EXCLUDE = [*self.BRIDGE_EXCLUDE, *(n for n in catalog.exclude if n not in self.BRIDGE_EXCLUDE)]
            if catalog.cost_policy:
                self.BRIDGE_COST_POLICY = _normalize_cost_policy(catalog.cost_policy)

        return self

    @model_validator(mode="after")
    def build_ortools_config(self) -> "Settings":
        """Populate ORTOOLS from the flat ORTOOLS_* fields unless given as a nested object."""
        if self.ORTOOLS is None:
            self.ORTOOLS = OrtoolsSolverConfig(
                lp_solver=self.ORTOOLS_LP_SOLVER,
                mip_solver=self.ORTOOLS_MIP_SOLVER,
                time_limit_ms=self.ORTOOLS_TIME_LIMIT_MS,
            )
        return self


settings = Settings()
