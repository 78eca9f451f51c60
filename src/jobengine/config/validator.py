"""Centralized configuration validation for Job Engine."""

from __future__ import annotations

import warnings
from pathlib import Path
from typing import Any

import yaml

from jobengine.logging import LEVELS
from jobengine.model.task import ImportanceClass


class ConfigValidator:
    """
    Centralized validation for engine configuration.

    All validation happens once at Session.init() to ensure:
    - Type correctness
    - Valid parameter ranges
    - Relationship constraints between parameters
    - Well-formed settings sections (importance, quotas, roles)
    - Clear error messages with actionable feedback
    """

    VALID_LOG_LEVELS = set(LEVELS)

    VALID_THRESHOLDS = {
        "disabled",
        "severe_only",
        "major_injuries",
        "any_injury",
        "minor_injuries",
    }

    VALID_RANGE_PRESETS = {"tight", "balanced", "wide", "custom"}

    INT_PARAMS = [
        "ticks_per_hour",
        "check_interval_ticks",
        "idle_check_interval_ticks",
        "min_full_recompute_interval_ticks",
        "updates_per_tick",
        "secondary_limit_default",
        "individual_secondary_count",
        "custom_backup_jobs",
        "composite_backup_jobs",
        "idle_top_k",
        "idle_level",
        "score_chunk_size",
        "large_colony_threshold",
    ]

    FLOAT_PARAMS = [
        "recompute_interval_hours",
        "backlog_factor",
        "urgency_weight_primary",
        "urgency_weight_secondary",
        "urgency_weight_idle",
        "active_demand_primary",
        "active_demand_secondary",
        "active_demand_idle",
        "uncovered_boost",
        "under_min_boost",
        "held_primary_penalty",
        "shared_primary_boost",
        "holder_penalty",
        "idle_assigned_fraction",
    ]

    BOOL_PARAMS = [
        "auto_assign_enabled",
        "illness_response_enabled",
        "solo_survival_mode",
    ]

    @staticmethod
    def validate_config(cfg: dict[str, Any]) -> None:
        """
        Validate all configuration parameters.

        Parameters
        ----------
        cfg : dict
            Configuration dictionary to validate.

        Raises
        ------
        ValueError
            If any validation check fails.
        """
        ConfigValidator._validate_types(cfg)
        ConfigValidator._validate_ranges(cfg)
        ConfigValidator._validate_relationships(cfg)
        ConfigValidator._validate_settings(cfg)

        if "logging" in cfg:
            ConfigValidator._validate_logging(cfg["logging"])

    @staticmethod
    def _validate_types(cfg: dict[str, Any]) -> None:
        """
        Ensure correct types for configuration parameters.

        Raises
        ------
        ValueError
            If any parameter has incorrect type.
        """
        for key in ConfigValidator.INT_PARAMS:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, int):
                raise ValueError(
                    f"Config parameter '{key}' must be int, got {type(val).__name__}"
                )

        # accept int or float
        for key in ConfigValidator.FLOAT_PARAMS:
            if key not in cfg:
                continue
            val = cfg[key]
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise ValueError(
                    f"Config parameter '{key}' must be float, got {type(val).__name__}"
                )

        for key in ConfigValidator.BOOL_PARAMS:
            if key not in cfg:
                continue
            val = cfg[key]
            if not isinstance(val, bool):
                raise ValueError(
                    f"Config parameter '{key}' must be bool, got {type(val).__name__}"
                )

        if "illness_threshold" in cfg:
            val = cfg["illness_threshold"]
            if not isinstance(val, str):
                raise ValueError(
                    f"Config parameter 'illness_threshold' must be str, "
                    f"got {type(val).__name__}"
                )

        if "pipeline_path" in cfg:
            val = cfg["pipeline_path"]
            if val is not None and not isinstance(val, str):
                raise ValueError(
                    f"Config parameter 'pipeline_path' must be str or None, "
                    f"got {type(val).__name__}"
                )

        if "secondary_limits" in cfg:
            limits = cfg["secondary_limits"]
            if not isinstance(limits, (list, tuple)):
                raise ValueError(
                    f"Config parameter 'secondary_limits' must be a list, "
                    f"got {type(limits).__name__}"
                )
            for pair in limits:
                if (
                    not isinstance(pair, (list, tuple))
                    or len(pair) != 2
                    or not all(isinstance(v, int) for v in pair)
                ):
                    raise ValueError(
                        "Config parameter 'secondary_limits' must contain "
                        f"[colony_size, n] int pairs, got {pair!r}"
                    )

    @staticmethod
    def _validate_ranges(cfg: dict[str, Any]) -> None:
        """
        Ensure parameters are in valid ranges.

        Raises
        ------
        ValueError
            If any parameter is out of valid range.
        """
        # (min_val, max_val); None means unbounded
        constraints = {
            "ticks_per_hour": (1, None),
            "check_interval_ticks": (1, None),
            "idle_check_interval_ticks": (1, None),
            "min_full_recompute_interval_ticks": (0, None),
            "updates_per_tick": (1, None),
            "backlog_factor": (1.0, None),
            "recompute_interval_hours": (0.0, None),
            "urgency_weight_primary": (0.0, None),
            "urgency_weight_secondary": (0.0, None),
            "urgency_weight_idle": (0.0, None),
            "active_demand_primary": (1.0, None),
            "active_demand_secondary": (1.0, None),
            "active_demand_idle": (1.0, None),
            "uncovered_boost": (1.0, None),
            "under_min_boost": (1.0, None),
            "held_primary_penalty": (0.0, 1.0),
            "shared_primary_boost": (1.0, None),
            "holder_penalty": (0.0, None),
            "secondary_limit_default": (1, None),
            "individual_secondary_count": (0, None),
            "custom_backup_jobs": (0, None),
            "composite_backup_jobs": (0, None),
            "idle_top_k": (0, None),
            "idle_level": (1, 4),
            "idle_assigned_fraction": (0.0, 1.0),
            "score_chunk_size": (1, None),
            "large_colony_threshold": (1, None),
        }

        for key, (min_val, max_val) in constraints.items():
            if key not in cfg:
                continue

            val = cfg[key]
            if val is None:
                continue

            if min_val is not None and val < min_val:
                raise ValueError(
                    f"Config parameter '{key}' must be >= {min_val}, got {val}"
                )
            if max_val is not None and val > max_val:
                raise ValueError(
                    f"Config parameter '{key}' must be <= {max_val}, got {val}"
                )

        if "illness_threshold" in cfg:
            val = cfg["illness_threshold"].lower()
            if val not in ConfigValidator.VALID_THRESHOLDS:
                raise ValueError(
                    f"Invalid illness_threshold '{cfg['illness_threshold']}'. "
                    f"Must be one of {sorted(ConfigValidator.VALID_THRESHOLDS)}"
                )

        for size, n in cfg.get("secondary_limits", ()):
            if size < 1 or n < 1:
                raise ValueError(
                    "Config parameter 'secondary_limits' entries must be "
                    f"positive, got [{size}, {n}]"
                )

    @staticmethod
    def _validate_relationships(cfg: dict[str, Any]) -> None:
        """Validate cross-parameter constraints (warnings only)."""
        check = cfg.get("check_interval_ticks", 0)
        idle = cfg.get("idle_check_interval_ticks", 0)
        if check > 0 and idle > 0 and idle < check:
            warnings.warn(
                f"idle_check_interval_ticks ({idle}) < check_interval_ticks "
                f"({check}). Idle scans only run on controller checks.",
                UserWarning,
                stacklevel=3,
            )

        limits = [size for size, _ in cfg.get("secondary_limits", ())]
        if limits != sorted(limits):
            warnings.warn(
                f"secondary_limits colony sizes {limits} are not ascending. "
                "The first matching entry wins.",
                UserWarning,
                stacklevel=3,
            )

        hours = cfg.get("recompute_interval_hours", 0)
        if cfg.get("auto_assign_enabled", False) and hours == 0:
            warnings.warn(
                "auto_assign_enabled is on but recompute_interval_hours is 0. "
                "Periodic recomputes will never run.",
                UserWarning,
                stacklevel=3,
            )

    @staticmethod
    def _validate_settings(cfg: dict[str, Any]) -> None:
        """
        Validate the user-facing settings sections.

        Raises
        ------
        ValueError
            If importance names, quota entries or role templates are malformed.
        """
        importance = cfg.get("importance") or {}
        if not isinstance(importance, dict):
            raise ValueError(
                f"Config parameter 'importance' must be dict, "
                f"got {type(importance).__name__}"
            )
        for task_id, value in importance.items():
            ConfigValidator._check_importance(value, f"importance['{task_id}']")

        quotas = cfg.get("quotas") or {}
        if not isinstance(quotas, dict):
            raise ValueError(
                f"Config parameter 'quotas' must be dict, got {type(quotas).__name__}"
            )
        for task_id, quota in quotas.items():
            ConfigValidator._validate_quota(task_id, quota)

        for key in ("always_enabled",):
            val = cfg.get(key) or []
            if not isinstance(val, (list, tuple)) or not all(
                isinstance(t, str) for t in val
            ):
                raise ValueError(f"Config parameter '{key}' must be a list of str")

        survival = cfg.get("survival_priorities") or {}
        for task_id, level in survival.items():
            if isinstance(level, bool) or not isinstance(level, int):
                raise ValueError(
                    f"survival_priorities['{task_id}'] must be int, "
                    f"got {type(level).__name__}"
                )
            if not 0 <= level <= 4:
                raise ValueError(
                    f"survival_priorities['{task_id}'] must be in 0..4, got {level}"
                )

        presets = cfg.get("presets") or {}
        for name, task_id in presets.items():
            if not isinstance(task_id, str):
                raise ValueError(
                    f"presets['{name}'] must be a task id str, "
                    f"got {type(task_id).__name__}"
                )

        composites = cfg.get("composites") or {}
        for name, entries in composites.items():
            for entry in entries:
                if (
                    not isinstance(entry, (list, tuple))
                    or len(entry) != 2
                    or not isinstance(entry[0], str)
                    or isinstance(entry[1], bool)
                    or not isinstance(entry[1], int)
                ):
                    raise ValueError(
                        f"composites['{name}'] entries must be [task, tier], "
                        f"got {entry!r}"
                    )
                if not 1 <= entry[1] <= 4:
                    raise ValueError(
                        f"composites['{name}'] tier for '{entry[0]}' must be "
                        f"in 1..4, got {entry[1]}"
                    )

        custom = cfg.get("custom_roles") or {}
        for name, entries in custom.items():
            for entry in entries:
                if (
                    not isinstance(entry, (list, tuple))
                    or len(entry) != 2
                    or not isinstance(entry[0], str)
                ):
                    raise ValueError(
                        f"custom_roles['{name}'] entries must be "
                        f"[task, importance], got {entry!r}"
                    )
                ConfigValidator._check_importance(
                    entry[1], f"custom_roles['{name}']['{entry[0]}']"
                )

        ext = cfg.get("extended_range")
        if ext is not None:
            ConfigValidator._validate_extended_range(ext)

    @staticmethod
    def _check_importance(value: Any, where: str) -> None:
        try:
            ImportanceClass.parse(value)
        except (KeyError, ValueError):
            raise ValueError(
                f"Invalid importance {value!r} for {where}. "
                f"Must be one of {[m.name.lower() for m in ImportanceClass]}"
            ) from None

    @staticmethod
    def _validate_quota(task_id: str, quota: Any) -> None:
        if not isinstance(quota, dict):
            raise ValueError(
                f"quotas['{task_id}'] must be dict, got {type(quota).__name__}"
            )
        unknown = set(quota) - {"min", "max", "is_percentage", "closed"}
        if unknown:
            raise ValueError(
                f"quotas['{task_id}'] has unknown keys {sorted(unknown)}. "
                "Allowed: min, max, is_percentage, closed"
            )
        for key in ("min", "max"):
            val = quota.get(key, 0)
            if isinstance(val, bool) or not isinstance(val, int):
                raise ValueError(
                    f"quotas['{task_id}'].{key} must be int, got {type(val).__name__}"
                )
            if val < 0:
                raise ValueError(f"quotas['{task_id}'].{key} must be >= 0, got {val}")
        if quota.get("is_percentage", False):
            for key in ("min", "max"):
                if quota.get(key, 0) > 100:
                    raise ValueError(
                        f"quotas['{task_id}'].{key} is a percentage and must be "
                        f"<= 100, got {quota[key]}"
                    )
        lo, hi = quota.get("min", 0), quota.get("max", 0)
        if hi > 0 and lo > hi:
            raise ValueError(
                f"quotas['{task_id}'] min ({lo}) must not exceed max ({hi})"
            )
        if quota.get("closed", False) and lo > 0:
            warnings.warn(
                f"quotas['{task_id}'] is closed but has min={lo}. "
                "The minimum will never be met.",
                UserWarning,
                stacklevel=4,
            )

    @staticmethod
    def _validate_extended_range(ext: Any) -> None:
        if not isinstance(ext, dict):
            raise ValueError(
                f"Config parameter 'extended_range' must be dict or None, "
                f"got {type(ext).__name__}"
            )
        max_range = ext.get("max_range")
        if isinstance(max_range, bool) or not isinstance(max_range, int):
            raise ValueError("extended_range.max_range must be int")
        if max_range < 4:
            raise ValueError(
                f"extended_range.max_range must be >= 4, got {max_range}"
            )
        preset = str(ext.get("preset", "balanced")).lower()
        if preset not in ConfigValidator.VALID_RANGE_PRESETS:
            raise ValueError(
                f"Invalid extended_range.preset '{preset}'. "
                f"Must be one of {sorted(ConfigValidator.VALID_RANGE_PRESETS)}"
            )
        if preset == "custom" and not isinstance(ext.get("mapping"), dict):
            raise ValueError(
                "extended_range.mapping must be a {level: external_level} dict "
                "when preset is 'custom'"
            )

    @staticmethod
    def _validate_logging(log_config: dict[str, Any]) -> None:
        """
        Validate logging configuration.

        Parameters
        ----------
        log_config : dict
            Logging configuration dictionary with keys:
            - default_level: str (e.g., 'INFO', 'DEBUG')
            - passes: dict[str, str] (per-pass overrides)

        Raises
        ------
        ValueError
            If logging configuration is invalid.
        """
        if "default_level" in log_config:
            level = log_config["default_level"]
            if not isinstance(level, str):
                raise ValueError(
                    f"Logging default_level must be str, got {type(level).__name__}"
                )

            if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                raise ValueError(
                    f"Invalid log level '{level}'. "
                    f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                )

        if "passes" in log_config:
            passes = log_config["passes"]
            if not isinstance(passes, dict):
                raise ValueError(
                    f"Logging passes must be dict, got {type(passes).__name__}"
                )

            for pass_name, level in passes.items():
                if not isinstance(pass_name, str):
                    raise ValueError(
                        f"Pass name must be str, got {type(pass_name).__name__}"
                    )

                if not isinstance(level, str):
                    raise ValueError(
                        f"Log level for pass '{pass_name}' must be str, "
                        f"got {type(level).__name__}"
                    )

                if level.upper() not in ConfigValidator.VALID_LOG_LEVELS:
                    raise ValueError(
                        f"Invalid log level '{level}' for pass '{pass_name}'. "
                        f"Must be one of {ConfigValidator.VALID_LOG_LEVELS}"
                    )

    @staticmethod
    def validate_pipeline_path(pipeline_path: str) -> None:
        """
        Validate pipeline path exists and is readable.

        Raises
        ------
        ValueError
            If path does not exist or is not a file.
        """
        path = Path(pipeline_path)

        if not path.exists():
            raise ValueError(f"Pipeline path '{pipeline_path}' does not exist")

        if not path.is_file():
            raise ValueError(f"Pipeline path '{pipeline_path}' is not a file")

        if path.suffix not in [".yml", ".yaml"]:
            warnings.warn(
                f"Pipeline path '{pipeline_path}' does not have .yml/.yaml extension",
                UserWarning,
                stacklevel=2,
            )

    @staticmethod
    def validate_pipeline_yaml(yaml_path: str) -> None:
        """
        Validate pipeline YAML structure and pass references.

        Raises
        ------
        ValueError
            If YAML structure is invalid or references unknown passes.
        """
        from jobengine.core.registry import list_passes

        with open(Path(yaml_path)) as f:
            config = yaml.safe_load(f)

        if not isinstance(config, dict):
            raise ValueError(
                f"Pipeline YAML must be a dictionary, got {type(config).__name__}"
            )

        if "passes" not in config:
            raise ValueError(f"Pipeline YAML must have 'passes' key: {yaml_path}")

        specs = config["passes"]
        if not isinstance(specs, list):
            raise ValueError(
                f"Pipeline 'passes' must be a list, got {type(specs).__name__}"
            )

        registered = set(list_passes())
        for i, name in enumerate(specs):
            if not isinstance(name, str):
                raise ValueError(
                    f"Pass entry at index {i} must be str, got {type(name).__name__}"
                )
            if name.strip() not in registered:
                raise ValueError(
                    f"Pass '{name}' not found in registry. "
                    f"Available passes: {sorted(registered)}"
                )
