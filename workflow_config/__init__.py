"""
workflow_config -- single public entrypoint for workflow configuration.

Responsibility:
    Provides the way to obtain configuration at runtime through
    ``get_active_config()``: the seed role catalog, the seed authorization
    matrix and the action label table, read from a named set of YAML
    fragments under ``workflow_config/sets/``.

Architecture position:
    Configuration.  Sits above ``workflow_kernel`` and below
    ``workflow_services``.  The kernel never imports ``workflow_config``;
    ``bridges`` translates configuration into kernel records.

Invariants enforced:
    - Every returned set has passed ``validate_configuration``.
    - Same YAML fragments always produce the same checksum.

Failure modes:
    - ``ConfigurationError`` -- unknown set, missing fragment, structural
      problem, or validation errors.
    - ``yaml.YAMLError`` -- malformed YAML.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``WORKFLOW_CONFIG_TRACE`` log entry with the config_id, version and
    checksum, tying each seeded store to the exact configuration used.
"""

from __future__ import annotations

import logging
from pathlib import Path

from workflow_config.loader import ConfigurationError, load_configuration_set
from workflow_config.schema import WorkflowConfigurationSet
from workflow_config.validator import ConfigValidationResult, validate_configuration

_logger = logging.getLogger("workflow_kernel.config")

_DEFAULT_CONFIG_DIR = Path(__file__).parent / "sets"


def get_active_config(
    set_name: str = "default",
    config_dir: Path | None = None,
) -> WorkflowConfigurationSet:
    """Load, validate and return the configuration set ``set_name``.

    Args:
        set_name: Subdirectory of ``config_dir`` holding the fragments.
        config_dir: Override path to the configuration sets directory.
            Defaults to workflow_config/sets/.

    Raises:
        ConfigurationError: If the set is missing or fails validation.
    """
    sets_dir = config_dir or _DEFAULT_CONFIG_DIR
    set_dir = sets_dir / set_name
    if not (set_dir / "root.yaml").exists():
        raise ConfigurationError(str(set_dir), f"no configuration set named {set_name!r}")

    config = load_configuration_set(set_dir)

    validation = validate_configuration(config)
    if not validation.is_valid:
        raise ConfigurationError(config.config_id, validation.errors)
    for warning in validation.warnings:
        _logger.warning(
            "config_validation_warning",
            extra={"config_set_id": config.config_id, "detail": warning},
        )

    _logger.info(
        "WORKFLOW_CONFIG_TRACE",
        extra={
            "trace_type": "WORKFLOW_CONFIG_TRACE",
            "config_set_id": config.config_id,
            "config_set_version": config.version,
            "checksum": config.checksum,
            "protected_role": config.protected_role,
            "role_count": len(config.roles),
            "authorization_count": len(config.authorizations),
        },
    )
    return config


__all__ = [
    "ConfigValidationResult",
    "ConfigurationError",
    "WorkflowConfigurationSet",
    "get_active_config",
    "validate_configuration",
]
