"""Policy Engine - Field eligibility and per-entity policy registry."""

import logging
from pathlib import Path
from typing import Dict, Optional, Union

import yaml
from pydantic import ValidationError

from auditable.common.exceptions import ConfigurationError
from auditable.policy.schemas import AuditPolicy, PolicyFile


logger = logging.getLogger(__name__)


def is_auditable(field: str, policy: AuditPolicy) -> bool:
    """Check if a change to ``field`` should be kept under ``policy``.

    An explicit include always wins, an explicit exclude loses, and any
    other field is auditable only when no include list is configured.
    """
    if policy.include_only and field in policy.include_only:
        return True
    if field in policy.exclude:
        return False
    return not policy.include_only


class PolicyRegistry:
    """Holds the audit policy for each entity type.
    """

    def __init__(self, default_policy: Optional[AuditPolicy] = None):
        self.default_policy = default_policy or AuditPolicy()
        self._policies: Dict[str, AuditPolicy] = {}
        self.version: Optional[str] = None

    def configure(self, entity_type: str, policy: AuditPolicy) -> None:
        """Set the policy for an entity type, replacing any previous one."""
        self._policies[entity_type] = policy
        logger.debug(f"Configured audit policy for {entity_type}")

    def get(self, entity_type: str) -> AuditPolicy:
        """Get the policy for an entity type (default when unconfigured)."""
        return self._policies.get(entity_type, self.default_policy)

    def is_configured(self, entity_type: str) -> bool:
        return entity_type in self._policies

    @property
    def entity_types(self):
        return sorted(self._policies)

    def load_file(self, policy_file: Union[str, Path]) -> PolicyFile:
        """Load and register policies from a YAML file.

        Args:
            policy_file: Path to the policy YAML document

        Returns:
            The parsed policy file

        Raises:
            FileNotFoundError: If the file does not exist
            ConfigurationError: If the document is not a valid policy file
        """
        path = Path(policy_file)
        if not path.exists():
            raise FileNotFoundError(f"Policy file not found: {path}")

        with open(path, "r") as f:
            raw_config = yaml.safe_load(f) or {}

        try:
            parsed = PolicyFile.model_validate(raw_config)
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid audit policy file: {path}",
                details={"errors": e.errors(include_url=False)},
            ) from e

        for entity_type, policy in parsed.entities.items():
            self.configure(entity_type, policy)

        self.version = parsed.version
        logger.info(
            f"Loaded {len(parsed.entities)} audit policies from {path} "
            f"(version {parsed.version})"
        )
        return parsed
