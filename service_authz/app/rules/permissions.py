"""
Beamline to administrative permission table.

Holding a beamline's admin permission grants access to every session run on
that beamline. New beamlines are onboarded by editing data (the default
table below, or a JSON file named by AUTHZ_PERMISSIONS_PATH), never by
adding code.
"""

import json
from types import MappingProxyType
from typing import Dict, Mapping, Optional

from shared.errors import ConfigurationError
from shared.logging import get_logger

logger = get_logger("authz.permissions")

DEFAULT_BEAMLINE_PERMISSIONS: Dict[str, str] = {
    # Macromolecular crystallography
    "i03": "mx_admin",
    "i04": "mx_admin",
    "i04-1": "mx_admin",
    "i23": "mx_admin",
    "i24": "mx_admin",
    "vmxi": "mx_admin",
    "vmxm": "mx_admin",
    # Small angle scattering
    "b21": "saxs_admin",
    "i22": "saxs_admin",
    "b24": "cryo_admin",
    # Electron microscopy
    "m02": "em_admin",
    "m03": "em_admin",
    "m06": "em_admin",
    "m12": "em_admin",
    # Imaging and tomography
    "i12": "i12_admin",
    "i13": "i13_admin",
    # TODO: confirm with the imaging group whether k11 should accept i12_admin
    # instead of its own permission.
    "k11": "k11_admin",
}


class PermissionTable:
    """Immutable mapping from beamline code to the permission that administers it."""

    def __init__(self, rules: Optional[Mapping[str, str]] = None):
        source = DEFAULT_BEAMLINE_PERMISSIONS if rules is None else rules
        self._rules: Mapping[str, str] = MappingProxyType(
            {str(beamline).lower(): str(permission) for beamline, permission in source.items()}
        )

    def permission_for(self, beamline: str) -> Optional[str]:
        """Return the admin permission for ``beamline``, or None if it has none."""
        return self._rules.get(beamline.lower())

    def __len__(self) -> int:
        return len(self._rules)

    @classmethod
    def load_json(cls, path: str) -> "PermissionTable":
        """Load a flat ``{"beamline": "permission"}`` JSON object."""
        try:
            with open(path, encoding="utf-8") as handle:
                rules = json.load(handle)
        except (OSError, ValueError) as e:
            raise ConfigurationError(
                "Unable to load permission table",
                details={"path": path, "error": str(e)}
            ) from e

        if not isinstance(rules, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in rules.items()
        ):
            raise ConfigurationError(
                "Permission table must map beamline codes to permission names",
                details={"path": path}
            )

        logger.info("Permission table loaded", path=path, beamlines=len(rules))
        return cls(rules)
