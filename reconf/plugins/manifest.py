"""Plugin manifest model - describes a plugin's identity, entry point and needs."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator


class PluginType(str, Enum):
    """Plugin roles."""

    THEME = "theme"
    CONFIG_PARSER = "config-parser"
    UI_COMPONENT = "ui-component"
    VALIDATOR = "validator"
    EXPORTER = "exporter"


class Permission(str, Enum):
    """Capability tokens a plugin may request."""

    FS_READ = "fs-read"
    FS_WRITE = "fs-write"
    NETWORK = "network"
    UI_MODIFY = "ui-modify"
    CONFIG_MODIFY = "config-modify"
    SYSTEM_INFO = "system-info"


DANGEROUS_PERMISSIONS = (Permission.FS_WRITE, Permission.NETWORK, Permission.SYSTEM_INFO)

# Fields attached by the loader, never read from the manifest file
LOAD_FIELDS = ("source_path", "directory", "loaded_at")


class PluginManifest(BaseModel):
    """Plugin manifest loaded from a ``*.reconf`` file.

    Only the structural rules are enforced here (required fields, type enum,
    numeric version prefix). The full rule set lives in
    :mod:`reconf.plugins.validator`.
    """

    model_config = ConfigDict(frozen=True, extra="allow", use_enum_values=False)

    name: str = Field(..., min_length=1, description="Unique plugin identifier")
    version: str = Field(..., pattern=r"^\d+\.\d+\.\d+", description="Semantic version")
    type: PluginType = Field(..., description="Plugin role")
    main: str = Field(..., min_length=1, description="Implementation file relative to the manifest")
    description: str = Field(default="", description="Plugin description")
    author: str = Field(default="", description="Plugin author")
    dependencies: Union[List[str], Dict[str, Optional[str]]] = Field(
        default_factory=list,
        description="Names of required plugins, optionally mapped to a minimum version",
    )
    config: Dict[str, Any] = Field(default_factory=dict, description="Plugin-specific options")
    permissions: List[str] = Field(default_factory=list, description="Requested capabilities")

    source_path: Optional[Path] = Field(default=None, exclude=True)
    directory: Optional[Path] = Field(default=None, exclude=True)
    loaded_at: Optional[datetime] = Field(default=None, exclude=True)

    @field_validator("description", "author", "dependencies", "config", "permissions", mode="before")
    @classmethod
    def null_means_default(cls, v: Any, info: ValidationInfo) -> Any:
        """An explicit ``null`` for an optional field is treated as absent."""
        if v is None:
            return cls.model_fields[info.field_name].get_default(call_default_factory=True)
        return v

    @property
    def dependency_names(self) -> List[str]:
        return list(self.dependencies)

    @property
    def dependency_constraints(self) -> Dict[str, Optional[str]]:
        if isinstance(self.dependencies, dict):
            return dict(self.dependencies)
        return {name: None for name in self.dependencies}

    @property
    def main_path(self) -> Path:
        """Absolute path of the implementation file."""
        base = self.directory if self.directory is not None else Path.cwd()
        return base / self.main

    def to_dict(self) -> dict:
        """Serialize back to the manifest file shape."""
        return self.model_dump(mode="json")
