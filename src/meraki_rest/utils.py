"""
Shared utilities for meraki-rest.

Provides:
- Environment variable handling with a centralized registry
- Header redaction for log output
"""

import json
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

REDACTED = "***REDACTED***"

SENSITIVE_HEADERS = frozenset({"authorization", "x-cisco-meraki-api-key"})


# ============================================================================
# Header Redaction
# ============================================================================

def redact_headers(headers: Iterable[tuple[str, str]]) -> dict[str, str]:
    """
    Copy headers into a dict with credential values masked.

    Args:
        headers: Iterable of (name, value) pairs

    Returns:
        Dict safe to attach to log events
    """
    return {
        name: "****" if name.lower() in SENSITIVE_HEADERS else value
        for name, value in headers
    }


# ============================================================================
# Environment Variable Registry
# ============================================================================

class EnvVarType(str, Enum):
    """Type of environment variable."""

    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"


def _coerce(var_type: EnvVarType, raw: str, default: Any) -> Any:
    if var_type == EnvVarType.INT:
        try:
            return int(raw)
        except ValueError:
            return default
    if var_type == EnvVarType.FLOAT:
        try:
            return float(raw)
        except ValueError:
            return default
    if var_type == EnvVarType.BOOL:
        if not raw:
            return default
        return raw.lower() in ("true", "1", "yes", "on")
    return raw


@dataclass
class EnvVarInfo:
    """Information about a registered environment variable."""

    name: str
    var_type: EnvVarType
    default: Any
    description: str = ""
    section: str = ""  # e.g., "client", "retry", "ratelimit"
    required: bool = False
    secret: bool = False  # If True, mask value in dumps

    def get_current_value(self) -> Any:
        """Get current value from environment."""
        raw = os.environ.get(self.name)
        if raw is None:
            return self.default
        return _coerce(self.var_type, raw, self.default)

    def is_set(self) -> bool:
        """Check if variable is explicitly set in environment."""
        return self.name in os.environ

    def to_dict(self, include_value: bool = True) -> dict[str, Any]:
        """Convert to dictionary representation."""
        result = {
            "name": self.name,
            "type": self.var_type.value,
            "default": self.default,
            "description": self.description,
            "section": self.section,
            "required": self.required,
            "is_set": self.is_set(),
        }
        if include_value:
            if self.secret and self.is_set():
                result["value"] = REDACTED
            else:
                result["value"] = self.get_current_value()
        return result


class EnvRegistry:
    """
    Centralized registry for environment variables.

    Tracks every variable read through the get_env_* functions so the CLI
    can document and validate the client configuration.
    """

    _instance: "EnvRegistry | None" = None
    _vars: dict[str, EnvVarInfo]

    def __new__(cls) -> "EnvRegistry":
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._vars = {}
        return cls._instance

    def register(
        self,
        name: str,
        var_type: EnvVarType,
        default: Any,
        description: str = "",
        section: str = "",
        required: bool = False,
        secret: bool = False,
    ) -> EnvVarInfo:
        """
        Register an environment variable.

        Re-registering a known name only fills in details that were missing
        the first time.

        Returns:
            EnvVarInfo for the registered variable
        """
        if name in self._vars:
            existing = self._vars[name]
            if description and not existing.description:
                existing.description = description
            if section and not existing.section:
                existing.section = section
            existing.required = existing.required or required
            existing.secret = existing.secret or secret
            return existing

        info = EnvVarInfo(
            name=name,
            var_type=var_type,
            default=default,
            description=description,
            section=section,
            required=required,
            secret=secret,
        )
        self._vars[name] = info
        return info

    def by_section(self, section: str) -> dict[str, EnvVarInfo]:
        """Get variables for a specific section."""
        return {k: v for k, v in self._vars.items() if v.section == section}

    def sections(self) -> list[str]:
        """Get list of all sections."""
        return sorted(set(v.section for v in self._vars.values() if v.section))

    def _grouped(self) -> list[tuple[str, dict[str, EnvVarInfo]]]:
        groups = []
        for section in self.sections() or [""]:
            section_vars = self.by_section(section) if section else {
                k: v for k, v in self._vars.items() if not v.section
            }
            if section_vars:
                groups.append((section, section_vars))
        return groups

    def to_dict(self, include_values: bool = True) -> dict[str, Any]:
        """Export registry as dictionary."""
        return {
            name: info.to_dict(include_value=include_values)
            for name, info in sorted(self._vars.items())
        }

    def to_json(self, include_values: bool = True, indent: int = 2) -> str:
        """Export registry as JSON string."""
        return json.dumps(self.to_dict(include_values), indent=indent)

    def to_markdown(self, include_values: bool = False) -> str:
        """
        Export registry as markdown documentation.

        Args:
            include_values: Include current values column

        Returns:
            Markdown table string
        """
        lines = ["# Environment Variables\n"]

        for section, section_vars in self._grouped():
            lines.append(f"\n## {section.title() if section else 'General'}\n")

            if include_values:
                lines.append("| Variable | Type | Default | Current | Description |")
                lines.append("|----------|------|---------|---------|-------------|")
            else:
                lines.append("| Variable | Type | Default | Description |")
                lines.append("|----------|------|---------|-------------|")

            for name, info in sorted(section_vars.items()):
                default_str = f"`{info.default}`" if info.default != "" else '""'
                if include_values:
                    if info.secret and info.is_set():
                        value_str = "***"
                    else:
                        value_str = f"`{info.get_current_value()}`"
                    lines.append(
                        f"| `{name}` | {info.var_type.value} | {default_str} | {value_str} | {info.description} |"
                    )
                else:
                    lines.append(
                        f"| `{name}` | {info.var_type.value} | {default_str} | {info.description} |"
                    )

        return "\n".join(lines)

    def to_env_example(self) -> str:
        """Export registry as .env.example file content."""
        lines = ["# Environment Variables for meraki-rest", "#"]

        for section, section_vars in self._grouped():
            if section:
                lines.append(f"\n# === {section.upper()} ===")

            for name, info in sorted(section_vars.items()):
                if info.description:
                    lines.append(f"# {info.description}")
                if info.secret:
                    lines.append(f"# {name}=your-secret-here")
                else:
                    lines.append(f"{name}={info.default}")

        return "\n".join(lines)

    def validate(self) -> list[str]:
        """
        Validate required variables are set.

        Returns:
            List of error messages for missing required variables
        """
        errors = []
        for name, info in sorted(self._vars.items()):
            if info.required and not info.is_set():
                errors.append(f"Required environment variable {name} is not set")
        return errors

    def clear(self) -> None:
        """Clear all registered variables (mainly for testing)."""
        self._vars.clear()


# Global registry instance
_registry = EnvRegistry()


def get_env_registry() -> EnvRegistry:
    """Get the global environment variable registry."""
    return _registry


# ============================================================================
# Environment Configuration Functions
# ============================================================================

def get_env_str(
    key: str,
    default: str = "",
    description: str = "",
    section: str = "",
    required: bool = False,
    secret: bool = False,
) -> str:
    """
    Get a string from environment variable.

    Args:
        key: Environment variable name
        default: Default value if not set
        description: Human-readable description (for registry)
        section: Group for organization
        required: Whether variable is required
        secret: Whether to mask in dumps (e.g., API tokens)

    Returns:
        String value
    """
    _registry.register(key, EnvVarType.STRING, default, description, section, required, secret)
    return os.environ.get(key, default)


def get_env_int(
    key: str,
    default: int,
    description: str = "",
    section: str = "",
    required: bool = False,
) -> int:
    """Get an integer from environment variable, falling back on bad input."""
    _registry.register(key, EnvVarType.INT, default, description, section, required)
    return _coerce(EnvVarType.INT, os.environ.get(key, str(default)), default)


def get_env_float(
    key: str,
    default: float,
    description: str = "",
    section: str = "",
    required: bool = False,
) -> float:
    """Get a float from environment variable, falling back on bad input."""
    _registry.register(key, EnvVarType.FLOAT, default, description, section, required)
    return _coerce(EnvVarType.FLOAT, os.environ.get(key, str(default)), default)


def get_env_bool(
    key: str,
    default: bool = False,
    description: str = "",
    section: str = "",
) -> bool:
    """
    Get a boolean from environment variable.

    Returns:
        Boolean value (true/1/yes/on = True, others = False)
    """
    _registry.register(key, EnvVarType.BOOL, default, description, section)
    return _coerce(EnvVarType.BOOL, os.environ.get(key, ""), default)


# ============================================================================
# Convenience Functions
# ============================================================================

def dump_env_config(format: str = "json", include_values: bool = True) -> str:
    """
    Dump all registered environment variables.

    Args:
        format: Output format ("json", "markdown", "env")
        include_values: Include current values

    Returns:
        Formatted string
    """
    if format == "markdown":
        return _registry.to_markdown(include_values=include_values)
    elif format == "env":
        return _registry.to_env_example()
    else:
        return _registry.to_json(include_values=include_values)


def validate_env_config() -> list[str]:
    """Validate all required environment variables are set."""
    return _registry.validate()
