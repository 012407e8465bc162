"""Configuration management for AAP agents."""

import os
import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal, Optional
from pathlib import Path

from .protocol.bundle import MAX_EID_LENGTH, MAX_PAYLOAD_LENGTH
from .utils import setup_logging


class NodeConfig(BaseSettings):
    """How to reach the bundle node."""
    model_config = SettingsConfigDict(env_prefix="AAP_NODE_")

    transport: Literal["unix", "tcp"] = Field(default="unix", description="Transport to the AAP endpoint")
    socket_path: str = Field(
        default="/run/archipel-core/archipel-core.socket",
        description="AAP Unix domain socket"
    )
    host: str = Field(default="127.0.0.1", description="AAP TCP host")
    port: int = Field(default=4242, ge=1, le=65535, description="AAP TCP port")
    timeout: Optional[float] = Field(default=None, gt=0, description="Socket timeout in seconds")

    @field_validator('socket_path')
    @classmethod
    def expand_path(cls, v):
        """Expand user path."""
        return os.path.expanduser(v)


class AgentConfig(BaseSettings):
    """Agent registration."""
    model_config = SettingsConfigDict(env_prefix="AAP_AGENT_")

    agent_id: str = Field(default="agent", description="Agent ID requested from the node")

    @field_validator('agent_id')
    @classmethod
    def validate_agent_id(cls, v):
        """Validate agent ID."""
        if not v:
            raise ValueError("Agent ID must not be empty")
        if len(v.encode('utf-8')) > MAX_EID_LENGTH:
            raise ValueError(f"Agent ID must be at most {MAX_EID_LENGTH} bytes")
        return v


class ProtocolConfig(BaseSettings):
    """Protocol limits."""
    model_config = SettingsConfigDict(env_prefix="AAP_PROTOCOL_")

    read_size: int = Field(default=4096, ge=1, description="Bytes requested per transport read")
    max_payload_size: int = Field(
        default=MAX_PAYLOAD_LENGTH,
        ge=0,
        le=MAX_PAYLOAD_LENGTH,
        description="Largest bundle payload accepted from the node"
    )


class LoggingConfig(BaseSettings):
    """Logging configuration."""
    model_config = SettingsConfigDict(env_prefix="AAP_LOGGING_")

    level: str = Field(default="INFO", description="Log level")
    file: Optional[str] = Field(default=None, description="Log file path")
    max_size: int = Field(default=10485760, description="Max log file size")
    backup_count: int = Field(default=5, description="Number of backup files")

    @field_validator('file')
    @classmethod
    def expand_path(cls, v):
        """Expand user path."""
        return os.path.expanduser(v) if v else v

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v


class Config(BaseSettings):
    """Main configuration class."""
    node: NodeConfig = Field(default_factory=NodeConfig)
    agent: AgentConfig = Field(default_factory=AgentConfig)
    protocol: ProtocolConfig = Field(default_factory=ProtocolConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = SettingsConfigDict(
        env_prefix='AAP_',
        env_nested_delimiter='__',
        case_sensitive=False
    )

    @classmethod
    def load_from_file(cls, config_path: Optional[str] = None) -> 'Config':
        """
        Load configuration from YAML file.

        Args:
            config_path: Path to config file (uses default locations if None)

        Returns:
            Loaded configuration
        """
        if config_path:
            config_file = Path(config_path)
        else:
            possible_paths = [
                Path("aap.yaml"),
                Path("~/.config/aap/config.yaml").expanduser(),
                Path("/etc/aap/config.yaml"),
            ]

            config_file = None
            for path in possible_paths:
                if path.exists():
                    config_file = path
                    break

        if config_file and config_file.exists():
            with open(config_file, 'r') as f:
                data = yaml.safe_load(f)

            if data:
                config_dict = {}
                for section, values in data.items():
                    if isinstance(values, dict):
                        config_dict[section] = values

                return cls(**config_dict)

        return cls()

    def setup_logging(self):
        """Apply the logging section to the ``aapclient`` logger."""
        return setup_logging(
            log_level=self.logging.level,
            log_file=self.logging.file,
            max_size=self.logging.max_size,
            backup_count=self.logging.backup_count
        )

    def save_to_file(self, config_path: str):
        """
        Save configuration to YAML file.

        Args:
            config_path: Path to save config file
        """
        config_dict = {
            'node': self.node.model_dump(),
            'agent': self.agent.model_dump(),
            'protocol': self.protocol.model_dump(),
            'logging': self.logging.model_dump()
        }

        config_file = Path(config_path)
        config_file.parent.mkdir(parents=True, exist_ok=True)

        with open(config_file, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, sort_keys=False)
