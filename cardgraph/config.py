"""
Configuration for CardGraph.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from cardgraph.models.context import CompileSettings, ContextLimits
from cardgraph.utils.exceptions import ConfigurationError


class ContextConfig(BaseModel):
    """Context assembly configuration."""

    use_summarization: bool = False
    quote_truncation_chars: int = 500
    virtual_parent_truncation_chars: int = 500
    virtual_ancestor_truncation_chars: int = 300
    attachment_snippet_chars: int = 1200
    max_attachments_per_card: int = 10
    virtual_top_k: int = 5
    # Hard ceiling on ancestor traversal steps (guards against cyclic data)
    max_ancestor_iterations: int = 500


class SearchConfig(BaseModel):
    """Semantic search configuration."""

    similarity_threshold: float = 0.5
    limit: int = 20


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class Config(BaseModel):
    """Main configuration."""

    context: ContextConfig = Field(default_factory=ContextConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    # Optional canvas snapshot loaded by the HTTP app at startup
    snapshot_path: str | None = None

    def context_limits(self) -> ContextLimits:
        """Build compile-time character caps from the context section."""
        return ContextLimits(
            quote_truncation_chars=self.context.quote_truncation_chars,
            virtual_parent_truncation_chars=self.context.virtual_parent_truncation_chars,
            virtual_ancestor_truncation_chars=self.context.virtual_ancestor_truncation_chars,
            attachment_snippet_chars=self.context.attachment_snippet_chars,
            max_attachments_per_card=self.context.max_attachments_per_card,
            virtual_top_k=self.context.virtual_top_k,
        )

    def compile_settings(self, use_summarization: bool | None = None) -> CompileSettings:
        """
        Build compile settings.

        Args:
            use_summarization: Override for the configured summarization flag

        Returns:
            CompileSettings without an exclusion override
        """
        if use_summarization is None:
            use_summarization = self.context.use_summarization
        return CompileSettings(
            use_summarization=use_summarization,
            limits=self.context_limits(),
        )

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in project root)

        Returns:
            Config instance

        Raises:
            ConfigurationError: If a numeric variable cannot be converted

        Environment variables:
            CARDGRAPH_USE_SUMMARIZATION: Surface ancestor summaries instead of full responses
            CARDGRAPH_QUOTE_TRUNCATION_CHARS: Cap for quoted deeper ancestors
            CARDGRAPH_VIRTUAL_PARENT_TRUNCATION_CHARS: Cap for virtual ancestors of direct parents
            CARDGRAPH_VIRTUAL_ANCESTOR_TRUNCATION_CHARS: Cap for virtual ancestors of deeper ancestors
            CARDGRAPH_ATTACHMENT_SNIPPET_CHARS: Cap for inherited attachment surrogates
            CARDGRAPH_MAX_ATTACHMENTS_PER_CARD: Attachments surfaced per owner card
            CARDGRAPH_VIRTUAL_TOP_K: Virtual ancestors kept after filtering
            CARDGRAPH_MAX_ANCESTOR_ITERATIONS: Traversal ceiling
            CARDGRAPH_SIMILARITY_THRESHOLD: Minimum similarity for search hits
            CARDGRAPH_SEARCH_LIMIT: Raw candidates requested from search
            CARDGRAPH_SNAPSHOT_PATH: Canvas snapshot loaded at startup
            CARDGRAPH_LOG_LEVEL: Log level
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if value is None:
                return default
            if value == "":
                return default
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            try:
                if isinstance(default, int):
                    return int(value)
                if isinstance(default, float):
                    return float(value)
            except ValueError as e:
                raise ConfigurationError(f"Invalid value for {key}: {value!r}") from e
            return value

        return cls(
            context=ContextConfig(
                use_summarization=get_env("CARDGRAPH_USE_SUMMARIZATION", False),
                quote_truncation_chars=get_env("CARDGRAPH_QUOTE_TRUNCATION_CHARS", 500),
                virtual_parent_truncation_chars=get_env(
                    "CARDGRAPH_VIRTUAL_PARENT_TRUNCATION_CHARS", 500
                ),
                virtual_ancestor_truncation_chars=get_env(
                    "CARDGRAPH_VIRTUAL_ANCESTOR_TRUNCATION_CHARS", 300
                ),
                attachment_snippet_chars=get_env("CARDGRAPH_ATTACHMENT_SNIPPET_CHARS", 1200),
                max_attachments_per_card=get_env("CARDGRAPH_MAX_ATTACHMENTS_PER_CARD", 10),
                virtual_top_k=get_env("CARDGRAPH_VIRTUAL_TOP_K", 5),
                max_ancestor_iterations=get_env("CARDGRAPH_MAX_ANCESTOR_ITERATIONS", 500),
            ),
            search=SearchConfig(
                similarity_threshold=get_env("CARDGRAPH_SIMILARITY_THRESHOLD", 0.5),
                limit=get_env("CARDGRAPH_SEARCH_LIMIT", 20),
            ),
            logging=LoggingConfig(
                level=get_env("CARDGRAPH_LOG_LEVEL", "INFO"),
                log_to_file=get_env("CARDGRAPH_LOG_TO_FILE", False),
                log_dir=get_env("CARDGRAPH_LOG_DIR", "logs"),
                file_rotation=get_env("CARDGRAPH_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("CARDGRAPH_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("CARDGRAPH_LOG_COMPRESSION", "zip"),
                serialize=get_env("CARDGRAPH_LOG_SERIALIZE", True),
            ),
            snapshot_path=get_env("CARDGRAPH_SNAPSHOT_PATH"),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            ConfigurationError: If the YAML is malformed or holds invalid settings
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Malformed config file {yaml_path}: {e}") from e

        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(f"Config file {yaml_path} must hold a mapping")

        try:
            return cls(**(data or {}))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid settings in {yaml_path}: {e}") from e

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file=env_file)

        final_dict = {**config_dict}

        # Env values that differ from defaults override YAML sections
        default = cls()
        if env_config.context != default.context:
            final_dict["context"] = env_config.context.model_dump()
        if env_config.search != default.search:
            final_dict["search"] = env_config.search.model_dump()
        if env_config.logging != default.logging:
            final_dict["logging"] = env_config.logging.model_dump()
        if env_config.snapshot_path != default.snapshot_path:
            final_dict["snapshot_path"] = env_config.snapshot_path

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
