"""
Configuration management for the FTSO price forecaster.
"""

from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings


class RetrievalConfig(BaseModel):
    """Price history retrieval configuration."""
    max_retries: int = 3
    retry_delay_s: float = 2.0
    batch_ceiling: int = 20
    default_count: int = 10


class ChainConfig(BaseModel):
    """Ledger source configuration (Flare Coston2 by default)."""
    rpc_url: str = "https://coston2-api.flare.network/ext/C/rpc"
    contract_address: str | None = None
    timeout_s: float = 30.0


class RemoteInferenceConfig(BaseModel):
    """Hosted chat-completion configuration."""
    api_url: str = "https://api.mistral.ai/v1/chat/completions"
    model: str = "mistral-small-latest"
    api_key: str | None = None
    max_tokens: int = 256
    temperature: float = 0.7
    top_p: float = 0.9
    presence_penalty: float = 0.2
    frequency_penalty: float = 0.3
    timeout_s: float = 30.0


class LocalModelConfig(BaseModel):
    """Local inference artifact and heuristic configuration."""
    artifact_path: str = "models/model.onnx"
    input_name: str = "input"
    output_name: str = "output"
    heuristic_window: int = 5
    min_samples: int = 100


class MonitoringConfig(BaseModel):
    """Monitoring configuration."""
    log_level: str = "INFO"
    json_logs: bool = False


class ForecasterConfig(BaseSettings):
    """Main forecaster configuration."""

    model_config = {"env_prefix": "FORECASTER_", "env_nested_delimiter": "__"}

    # Environment
    environment: str = Field(default="development")

    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    chain: ChainConfig = Field(default_factory=ChainConfig)
    remote: RemoteInferenceConfig = Field(default_factory=RemoteInferenceConfig)
    local_model: LocalModelConfig = Field(default_factory=LocalModelConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)

    # Accepted under both names used by existing deployments
    mistral_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("MISTRAL_API_KEY", "MISTRAL_AI_PRIVATE_KEY"),
    )

    def is_production(self) -> bool:
        """Check if running in production."""
        return self.environment == "production"

    def get_remote_api_key(self) -> str | None:
        """Get the first non-blank Mistral API key, if any."""
        for key in (self.remote.api_key, self.mistral_api_key):
            if key and key.strip():
                return key.strip()
        return None


@lru_cache
def get_config() -> ForecasterConfig:
    """Get cached configuration instance."""
    # Load .env file if present
    from dotenv import load_dotenv
    load_dotenv()

    return ForecasterConfig()
