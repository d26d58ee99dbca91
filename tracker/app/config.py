"""
Runtime configuration.

Values come from the environment, optionally seeded from a .env file in the
working directory. Nothing here is required: with no configuration the
service runs with an in-memory product store seeded with sample data, the
built-in trust registry and the deterministic claim extractor.
"""
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    log_level: str = "INFO"
    products_file: Optional[str] = None
    seed_sample_data: bool = True
    sample_product_count: int = 10
    block_size: int = 5
    registry_file: Optional[str] = None
    llm_endpoint: Optional[str] = None
    llm_api_key: Optional[str] = None
    llm_model: str = "gemini-pro"
    llm_timeout_seconds: float = 10.0

    @property
    def llm_configured(self) -> bool:
        return bool(self.llm_endpoint and self.llm_api_key)


def get_settings() -> Settings:
    """Read settings from the current environment."""
    return Settings(
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        products_file=os.getenv("PRODUCTS_FILE") or None,
        seed_sample_data=_env_bool("SEED_SAMPLE_DATA", True),
        sample_product_count=int(os.getenv("SAMPLE_PRODUCT_COUNT", "10")),
        block_size=int(os.getenv("BLOCK_SIZE", "5")),
        registry_file=os.getenv("REGISTRY_FILE") or None,
        llm_endpoint=os.getenv("LLM_ENDPOINT") or None,
        llm_api_key=os.getenv("LLM_API_KEY") or None,
        llm_model=os.getenv("LLM_MODEL", "gemini-pro"),
        llm_timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "10")),
    )
