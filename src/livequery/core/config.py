"""Configuration settings for the live query client."""
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Client settings loaded from environment."""

    # Prefix of every remote method: <namespace>.<model>.<method>
    rpc_namespace: str = "MR"

    # Privilege level of the anonymous user before authorize()
    default_privilege_level: int = 0

    class Config:
        env_prefix = "LIVEQUERY_"
        env_file = ".env"


settings = Settings()
