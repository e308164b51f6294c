from pydantic_settings import BaseSettings, SettingsConfigDict


class FeatureFlags(BaseSettings):
    MANUAL_CONFIRMATION: bool = True
    ONCHAIN_TRANSFERS: bool = False

    model_config = SettingsConfigDict(env_prefix="FEATURE_", case_sensitive=True)
