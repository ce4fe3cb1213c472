from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

ENV_PATH = Path(__file__).resolve().parent.parent / ".env.local"


class Settings(BaseSettings):
    # Environment settings
    environment: str = "development"
    debug: bool = False
    LOG_LEVEL: str = "INFO"

    # =================================================================
    # REQUEST VERIFICATION - trust anchors for the voice platform
    # =================================================================
    ALEXA_TRUSTED_HOST: str = "s3.amazonaws.com"
    ALEXA_TRUSTED_PORT: int = 443
    ALEXA_REQUIRED_PATH_PREFIX: str = "/echo.api/"
    ALEXA_VERIFY_HOSTNAME: str = "echo-api.amazon.com"
    ALEXA_MAX_SKEW_SECONDS: int = 150

    # Future-dated timestamps are only logged unless this is enabled
    ALEXA_REJECT_FUTURE_TIMESTAMPS: bool = False

    ALEXA_FETCH_TIMEOUT_SECONDS: float = 5.0

    # PEM bundle of trust anchors; falls back to the certifi bundle
    ALEXA_TRUST_ROOTS_PATH: str | None = None

    # 0 disables the validated-certificate cache
    ALEXA_CERT_CACHE_TTL_SECONDS: int = 0

    # Comma separated path prefixes that require a verified signature
    ALEXA_PROTECTED_PATHS: str = "/alexa"

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def protected_paths(self) -> list[str]:
        """Split ALEXA_PROTECTED_PATHS into a clean list of prefixes."""
        return [p.strip() for p in self.ALEXA_PROTECTED_PATHS.split(",") if p.strip()]

    def trust_roots_pem(self) -> bytes:
        """
        Load the PEM trust anchors used for chain verification.

        Reads ALEXA_TRUST_ROOTS_PATH when set, otherwise the certifi bundle
        (the same public roots httpx trusts for outbound TLS).
        """
        if self.ALEXA_TRUST_ROOTS_PATH:
            return Path(self.ALEXA_TRUST_ROOTS_PATH).read_bytes()

        import certifi

        return Path(certifi.where()).read_bytes()


settings = Settings()
