import enum
from pathlib import Path

from pydantic_settings import BaseSettings


class DeclinePolicy(str, enum.Enum):
    MANUAL = "manual"
    CANCEL_ON_DECLINE = "cancel_on_decline"
    CANCEL_WHEN_ALL_DECLINED = "cancel_when_all_declined"


class Settings(BaseSettings):
    database_url: str = "sqlite:///./docsign.db"
    storage_dir: Path = Path("storage")
    public_base_url: str = "http://localhost:8000"
    # What a signer's decline does to the document; "manual" leaves it to the owner.
    decline_policy: DeclinePolicy = DeclinePolicy.MANUAL
    max_upload_bytes: int = 20 * 1024 * 1024  # 20 MiB
    log_level: str = "INFO"
    api_prefix: str = ""

    model_config = {"env_prefix": "DOCSIGN_"}


settings = Settings()
