import os
from typing import List, Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

# channels that can carry Aadhaar, PAN or OTP values: the form values, the
# last typed value and the raw graph input
PII_CHANNELS = ("values", "field_value", "__start__")


class AppSettings(BaseModel):
    environment: str = "development"
    port: int = 5001
    api_base_url: str = ""
    log_level: str = "INFO"
    init_db: bool = False

    checkpoint_backend: Literal["memory", "postgres"] = "memory"
    encrypt_keys: List[str] = Field(default_factory=lambda: list(PII_CHANNELS))

    # seconds; applies to every OTP / step-submit call, no retries
    collaborator_timeout: float = 10.0
    otp_delay: float = 2.0
    submit_delay: float = 1.5
    # seconds an open form may sit idle before it is evicted; 0 disables eviction
    session_ttl: float = 1800.0

    @classmethod
    def from_env(cls) -> "AppSettings":
        port = int(os.getenv("PORT", "5001"))
        return cls(
            environment=os.getenv("APP_ENV", "development"),
            port=port,
            api_base_url=os.getenv("API_BASE_URL", f"http://localhost:{port}"),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            init_db=os.getenv("INIT_DB", "false").lower() in ("1", "true", "yes"),
            checkpoint_backend=os.getenv("CHECKPOINT_BACKEND", "memory"),
            encrypt_keys=[
                k.strip()
                for k in os.getenv("CHECKPOINT_ENCRYPT_KEYS", ",".join(PII_CHANNELS)).split(",")
                if k.strip()
            ],
            collaborator_timeout=float(os.getenv("COLLABORATOR_TIMEOUT_SECONDS", "10")),
            otp_delay=float(os.getenv("OTP_DELAY_SECONDS", "2.0")),
            submit_delay=float(os.getenv("SUBMIT_DELAY_SECONDS", "1.5")),
            session_ttl=float(os.getenv("SESSION_TTL_SECONDS", "1800")),
        )
