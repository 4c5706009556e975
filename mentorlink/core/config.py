import os
from pathlib import Path
from typing import Any, get_type_hints

from pydantic import ConfigDict, ValidationError
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    SECRET: str
    DATABASE_URL: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    COOKIE_SECURE: bool = True

    # A participant is "away" from a conversation once this many seconds
    # have passed since their last heartbeat or view
    PRESENCE_THRESHOLD_SECONDS: int = 30

    SSE_KEEPALIVE_SECONDS: float = 15.0
    SSE_QUEUE_SIZE: int = 256

    # 0 disables the in-process sweep; the check-due endpoint still works
    REMINDER_SWEEP_INTERVAL_SECONDS: int = 0
    REMINDER_SWEEP_TOKEN: str | None = None

    model_config = ConfigDict(env_file=".env", env_file_encoding="utf-8")

    @classmethod
    def get_required_fields(cls) -> list[str]:
        """Get all required fields (those without default values)."""
        hints = get_type_hints(cls)
        return [
            field
            for field, _ in hints.items()
            if field.isupper() and (not hasattr(cls, field) or getattr(cls, field) is Any)
        ]

    def __init__(self, **kwargs):
        try:
            super().__init__(**kwargs)
        except ValidationError as e:
            env_file = Path(".env")
            required_fields = self.get_required_fields()

            missing_fields = [field for field in required_fields if not os.getenv(field)]

            if missing_fields:
                fields_str = "\n".join(f"- {field}" for field in missing_fields)
                example_env = "\n".join(
                    f"{field}=your_{field.lower()}_here" for field in missing_fields
                )

                if not env_file.exists():
                    error_msg = (
                        f"\n\nError: Missing required environment variables!"
                        f"\nMissing variables: {fields_str}"
                        f"\n\nFor local development, create a .env file with:"
                        f"\n{example_env}"
                    )
                else:
                    error_msg = (
                        f"\n\nError: Missing required environment variables!"
                        f"\nMissing variables: {fields_str}"
                        f"\n\nPlease add these to your .env file or set as environment variables."
                    )

                raise ValueError(error_msg) from e
            else:
                raise


settings = Settings()
